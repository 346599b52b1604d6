"""
Telegram Auction Bot - Database Schema
======================================

Three record sets back the marketplace:
- users: registered Telegram identities and the chat used to reach them
- items: open auctions, each embedding a copy of its current highest bid
- bids: append-only log of every accepted bid

The embedded highest bid on an item is a denormalized snapshot; the bid log
is the durable record and outlives the item it refers to.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, DateTime, Index, Integer, Numeric, String, func
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# Money columns: 12 digits, 2 decimals
AMOUNT_TYPE = Numeric(12, 2)


class BidDirection(Enum):
    """Which end of the range bids must move towards"""
    LOW = "low"
    HIGH = "high"


@dataclass(frozen=True)
class BidSnapshot:
    """Copy of the winning bid embedded on an item"""
    item_id: int
    user_id: int
    amount: Decimal
    timestamp: datetime


class User(Base):
    """Registered bidder/seller - Telegram-based identity"""
    __tablename__ = 'users'

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    chat_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    username: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<User(user_id={self.user_id}, chat_id={self.chat_id})>"


class Item(Base):
    """Auctionable item with a bid range, optional deadline and direction"""
    __tablename__ = 'items'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    creator_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    low_amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)
    high_amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)

    # Absent for items created without a duration (never expire)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    bid_direction: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)

    # Embedded highest bid - all three set together or all null
    highest_bid_user_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    highest_bid_amount: Mapped[Optional[Decimal]] = mapped_column(AMOUNT_TYPE, nullable=True)
    highest_bid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)

    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Set together with completed when a sweep claims the item
    finalizing_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint('low_amount > 0', name='ck_items_low_positive'),
        CheckConstraint('low_amount < high_amount', name='ck_items_range_ordered'),
        CheckConstraint(
            'highest_bid_amount IS NULL OR '
            '(highest_bid_amount >= low_amount AND highest_bid_amount <= high_amount)',
            name='ck_items_highest_bid_in_range'
        ),
        Index('ix_items_expiry_sweep', 'completed', 'end_time'),
    )

    @property
    def direction(self) -> Optional[BidDirection]:
        return BidDirection(self.bid_direction) if self.bid_direction else None

    @property
    def highest_bid(self) -> Optional[BidSnapshot]:
        if self.highest_bid_amount is None:
            return None
        return BidSnapshot(
            item_id=self.id,
            user_id=self.highest_bid_user_id,
            amount=self.highest_bid_amount,
            timestamp=self.highest_bid_at,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.end_time is not None and self.end_time <= now

    def __repr__(self):
        return f"<Item(id={self.id}, name={self.name!r}, completed={self.completed})>"


class Bid(Base):
    """Append-only bid log entry; kept after its item is deleted"""
    __tablename__ = 'bids'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # No foreign key: finalized items are deleted but their bids remain
    item_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    item_name: Mapped[str] = mapped_column(String(32), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(AMOUNT_TYPE, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    def __repr__(self):
        return f"<Bid(item_id={self.item_id}, user_id={self.user_id}, amount={self.amount})>"
