"""
Auction Repository - async persistence gateway over users, items and bids

Every method accepts an optional session. When one is provided the caller owns
the transaction; otherwise the method runs in its own short session that
commits on success and rolls back on error.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, List, Optional
from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from database import Database
from models import Bid, BidSnapshot, Item, User

logger = logging.getLogger(__name__)


class AuctionRepository:
    """CRUD and transactional primitives for the auction record sets"""

    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """All-or-nothing unit of work; committed or rolled back on every exit path"""
        async with self.database.session() as session:
            yield session

    @asynccontextmanager
    async def _scope(self, session: Optional[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
        if session is not None:
            yield session
        else:
            async with self.database.session() as new_session:
                yield new_session

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: int, session: Optional[AsyncSession] = None) -> Optional[User]:
        async with self._scope(session) as s:
            result = await s.execute(select(User).where(User.user_id == user_id))
            return result.scalar_one_or_none()

    async def add_user(self, user: User, session: Optional[AsyncSession] = None) -> User:
        """Insert a user; a duplicate user_id surfaces as IntegrityError"""
        async with self._scope(session) as s:
            s.add(user)
            await s.flush()
            return user

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def get_item_by_name(
        self,
        name: str,
        session: Optional[AsyncSession] = None,
        for_update: bool = False,
    ) -> Optional[Item]:
        stmt = select(Item).where(Item.name == name)
        if for_update:
            # Row lock on dialects that support it; always reload from the row
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return result.scalar_one_or_none()

    async def get_item(self, item_id: int, session: Optional[AsyncSession] = None) -> Optional[Item]:
        stmt = select(Item).where(Item.id == item_id).execution_options(populate_existing=True)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return result.scalar_one_or_none()

    async def add_item(self, item: Item, session: Optional[AsyncSession] = None) -> Item:
        """Insert an item; a duplicate name surfaces as IntegrityError"""
        async with self._scope(session) as s:
            s.add(item)
            await s.flush()
            return item

    async def list_items(self, only_bidded: bool = False, session: Optional[AsyncSession] = None) -> List[Item]:
        """Non-finalized items in storage order"""
        stmt = select(Item).where(Item.completed.is_(False))
        if only_bidded:
            stmt = stmt.where(Item.highest_bid_amount.is_not(None))
        stmt = stmt.order_by(Item.id)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def find_expired_items(self, now: datetime, session: Optional[AsyncSession] = None) -> List[Item]:
        """Items past their deadline that have not been finalized"""
        stmt = select(Item).where(
            Item.end_time.is_not(None),
            Item.end_time <= now,
            Item.completed.is_(False),
        ).order_by(Item.end_time, Item.id)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def find_abandoned_items(
        self,
        claimed_before: datetime,
        session: Optional[AsyncSession] = None,
    ) -> List[Item]:
        """Items claimed for finalization at or before the cutoff and never deleted"""
        stmt = select(Item).where(
            Item.completed.is_(True),
            Item.finalizing_at <= claimed_before,
        ).order_by(Item.id)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def compare_and_set_highest_bid(
        self,
        session: AsyncSession,
        item_id: int,
        expected: Optional[BidSnapshot],
        bidder_id: int,
        amount: Decimal,
        timestamp: datetime,
        now: datetime,
    ) -> bool:
        """
        Replace the embedded highest bid only if it still equals `expected`.

        The same statement re-checks that the item is open, so a bid never
        lands on an item that finalization has already claimed. Returns False
        when no row matched (lost race, closed, or deleted).
        """
        conditions = [
            Item.id == item_id,
            Item.completed.is_(False),
            or_(Item.end_time.is_(None), Item.end_time > now),
        ]
        if expected is None:
            conditions.append(Item.highest_bid_amount.is_(None))
        else:
            conditions.append(Item.highest_bid_amount == expected.amount)
            conditions.append(Item.highest_bid_user_id == expected.user_id)

        stmt = (
            update(Item)
            .where(*conditions)
            .values(
                highest_bid_user_id=bidder_id,
                highest_bid_amount=amount,
                highest_bid_at=timestamp,
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def mark_completed(
        self,
        item_id: int,
        claimed_at: datetime,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        """Claim an item for finalization; False if it was already claimed or is gone"""
        stmt = (
            update(Item)
            .where(Item.id == item_id, Item.completed.is_(False))
            .values(completed=True, finalizing_at=claimed_at)
            .execution_options(synchronize_session=False)
        )
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return result.rowcount == 1

    async def claim_for_finalization(self, item_id: int, claimed_at: datetime) -> Optional[Item]:
        """
        Claim an item and read it back in the same transaction.

        The read happens while the claim's write lock is held, so the returned
        highest bid is the last one accepted before the claim. Returns None if
        the item was already claimed or no longer exists.
        """
        async with self.transaction() as session:
            if not await self.mark_completed(item_id, claimed_at, session=session):
                return None
            return await self.get_item(item_id, session=session)

    async def delete_item(self, item_id: int, session: Optional[AsyncSession] = None) -> bool:
        stmt = delete(Item).where(Item.id == item_id).execution_options(synchronize_session=False)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return result.rowcount == 1

    # ------------------------------------------------------------------
    # Bids
    # ------------------------------------------------------------------

    async def add_bid(self, bid: Bid, session: Optional[AsyncSession] = None) -> Bid:
        async with self._scope(session) as s:
            s.add(bid)
            await s.flush()
            return bid

    async def list_bids(self, item_id: int, session: Optional[AsyncSession] = None) -> List[Bid]:
        """Bid log for one item, oldest first"""
        stmt = select(Bid).where(Bid.item_id == item_id).order_by(Bid.id)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())
