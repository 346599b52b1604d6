"""
Auction Service - registration, item creation and read-only queries

Validation happens before any write. Persistence failures are logged and
re-raised as TransientInfraError so handlers can show a generic retry message.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from config import Config
from models import BidDirection, BidSnapshot, Item, User
from services.auction_errors import (
    ConflictError, NotFoundError, NotRegisteredError, TransientInfraError, ValidationError
)
from services.auction_repository import AuctionRepository
from utils import auction_messages as messages
from utils.datetime_helpers import get_naive_utc_now
from utils.decimal_precision import MonetaryDecimal

logger = logging.getLogger(__name__)

ITEM_NAME_PATTERN = re.compile(r"^\w+$")


def parse_direction(value: Optional[str]) -> Optional[BidDirection]:
    """Map 'low'/'high' (any case) to BidDirection; None passes through"""
    if value is None:
        return None
    try:
        return BidDirection(str(value).strip().lower())
    except ValueError:
        return None


class AuctionService:
    """User registration, item creation and item queries"""

    def __init__(self, repository: AuctionRepository, clock: Callable[[], datetime] = get_naive_utc_now):
        self.repository = repository
        self.clock = clock

    async def register(self, user_id: int, chat_id: int, username: Optional[str] = None) -> bool:
        """
        Register a user. Idempotent.

        Returns:
            True if a new record was stored, False if the user already existed
        """
        try:
            existing = await self.repository.get_user(user_id)
            if existing is not None:
                logger.info(f"👤 REGISTER_EXISTS: user={user_id}")
                return False

            await self.repository.add_user(User(
                user_id=user_id,
                chat_id=chat_id,
                username=username,
                created_at=self.clock(),
            ))
        except IntegrityError:
            # A concurrent /register for the same user won the insert
            logger.info(f"👤 REGISTER_RACE: user={user_id} inserted concurrently")
            return False
        except SQLAlchemyError as e:
            logger.error(f"❌ REGISTER_ERROR: user={user_id}, error={e}")
            raise TransientInfraError() from e

        logger.info(f"✅ REGISTERED: user={user_id} chat={chat_id}")
        return True

    async def create_item(
        self,
        creator_id: int,
        name: str,
        low_amount,
        high_amount,
        duration_minutes: Optional[int] = None,
        bid_direction: Optional[str] = None,
    ) -> Item:
        """Create an item open for bidding; duration and direction come as a pair"""
        name = (name or "").strip()
        if (not ITEM_NAME_PATTERN.match(name)) or len(name) > Config.MAX_ITEM_NAME_LENGTH:
            raise ValidationError(
                f"Item names may only contain letters, digits and underscores "
                f"(max {Config.MAX_ITEM_NAME_LENGTH} characters).",
                "INVALID_ITEM_NAME",
            )

        low = MonetaryDecimal.parse_positive(low_amount)
        high = MonetaryDecimal.parse_positive(high_amount)
        if low is None or high is None or low >= high:
            raise ValidationError(messages.invalid_item_parameters(), "INVALID_ITEM_PARAMETERS")

        if (duration_minutes is None) != (bid_direction is None):
            raise ValidationError(messages.createitem_usage(), "INVALID_ITEM_PARAMETERS")

        direction = None
        end_time = None
        if duration_minutes is not None:
            try:
                minutes = int(duration_minutes)
            except (TypeError, ValueError):
                minutes = 0
            direction = parse_direction(bid_direction)
            if minutes <= 0 or direction is None:
                raise ValidationError(messages.invalid_item_parameters(), "INVALID_ITEM_PARAMETERS")
            end_time = self.clock() + timedelta(minutes=minutes)

        try:
            creator = await self.repository.get_user(creator_id)
            existing = await self.repository.get_item_by_name(name)
        except SQLAlchemyError as e:
            logger.error(f"❌ CREATE_ITEM_LOOKUP_ERROR: name={name}, error={e}")
            raise TransientInfraError() from e

        if creator is None:
            raise NotRegisteredError()
        if existing is not None:
            raise ConflictError(messages.item_exists(name), "ITEM_EXISTS")

        try:
            item = await self.repository.add_item(Item(
                name=name,
                creator_id=creator_id,
                low_amount=low,
                high_amount=high,
                end_time=end_time,
                bid_direction=direction.value if direction else None,
                completed=False,
                created_at=self.clock(),
            ))
        except IntegrityError as e:
            # Unique name lost to a concurrent /createitem
            logger.info(f"📦 CREATE_ITEM_RACE: name={name} inserted concurrently")
            raise ConflictError(messages.item_exists(name), "ITEM_EXISTS") from e
        except SQLAlchemyError as e:
            logger.error(f"❌ CREATE_ITEM_ERROR: name={name}, error={e}")
            raise TransientInfraError() from e

        logger.info(
            f"✅ ITEM_CREATED: name={name} creator={creator_id} range={low}-{high} "
            f"direction={item.bid_direction} ends={item.end_time}"
        )
        return item

    async def list_items(self) -> List[Item]:
        """All non-finalized items with their highest-bid snapshots"""
        return await self._list(only_bidded=False)

    async def list_bidded_items(self) -> List[Item]:
        """Non-finalized items that have received at least one bid"""
        return await self._list(only_bidded=True)

    async def _list(self, only_bidded: bool) -> List[Item]:
        try:
            return await self.repository.list_items(only_bidded=only_bidded)
        except SQLAlchemyError as e:
            logger.error(f"❌ LIST_ITEMS_ERROR: bidded={only_bidded}, error={e}")
            raise TransientInfraError() from e

    async def current_bid(self, item_name: str) -> Optional[BidSnapshot]:
        """Highest bid on an item, or None when no bids have been placed"""
        item = await self._get_open_item(item_name)
        return item.highest_bid

    async def select_bid_direction(self, item_name: str, direction: str) -> Item:
        """Confirm an inline 'bid towards <direction>' action against the item's rule"""
        item = await self._get_open_item(item_name)
        requested = parse_direction(direction)
        if item.direction is None or item.direction != requested:
            raise ValidationError(messages.direction_mismatch(item.bid_direction), "DIRECTION_MISMATCH")
        return item

    async def _get_open_item(self, item_name: str) -> Item:
        try:
            item = await self.repository.get_item_by_name(item_name)
        except SQLAlchemyError as e:
            logger.error(f"❌ ITEM_LOOKUP_ERROR: name={item_name}, error={e}")
            raise TransientInfraError() from e
        if item is None or item.completed:
            raise NotFoundError(messages.item_not_found(item_name))
        return item
