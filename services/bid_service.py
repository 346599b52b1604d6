"""
Bid Service - validates and atomically commits bids

Checks run in a fixed order and the first failure wins:
  1. amount is a positive number
  2. the item exists
  3. the item is still open (not finalized, deadline not reached)
  4. the amount respects the item's range and bid direction
  5. inside one transaction: the amount beats the current highest bid, the
     embedded highest bid is swapped and the bid is appended to the log

Step 5 is a compare-and-swap on the highest bid read in the same transaction.
Losing a race re-reads the item and either retries (still the best offer) or
rejects with the amount that won.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional
from sqlalchemy.exc import SQLAlchemyError
from models import Bid, BidDirection, Item
from services.auction_errors import (
    AuctionClosedError, AuctionError, ConflictError, NotFoundError, TransientInfraError, ValidationError
)
from services.auction_repository import AuctionRepository
from services.notification_service import NotificationDispatcher
from utils import auction_messages as messages
from utils.datetime_helpers import get_naive_utc_now
from utils.decimal_precision import MonetaryDecimal

logger = logging.getLogger(__name__)

MAX_SWAP_ATTEMPTS = 5


@dataclass
class BidResult:
    """Outcome of a bid; reason is the user-facing text on rejection"""
    accepted: bool
    item_name: str
    amount: Optional[Decimal] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None
    previous_bidder_id: Optional[int] = None
    previous_amount: Optional[Decimal] = None

    @classmethod
    def rejected(cls, item_name: str, error: AuctionError, amount: Optional[Decimal] = None) -> "BidResult":
        return cls(
            accepted=False,
            item_name=item_name,
            amount=amount,
            reason=error.message,
            error_code=error.error_code,
        )


class _SwapOutcome(Enum):
    ACCEPTED = "accepted"
    TOO_LOW = "too_low"
    CLOSED = "closed"
    RETRY = "retry"


def check_bid_range(item: Item, amount: Decimal) -> None:
    """Raise ValidationError unless amount fits the item's range and direction"""
    direction = item.direction
    if direction is BidDirection.LOW and amount >= item.high_amount:
        raise ValidationError(messages.bid_below_high_limit(item.high_amount), "BID_OUT_OF_RANGE")
    if direction is BidDirection.HIGH and amount <= item.low_amount:
        raise ValidationError(messages.bid_above_low_limit(item.low_amount), "BID_OUT_OF_RANGE")
    if amount < item.low_amount or amount > item.high_amount:
        raise ValidationError(messages.bid_out_of_range(item.low_amount, item.high_amount), "BID_OUT_OF_RANGE")


class BidService:
    """Bid acceptance protocol"""

    def __init__(
        self,
        repository: AuctionRepository,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = get_naive_utc_now,
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.clock = clock

    async def place_bid(self, item_name: str, bidder_id: int, amount) -> BidResult:
        """
        Validate and commit a bid.

        Returns:
            BidResult with accepted=True, or accepted=False and the reason

        Raises:
            TransientInfraError: persistence failed; nothing was committed
        """
        parsed = MonetaryDecimal.parse_positive(amount)
        try:
            if parsed is None:
                raise ValidationError(messages.invalid_bid_amount(), "INVALID_AMOUNT")

            item = await self._load_item(item_name)
            if item is None:
                raise NotFoundError(messages.item_not_found(item_name))

            now = self.clock()
            if item.completed or item.is_expired(now):
                raise AuctionClosedError(messages.auction_ended(item_name))

            check_bid_range(item, parsed)
            result = await self._commit_bid(item, bidder_id, parsed)
        except TransientInfraError:
            raise
        except AuctionError as e:
            logger.info(f"🚫 BID_REJECTED: item={item_name} bidder={bidder_id} amount={amount} code={e.error_code}")
            return BidResult.rejected(item_name, e, parsed)

        logger.info(
            f"✅ BID_ACCEPTED: item={item_name} bidder={bidder_id} amount={parsed} "
            f"previous={result.previous_amount}"
        )
        await self._notify_outbid(result, bidder_id)
        return result

    async def _load_item(self, item_name: str) -> Optional[Item]:
        try:
            return await self.repository.get_item_by_name(item_name)
        except SQLAlchemyError as e:
            logger.error(f"❌ BID_LOOKUP_ERROR: item={item_name}, error={e}")
            raise TransientInfraError() from e

    async def _commit_bid(self, item: Item, bidder_id: int, amount: Decimal) -> BidResult:
        """Compare-and-swap loop; raises ConflictError/AuctionClosedError on rejection"""
        for attempt in range(1, MAX_SWAP_ATTEMPTS + 1):
            try:
                outcome, current = await self._try_swap(item, bidder_id, amount)
            except SQLAlchemyError as e:
                logger.error(f"❌ BID_TRANSACTION_ERROR: item={item.name} bidder={bidder_id}, error={e}")
                raise TransientInfraError() from e

            if outcome is _SwapOutcome.ACCEPTED:
                return BidResult(
                    accepted=True,
                    item_name=item.name,
                    amount=amount,
                    previous_bidder_id=current.user_id if current else None,
                    previous_amount=current.amount if current else None,
                )
            if outcome is _SwapOutcome.CLOSED:
                raise AuctionClosedError(messages.auction_ended(item.name))
            if outcome is _SwapOutcome.TOO_LOW:
                raise ConflictError(messages.bid_too_low(current.amount), "BID_TOO_LOW")

            logger.debug(f"🔁 BID_SWAP_RETRY: item={item.name} attempt={attempt}")
            await asyncio.sleep(0)

        logger.warning(f"⚠️ BID_SWAP_EXHAUSTED: item={item.name} bidder={bidder_id} amount={amount}")
        raise TransientInfraError()

    async def _try_swap(self, item: Item, bidder_id: int, amount: Decimal):
        """
        One transaction: re-read the item, decide, swap and log.

        Returns (outcome, snapshot) where snapshot is the highest bid that was
        current when the decision was made.
        """
        async with self.repository.transaction() as session:
            locked = await self.repository.get_item_by_name(item.name, session=session, for_update=True)
            now = self.clock()
            if locked is None or locked.id != item.id or locked.completed or locked.is_expired(now):
                return _SwapOutcome.CLOSED, None

            current = locked.highest_bid
            if current is not None and amount <= current.amount:
                return _SwapOutcome.TOO_LOW, current

            timestamp = now
            swapped = await self.repository.compare_and_set_highest_bid(
                session,
                item_id=locked.id,
                expected=current,
                bidder_id=bidder_id,
                amount=amount,
                timestamp=timestamp,
                now=now,
            )
            if not swapped:
                # Someone else committed first; discard and decide again
                await session.rollback()
                return _SwapOutcome.RETRY, current

            await self.repository.add_bid(Bid(
                item_id=locked.id,
                item_name=locked.name,
                user_id=bidder_id,
                amount=amount,
                timestamp=timestamp,
            ), session=session)
            return _SwapOutcome.ACCEPTED, current

    async def _notify_outbid(self, result: BidResult, bidder_id: int):
        """Best-effort; the bid is already committed"""
        previous = result.previous_bidder_id
        if previous is None or previous == bidder_id:
            return
        try:
            await self.dispatcher.notify_user(previous, messages.outbid(result.item_name, result.amount))
        except Exception as e:
            logger.error(f"❌ OUTBID_NOTIFY_ERROR: item={result.item_name} user={previous}, error={e}")
