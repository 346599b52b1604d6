"""
Auction Lifecycle Service - finalization of expired auctions

Per item: OPEN -> EXPIRED_PENDING_FINALIZATION (end_time <= now, derived)
-> FINALIZED (completed flag claimed, participants notified, row deleted).

The completed flag is claimed with a conditional update, so overlapping
sweeps notify each item's participants at most once. Notifications are built
from the row as read back inside the claiming transaction.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
from config import Config
from models import Item
from services.auction_repository import AuctionRepository
from services.notification_service import NotificationDispatcher
from utils import auction_messages as messages
from utils.datetime_helpers import get_naive_utc_now

logger = logging.getLogger(__name__)


class AuctionLifecycleService:
    """Detects expired items and finalizes them"""

    def __init__(
        self,
        repository: AuctionRepository,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = get_naive_utc_now,
        abandon_after_seconds: int = None,
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.clock = clock
        # A claim older than one sweep interval belongs to a finalization that died
        self.abandon_after = timedelta(
            seconds=abandon_after_seconds or Config.AUCTION_SWEEP_INTERVAL_SECONDS
        )

    async def sweep(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Finalize every expired, uncompleted item.

        A failure on one item is logged and recorded; the remaining items in
        the same sweep are still processed.
        """
        now = now or self.clock()
        results = {
            "checked": 0,
            "finalized": 0,
            "skipped": 0,
            "purged": 0,
            "errors": [],
        }

        await self._purge_leftovers(now, results)

        expired = await self.repository.find_expired_items(now)
        results["checked"] = len(expired)
        if expired:
            logger.info(f"🔍 AUCTION_SWEEP: Found {len(expired)} expired auctions")

        for item in expired:
            try:
                if await self.finalize_item(item, now):
                    results["finalized"] += 1
                else:
                    results["skipped"] += 1
            except Exception as e:
                logger.error(f"❌ FINALIZE_ERROR: item={item.name} id={item.id}: {e}")
                results["errors"].append(f"Item {item.id}: {e}")

        if expired or results["purged"]:
            logger.info(
                f"✅ AUCTION_SWEEP_DONE: finalized={results['finalized']} skipped={results['skipped']} "
                f"purged={results['purged']} errors={len(results['errors'])}"
            )
        return results

    async def finalize_item(self, item: Item, now: Optional[datetime] = None) -> bool:
        """
        Claim, notify and delete one expired item.

        Only the row read back by the claim is used; `item` just identifies it.

        Returns:
            False if the item was already claimed or no longer exists
        """
        claimed = await self.repository.claim_for_finalization(item.id, now or self.clock())
        if claimed is None:
            logger.info(f"⏭️ FINALIZE_SKIPPED: item={item.name} already claimed or gone")
            return False

        snapshot = claimed.highest_bid
        final_amount = snapshot.amount if snapshot else None

        if snapshot is not None:
            await self.dispatcher.notify_user(
                snapshot.user_id, messages.auction_won(claimed.name, snapshot.amount)
            )
        await self.dispatcher.notify_user(
            claimed.creator_id, messages.auction_ended_for_creator(claimed.name, final_amount)
        )

        await self.repository.delete_item(claimed.id)
        logger.info(
            f"🏁 AUCTION_FINALIZED: item={claimed.name} winner={snapshot.user_id if snapshot else None} "
            f"amount={final_amount}"
        )
        return True

    async def _purge_leftovers(self, now: datetime, results: Dict[str, Any]):
        """Delete items claimed more than one interval ago whose delete never went through"""
        try:
            leftovers = await self.repository.find_abandoned_items(now - self.abandon_after)
        except Exception as e:
            logger.error(f"❌ PURGE_LOOKUP_ERROR: {e}")
            results["errors"].append(f"Purge lookup: {e}")
            return

        for item in leftovers:
            try:
                if await self.repository.delete_item(item.id):
                    results["purged"] += 1
                    logger.info(f"🧹 PURGED_FINALIZED_ITEM: item={item.name} claimed_at={item.finalizing_at}")
            except Exception as e:
                logger.error(f"❌ PURGE_ERROR: item={item.name} id={item.id}: {e}")
                results["errors"].append(f"Purge {item.id}: {e}")
