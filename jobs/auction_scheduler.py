"""Background job scheduler for the Telegram Auction Bot"""

import logging
import time
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from config import Config
from services.auction_lifecycle import AuctionLifecycleService

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "auction_expiry_sweep"


class AuctionScheduler:
    """Runs the auction expiry sweep on a fixed interval"""

    def __init__(self, lifecycle: AuctionLifecycleService, interval_seconds: int = None):
        self.lifecycle = lifecycle
        self.interval_seconds = interval_seconds or Config.AUCTION_SWEEP_INTERVAL_SECONDS

        jobstores = {
            'default': MemoryJobStore()
        }
        executors = {
            'default': AsyncIOExecutor()
        }
        job_defaults = {
            'coalesce': True,  # Prevent job pileup
            'max_instances': 1,  # A sweep never overlaps with itself
            'misfire_grace_time': 30
        }

        self.scheduler = AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone='UTC'
        )

    def setup_jobs(self):
        """Register the expiry sweep"""
        existing_job = self.scheduler.get_job(SWEEP_JOB_ID)
        if existing_job:
            self.scheduler.remove_job(SWEEP_JOB_ID)
            logger.info(f"🧹 Removed existing job: {SWEEP_JOB_ID}")

        self.scheduler.add_job(
            self.run_sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=SWEEP_JOB_ID,
            name="Finalize Expired Auctions",
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"⏰ Scheduled auction sweep every {self.interval_seconds}s")

    async def run_sweep(self):
        """Job body; errors are logged so the next tick still runs"""
        started = time.monotonic()
        try:
            results = await self.lifecycle.sweep()
            if results["errors"]:
                logger.warning(f"⚠️ AUCTION_SWEEP: {len(results['errors'])} item(s) failed: {results['errors']}")
            return results
        except Exception as e:
            logger.error(f"❌ AUCTION_SWEEP_ERROR: {e}")
            return None
        finally:
            elapsed = time.monotonic() - started
            logger.debug(f"⏱️ AUCTION_SWEEP took {elapsed:.2f}s")

    def start(self):
        """Start the scheduler (must be called from a running event loop)"""
        self.setup_jobs()
        self.scheduler.start()
        logger.info("✅ Auction scheduler started")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("🛑 Auction scheduler stopped")
