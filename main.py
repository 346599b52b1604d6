#!/usr/bin/env python3
"""
Startup - Telegram Auction Bot

Deterministic startup sequence with explicit dependency construction:
database -> repository/dispatcher/services -> Telegram application and
handlers -> expiry scheduler -> health server. Everything is built here and
passed down; no module-level singletons.
"""

import asyncio
import logging
import sys
from typing import List, Optional
import uvicorn
from telegram.ext import Application
from config import Config
from database import Database
from handlers.auction_commands import AuctionCommandHandlers
from health_check import create_health_app
from jobs.auction_scheduler import AuctionScheduler
from services.auction_lifecycle import AuctionLifecycleService
from services.auction_repository import AuctionRepository
from services.auction_service import AuctionService
from services.bid_service import BidService
from services.notification_service import NotificationDispatcher


def configure_logging(level: str = None):
    logging.basicConfig(
        level=getattr(logging, (level or Config.LOG_LEVEL), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # Polling produces one request log per getUpdates call
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


class StartupManager:
    """Builds and runs the bot, scheduler and health server"""

    def __init__(self):
        self.database: Optional[Database] = None
        self.application: Optional[Application] = None
        self.scheduler: Optional[AuctionScheduler] = None
        self.health_server: Optional[uvicorn.Server] = None
        self.startup_errors: List[str] = []

    async def initialize_database(self) -> bool:
        """Initialize database with clean error handling."""
        try:
            logger.info("🗄️ Initializing database...")
            self.database = Database(Config.DATABASE_URL, echo=Config.DB_ECHO)

            if not await self.database.test_connection():
                raise Exception("Database connection test failed")
            if not await self.database.create_tables():
                raise Exception("Table creation failed")

            logger.info("✅ Database initialization complete")
            return True
        except Exception as e:
            logger.error(f"❌ Database initialization failed: {e}")
            self.startup_errors.append(f"Database: {e}")
            return False

    def build(self) -> bool:
        """Create the Telegram application and wire every service into it."""
        try:
            logger.info("🤖 Creating Telegram application...")
            self.application = Application.builder().token(Config.BOT_TOKEN).build()

            repository = AuctionRepository(self.database)
            dispatcher = NotificationDispatcher(self.application.bot, repository)
            auction_service = AuctionService(repository)
            bid_service = BidService(repository, dispatcher)
            lifecycle = AuctionLifecycleService(repository, dispatcher)

            AuctionCommandHandlers(auction_service, bid_service).register_handlers(self.application)
            self.scheduler = AuctionScheduler(lifecycle, Config.AUCTION_SWEEP_INTERVAL_SECONDS)

            health_config = uvicorn.Config(
                create_health_app(self.database),
                host="0.0.0.0",
                port=Config.PORT,
                log_level="warning",
            )
            self.health_server = uvicorn.Server(health_config)

            logger.info("✅ Telegram application created")
            return True
        except Exception as e:
            logger.error(f"❌ Application creation failed: {e}")
            self.startup_errors.append(f"Application: {e}")
            return False

    async def run(self):
        """Start polling and the scheduler, then serve health checks until stopped."""
        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling()
        logger.info("📡 Telegram bot is running in polling mode")

        self.scheduler.start()

        logger.info(f"🌐 Health server listening on port {Config.PORT}")
        try:
            await self.health_server.serve()
        finally:
            await self.shutdown()

    async def shutdown(self):
        logger.info("🛑 Shutting down...")
        if self.scheduler:
            self.scheduler.shutdown()
        if self.application:
            try:
                if self.application.updater and self.application.updater.running:
                    await self.application.updater.stop()
                if self.application.running:
                    await self.application.stop()
                await self.application.shutdown()
            except Exception as e:
                logger.error(f"❌ Telegram shutdown error: {e}")
        if self.database:
            await self.database.dispose()


async def main():
    configure_logging()
    Config.log_environment_config()

    missing = Config.validate()
    if missing:
        logger.error(f"❌ Missing required configuration: {', '.join(missing)}")
        sys.exit(1)

    manager = StartupManager()
    if not await manager.initialize_database() or not manager.build():
        logger.error(f"❌ Startup failed: {manager.startup_errors}")
        if manager.database:
            await manager.database.dispose()
        sys.exit(1)

    await manager.run()


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("👋 Bot stopped by user")


if __name__ == "__main__":
    cli()
