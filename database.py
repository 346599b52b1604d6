"""
Database Configuration and Session Management
============================================

This module provides the async database engine, session factory, and table
creation functionality for the Telegram Auction Bot.

The engine is owned by an explicitly constructed Database object which is
passed down to the repository, so tests can point it at any SQLAlchemy URL.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from config import Config, to_async_database_url
from models import Base

logger = logging.getLogger(__name__)


class Database:
    """Async engine + session factory for one database URL"""

    def __init__(
        self,
        url: Optional[str] = None,
        echo: bool = False,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
        **engine_kwargs,
    ):
        url = to_async_database_url(url or Config.DATABASE_URL)
        if not url:
            raise ValueError("DATABASE_URL environment variable is required")
        self.url = url

        if url.startswith("postgresql"):
            # Pool sizing only applies to server databases
            engine_kwargs.setdefault("pool_size", pool_size or Config.DB_POOL_SIZE)
            engine_kwargs.setdefault("max_overflow", max_overflow or Config.DB_MAX_OVERFLOW)
            engine_kwargs.setdefault("pool_pre_ping", True)     # Validate connections before use
            engine_kwargs.setdefault("pool_recycle", 3600)      # Recycle connections every hour
            engine_kwargs.setdefault("pool_timeout", 30)        # Wait max 30 seconds for a connection
            engine_kwargs.setdefault("connect_args", {
                "server_settings": {
                    "application_name": "auction_telegram_bot",  # For monitoring in pg_stat_activity
                },
                "timeout": 10,
                "command_timeout": 30,
            })

        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,  # Objects stay readable after commit in background tasks
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Async context manager for database sessions.

        Commits when the block exits normally and rolls back on any
        exception, so a transaction never outlives the block.

        Usage:
            async with database.session() as session:
                result = await session.execute(select(Item).where(...))
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database session error: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_tables(self) -> bool:
        """Create all database tables if they don't exist"""
        try:
            logger.info("🏗️ Creating database tables (if they don't exist)...")
            logger.info(f"📊 Found {len(Base.metadata.tables)} table models to create")
            async with self.engine.begin() as connection:
                await connection.run_sync(Base.metadata.create_all, checkfirst=True)
            logger.info(f"✅ Database schema verified: {', '.join(sorted(Base.metadata.tables))}")
            return True
        except Exception as e:
            logger.error(f"❌ Failed to create database tables: {e}")
            return False

    async def test_connection(self) -> bool:
        """Test database connection"""
        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
            logger.debug("✅ Database connection test successful")
            return True
        except Exception as e:
            logger.error(f"❌ Database connection test failed: {e}")
            return False

    async def dispose(self):
        await self.engine.dispose()
        logger.info("🔌 Database engine disposed")
