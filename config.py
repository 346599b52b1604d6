"""Configuration management for the Telegram Auction Bot"""

import os
import logging
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Local development reads secrets from .env; real environment variables win
load_dotenv()


def _int_env(name: str, default: int) -> int:
    """Read an integer environment variable, falling back on bad input"""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️ Invalid integer for {name}={raw!r}, using default {default}")
        return default


def to_async_database_url(url: Optional[str]) -> Optional[str]:
    """
    Convert a plain PostgreSQL URL into its asyncpg form.

    asyncpg uses 'ssl' instead of the libpq 'sslmode' parameter.
    URLs that already name an async driver are returned unchanged.
    """
    if not url:
        return url
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        url = url.replace("sslmode=require", "ssl=require")
        url = url.replace("sslmode=prefer", "ssl=prefer")
        url = url.replace("sslmode=disable", "ssl=disable")
    return url


class Config:
    """Application configuration"""

    ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower().strip()
    IS_PRODUCTION = ENVIRONMENT == "production"

    # Bot Token Configuration
    # Priority: TELEGRAM_BOT_TOKEN > generic BOT_TOKEN fallback
    TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
    GENERIC_BOT_TOKEN = os.getenv("BOT_TOKEN")
    BOT_TOKEN = TELEGRAM_BOT_TOKEN or GENERIC_BOT_TOKEN

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL")
    ASYNC_DATABASE_URL = to_async_database_url(DATABASE_URL)
    DB_POOL_SIZE = _int_env("DB_POOL_SIZE", 5)
    DB_MAX_OVERFLOW = _int_env("DB_MAX_OVERFLOW", 10)
    DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

    # Health server
    PORT = _int_env("PORT", 3000)

    # Auction lifecycle
    AUCTION_SWEEP_INTERVAL_SECONDS = _int_env("AUCTION_SWEEP_INTERVAL_SECONDS", 60)
    MAX_ITEM_NAME_LENGTH = 32

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def validate() -> List[str]:
        """Return the names of required settings that are missing"""
        missing = []
        if not Config.BOT_TOKEN:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not Config.DATABASE_URL:
            missing.append("DATABASE_URL")
        return missing

    @staticmethod
    def log_environment_config():
        """Log current environment configuration for debugging"""
        logger.info(f"🔧 Bot Environment Configuration:")
        logger.info(f"   Environment: {Config.ENVIRONMENT.upper()}")
        logger.info(f"   Is Production: {Config.IS_PRODUCTION}")

        # Log token source (without revealing the actual token)
        if Config.TELEGRAM_BOT_TOKEN:
            token_source = "TELEGRAM_BOT_TOKEN"
        elif Config.GENERIC_BOT_TOKEN:
            token_source = "BOT_TOKEN (fallback)"
        else:
            token_source = "NOT CONFIGURED"
        logger.info(f"   Token Source: {token_source}")

        if Config.DATABASE_URL:
            driver = (Config.ASYNC_DATABASE_URL or "").split("://", 1)[0]
            logger.info(f"   Database Driver: {driver}")
        else:
            logger.error(f"   ❌ Database: NOT CONFIGURED - Check DATABASE_URL!")

        logger.info(f"   Health Port: {Config.PORT}")
        logger.info(f"   Auction Sweep Interval: {Config.AUCTION_SWEEP_INTERVAL_SECONDS}s")
