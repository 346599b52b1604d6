"""
Shared Test Fixtures for the Auction Bot

Key Components:
1. File-backed SQLite database (aiosqlite) per test with the full schema
2. Controllable clock injected into every service
3. Mocked Telegram bot capturing outbound notifications
4. Helpers for registering users and creating items
"""

import logging
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from database import Database
from services.auction_lifecycle import AuctionLifecycleService
from services.auction_repository import AuctionRepository
from services.auction_service import AuctionService
from services.bid_service import BidService
from services.notification_service import NotificationDispatcher
from tests.auction_test_foundation import TimeController

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture
def clock():
    return TimeController()


@pytest_asyncio.fixture
async def database(tmp_path):
    """Fresh schema per test; file-backed so concurrent sessions really interleave"""
    db = Database(
        f"sqlite+aiosqlite:///{tmp_path / 'auction_test.db'}",
        connect_args={"timeout": 30},
    )
    assert await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
def repository(database):
    return AuctionRepository(database)


@pytest.fixture
def bot():
    mock_bot = Mock()
    mock_bot.send_message = AsyncMock()
    return mock_bot


@pytest.fixture
def dispatcher(bot, repository):
    return NotificationDispatcher(bot, repository)


@pytest.fixture
def auction_service(repository, clock):
    return AuctionService(repository, clock=clock)


@pytest.fixture
def bid_service(repository, dispatcher, clock):
    return BidService(repository, dispatcher, clock=clock)


@pytest.fixture
def lifecycle(repository, dispatcher, clock):
    return AuctionLifecycleService(repository, dispatcher, clock=clock, abandon_after_seconds=60)


@pytest.fixture
def sent_messages(bot):
    """Callable returning (chat_id, text) pairs sent through the mocked bot"""
    def _sent():
        return [(call.kwargs["chat_id"], call.kwargs["text"]) for call in bot.send_message.await_args_list]
    return _sent


@pytest_asyncio.fixture
async def users(auction_service):
    """Three registered users: seller 1, bidders 2 and 3 (chat ids offset by 9000)"""
    for user_id in (1, 2, 3):
        assert await auction_service.register(user_id, 9000 + user_id, f"user{user_id}")
    return {"seller": 1, "alice": 2, "bob": 3}


@pytest.fixture
def create_item(auction_service, users):
    """Factory creating an item owned by the seller"""
    async def _create(name="lamp", low="10", high="20", duration=None, direction=None):
        return await auction_service.create_item(
            creator_id=users["seller"],
            name=name,
            low_amount=low,
            high_amount=high,
            duration_minutes=duration,
            bid_direction=direction,
        )
    return _create
