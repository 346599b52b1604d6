"""
Auction Service Tests
Registration, item creation validation and read-only queries
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from models import BidDirection
from services.auction_errors import (
    ConflictError, NotFoundError, NotRegisteredError, TransientInfraError, ValidationError
)
from services.auction_service import parse_direction
from tests.auction_test_foundation import START_TIME, money


class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_new_user(self, auction_service, repository):
        assert await auction_service.register(42, 4242, "carol") is True

        user = await repository.get_user(42)
        assert user.chat_id == 4242
        assert user.username == "carol"
        assert user.created_at == START_TIME

    @pytest.mark.asyncio
    async def test_register_is_idempotent(self, auction_service, repository):
        assert await auction_service.register(42, 4242) is True
        assert await auction_service.register(42, 5555) is False

        # The original record is kept
        assert (await repository.get_user(42)).chat_id == 4242

    @pytest.mark.asyncio
    @pytest.mark.concurrency
    async def test_concurrent_register_stores_one_record(self, auction_service, repository):
        results = await asyncio.gather(
            auction_service.register(42, 4242),
            auction_service.register(42, 4242),
        )

        assert sorted(results) == [False, True]
        assert (await repository.get_user(42)) is not None

    @pytest.mark.asyncio
    async def test_storage_failure_is_transient(self, auction_service, repository):
        with patch.object(
            repository, "get_user",
            AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection refused"))),
        ):
            with pytest.raises(TransientInfraError) as exc_info:
                await auction_service.register(42, 4242)

        assert exc_info.value.is_retryable


class TestCreateItem:

    @pytest.mark.asyncio
    async def test_create_item_without_deadline(self, create_item):
        item = await create_item(name="vase", low="10", high="20.50")

        assert item.id is not None
        assert item.name == "vase"
        assert item.low_amount == money("10")
        assert item.high_amount == money("20.50")
        assert item.end_time is None
        assert item.direction is None
        assert item.highest_bid is None
        assert item.completed is False

    @pytest.mark.asyncio
    async def test_create_item_with_deadline_and_direction(self, create_item):
        item = await create_item(duration=30, direction="HIGH")

        assert item.end_time == START_TIME + timedelta(minutes=30)
        assert item.bid_direction == "high"
        assert item.direction is BidDirection.HIGH

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "two words", "lamp!", "x" * 33])
    async def test_invalid_item_name(self, create_item, name):
        with pytest.raises(ValidationError) as exc_info:
            await create_item(name=name)
        assert exc_info.value.error_code == "INVALID_ITEM_NAME"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("low,high", [
        ("20", "10"),
        ("10", "10"),
        ("abc", "10"),
        ("10", None),
        ("-1", "10"),
        ("0", "10"),
    ])
    async def test_invalid_bounds(self, create_item, low, high):
        with pytest.raises(ValidationError) as exc_info:
            await create_item(low=low, high=high)
        assert exc_info.value.error_code == "INVALID_ITEM_PARAMETERS"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration,direction", [(0, "high"), (-5, "low"), ("soon", "low"), (10, "sideways")])
    async def test_invalid_duration_or_direction(self, create_item, duration, direction):
        with pytest.raises(ValidationError) as exc_info:
            await create_item(duration=duration, direction=direction)
        assert exc_info.value.message.startswith("Please enter valid low and high bid amounts")

    @pytest.mark.asyncio
    async def test_duration_and_direction_come_together(self, create_item):
        with pytest.raises(ValidationError) as exc_info:
            await create_item(duration=10)
        assert exc_info.value.message.startswith("Usage: /createitem")

        with pytest.raises(ValidationError):
            await create_item(direction="low")

    @pytest.mark.asyncio
    async def test_unregistered_creator_rejected(self, auction_service, repository):
        with pytest.raises(NotRegisteredError) as exc_info:
            await auction_service.create_item(99, "lamp", "10", "20")

        assert exc_info.value.message == "You need to register first using /register command."
        assert await repository.get_item_by_name("lamp") is None

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self, create_item):
        await create_item(name="lamp")

        with pytest.raises(ConflictError) as exc_info:
            await create_item(name="lamp", low="1", high="2")

        assert exc_info.value.error_code == "ITEM_EXISTS"
        assert exc_info.value.message == "An item named 'lamp' already exists."

    @pytest.mark.asyncio
    @pytest.mark.concurrency
    async def test_concurrent_duplicate_names(self, create_item, auction_service):
        results = await asyncio.gather(
            create_item(name="lamp"),
            create_item(name="lamp"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], ConflictError)
        assert len(await auction_service.list_items()) == 1


class TestQueries:

    @pytest.mark.asyncio
    async def test_list_items_in_creation_order(self, auction_service, create_item):
        await create_item(name="lamp")
        await create_item(name="chair")

        assert [item.name for item in await auction_service.list_items()] == ["lamp", "chair"]

    @pytest.mark.asyncio
    async def test_list_items_excludes_finalized(self, auction_service, create_item, repository, clock):
        lamp = await create_item(name="lamp")
        await create_item(name="chair")
        await repository.mark_completed(lamp.id, clock())

        assert [item.name for item in await auction_service.list_items()] == ["chair"]

    @pytest.mark.asyncio
    async def test_list_bidded_items(self, auction_service, bid_service, create_item, users):
        await create_item(name="lamp")
        await create_item(name="chair")
        assert await auction_service.list_bidded_items() == []

        await bid_service.place_bid("chair", users["alice"], "12")

        bidded = await auction_service.list_bidded_items()
        assert [item.name for item in bidded] == ["chair"]
        assert bidded[0].highest_bid.amount == money("12")

    @pytest.mark.asyncio
    async def test_current_bid(self, auction_service, bid_service, create_item, users):
        await create_item()
        assert await auction_service.current_bid("lamp") is None

        await bid_service.place_bid("lamp", users["alice"], "12.50")

        snapshot = await auction_service.current_bid("lamp")
        assert snapshot.amount == money("12.50")
        assert snapshot.user_id == users["alice"]
        assert snapshot.timestamp == START_TIME

    @pytest.mark.asyncio
    async def test_current_bid_unknown_or_finalized_item(self, auction_service, create_item, repository, clock):
        with pytest.raises(NotFoundError):
            await auction_service.current_bid("ghost")

        item = await create_item()
        await repository.mark_completed(item.id, clock())
        with pytest.raises(NotFoundError):
            await auction_service.current_bid("lamp")


class TestBidDirectionSelection:

    def test_parse_direction(self):
        assert parse_direction("Low") is BidDirection.LOW
        assert parse_direction(" high ") is BidDirection.HIGH
        assert parse_direction("up") is None
        assert parse_direction(None) is None

    @pytest.mark.asyncio
    async def test_matching_direction_confirmed(self, auction_service, create_item):
        await create_item(duration=10, direction="low")

        item = await auction_service.select_bid_direction("lamp", "low")

        assert item.name == "lamp"

    @pytest.mark.asyncio
    async def test_mismatched_direction_rejected(self, auction_service, create_item):
        await create_item(duration=10, direction="low")

        with pytest.raises(ValidationError) as exc_info:
            await auction_service.select_bid_direction("lamp", "high")

        assert exc_info.value.error_code == "DIRECTION_MISMATCH"
        assert exc_info.value.message == "This item only accepts bids towards low amounts."

    @pytest.mark.asyncio
    async def test_item_without_direction(self, auction_service, create_item):
        await create_item()

        with pytest.raises(ValidationError) as exc_info:
            await auction_service.select_bid_direction("lamp", "low")

        assert exc_info.value.error_code == "DIRECTION_MISMATCH"
