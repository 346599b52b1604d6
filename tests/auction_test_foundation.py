"""
Test foundation for auction bot tests: clock control and Telegram doubles
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional
from unittest.mock import AsyncMock, Mock

START_TIME = datetime(2026, 1, 15, 12, 0, 0)


class TimeController:
    """Frozen clock that tests advance explicitly"""

    def __init__(self, start: datetime = START_TIME):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def freeze_at(self, timestamp: datetime):
        self.current = timestamp

    def advance_time(self, delta: timedelta):
        self.current = self.current + delta


class TelegramObjectFactory:
    """Lightweight Telegram Update/Context doubles for handler tests"""

    @staticmethod
    def create_update(user_id: int = 1001, chat_id: Optional[int] = None, username: str = "tester"):
        update = Mock()
        update.effective_user = Mock(id=user_id, username=username)
        update.effective_chat = Mock(id=chat_id if chat_id is not None else user_id)
        update.effective_message = Mock()
        update.effective_message.reply_text = AsyncMock()
        update.callback_query = None
        return update

    @staticmethod
    def create_callback_update(data: str, user_id: int = 1001):
        update = TelegramObjectFactory.create_update(user_id=user_id)
        update.callback_query = Mock()
        update.callback_query.data = data
        update.callback_query.answer = AsyncMock()
        return update

    @staticmethod
    def create_context(args: Optional[List[str]] = None):
        context = Mock()
        context.args = args or []
        context.error = None
        return context

    @staticmethod
    def replies(update) -> List[str]:
        return [call.args[0] for call in update.effective_message.reply_text.await_args_list]

    @staticmethod
    def reply_markups(update) -> list:
        return [call.kwargs.get("reply_markup") for call in update.effective_message.reply_text.await_args_list]


def money(value) -> Decimal:
    return Decimal(str(value))
