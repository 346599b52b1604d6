"""
Notification Dispatcher - best-effort Telegram delivery of auction outcomes

Delivery failures are logged and reported as False; they never propagate to
the caller, so a committed bid or finalization is unaffected by them.
"""

import logging
from typing import Optional
from telegram import Bot
from telegram.error import TelegramError

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Sends outbid/won/ended messages through the injected bot"""

    def __init__(self, bot: Bot, repository=None):
        self.bot = bot
        self.repository = repository

    async def notify(self, chat_id: int, text: str) -> bool:
        """
        Send a Telegram message to a chat.

        Args:
            chat_id: Destination chat (contact address)
            text: Message text

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            await self.bot.send_message(chat_id=chat_id, text=text)
            logger.info(f"✅ TELEGRAM_SENT: chat={chat_id}")
            return True
        except TelegramError as e:
            logger.error(f"❌ TELEGRAM_ERROR: chat={chat_id}, error={e}")
            return False
        except Exception as e:
            logger.error(f"❌ TELEGRAM_UNEXPECTED: chat={chat_id}, error={e}")
            return False

    async def notify_user(self, user_id: Optional[int], text: str) -> bool:
        """Resolve a registered user's chat and notify it; unregistered users are skipped"""
        if user_id is None:
            return False
        if self.repository is None:
            # Private chats share the user's id
            return await self.notify(user_id, text)

        try:
            user = await self.repository.get_user(user_id)
        except Exception as e:
            logger.error(f"❌ NOTIFY_LOOKUP_ERROR: user={user_id}, error={e}")
            return False

        if user is None:
            logger.info(f"📭 NOTIFY_SKIPPED: user={user_id} is not registered")
            return False
        return await self.notify(user.chat_id, text)
