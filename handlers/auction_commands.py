"""Command handlers for the Telegram Auction Bot"""

import logging
from typing import Awaitable, Callable, Optional, Tuple
from telegram import InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes
from services.auction_errors import AuctionError, TransientInfraError
from services.auction_service import AuctionService
from services.bid_service import BidService
from utils import auction_messages as messages
from utils.keyboards import BID_ACTION, bid_direction_keyboard, parse_callback_data

logger = logging.getLogger(__name__)

Reply = Tuple[str, Optional[InlineKeyboardMarkup]]


class AuctionCommandHandlers:
    """Parses chat commands, calls the auction services and replies exactly once"""

    def __init__(self, auction_service: AuctionService, bid_service: BidService):
        self.auction_service = auction_service
        self.bid_service = bid_service

    def register_handlers(self, application: Application):
        """Attach every command and callback handler to the application"""
        application.add_handler(CommandHandler("register", self.register))
        application.add_handler(CommandHandler("createitem", self.create_item))
        application.add_handler(CommandHandler("bid", self.bid))
        application.add_handler(CommandHandler("currentbid", self.current_bid))
        application.add_handler(CommandHandler("items", self.items))
        application.add_handler(CommandHandler("biddeditems", self.bidded_items))
        application.add_handler(CommandHandler(["help", "start"], self.help))
        application.add_handler(CallbackQueryHandler(self.bid_direction_callback, pattern=r"^\{"))
        application.add_error_handler(self.error_handler)
        logger.info("📋 Auction command handlers registered")

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _reply(self, update: Update, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None):
        message = update.effective_message
        if message is None:
            logger.warning("🔍 No message to reply to")
            return
        try:
            await message.reply_text(text, reply_markup=reply_markup)
        except TelegramError as e:
            logger.error(f"❌ REPLY_FAILED: chat={update.effective_chat.id if update.effective_chat else None}, error={e}")

    async def _respond(self, update: Update, operation: str, action: Callable[[], Awaitable[Reply]]):
        """Run one command and turn its outcome or failure into a single reply"""
        try:
            text, markup = await action()
        except TransientInfraError:
            text, markup = messages.operation_failed(operation), None
        except AuctionError as e:
            text, markup = e.message, None
        except Exception as e:
            logger.error(f"❌ HANDLER_ERROR: operation={operation!r}, error={e}", exc_info=True)
            text, markup = messages.operation_failed(operation), None
        await self._reply(update, text, markup)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def register(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        user = update.effective_user
        chat = update.effective_chat

        async def action() -> Reply:
            created = await self.auction_service.register(user.id, chat.id, user.username)
            return (messages.registered() if created else messages.already_registered()), None

        await self._respond(update, "register", action)

    async def create_item(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        user = update.effective_user
        args = list(context.args or [])

        async def action() -> Reply:
            if len(args) not in (3, 5):
                return messages.createitem_usage(), None
            name, low, high = args[:3]
            duration, direction = (args[3], args[4]) if len(args) == 5 else (None, None)
            item = await self.auction_service.create_item(
                creator_id=user.id,
                name=name,
                low_amount=low,
                high_amount=high,
                duration_minutes=duration,
                bid_direction=direction,
            )
            markup = bid_direction_keyboard(item.name, item.bid_direction) if item.bid_direction else None
            return messages.item_created(item), markup

        await self._respond(update, "create item", action)

    async def bid(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        user = update.effective_user
        args = list(context.args or [])

        async def action() -> Reply:
            if len(args) != 2:
                return messages.bid_usage(), None
            item_name, amount = args
            result = await self.bid_service.place_bid(item_name, user.id, amount)
            if not result.accepted:
                return result.reason, None
            return messages.bid_placed(result.item_name, result.amount), None

        await self._respond(update, "place your bid", action)

    async def current_bid(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        args = list(context.args or [])

        async def action() -> Reply:
            if len(args) != 1:
                return messages.currentbid_usage(), None
            item_name = args[0]
            snapshot = await self.auction_service.current_bid(item_name)
            if snapshot is None:
                return messages.no_bids_yet(item_name), None
            return messages.current_bid(item_name, snapshot.amount), None

        await self._respond(update, "fetch the current highest bid", action)

    async def items(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        async def action() -> Reply:
            return messages.item_list(await self.auction_service.list_items()), None

        await self._respond(update, "list items", action)

    async def bidded_items(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        async def action() -> Reply:
            return messages.bidded_item_list(await self.auction_service.list_bidded_items()), None

        await self._respond(update, "list bidded items", action)

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._reply(update, messages.HELP_TEXT)

    async def bid_direction_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Inline action {action: 'bid', item, direction}"""
        query = update.callback_query
        try:
            await query.answer()
        except TelegramError as e:
            logger.debug(f"Callback answer failed: {e}")

        payload = parse_callback_data(query.data)
        if payload is None or payload.get("action") != BID_ACTION:
            logger.info(f"🔍 Ignoring unknown callback data: {query.data!r}")
            return

        item_name = str(payload.get("item", ""))
        direction = str(payload.get("direction", ""))

        async def action() -> Reply:
            await self.auction_service.select_bid_direction(item_name, direction)
            return messages.direction_selected(item_name, direction), None

        await self._respond(update, "handle the bid direction", action)

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Last-resort logging for anything that escaped a handler"""
        logger.error(f"❌ UNHANDLED_BOT_ERROR: update={update}, error={context.error}", exc_info=context.error)
