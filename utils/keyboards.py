"""Inline keyboard utilities for the Telegram Auction Bot"""

import json
from typing import Any, Dict, Optional
from telegram import InlineKeyboardButton, InlineKeyboardMarkup

BID_ACTION = "bid"

# Telegram rejects callback_data longer than 64 bytes
MAX_CALLBACK_DATA_BYTES = 64


def bid_callback_data(item_name: str, direction: str) -> str:
    """Compact JSON payload {action, item, direction} for the inline bid action"""
    payload = json.dumps(
        {"action": BID_ACTION, "item": item_name, "direction": direction},
        separators=(",", ":"),
    )
    if len(payload.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
        raise ValueError(f"callback data too long for item {item_name!r}")
    return payload


def parse_callback_data(data: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode an inline action payload; None when it is not one of ours"""
    if not data:
        return None
    try:
        payload = json.loads(data)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict) or "action" not in payload:
        return None
    return payload


def bid_direction_keyboard(item_name: str, direction: str) -> Optional[InlineKeyboardMarkup]:
    """Single button inviting bids towards the item's direction; None if the name is too long to embed"""
    try:
        callback_data = bid_callback_data(item_name, direction)
    except ValueError:
        return None
    label = "⬆️ Bid higher" if direction == "high" else "⬇️ Bid lower"
    keyboard = [[InlineKeyboardButton(label, callback_data=callback_data)]]
    return InlineKeyboardMarkup(keyboard)
