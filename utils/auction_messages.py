"""
User-facing message text for the auction bot.

All amounts go through format_amount so chat messages read "$15" for whole
amounts and "$15.50" otherwise.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Union

Number = Union[Decimal, int, float]

HELP_TEXT = """Commands:
  /register - Register to participate in bidding
  /createitem <item_name> <low_amount> <high_amount> [<auction_duration_minutes> (low|high)] - Create a new item for bidding with a bid range, and optionally an auction duration and bid direction
  /bid <item_name> <amount> - Place a bid on an item within the specified bid range and according to the bid direction chosen by the seller
  /currentbid <item_name> - View the current highest bid on an item
  /items - List all items available for bidding
  /biddeditems - List items that have received bids
  /help - Display this help message"""


def format_amount(amount: Optional[Number]) -> str:
    if amount is None:
        amount = Decimal("0")
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return f"${value.quantize(Decimal('1'))}"
    return f"${value.quantize(Decimal('0.01'))}"


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


# Registration
def already_registered() -> str:
    return "You are already registered."


def registered() -> str:
    return "You have been successfully registered."


# Item creation
def invalid_item_parameters() -> str:
    return ("Please enter valid low and high bid amounts and a valid auction duration in minutes. "
            "Low amount should be less than high amount.")


def createitem_usage() -> str:
    return "Usage: /createitem <item_name> <low_amount> <high_amount> [<auction_duration_minutes> (low|high)]"


def item_created(item) -> str:
    text = (f"Item '{item.name}' has been created for bidding with bid range "
            f"{format_amount(item.low_amount)} - {format_amount(item.high_amount)}")
    if item.bid_direction:
        text += f" and bid direction: {item.bid_direction}"
    if item.end_time is not None:
        text += f". Auction ends at {format_timestamp(item.end_time)}"
    return text + "."


def item_exists(name: str) -> str:
    return f"An item named '{name}' already exists."


# Bidding
def bid_usage() -> str:
    return "Usage: /bid <item_name> <amount>"


def invalid_bid_amount() -> str:
    return "Please enter a valid bid amount."


def item_not_found(name: str) -> str:
    return f"Item '{name}' does not exist."


def auction_ended(name: str) -> str:
    return f"The auction for '{name}' has already ended."


def bid_below_high_limit(high_amount: Number) -> str:
    return (f"This item accepts bids towards low amounts only. "
            f"Your bid should be less than {format_amount(high_amount)}.")


def bid_above_low_limit(low_amount: Number) -> str:
    return (f"This item accepts bids towards high amounts only. "
            f"Your bid should be more than {format_amount(low_amount)}.")


def bid_out_of_range(low_amount: Number, high_amount: Number) -> str:
    return f"Your bid must be between {format_amount(low_amount)} and {format_amount(high_amount)}."


def bid_too_low(current_amount: Number) -> str:
    return f"Your bid must be higher than the current highest bid of {format_amount(current_amount)}."


def bid_placed(name: str, amount: Number) -> str:
    return f"Your bid of {format_amount(amount)} on '{name}' has been placed."


def outbid(name: str, amount: Number) -> str:
    return f"You have been outbid on '{name}'. The new highest bid is {format_amount(amount)}."


# Queries
def currentbid_usage() -> str:
    return "Usage: /currentbid <item_name>"


def no_bids_yet(name: str) -> str:
    return f"No bids have been placed on '{name}' yet."


def current_bid(name: str, amount: Number) -> str:
    return f"The current highest bid on '{name}' is {format_amount(amount)}."


def _item_line(item) -> str:
    snapshot = item.highest_bid
    highest = format_amount(snapshot.amount) if snapshot else "No bids yet"
    bid_time = format_timestamp(snapshot.timestamp) if snapshot else "N/A"
    return f"{item.name} - Highest Bid: {highest}, Bid Time: {bid_time}"


def item_list(items: Iterable) -> str:
    lines = [_item_line(item) for item in items]
    if not lines:
        return "No items available for bidding."
    return "Items available for bidding:\n" + "\n".join(lines)


def bidded_item_list(items: Iterable) -> str:
    lines = [_item_line(item) for item in items]
    if not lines:
        return "No items have received bids yet."
    return "Bidded items:\n" + "\n".join(lines)


# Inline bid-direction action
def direction_mismatch(direction: Optional[str]) -> str:
    if not direction:
        return "This item has no bid direction; bid anywhere within its range."
    return f"This item only accepts bids towards {direction} amounts."


def direction_selected(name: str, direction: str) -> str:
    return f"You can now bid on '{name}' with direction: {direction}."


# Finalization
def auction_won(name: str, amount: Number) -> str:
    return f"Congratulations! You have won the auction for '{name}' with a bid of {format_amount(amount)}."


def auction_ended_for_creator(name: str, amount: Optional[Number]) -> str:
    return f"The auction for '{name}' has ended. The winning bid is {format_amount(amount)}."


# Generic failures per operation
def operation_failed(operation: str) -> str:
    return f"Failed to {operation}. Please try again later."
