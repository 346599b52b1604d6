"""
Decimal Precision Utilities for Auction Amounts
Enforces consistent Decimal usage across bid ranges and bids
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

logger = logging.getLogger(__name__)

Numeric = Union[str, int, float, Decimal]


class MonetaryDecimal:
    """Decimal-only monetary conversion with auction precision"""

    AMOUNT_PRECISION = Decimal("0.01")  # matches the Numeric(12, 2) columns
    MAX_AMOUNT = Decimal("9999999999.99")

    @classmethod
    def to_decimal(cls, value: Optional[Numeric]) -> Optional[Decimal]:
        """Convert to Decimal; None for anything that is not a finite number"""
        if value is None or isinstance(value, bool):
            return None
        try:
            # Convert to string first to avoid float precision issues
            decimal_value = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            logger.debug(f"Rejected non-numeric amount: {value!r}")
            return None
        if not decimal_value.is_finite():
            return None
        return decimal_value

    @classmethod
    def quantize_amount(cls, amount: Decimal) -> Decimal:
        return amount.quantize(cls.AMOUNT_PRECISION, rounding=ROUND_HALF_UP)

    @classmethod
    def parse_positive(cls, value: Optional[Numeric]) -> Optional[Decimal]:
        """
        Parse a user-supplied amount.

        Returns the amount quantized to cents, or None when it is missing,
        malformed, non-positive, has more than two decimals, or exceeds the
        column range.
        """
        amount = cls.to_decimal(value)
        if amount is None or amount <= 0 or amount > cls.MAX_AMOUNT:
            return None
        if amount != cls.quantize_amount(amount):
            return None
        return cls.quantize_amount(amount)
