"""
Datetime helper utilities to ensure consistent timezone handling across the application.

Item deadlines and bid timestamps are stored as naive UTC datetimes
(DateTime(timezone=False)); every "now" used for comparisons comes from here.
"""

from datetime import datetime, timezone


def get_naive_utc_now() -> datetime:
    """Current UTC time without timezone info"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
