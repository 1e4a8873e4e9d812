"""
Clock helper.

Timestamps are stored as naive UTC datetimes, which is what pymongo hands
back by default, so comparisons against stored values stay naive.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
