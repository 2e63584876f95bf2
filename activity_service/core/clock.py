# activity_service/core/clock.py
"""
Time source for lifecycle decisions.

Every operation reads the clock exactly once and passes that instant down,
so a single request never sees two different values of "now".
"""

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Normalizes a datetime to an aware UTC instant.

    Naive values are treated as UTC; SQLite hands back naive datetimes even
    for columns declared with timezone=True.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


system_clock = SystemClock()
