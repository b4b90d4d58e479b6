"""Injectable time source.

Every expiry decision reads "now" from a Clock, so tests can freeze or
advance time instead of sleeping.
"""

from datetime import datetime, timezone
from typing import Protocol


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time, always timezone-aware UTC."""

    def now(self) -> datetime:
        return utcnow()
