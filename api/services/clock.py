"""
Injectable time source.

All "now", "today" and "tomorrow" values flow through a Clock so tests can
freeze time. Wall-clock values are always in the configured TIMEZONE.
"""

from __future__ import annotations
from datetime import datetime, date, timedelta
from zoneinfo import ZoneInfo

from config import settings


class Clock:
    """Reads the real wall clock in one zone."""

    def __init__(self, tz: str | None = None):
        self.tz = ZoneInfo(tz or settings.TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().astimezone(self.tz).date()

    def tomorrow(self) -> date:
        return self.today() + timedelta(days=1)


class FrozenClock(Clock):
    """A clock stuck at one instant. Naive datetimes are read in the clock's zone."""

    def __init__(self, at: datetime, tz: str | None = None):
        super().__init__(tz)
        self._at = at if at.tzinfo else at.replace(tzinfo=self.tz)

    def now(self) -> datetime:
        return self._at

    def advance(self, **kwargs) -> None:
        self._at = self._at + timedelta(**kwargs)


def get_clock() -> Clock:
    """FastAPI dependency; overridden in tests."""
    return Clock()
