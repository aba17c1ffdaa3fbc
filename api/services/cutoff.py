"""
Cutoff Filter: drops dates whose ordering window has closed.

A date D stays selectable while

    (D at cutoff_time) - cutoff_hours_before  >  now

with D and cutoff_time read as wall-clock values in the configured zone.
Blocked dates are removed upstream and never reach this filter.
"""

from __future__ import annotations
from datetime import datetime, date, time, timedelta
from typing import Iterable, Iterator
from zoneinfo import ZoneInfo

from config import settings

DEFAULT_CUTOFF_TIME = time(23, 59, 59)
DEFAULT_CUTOFF_HOURS = 24


def cutoff_instant(
    day: date,
    cutoff_time: time | None,
    cutoff_hours_before: int | None,
    tz: ZoneInfo | None = None,
) -> datetime:
    """The moment after which `day` can no longer be chosen."""
    tz = tz or ZoneInfo(settings.TIMEZONE)
    if cutoff_time is None:
        cutoff_time = DEFAULT_CUTOFF_TIME
    at = datetime.combine(day, cutoff_time, tzinfo=tz)
    hours = DEFAULT_CUTOFF_HOURS if cutoff_hours_before is None else cutoff_hours_before
    return at - timedelta(hours=hours)


def is_open(
    day: date,
    cutoff_time: time | None,
    cutoff_hours_before: int | None,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> bool:
    """True while the cutoff instant for `day` is still after `now`."""
    tz = tz or ZoneInfo(settings.TIMEZONE)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    return cutoff_instant(day, cutoff_time, cutoff_hours_before, tz) > now


def filter_open(
    days: Iterable[date],
    schedule,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> Iterator[date]:
    """Lazily keep the dates from `days` that pass the schedule's cutoff."""
    for day in days:
        if is_open(day, schedule.cutoff_time, schedule.cutoff_hours_before, now, tz):
            yield day
