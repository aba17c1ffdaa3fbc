"""
Availability Service: which dates can a fulfillment channel offer.

Flow per channel (pickup location, delivery zone or shipping zone):
  1. Load the schedules assigned to the location/zone (none → no dates)
  2. Expand each active schedule over [from, from + horizon]
  3. Drop blocked dates, then dates past their cutoff
  4. Keep at most SCHEDULE_RESULT_CAP dates per schedule
  5. Union across schedules, de-duplicate, sort

The per-schedule cap bounds the cost of dense rules (daily, weekly) over a
long horizon, so results can end before the horizon does. Callers that need
every date in the horizon pass a larger `per_schedule_limit`.

Everything here is read-only.
"""

from __future__ import annotations
import logging
import uuid
from datetime import datetime, date, timedelta
from itertools import islice
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.schedule import Schedule, ScheduleAssignment
from services.clock import Clock
from services.cutoff import filter_open
from services.errors import ValidationError
from services.recurrence import iter_schedule_dates

logger = logging.getLogger(__name__)

FULFILLMENT_TYPES = ("pickup", "delivery", "shipping")

ASSIGNMENT_TARGET = {
    "pickup": ScheduleAssignment.fulfillment_location_id,
    "delivery": ScheduleAssignment.delivery_zone_id,
    "shipping": ScheduleAssignment.shipping_zone_id,
}


def open_dates_for_schedule(
    schedule,
    start: date,
    end: date,
    now: datetime,
    tz: ZoneInfo | None = None,
    limit: int | None = None,
) -> list[date]:
    """Selectable dates for one schedule: rule/available dates, minus blocked, minus closed."""
    if end < start:
        return []
    candidates = iter_schedule_dates(schedule, start, end)
    return list(islice(filter_open(candidates, schedule, now, tz), limit))


def combine_schedule_dates(
    schedules: Iterable,
    start: date,
    horizon_days: int,
    now: datetime,
    tz: ZoneInfo | None = None,
    per_schedule_limit: int | None = None,
) -> list[date]:
    """
    Union of the open dates of every active schedule in `schedules`.

    Args:
        schedules: Schedule rows assigned to one channel
        start: First date offered (inclusive)
        horizon_days: The range ends at start + horizon_days (inclusive)
        now: Current instant for cutoff checks
        tz: Wall-clock zone (defaults to settings.TIMEZONE)
        per_schedule_limit: Max dates kept per schedule (None = no cap)

    Returns:
        Sorted, de-duplicated list of dates
    """
    end = start + timedelta(days=horizon_days)
    found: set[date] = set()

    for schedule in schedules:
        if not schedule.is_active:
            continue
        found.update(open_dates_for_schedule(schedule, start, end, now, tz, per_schedule_limit))

    return sorted(found)


async def load_channel_schedules(
    db: AsyncSession,
    fulfillment_type: str,
    target_id: uuid.UUID,
) -> Sequence[Schedule]:
    """All schedules assigned to a location/zone, active or not."""
    column = ASSIGNMENT_TARGET.get(fulfillment_type)
    if column is None:
        raise ValidationError(
            f"fulfillment_type must be one of {', '.join(FULFILLMENT_TYPES)}"
        )

    result = await db.execute(
        select(Schedule)
        .join(ScheduleAssignment, ScheduleAssignment.schedule_id == Schedule.id)
        .where(column == target_id)
        .order_by(Schedule.name)
    )
    return result.scalars().unique().all()


async def find_available_dates(
    db: AsyncSession,
    fulfillment_type: str,
    target_id: uuid.UUID,
    start: date | None = None,
    horizon_days: int | None = None,
    clock: Clock | None = None,
    per_schedule_limit: int | None = None,
) -> list[date]:
    """Available dates for a channel as `date` objects. Defaults: from tomorrow, 90 days."""
    clock = clock or Clock()
    start = start or clock.tomorrow()
    if horizon_days is None:
        horizon_days = settings.AVAILABILITY_HORIZON_DAYS
    if per_schedule_limit is None:
        per_schedule_limit = settings.SCHEDULE_RESULT_CAP

    schedules = await load_channel_schedules(db, fulfillment_type, target_id)
    if not schedules:
        logger.debug("No schedules assigned: %s %s", fulfillment_type, target_id)
        return []

    return combine_schedule_dates(
        schedules, start, horizon_days, clock.now(), clock.tz, per_schedule_limit,
    )


async def get_available_dates(
    db: AsyncSession,
    fulfillment_type: str,
    target_id: uuid.UUID,
    start: date | None = None,
    horizon_days: int | None = None,
    clock: Clock | None = None,
    per_schedule_limit: int | None = None,
) -> list[str]:
    """Available dates for a channel as ISO YYYY-MM-DD strings."""
    dates = await find_available_dates(
        db, fulfillment_type, target_id, start, horizon_days, clock, per_schedule_limit,
    )
    return [d.isoformat() for d in dates]
