"""
Recurrence Evaluator: expands a schedule into calendar dates.

Rules:
  - daily: every date (every Nth date with interval N)
  - weekly: one weekday (every Nth week with interval N)
  - biweekly: one weekday, every other week; the tag wins over any interval
  - monthly: one day of the month (every Nth month with interval N);
    months without that day produce nothing (no clamping to month end)
  - one_time: the explicit available_dates list
  - blocked_dates are removed for both schedule types

Periods are counted from the rule's anchor_date when one is configured,
otherwise from the start date of the query.

Weekdays use 0 = Sunday .. 6 = Saturday, the convention stored on rules.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
from itertools import islice, takewhile
from typing import ClassVar, Iterable, Iterator, Union

from services.errors import ValidationError

FREQUENCIES = ("daily", "weekly", "biweekly", "monthly")
SCHEDULE_TYPES = ("recurring", "one_time")

# Consecutive eligible months without a match before a monthly rule gives up.
# Covers day 29 in February-only rules, which match once every four years.
MONTHLY_MISS_LIMIT = 48


# ── Rule variants ──────────────────────────────────────────

@dataclass(frozen=True)
class DailyRule:
    frequency: ClassVar[str] = "daily"
    interval: int = 1
    anchor_date: date | None = None


@dataclass(frozen=True)
class WeeklyRule:
    frequency: ClassVar[str] = "weekly"
    day_of_week: int
    interval: int = 1
    anchor_date: date | None = None


@dataclass(frozen=True)
class BiweeklyRule:
    frequency: ClassVar[str] = "biweekly"
    day_of_week: int
    anchor_date: date | None = None


@dataclass(frozen=True)
class MonthlyRule:
    frequency: ClassVar[str] = "monthly"
    day_of_month: int
    interval: int = 1
    anchor_date: date | None = None


RecurrenceRule = Union[DailyRule, WeeklyRule, BiweeklyRule, MonthlyRule]


# ── Parsing ────────────────────────────────────────────────

def parse_iso_date(value: str | date) -> date:
    """Parse a persisted YYYY-MM-DD string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def _int_field(raw: dict, name: str, low: int, high: int | None = None) -> int:
    value = raw.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f">= {low}"
        raise ValidationError(f"{name} must be {bound}")
    return value


def parse_rule(raw: dict | None) -> RecurrenceRule:
    """
    Turn a stored recurrence_rule object into its typed variant.

    Raises:
        ValidationError: unknown frequency, or a field the frequency
            requires is missing or out of range.
    """
    if not isinstance(raw, dict):
        raise ValidationError("Recurring schedule requires a recurrence rule")

    frequency = raw.get("frequency")
    if frequency not in FREQUENCIES:
        raise ValidationError(
            f"frequency must be one of {', '.join(FREQUENCIES)}, got {frequency!r}"
        )

    interval = 1
    if raw.get("interval") is not None:
        interval = _int_field(raw, "interval", 1)

    anchor = raw.get("anchor_date")
    anchor_date = parse_iso_date(anchor) if anchor else None

    if frequency == "daily":
        return DailyRule(interval=interval, anchor_date=anchor_date)

    if frequency in ("weekly", "biweekly"):
        if raw.get("day_of_week") is None:
            raise ValidationError(f"{frequency} rules require day_of_week")
        day_of_week = _int_field(raw, "day_of_week", 0, 6)
        if frequency == "biweekly":
            return BiweeklyRule(day_of_week=day_of_week, anchor_date=anchor_date)
        return WeeklyRule(day_of_week=day_of_week, interval=interval, anchor_date=anchor_date)

    if raw.get("day_of_month") is None:
        raise ValidationError("monthly rules require day_of_month")
    day_of_month = _int_field(raw, "day_of_month", 1, 31)
    return MonthlyRule(day_of_month=day_of_month, interval=interval, anchor_date=anchor_date)


def rule_to_dict(rule: RecurrenceRule) -> dict:
    """Serialize a rule variant back into its stored JSON shape."""
    data: dict = {"frequency": rule.frequency}
    if isinstance(rule, (WeeklyRule, BiweeklyRule)):
        data["day_of_week"] = rule.day_of_week
    if isinstance(rule, MonthlyRule):
        data["day_of_month"] = rule.day_of_month
    data["interval"] = getattr(rule, "interval", 1)
    if rule.anchor_date:
        data["anchor_date"] = rule.anchor_date.isoformat()
    return data


# ── Date helpers ───────────────────────────────────────────

def sunday_weekday(d: date) -> int:
    """Weekday with 0 = Sunday."""
    return (d.weekday() + 1) % 7


def add_months(d: date, months: int) -> date:
    """Shift by calendar months, clamping to the last day of a shorter month."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, _days_in_month(year, month))
    return date(year, month, day)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        return 31
    return (date(year, month + 1, 1) - timedelta(days=1)).day


# ── Generators ─────────────────────────────────────────────

def _iter_daily(rule: DailyRule, start: date, anchor: date) -> Iterator[date]:
    offset = -(start - anchor).days % rule.interval
    current = start + timedelta(days=offset)
    step = timedelta(days=rule.interval)
    while True:
        yield current
        current += step


def _iter_weekly(day_of_week: int, every: int, start: date, anchor: date) -> Iterator[date]:
    current = start + timedelta(days=(day_of_week - sunday_weekday(start)) % 7)
    while ((current - anchor).days // 7) % every != 0:
        current += timedelta(weeks=1)
    step = timedelta(weeks=every)
    while True:
        yield current
        current += step


def _iter_monthly(rule: MonthlyRule, start: date, anchor: date) -> Iterator[date]:
    year, month = start.year, start.month
    months_since = (year - anchor.year) * 12 + (month - anchor.month)
    skip = -months_since % rule.interval
    cursor = add_months(date(year, month, 1), skip)

    misses = 0
    while misses < MONTHLY_MISS_LIMIT:
        if rule.day_of_month <= _days_in_month(cursor.year, cursor.month):
            candidate = cursor.replace(day=rule.day_of_month)
            if candidate >= start:
                misses = 0
                yield candidate
            else:
                misses += 1
        else:
            misses += 1
        cursor = add_months(cursor, rule.interval)


def iter_rule_dates(rule: RecurrenceRule, start: date) -> Iterator[date]:
    """
    Lazily yield every date >= start matching the rule, in ascending order.

    The sequence is unbounded for most rules; cap it by date or count with
    `takewhile` / `islice`. Calling again restarts from `start`.
    """
    anchor = rule.anchor_date or start

    if isinstance(rule, DailyRule):
        return _iter_daily(rule, start, anchor)
    if isinstance(rule, BiweeklyRule):
        return _iter_weekly(rule.day_of_week, 2, start, anchor)
    if isinstance(rule, WeeklyRule):
        return _iter_weekly(rule.day_of_week, rule.interval, start, anchor)
    return _iter_monthly(rule, start, anchor)


def blocked_set(schedule) -> set[date]:
    return {parse_iso_date(d) for d in (schedule.blocked_dates or [])}


def iter_schedule_dates(schedule, start: date, end: date | None = None) -> Iterator[date]:
    """
    Yield a schedule's candidate dates in [start, end], blocked dates removed.

    Works on anything shaped like a Schedule row: schedule_type,
    recurrence_rule, available_dates, blocked_dates.
    """
    blocked = blocked_set(schedule)

    if schedule.schedule_type == "one_time":
        dates: Iterable[date] = sorted(
            d for d in {parse_iso_date(v) for v in (schedule.available_dates or [])}
            if d >= start and (end is None or d <= end)
        )
    else:
        dates = iter_rule_dates(parse_rule(schedule.recurrence_rule), start)
        if end is not None:
            dates = takewhile(lambda d: d <= end, dates)

    return (d for d in dates if d not in blocked)


def expand_schedule(schedule, start: date, end: date, limit: int | None = None) -> list[date]:
    """
    Ordered candidate dates for one schedule over [start, end].

    Args:
        schedule: Schedule row (or any object with the same fields)
        start: First date of the range (inclusive)
        end: Last date of the range (inclusive)
        limit: Stop after this many dates, even before `end`

    Returns:
        Ascending, de-duplicated list of dates
    """
    if end < start:
        return []
    return list(islice(iter_schedule_dates(schedule, start, end), limit))
