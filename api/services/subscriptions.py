"""
Subscription Lifecycle Manager: state machine for recurring orders.

States:
  active ──pause──▶ paused ──resume──▶ active
  active/paused ──cancel──▶ cancelled  (terminal)
  active/paused ──change frequency/channel──▶ same status

Date rules (all dates come from the Availability Service for the
subscription's channel and exclude skip_dates):
  - create: first date >= max(tomorrow, start_date)
  - skip: first date >= max(skipped date + one cadence period, tomorrow)
  - resume: first date >= today (cadence offset is not preserved)
  - renew: first date >= max(last order date + one cadence period, tomorrow)
  - change frequency or channel: first date >= max(tomorrow, last order
    date + one new cadence period); paused subscriptions keep theirs
    until resume

A cadence period is 7 days (weekly), 14 days (biweekly) or one calendar
month (monthly). When no date exists within the horizon, next_order_date
becomes null and the subscription is flagged for review; it is never
cancelled for that reason.

Every mutation is a read-validate-write guarded by the row's version
column. A stale write is retried once on fresh state, then surfaces as
ConcurrencyConflictError.
"""

from __future__ import annotations
import logging
import uuid
from datetime import date, timedelta
from typing import Awaitable, Callable, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from models.location import FulfillmentLocation
from models.subscription import Subscription
from models.zone import DeliveryZone, ShippingZone
from services.availability import FULFILLMENT_TYPES, find_available_dates
from services.clock import Clock
from services.errors import (
    ConcurrencyConflictError, IllegalTransitionError, NotFoundError,
    SchedulingError, ValidationError,
)
from services.recurrence import add_months, parse_iso_date

logger = logging.getLogger(__name__)

SUBSCRIPTION_FREQUENCIES = ("weekly", "biweekly", "monthly")

# action → statuses it may start from
ALLOWED_FROM = {
    "skip": ("active",),
    "pause": ("active",),
    "resume": ("paused",),
    "cancel": ("active", "paused"),
    "renew": ("active",),
    "change_frequency": ("active", "paused"),
    "change_fulfillment": ("active", "paused"),
}

CHANNEL_FIELD = {
    "pickup": "fulfillment_location_id",
    "delivery": "delivery_zone_id",
    "shipping": "shipping_zone_id",
}

CHANNEL_MODEL = {
    "pickup": FulfillmentLocation,
    "delivery": DeliveryZone,
    "shipping": ShippingZone,
}


# ── Pure helpers ───────────────────────────────────────────

def cadence_step(frequency: str, d: date) -> date:
    """The earliest date one cadence period after `d`."""
    if frequency == "weekly":
        return d + timedelta(weeks=1)
    if frequency == "biweekly":
        return d + timedelta(weeks=2)
    return add_months(d, 1)


def skip_set(sub: Subscription) -> set[date]:
    return {parse_iso_date(d) for d in (sub.skip_dates or [])}


def first_open_date(dates: Iterable[date], on_or_after: date, skipped: set[date]) -> date | None:
    """Earliest date in `dates` on/after `on_or_after` and not skipped."""
    for d in sorted(dates):
        if d >= on_or_after and d not in skipped:
            return d
    return None


def check_transition(sub: Subscription, action: str) -> None:
    if sub.status not in ALLOWED_FROM[action]:
        raise IllegalTransitionError(action, sub.status)


def set_next_order_date(sub: Subscription, next_date: date | None, searched_from: date) -> None:
    """Store the new date, or null it and flag the subscription for review."""
    if next_date is None:
        sub.next_order_date = None
        sub.needs_review = True
        sub.review_reason = (
            f"No available {sub.fulfillment_type} date within "
            f"{settings.AVAILABILITY_HORIZON_DAYS} days of {searched_from.isoformat()}"
        )
        logger.warning(
            "Subscription %s flagged for review: %s", sub.id, sub.review_reason,
        )
        return

    sub.next_order_date = next_date
    sub.needs_review = False
    sub.review_reason = None


def skip_floor(sub: Subscription, not_before: date | None = None) -> date:
    if sub.next_order_date is None:
        raise ValidationError("Subscription has no upcoming order to skip")
    return _at_least(cadence_step(sub.frequency, sub.next_order_date), not_before)


def _at_least(floor: date, not_before: date | None) -> date:
    return max(floor, not_before) if not_before else floor


def apply_skip(sub: Subscription, available: Sequence[date], not_before: date | None = None) -> date:
    """Skip the upcoming order. Returns the skipped date."""
    check_transition(sub, "skip")
    floor = skip_floor(sub, not_before)
    skipped = sub.next_order_date

    skip_dates = list(sub.skip_dates or [])
    if skipped.isoformat() not in skip_dates:
        skip_dates.append(skipped.isoformat())
    sub.skip_dates = skip_dates  # new list so the JSON column is marked dirty

    set_next_order_date(sub, first_open_date(available, floor, skip_set(sub)), floor)
    return skipped


def apply_pause(sub: Subscription) -> None:
    check_transition(sub, "pause")
    sub.status = "paused"


def apply_resume(sub: Subscription, available: Sequence[date], today: date) -> None:
    check_transition(sub, "resume")
    sub.status = "active"
    set_next_order_date(sub, first_open_date(available, today, skip_set(sub)), today)


def apply_cancel(sub: Subscription, reason: str | None, clock: Clock) -> None:
    check_transition(sub, "cancel")
    sub.status = "cancelled"
    sub.cancelled_at = clock.now()
    sub.cancellation_reason = reason


def renewal_floor(order_date: date, frequency: str, not_before: date | None = None) -> date:
    """One period after the order, and never before `not_before` (tomorrow for overdue rows)."""
    floor = max(order_date + timedelta(days=1), cadence_step(frequency, order_date))
    return _at_least(floor, not_before)


def apply_renew(
    sub: Subscription,
    order_date: date,
    available: Sequence[date],
    not_before: date | None = None,
) -> bool:
    """
    Advance past an order that was created for `order_date`.

    Returns False without changing anything when the subscription already
    moved past that date, so replaying a renewal is harmless.
    """
    check_transition(sub, "renew")
    if sub.next_order_date != order_date:
        if sub.last_order_date == order_date:
            return False
        raise ValidationError(
            f"Subscription {sub.id} is due {sub.next_order_date}, not {order_date}"
        )

    sub.last_order_date = order_date
    floor = renewal_floor(order_date, sub.frequency, not_before)
    set_next_order_date(sub, first_open_date(available, floor, skip_set(sub)), floor)
    return True


def reschedule_floor(sub: Subscription, frequency: str, tomorrow: date) -> date:
    """Where to look for the next order after the cadence or channel changed."""
    if sub.last_order_date is None:
        return tomorrow
    return max(tomorrow, cadence_step(frequency, sub.last_order_date))


def _reschedule(sub: Subscription, available: Sequence[date], tomorrow: date) -> None:
    # Paused subscriptions get their date on resume
    if sub.status != "active":
        return
    floor = reschedule_floor(sub, sub.frequency, tomorrow)
    set_next_order_date(sub, first_open_date(available, floor, skip_set(sub)), floor)


def apply_frequency(sub: Subscription, frequency: str, available: Sequence[date], tomorrow: date) -> None:
    """Switch cadence; an active subscription's next date is recomputed."""
    check_transition(sub, "change_frequency")
    if frequency not in SUBSCRIPTION_FREQUENCIES:
        raise ValidationError(
            f"frequency must be one of {', '.join(SUBSCRIPTION_FREQUENCIES)}"
        )
    sub.frequency = frequency
    _reschedule(sub, available, tomorrow)


def bind_channel(sub: Subscription, fulfillment_type: str, channel_id: uuid.UUID) -> None:
    if fulfillment_type not in FULFILLMENT_TYPES:
        raise ValidationError(
            f"fulfillment_type must be one of {', '.join(FULFILLMENT_TYPES)}"
        )
    sub.fulfillment_type = fulfillment_type
    for field in CHANNEL_FIELD.values():
        setattr(sub, field, None)
    setattr(sub, CHANNEL_FIELD[fulfillment_type], channel_id)


def apply_fulfillment(
    sub: Subscription,
    fulfillment_type: str,
    channel_id: uuid.UUID,
    available: Sequence[date],
    tomorrow: date,
) -> None:
    """Move to another location/zone; `available` must be that channel's dates."""
    check_transition(sub, "change_fulfillment")
    bind_channel(sub, fulfillment_type, channel_id)
    _reschedule(sub, available, tomorrow)


# ── Persistence ────────────────────────────────────────────

async def get_subscription(db: AsyncSession, subscription_id: uuid.UUID) -> Subscription:
    result = await db.execute(
        select(Subscription)
        .where(Subscription.id == subscription_id)
        .execution_options(populate_existing=True)
    )
    sub = result.scalar_one_or_none()
    if sub is None:
        raise NotFoundError("Subscription", subscription_id)
    return sub


async def list_subscriptions(
    db: AsyncSession,
    status: str | None = None,
    needs_review: bool | None = None,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[Subscription]:
    query = select(Subscription)
    if status:
        query = query.where(Subscription.status == status)
    if needs_review is not None:
        query = query.where(Subscription.needs_review == needs_review)
    query = query.offset(skip).limit(limit).order_by(Subscription.created_at.desc())
    result = await db.execute(query)
    return result.scalars().all()


async def list_due_subscription_ids(db: AsyncSession, today: date) -> list[uuid.UUID]:
    """Active subscriptions whose next order date has arrived."""
    result = await db.execute(
        select(Subscription.id)
        .where(
            Subscription.status == "active",
            Subscription.next_order_date.is_not(None),
            Subscription.next_order_date <= today,
        )
        .order_by(Subscription.next_order_date, Subscription.id)
    )
    return list(result.scalars().all())


async def list_upcoming(db: AsyncSession, on_date: date) -> Sequence[Subscription]:
    result = await db.execute(
        select(Subscription)
        .where(Subscription.status == "active", Subscription.next_order_date == on_date)
        .order_by(Subscription.id)
    )
    return result.scalars().all()


async def _available_from(db: AsyncSession, sub: Subscription, start: date, clock: Clock) -> list[date]:
    return await find_available_dates(
        db, sub.fulfillment_type, sub.channel_id, start=start, clock=clock,
    )


async def _transition(
    db: AsyncSession,
    subscription_id: uuid.UUID,
    action: str,
    mutate: Callable[[Subscription], Awaitable[None]],
) -> Subscription:
    """Load, mutate and commit one subscription with a single retry on a stale version."""
    for attempt in (1, 2):
        sub = await get_subscription(db, subscription_id)
        try:
            await mutate(sub)
            await db.commit()
        except StaleDataError:
            await db.rollback()
            if attempt == 2:
                raise ConcurrencyConflictError(
                    f"Subscription {subscription_id} was modified concurrently during {action}"
                )
            logger.warning(
                "Stale write on subscription %s during %s, retrying", subscription_id, action,
            )
            continue
        except SchedulingError:
            await db.rollback()
            raise

        logger.info(
            "Subscription %s %s → status=%s next_order_date=%s",
            subscription_id, action, sub.status, sub.next_order_date,
        )
        return sub

    raise ConcurrencyConflictError(f"Subscription {subscription_id} could not be updated")


async def require_channel(db: AsyncSession, fulfillment_type: str, channel_id: uuid.UUID) -> None:
    """Raise NotFoundError unless the location/zone for `fulfillment_type` exists."""
    if fulfillment_type not in FULFILLMENT_TYPES:
        raise ValidationError(
            f"fulfillment_type must be one of {', '.join(FULFILLMENT_TYPES)}"
        )
    model = CHANNEL_MODEL[fulfillment_type]
    if await db.get(model, channel_id) is None:
        raise NotFoundError(model.__name__, channel_id)


# ── Operations ─────────────────────────────────────────────

async def create_subscription(
    db: AsyncSession,
    *,
    name: str | None,
    frequency: str,
    fulfillment_type: str,
    channel_id: uuid.UUID,
    user_id: uuid.UUID | None = None,
    start_date: date | None = None,
    clock: Clock | None = None,
) -> Subscription:
    """Create an active subscription with its first order date computed."""
    clock = clock or Clock()
    if frequency not in SUBSCRIPTION_FREQUENCIES:
        raise ValidationError(
            f"frequency must be one of {', '.join(SUBSCRIPTION_FREQUENCIES)}"
        )
    await require_channel(db, fulfillment_type, channel_id)

    sub = Subscription(
        id=uuid.uuid4(),
        user_id=user_id,
        name=name or f"{frequency.title()} Subscription",
        status="active",
        frequency=frequency,
        skip_dates=[],
        needs_review=False,
    )
    bind_channel(sub, fulfillment_type, channel_id)

    floor = max(clock.tomorrow(), start_date) if start_date else clock.tomorrow()
    available = await _available_from(db, sub, floor, clock)
    set_next_order_date(sub, first_open_date(available, floor, set()), floor)

    db.add(sub)
    await db.commit()
    await db.refresh(sub)
    logger.info(
        "Subscription created: id=%s %s/%s next_order_date=%s",
        sub.id, frequency, fulfillment_type, sub.next_order_date,
    )
    return sub


async def skip_next_order(
    db: AsyncSession, subscription_id: uuid.UUID, clock: Clock | None = None,
) -> Subscription:
    clock = clock or Clock()

    async def mutate(sub: Subscription) -> None:
        check_transition(sub, "skip")
        tomorrow = clock.tomorrow()
        available = await _available_from(db, sub, skip_floor(sub, tomorrow), clock)
        apply_skip(sub, available, tomorrow)

    return await _transition(db, subscription_id, "skip", mutate)


async def pause_subscription(db: AsyncSession, subscription_id: uuid.UUID) -> Subscription:
    async def mutate(sub: Subscription) -> None:
        apply_pause(sub)

    return await _transition(db, subscription_id, "pause", mutate)


async def resume_subscription(
    db: AsyncSession, subscription_id: uuid.UUID, clock: Clock | None = None,
) -> Subscription:
    clock = clock or Clock()

    async def mutate(sub: Subscription) -> None:
        check_transition(sub, "resume")
        today = clock.today()
        available = await _available_from(db, sub, today, clock)
        apply_resume(sub, available, today)

    return await _transition(db, subscription_id, "resume", mutate)


async def cancel_subscription(
    db: AsyncSession,
    subscription_id: uuid.UUID,
    reason: str | None = None,
    clock: Clock | None = None,
) -> Subscription:
    clock = clock or Clock()

    async def mutate(sub: Subscription) -> None:
        apply_cancel(sub, reason, clock)

    return await _transition(db, subscription_id, "cancel", mutate)


async def change_frequency(
    db: AsyncSession,
    subscription_id: uuid.UUID,
    frequency: str,
    clock: Clock | None = None,
) -> Subscription:
    """Switch weekly/biweekly/monthly and recompute the next order date."""
    clock = clock or Clock()

    async def mutate(sub: Subscription) -> None:
        check_transition(sub, "change_frequency")
        tomorrow = clock.tomorrow()
        available: list[date] = []
        if sub.status == "active":
            floor = reschedule_floor(sub, frequency, tomorrow)
            available = await _available_from(db, sub, floor, clock)
        apply_frequency(sub, frequency, available, tomorrow)

    return await _transition(db, subscription_id, "change_frequency", mutate)


async def change_fulfillment(
    db: AsyncSession,
    subscription_id: uuid.UUID,
    fulfillment_type: str,
    channel_id: uuid.UUID,
    clock: Clock | None = None,
) -> Subscription:
    """Rebind to another location/zone and recompute the next order date from its schedules."""
    clock = clock or Clock()
    await require_channel(db, fulfillment_type, channel_id)

    async def mutate(sub: Subscription) -> None:
        check_transition(sub, "change_fulfillment")
        tomorrow = clock.tomorrow()
        available: list[date] = []
        if sub.status == "active":
            floor = reschedule_floor(sub, sub.frequency, tomorrow)
            available = await find_available_dates(
                db, fulfillment_type, channel_id, start=floor, clock=clock,
            )
        apply_fulfillment(sub, fulfillment_type, channel_id, available, tomorrow)

    return await _transition(db, subscription_id, "change_fulfillment", mutate)


async def renew_subscription(
    db: AsyncSession,
    subscription_id: uuid.UUID,
    order_date: date,
    clock: Clock | None = None,
) -> Subscription:
    """Advance a subscription after its order for `order_date` was created."""
    clock = clock or Clock()

    async def mutate(sub: Subscription) -> None:
        check_transition(sub, "renew")
        if sub.next_order_date != order_date:
            apply_renew(sub, order_date, [])
            return
        # An overdue subscription snaps forward instead of searching the past
        tomorrow = clock.tomorrow()
        floor = renewal_floor(order_date, sub.frequency, tomorrow)
        available = await _available_from(db, sub, floor, clock)
        apply_renew(sub, order_date, available, tomorrow)

    return await _transition(db, subscription_id, "renew", mutate)
