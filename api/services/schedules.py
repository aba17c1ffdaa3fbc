"""Schedule administration: validated writes for schedules, blocked dates and assignments."""

import logging
import uuid
from datetime import date
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.location import FulfillmentLocation
from models.schedule import Schedule, ScheduleAssignment
from models.zone import DeliveryZone, ShippingZone
from services.availability import ASSIGNMENT_TARGET
from services.errors import NotFoundError, ValidationError
from services.recurrence import SCHEDULE_TYPES, parse_iso_date, parse_rule, rule_to_dict

logger = logging.getLogger(__name__)

TARGET_MODELS = {
    "fulfillment_location_id": FulfillmentLocation,
    "delivery_zone_id": DeliveryZone,
    "shipping_zone_id": ShippingZone,
}


def normalize_dates(values) -> list[str]:
    """Sorted, de-duplicated ISO strings; rejects anything that is not a date."""
    return sorted({parse_iso_date(v).isoformat() for v in (values or [])})


def validate_schedule_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Check a full set of schedule fields and return them normalized.

    A recurring schedule needs a rule that is complete for its frequency;
    a one_time schedule keeps its dates in available_dates and drops any rule.
    """
    schedule_type = fields.get("schedule_type") or "recurring"
    if schedule_type not in SCHEDULE_TYPES:
        raise ValidationError(f"schedule_type must be one of {', '.join(SCHEDULE_TYPES)}")

    cleaned = dict(fields)
    cleaned["schedule_type"] = schedule_type
    cleaned["available_dates"] = normalize_dates(fields.get("available_dates"))
    cleaned["blocked_dates"] = normalize_dates(fields.get("blocked_dates"))

    hours = fields.get("cutoff_hours_before")
    if hours is not None and hours < 0:
        raise ValidationError("cutoff_hours_before must be >= 0")

    if schedule_type == "recurring":
        cleaned["recurrence_rule"] = rule_to_dict(parse_rule(fields.get("recurrence_rule")))
    else:
        cleaned["recurrence_rule"] = None
    return cleaned


async def get_schedule(db: AsyncSession, schedule_id: uuid.UUID) -> Schedule:
    result = await db.execute(select(Schedule).where(Schedule.id == schedule_id))
    schedule = result.scalar_one_or_none()
    if schedule is None:
        raise NotFoundError("Schedule", schedule_id)
    return schedule


async def list_schedules(db: AsyncSession, is_active: bool | None = None) -> Sequence[Schedule]:
    query = select(Schedule).order_by(Schedule.name)
    if is_active is not None:
        query = query.where(Schedule.is_active == is_active)
    result = await db.execute(query)
    return result.scalars().all()


async def create_schedule(db: AsyncSession, fields: dict[str, Any]) -> Schedule:
    schedule = Schedule(**validate_schedule_fields(fields))
    db.add(schedule)
    await db.commit()
    await db.refresh(schedule)
    logger.info("Schedule created: id=%s name=%s", schedule.id, schedule.name)
    return schedule


async def update_schedule(db: AsyncSession, schedule_id: uuid.UUID, changes: dict[str, Any]) -> Schedule:
    """Apply a partial update; the merged result must still be a valid schedule."""
    schedule = await get_schedule(db, schedule_id)
    merged = {
        "schedule_type": schedule.schedule_type,
        "recurrence_rule": schedule.recurrence_rule,
        "available_dates": schedule.available_dates,
        "blocked_dates": schedule.blocked_dates,
        "cutoff_hours_before": schedule.cutoff_hours_before,
    }
    merged.update(changes)
    cleaned = validate_schedule_fields(merged)

    for key in set(changes) | {"schedule_type", "recurrence_rule", "available_dates", "blocked_dates"}:
        setattr(schedule, key, cleaned[key])

    await db.commit()
    await db.refresh(schedule)
    logger.info("Schedule updated: id=%s fields=%s", schedule_id, sorted(changes))
    return schedule


async def delete_schedule(db: AsyncSession, schedule_id: uuid.UUID) -> None:
    schedule = await get_schedule(db, schedule_id)
    await db.delete(schedule)
    await db.commit()
    logger.info("Schedule deleted: id=%s", schedule_id)


async def toggle_schedule_active(db: AsyncSession, schedule_id: uuid.UUID) -> Schedule:
    schedule = await get_schedule(db, schedule_id)
    schedule.is_active = not schedule.is_active
    await db.commit()
    await db.refresh(schedule)
    return schedule


async def add_blocked_date(db: AsyncSession, schedule_id: uuid.UUID, day: date) -> Schedule:
    """Block one date; blocking an already-blocked date is a no-op."""
    schedule = await get_schedule(db, schedule_id)
    schedule.blocked_dates = normalize_dates([*(schedule.blocked_dates or []), day])
    await db.commit()
    await db.refresh(schedule)
    logger.info("Blocked %s on schedule %s", day, schedule_id)
    return schedule


async def remove_blocked_date(db: AsyncSession, schedule_id: uuid.UUID, day: date) -> Schedule:
    schedule = await get_schedule(db, schedule_id)
    schedule.blocked_dates = [d for d in normalize_dates(schedule.blocked_dates) if d != day.isoformat()]
    await db.commit()
    await db.refresh(schedule)
    logger.info("Unblocked %s on schedule %s", day, schedule_id)
    return schedule


def single_target(
    fulfillment_location_id: uuid.UUID | None = None,
    delivery_zone_id: uuid.UUID | None = None,
    shipping_zone_id: uuid.UUID | None = None,
) -> tuple[str, uuid.UUID]:
    """The one (column, id) an assignment points at."""
    targets = {
        "fulfillment_location_id": fulfillment_location_id,
        "delivery_zone_id": delivery_zone_id,
        "shipping_zone_id": shipping_zone_id,
    }
    chosen = [(k, v) for k, v in targets.items() if v is not None]
    if len(chosen) != 1:
        raise ValidationError("Must specify exactly one location or zone")
    return chosen[0]


async def assign_schedule(
    db: AsyncSession,
    schedule_id: uuid.UUID,
    fulfillment_location_id: uuid.UUID | None = None,
    delivery_zone_id: uuid.UUID | None = None,
    shipping_zone_id: uuid.UUID | None = None,
) -> ScheduleAssignment:
    column, target_id = single_target(fulfillment_location_id, delivery_zone_id, shipping_zone_id)
    await get_schedule(db, schedule_id)

    model = TARGET_MODELS[column]
    if await db.get(model, target_id) is None:
        raise NotFoundError(model.__name__, target_id)

    assignment = ScheduleAssignment(schedule_id=schedule_id, **{column: target_id})
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)
    logger.info("Schedule %s assigned to %s=%s", schedule_id, column, target_id)
    return assignment


async def remove_assignment(db: AsyncSession, assignment_id: uuid.UUID) -> None:
    assignment = await db.get(ScheduleAssignment, assignment_id)
    if assignment is None:
        raise NotFoundError("ScheduleAssignment", assignment_id)
    await db.delete(assignment)
    await db.commit()
    logger.info("Schedule assignment removed: id=%s", assignment_id)


async def list_assignments(
    db: AsyncSession, fulfillment_type: str, target_id: uuid.UUID,
) -> Sequence[ScheduleAssignment]:
    column = ASSIGNMENT_TARGET.get(fulfillment_type)
    if column is None:
        raise ValidationError("fulfillment_type must be one of pickup, delivery, shipping")
    result = await db.execute(
        select(ScheduleAssignment).where(column == target_id).order_by(ScheduleAssignment.created_at)
    )
    return result.scalars().all()
