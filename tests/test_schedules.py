"""Tests for schedule validation and request schemas."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from models.schedule import Schedule
from schemas import AssignmentCreate, ScheduleCreate, ScheduleUpdate, SubscriptionCreate
from services.errors import NotFoundError, ValidationError
from services.schedules import normalize_dates, single_target, validate_schedule_fields


def test_recurring_schedule_rule_is_normalized():
    fields = validate_schedule_fields({
        "name": "Friday pickup",
        "schedule_type": "recurring",
        "recurrence_rule": {"frequency": "weekly", "day_of_week": 5},
        "blocked_dates": ["2024-06-07", "2024-06-07", "2024-05-31"],
    })
    assert fields["recurrence_rule"] == {"frequency": "weekly", "day_of_week": 5, "interval": 1}
    assert fields["blocked_dates"] == ["2024-05-31", "2024-06-07"]
    assert fields["available_dates"] == []


def test_recurring_schedule_needs_a_complete_rule():
    with pytest.raises(ValidationError):
        validate_schedule_fields({"schedule_type": "recurring", "recurrence_rule": {"frequency": "monthly"}})
    with pytest.raises(ValidationError):
        validate_schedule_fields({"schedule_type": "recurring", "recurrence_rule": None})


def test_one_time_schedule_drops_the_rule():
    fields = validate_schedule_fields({
        "schedule_type": "one_time",
        "recurrence_rule": {"frequency": "daily"},
        "available_dates": ["2024-07-04"],
    })
    assert fields["recurrence_rule"] is None
    assert fields["available_dates"] == ["2024-07-04"]


def test_bad_values_are_rejected():
    with pytest.raises(ValidationError):
        validate_schedule_fields({"schedule_type": "hourly"})
    with pytest.raises(ValidationError):
        validate_schedule_fields({
            "schedule_type": "one_time", "cutoff_hours_before": -1,
        })
    with pytest.raises(ValidationError):
        normalize_dates(["2024-02-30"])


def test_single_target():
    location = uuid.uuid4()
    assert single_target(fulfillment_location_id=location) == ("fulfillment_location_id", location)
    with pytest.raises(ValidationError):
        single_target()
    with pytest.raises(ValidationError):
        single_target(delivery_zone_id=uuid.uuid4(), shipping_zone_id=uuid.uuid4())


@pytest.mark.asyncio
async def test_assign_to_missing_zone_is_not_found():
    schedule = Schedule(id=uuid.uuid4(), name="Weekly")
    db = AsyncMock()
    db.get.return_value = None
    db.add = MagicMock()

    with patch("services.schedules.get_schedule", new=AsyncMock(return_value=schedule)):
        from services.schedules import assign_schedule
        with pytest.raises(NotFoundError):
            await assign_schedule(db, schedule.id, delivery_zone_id=uuid.uuid4())

    db.add.assert_not_called()


@pytest.mark.asyncio
async def test_update_merges_with_stored_fields():
    schedule = Schedule(
        id=uuid.uuid4(), name="Weekly", schedule_type="recurring",
        recurrence_rule={"frequency": "weekly", "day_of_week": 5, "interval": 1},
        available_dates=[], blocked_dates=["2024-06-07"], cutoff_hours_before=24,
    )
    db = AsyncMock()
    with patch("services.schedules.get_schedule", new=AsyncMock(return_value=schedule)):
        from services.schedules import update_schedule
        await update_schedule(db, schedule.id, {"name": "Friday pickup"})

    assert schedule.name == "Friday pickup"
    assert schedule.recurrence_rule["day_of_week"] == 5
    assert schedule.blocked_dates == ["2024-06-07"]
    db.commit.assert_awaited_once()


# ── Schemas ────────────────────────────────────────────────

def test_assignment_needs_exactly_one_target():
    schedule_id = uuid.uuid4()
    AssignmentCreate(schedule_id=schedule_id, shipping_zone_id=uuid.uuid4())
    with pytest.raises(PydanticValidationError):
        AssignmentCreate(schedule_id=schedule_id)
    with pytest.raises(PydanticValidationError):
        AssignmentCreate(
            schedule_id=schedule_id,
            fulfillment_location_id=uuid.uuid4(),
            delivery_zone_id=uuid.uuid4(),
        )


def test_schedule_create_as_fields():
    data = ScheduleCreate(
        name="Friday pickup",
        recurrence_rule={"frequency": "weekly", "day_of_week": 5},
        blocked_dates=["2024-06-07"],
    )
    fields = data.as_fields()
    assert fields["schedule_type"] == "recurring"
    assert fields["recurrence_rule"] == {"frequency": "weekly", "day_of_week": 5, "interval": 1}


def test_schedule_update_only_sends_set_fields():
    assert ScheduleUpdate(is_active=False).as_changes() == {"is_active": False}
    assert ScheduleUpdate(recurrence_rule=None).as_changes() == {"recurrence_rule": None}


def test_subscription_channel_must_match_type():
    zone = uuid.uuid4()
    data = SubscriptionCreate(frequency="weekly", fulfillment_type="delivery", delivery_zone_id=zone)
    assert data.channel_id == zone

    with pytest.raises(PydanticValidationError):
        SubscriptionCreate(frequency="weekly", fulfillment_type="pickup", delivery_zone_id=zone)
    with pytest.raises(PydanticValidationError):
        SubscriptionCreate(
            frequency="monthly", fulfillment_type="shipping",
            shipping_zone_id=uuid.uuid4(), delivery_zone_id=zone,
        )


def test_subscription_frequency_is_limited():
    with pytest.raises(PydanticValidationError):
        SubscriptionCreate(frequency="daily", fulfillment_type="shipping", shipping_zone_id=uuid.uuid4())
