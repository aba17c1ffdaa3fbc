"""Schedule management API endpoints."""

import uuid
from datetime import date, timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db.database import get_db
from schemas import ScheduleCreate, ScheduleUpdate, ScheduleResponse
from services import schedules as schedule_service
from services.availability import open_dates_for_schedule
from services.clock import Clock, get_clock

router = APIRouter()


@router.get("/", response_model=list[ScheduleResponse])
async def list_schedules(is_active: bool | None = None, db: AsyncSession = Depends(get_db)):
    return await schedule_service.list_schedules(db, is_active)


@router.post("/", response_model=ScheduleResponse, status_code=201)
async def create_schedule(data: ScheduleCreate, db: AsyncSession = Depends(get_db)):
    return await schedule_service.create_schedule(db, data.as_fields())


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(schedule_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await schedule_service.get_schedule(db, schedule_id)


@router.put("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: uuid.UUID,
    data: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await schedule_service.update_schedule(db, schedule_id, data.as_changes())


@router.delete("/{schedule_id}", status_code=204)
async def delete_schedule(schedule_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await schedule_service.delete_schedule(db, schedule_id)


@router.post("/{schedule_id}/toggle", response_model=ScheduleResponse)
async def toggle_schedule(schedule_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Flip is_active."""
    return await schedule_service.toggle_schedule_active(db, schedule_id)


@router.post("/{schedule_id}/blocked-dates/{blocked_date}", response_model=ScheduleResponse)
async def add_blocked_date(
    schedule_id: uuid.UUID,
    blocked_date: date,
    db: AsyncSession = Depends(get_db),
):
    return await schedule_service.add_blocked_date(db, schedule_id, blocked_date)


@router.delete("/{schedule_id}/blocked-dates/{blocked_date}", response_model=ScheduleResponse)
async def remove_blocked_date(
    schedule_id: uuid.UUID,
    blocked_date: date,
    db: AsyncSession = Depends(get_db),
):
    return await schedule_service.remove_blocked_date(db, schedule_id, blocked_date)


@router.get("/{schedule_id}/available-dates", response_model=list[str])
async def preview_schedule_dates(
    schedule_id: uuid.UUID,
    start: date | None = Query(None, alias="from"),
    horizon_days: int | None = Query(None, alias="horizonDays", ge=1, le=366),
    limit: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Dates this one schedule would offer, with blocked and closed dates removed."""
    schedule = await schedule_service.get_schedule(db, schedule_id)
    start = start or clock.tomorrow()
    end = start + timedelta(days=horizon_days or settings.AVAILABILITY_HORIZON_DAYS)
    dates = open_dates_for_schedule(
        schedule, start, end, clock.now(), clock.tz,
        limit or settings.SCHEDULE_RESULT_CAP,
    )
    return [d.isoformat() for d in dates]
