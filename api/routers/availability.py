"""Availability API: dates a fulfillment channel can offer."""

import uuid
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from schemas import FulfillmentType
from services.availability import get_available_dates
from services.clock import Clock, get_clock

router = APIRouter()


@router.get("/", response_model=list[str])
async def available_dates(
    fulfillment_type: FulfillmentType = Query(..., alias="fulfillmentType"),
    location_or_zone_id: uuid.UUID = Query(..., alias="locationOrZoneId"),
    start: date | None = Query(None, alias="from"),
    horizon_days: int | None = Query(None, alias="horizonDays", ge=1, le=366),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    ISO dates (YYYY-MM-DD) on which the channel can fulfill, ascending.

    A channel without schedule assignments returns an empty list.
    """
    return await get_available_dates(
        db, fulfillment_type.value, location_or_zone_id,
        start=start, horizon_days=horizon_days, clock=clock,
    )
