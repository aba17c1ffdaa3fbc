"""Schedule assignment API endpoints."""

import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from schemas import AssignmentCreate, AssignmentResponse, FulfillmentType
from services import schedules as schedule_service

router = APIRouter()


@router.post("/", response_model=AssignmentResponse, status_code=201)
async def create_assignment(data: AssignmentCreate, db: AsyncSession = Depends(get_db)):
    """Link a schedule to exactly one pickup location, delivery zone or shipping zone."""
    return await schedule_service.assign_schedule(
        db,
        data.schedule_id,
        fulfillment_location_id=data.fulfillment_location_id,
        delivery_zone_id=data.delivery_zone_id,
        shipping_zone_id=data.shipping_zone_id,
    )


@router.get("/", response_model=list[AssignmentResponse])
async def list_assignments(
    fulfillment_type: FulfillmentType = Query(..., alias="fulfillmentType"),
    location_or_zone_id: uuid.UUID = Query(..., alias="locationOrZoneId"),
    db: AsyncSession = Depends(get_db),
):
    return await schedule_service.list_assignments(db, fulfillment_type.value, location_or_zone_id)


@router.delete("/{assignment_id}", status_code=204)
async def delete_assignment(assignment_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await schedule_service.remove_assignment(db, assignment_id)
