"""Pickup location API endpoints."""

import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.location import FulfillmentLocation
from schemas import LocationCreate, LocationUpdate, LocationResponse, LocationReorder
from services import fulfillment

router = APIRouter()


@router.get("/", response_model=list[LocationResponse])
async def list_locations(is_active: bool | None = True, db: AsyncSession = Depends(get_db)):
    """Pickup locations in display order; active ones unless `is_active` says otherwise."""
    return await fulfillment.list_channels(db, FulfillmentLocation, is_active)


@router.post("/", response_model=LocationResponse, status_code=201)
async def create_location(data: LocationCreate, db: AsyncSession = Depends(get_db)):
    return await fulfillment.create_channel(db, FulfillmentLocation, data.model_dump())


@router.put("/reorder", response_model=list[LocationResponse])
async def reorder_locations(data: LocationReorder, db: AsyncSession = Depends(get_db)):
    """Set display order from the given id list (first = 0)."""
    return await fulfillment.reorder_locations(db, data.ordered_ids)


@router.get("/{location_id}", response_model=LocationResponse)
async def get_location(location_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await fulfillment.get_channel(db, FulfillmentLocation, location_id)


@router.put("/{location_id}", response_model=LocationResponse)
async def update_location(location_id: uuid.UUID, data: LocationUpdate, db: AsyncSession = Depends(get_db)):
    return await fulfillment.update_channel(
        db, FulfillmentLocation, location_id, data.model_dump(exclude_unset=True),
    )


@router.post("/{location_id}/toggle", response_model=LocationResponse)
async def toggle_location(location_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await fulfillment.toggle_channel_active(db, FulfillmentLocation, location_id)


@router.delete("/{location_id}", status_code=204)
async def delete_location(location_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """409 while any subscription still uses the location."""
    await fulfillment.delete_channel(db, FulfillmentLocation, location_id)
