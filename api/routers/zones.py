"""Delivery and shipping zone API endpoints."""

import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.zone import DeliveryZone, ShippingZone
from schemas import (
    DeliveryZoneCreate, DeliveryZoneUpdate, DeliveryZoneResponse, DeliveryZoneMatch,
    ShippingZoneCreate, ShippingZoneUpdate, ShippingZoneResponse, ShippingZoneMatch,
    ZipCodesAdd,
)
from services import fulfillment
from services.zones import resolve_delivery_zone, resolve_shipping_zone

router = APIRouter()


# ── Resolution ─────────────────────────────────────────────

@router.get("/delivery/resolve", response_model=DeliveryZoneMatch)
async def match_delivery_zone(zip: str = Query(..., min_length=1, max_length=10), db: AsyncSession = Depends(get_db)):
    """Zone serving a ZIP code; `zone` is null when delivery is not offered there."""
    return DeliveryZoneMatch(zone=await resolve_delivery_zone(db, zip))


@router.get("/shipping/resolve", response_model=ShippingZoneMatch)
async def match_shipping_zone(state: str = Query(..., min_length=1, max_length=100), db: AsyncSession = Depends(get_db)):
    """Zone serving a state; `zone` is null when shipping is not offered there."""
    return ShippingZoneMatch(zone=await resolve_shipping_zone(db, state))


# ── Delivery zones ─────────────────────────────────────────

@router.get("/delivery", response_model=list[DeliveryZoneResponse])
async def list_delivery_zones(is_active: bool | None = None, db: AsyncSession = Depends(get_db)):
    return await fulfillment.list_channels(db, DeliveryZone, is_active)


@router.post("/delivery", response_model=DeliveryZoneResponse, status_code=201)
async def create_delivery_zone(data: DeliveryZoneCreate, db: AsyncSession = Depends(get_db)):
    return await fulfillment.create_channel(db, DeliveryZone, data.model_dump())


@router.get("/delivery/{zone_id}", response_model=DeliveryZoneResponse)
async def get_delivery_zone(zone_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await fulfillment.get_channel(db, DeliveryZone, zone_id)


@router.put("/delivery/{zone_id}", response_model=DeliveryZoneResponse)
async def update_delivery_zone(zone_id: uuid.UUID, data: DeliveryZoneUpdate, db: AsyncSession = Depends(get_db)):
    return await fulfillment.update_channel(db, DeliveryZone, zone_id, data.model_dump(exclude_unset=True))


@router.post("/delivery/{zone_id}/toggle", response_model=DeliveryZoneResponse)
async def toggle_delivery_zone(zone_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await fulfillment.toggle_channel_active(db, DeliveryZone, zone_id)


@router.post("/delivery/{zone_id}/zip-codes", response_model=DeliveryZoneResponse)
async def add_zip_codes(zone_id: uuid.UUID, data: ZipCodesAdd, db: AsyncSession = Depends(get_db)):
    return await fulfillment.add_zip_codes(db, zone_id, data.zip_codes)


@router.delete("/delivery/{zone_id}/zip-codes/{zip_code}", response_model=DeliveryZoneResponse)
async def remove_zip_code(zone_id: uuid.UUID, zip_code: str, db: AsyncSession = Depends(get_db)):
    return await fulfillment.remove_zip_code(db, zone_id, zip_code)


@router.delete("/delivery/{zone_id}", status_code=204)
async def delete_delivery_zone(zone_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """409 while any subscription still uses the zone."""
    await fulfillment.delete_channel(db, DeliveryZone, zone_id)


# ── Shipping zones ─────────────────────────────────────────

@router.get("/shipping", response_model=list[ShippingZoneResponse])
async def list_shipping_zones(is_active: bool | None = None, db: AsyncSession = Depends(get_db)):
    return await fulfillment.list_channels(db, ShippingZone, is_active)


@router.post("/shipping", response_model=ShippingZoneResponse, status_code=201)
async def create_shipping_zone(data: ShippingZoneCreate, db: AsyncSession = Depends(get_db)):
    return await fulfillment.create_channel(db, ShippingZone, data.model_dump())


@router.get("/shipping/{zone_id}", response_model=ShippingZoneResponse)
async def get_shipping_zone(zone_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await fulfillment.get_channel(db, ShippingZone, zone_id)


@router.put("/shipping/{zone_id}", response_model=ShippingZoneResponse)
async def update_shipping_zone(zone_id: uuid.UUID, data: ShippingZoneUpdate, db: AsyncSession = Depends(get_db)):
    return await fulfillment.update_channel(db, ShippingZone, zone_id, data.model_dump(exclude_unset=True))


@router.post("/shipping/{zone_id}/toggle", response_model=ShippingZoneResponse)
async def toggle_shipping_zone(zone_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await fulfillment.toggle_channel_active(db, ShippingZone, zone_id)


@router.delete("/shipping/{zone_id}", status_code=204)
async def delete_shipping_zone(zone_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """409 while any subscription still uses the zone."""
    await fulfillment.delete_channel(db, ShippingZone, zone_id)
