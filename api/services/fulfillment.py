"""
Fulfillment channel administration: delivery zones, shipping zones and
pickup locations.

Zone order (sort_order) and ZIP/state membership feed the zone resolver
directly, so every write here changes which zone a customer resolves to.
A channel that subscriptions still reference cannot be deleted; deactivate
it instead.
"""

import logging
import uuid
from typing import Any, Sequence, Type

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.location import FulfillmentLocation
from models.subscription import Subscription
from models.zone import DeliveryZone, ShippingZone
from services.errors import InUseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# channel model → the subscription column that references it
SUBSCRIPTION_REFERENCE = {
    FulfillmentLocation: Subscription.fulfillment_location_id,
    DeliveryZone: Subscription.delivery_zone_id,
    ShippingZone: Subscription.shipping_zone_id,
}


def clean_zip_codes(values) -> list[str]:
    """Stripped, de-duplicated ZIP codes in their given order."""
    seen: list[str] = []
    for value in values or []:
        code = (value or "").strip()
        if code and code not in seen:
            seen.append(code)
    return seen


def clean_states(values) -> list[str]:
    seen: list[str] = []
    for value in values or []:
        state = (value or "").strip().upper()
        if state and state not in seen:
            seen.append(state)
    return seen


def _clean(model: Type, fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(fields)
    if "zip_codes" in cleaned:
        cleaned["zip_codes"] = clean_zip_codes(cleaned["zip_codes"])
    if "states" in cleaned:
        cleaned["states"] = clean_states(cleaned["states"])
    return cleaned


async def get_channel(db: AsyncSession, model: Type, channel_id: uuid.UUID):
    channel = await db.get(model, channel_id)
    if channel is None:
        raise NotFoundError(model.__name__, channel_id)
    return channel


async def list_channels(db: AsyncSession, model: Type, is_active: bool | None = None) -> Sequence:
    """Channels in configuration order."""
    query = select(model).order_by(model.sort_order, model.created_at, model.id)
    if is_active is not None:
        query = query.where(model.is_active == is_active)
    result = await db.execute(query)
    return result.scalars().all()


async def create_channel(db: AsyncSession, model: Type, fields: dict[str, Any]):
    channel = model(**_clean(model, fields))
    db.add(channel)
    await db.commit()
    await db.refresh(channel)
    logger.info("%s created: id=%s slug=%s", model.__name__, channel.id, channel.slug)
    return channel


async def update_channel(db: AsyncSession, model: Type, channel_id: uuid.UUID, changes: dict[str, Any]):
    channel = await get_channel(db, model, channel_id)
    for key, value in _clean(model, changes).items():
        setattr(channel, key, value)
    await db.commit()
    await db.refresh(channel)
    logger.info("%s updated: id=%s fields=%s", model.__name__, channel_id, sorted(changes))
    return channel


async def toggle_channel_active(db: AsyncSession, model: Type, channel_id: uuid.UUID):
    channel = await get_channel(db, model, channel_id)
    channel.is_active = not channel.is_active
    await db.commit()
    await db.refresh(channel)
    logger.info("%s %s is_active=%s", model.__name__, channel_id, channel.is_active)
    return channel


async def count_subscriptions(db: AsyncSession, model: Type, channel_id: uuid.UUID) -> int:
    column = SUBSCRIPTION_REFERENCE[model]
    result = await db.execute(
        select(func.count()).select_from(Subscription).where(column == channel_id)
    )
    return result.scalar_one()


async def delete_channel(db: AsyncSession, model: Type, channel_id: uuid.UUID) -> None:
    """Delete a channel no subscription references; its schedule assignments go with it."""
    channel = await get_channel(db, model, channel_id)
    in_use = await count_subscriptions(db, model, channel_id)
    if in_use:
        raise InUseError(
            f"{model.__name__} {channel_id} is used by {in_use} subscription(s); deactivate it instead"
        )
    await db.delete(channel)
    await db.commit()
    logger.info("%s deleted: id=%s", model.__name__, channel_id)


# ── Delivery zone ZIP codes ────────────────────────────────

async def add_zip_codes(db: AsyncSession, zone_id: uuid.UUID, zip_codes: list[str]) -> DeliveryZone:
    """Merge ZIP codes into a zone; codes already present are kept once."""
    zone = await get_channel(db, DeliveryZone, zone_id)
    added = clean_zip_codes(zip_codes)
    if not added:
        raise ValidationError("At least one ZIP code is required")
    zone.zip_codes = clean_zip_codes([*(zone.zip_codes or []), *added])
    await db.commit()
    await db.refresh(zone)
    logger.info("Delivery zone %s: added zip codes %s", zone_id, added)
    return zone


async def remove_zip_code(db: AsyncSession, zone_id: uuid.UUID, zip_code: str) -> DeliveryZone:
    zone = await get_channel(db, DeliveryZone, zone_id)
    zip_code = zip_code.strip()
    zone.zip_codes = [z for z in (zone.zip_codes or []) if z != zip_code]
    await db.commit()
    await db.refresh(zone)
    logger.info("Delivery zone %s: removed zip code %s", zone_id, zip_code)
    return zone


# ── Pickup location order ──────────────────────────────────

async def reorder_locations(db: AsyncSession, ordered_ids: list[uuid.UUID]) -> Sequence[FulfillmentLocation]:
    """Set sort_order to each location's position in `ordered_ids`."""
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("Location ids must not repeat")

    result = await db.execute(
        select(FulfillmentLocation).where(FulfillmentLocation.id.in_(ordered_ids))
    )
    by_id = {loc.id: loc for loc in result.scalars().all()}
    missing = [i for i in ordered_ids if i not in by_id]
    if missing:
        raise NotFoundError("FulfillmentLocation", missing[0])

    for position, location_id in enumerate(ordered_ids):
        by_id[location_id].sort_order = position
    await db.commit()
    logger.info("Reordered %d pickup locations", len(ordered_ids))
    return [by_id[i] for i in ordered_ids]
