"""Tests for zone and location administration (no DB required)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from models.location import FulfillmentLocation
from models.zone import DeliveryZone, ShippingZone
from services.errors import InUseError, NotFoundError, SchedulingError, UnavailableError, ValidationError
from services.fulfillment import (
    add_zip_codes, clean_states, clean_zip_codes, delete_channel, remove_zip_code,
    reorder_locations, toggle_channel_active, update_channel,
)


def _zone(zip_codes=None):
    return DeliveryZone(
        id=uuid.uuid4(), name="Brooklyn", slug="brooklyn",
        zip_codes=zip_codes or ["11201"], delivery_fee=0, is_active=True, sort_order=0,
    )


def _location(name):
    return FulfillmentLocation(id=uuid.uuid4(), name=name, slug=name.lower(), is_active=True, sort_order=0)


def _db(get=None, count=0, rows=()):
    """AsyncSession stand-in: `get` for lookups, `count`/`rows` for executed selects."""
    db = AsyncMock()
    db.add = MagicMock()
    db.get.return_value = get
    result = MagicMock()
    result.scalar_one.return_value = count
    result.scalars.return_value.all.return_value = list(rows)
    db.execute.return_value = result
    return db


def test_clean_zip_codes_strips_and_dedupes():
    assert clean_zip_codes([" 11201", "11201", "", None, "112"]) == ["11201", "112"]


def test_clean_states_upper_cases():
    assert clean_states(["ny", " NY ", "nj"]) == ["NY", "NJ"]


def test_unavailable_is_not_an_http_error():
    assert not issubclass(UnavailableError, SchedulingError)
    assert InUseError.status_code == 409


# ── Delete ─────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_delete_zone_in_use_is_refused():
    zone = _zone()
    db = _db(get=zone, count=2)

    with pytest.raises(InUseError) as exc:
        await delete_channel(db, DeliveryZone, zone.id)

    assert "2 subscription" in str(exc.value)
    db.delete.assert_not_awaited()
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_unused_location():
    location = _location("Barn")
    db = _db(get=location, count=0)

    await delete_channel(db, FulfillmentLocation, location.id)

    db.delete.assert_awaited_once_with(location)
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_missing_shipping_zone_is_not_found():
    with pytest.raises(NotFoundError):
        await delete_channel(_db(get=None), ShippingZone, uuid.uuid4())


# ── Update / toggle ────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_cleans_states():
    zone = ShippingZone(id=uuid.uuid4(), name="East", slug="east", states=["NY"], base_rate=10, is_active=True)
    db = _db(get=zone)

    await update_channel(db, ShippingZone, zone.id, {"states": ["nj", "NJ", "pa"], "base_rate": 12})

    assert zone.states == ["NJ", "PA"]
    assert zone.base_rate == 12
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_toggle_flips_active():
    zone = _zone()
    db = _db(get=zone)

    await toggle_channel_active(db, DeliveryZone, zone.id)
    assert zone.is_active is False
    await toggle_channel_active(db, DeliveryZone, zone.id)
    assert zone.is_active is True


# ── ZIP codes ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_add_zip_codes_merges_without_duplicates():
    zone = _zone(["11201"])
    db = _db(get=zone)

    await add_zip_codes(db, zone.id, ["11201", " 11215 ", "11215"])

    assert zone.zip_codes == ["11201", "11215"]
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_add_blank_zip_codes_is_rejected():
    zone = _zone()
    with pytest.raises(ValidationError):
        await add_zip_codes(_db(get=zone), zone.id, ["  "])


@pytest.mark.asyncio
async def test_remove_zip_code():
    zone = _zone(["11201", "11215"])
    await remove_zip_code(_db(get=zone), zone.id, "11201")
    assert zone.zip_codes == ["11215"]


# ── Location order ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_reorder_sets_positions():
    barn, market, shop = _location("Barn"), _location("Market"), _location("Shop")
    db = _db(rows=[barn, market, shop])

    result = await reorder_locations(db, [shop.id, barn.id, market.id])

    assert result == [shop, barn, market]
    assert (shop.sort_order, barn.sort_order, market.sort_order) == (0, 1, 2)
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_reorder_rejects_repeats_and_unknown_ids():
    barn = _location("Barn")
    with pytest.raises(ValidationError):
        await reorder_locations(_db(rows=[barn]), [barn.id, barn.id])

    db = _db(rows=[barn])
    with pytest.raises(NotFoundError):
        await reorder_locations(db, [barn.id, uuid.uuid4()])
    db.commit.assert_not_awaited()
