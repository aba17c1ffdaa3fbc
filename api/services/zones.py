"""
Zone Resolver: maps a ZIP code or state to a configured zone.

Zones are checked in configuration order (sort_order, then creation time)
and the first match wins, so overlapping zones resolve deterministically.
No match is a normal outcome: the channel is simply not offered there.
"""

import logging
import re
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.zone import DeliveryZone, ShippingZone

logger = logging.getLogger(__name__)


def _normalize(value: str | None) -> str:
    return (value or "").strip().upper()


def _words(value: str) -> list[str]:
    return [w for w in re.split(r"[^A-Z]+", value) if w]


def _has_words(entry: str, state: str) -> bool:
    """True when the words of `state` appear, in order and adjacent, in `entry`."""
    wanted, words = _words(state), _words(entry)
    n = len(wanted)
    return n > 0 and any(words[i:i + n] == wanted for i in range(len(words) - n + 1))


def match_delivery_zone(zip_code: str, zones: Sequence[DeliveryZone]) -> DeliveryZone | None:
    """First zone listing `zip_code` exactly or as a prefix of it."""
    zip_code = _normalize(zip_code)
    if not zip_code:
        return None

    for zone in zones:
        for code in zone.zip_codes or []:
            code = _normalize(code)
            if code and (zip_code == code or zip_code.startswith(code)):
                return zone
    return None


def match_shipping_zone(state: str, zones: Sequence[ShippingZone]) -> ShippingZone | None:
    """First zone whose states list contains `state`, case-insensitively.

    An entry matches when it equals the state or contains the state as whole
    words, so "NY - New York" resolves both "ny" and "new york" while
    "Maine" does not resolve "in".
    """
    state = _normalize(state)
    if not state:
        return None

    for zone in zones:
        for entry in zone.states or []:
            entry = _normalize(entry)
            if entry and (entry == state or _has_words(entry, state)):
                return zone
    return None


async def _active_delivery_zones(db: AsyncSession) -> Sequence[DeliveryZone]:
    result = await db.execute(
        select(DeliveryZone)
        .where(DeliveryZone.is_active == True)
        .order_by(DeliveryZone.sort_order, DeliveryZone.created_at, DeliveryZone.id)
    )
    return result.scalars().all()


async def _active_shipping_zones(db: AsyncSession) -> Sequence[ShippingZone]:
    result = await db.execute(
        select(ShippingZone)
        .where(ShippingZone.is_active == True)
        .order_by(ShippingZone.sort_order, ShippingZone.created_at, ShippingZone.id)
    )
    return result.scalars().all()


async def resolve_delivery_zone(db: AsyncSession, zip_code: str) -> DeliveryZone | None:
    zone = match_delivery_zone(zip_code, await _active_delivery_zones(db))
    if zone is None:
        logger.info("No delivery zone for zip=%s", zip_code)
    return zone


async def resolve_shipping_zone(db: AsyncSession, state: str) -> ShippingZone | None:
    zone = match_shipping_zone(state, await _active_shipping_zones(db))
    if zone is None:
        logger.info("No shipping zone for state=%s", state)
    return zone
