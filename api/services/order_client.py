"""
Order Service client: asks the external order service to place a
subscription order for one date.

Each request carries an idempotency key derived from (subscription id,
date), so repeating a request after a crash returns the order that was
already created instead of placing a second one. Failures are logged and
returned as an OrderResult; they never raise.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any

import httpx

from config import settings

logger = logging.getLogger(__name__)

IDEMPOTENCY_NAMESPACE = uuid.UUID("6f1c3a52-5d0e-4b8e-9a37-2f0c8d1b7e44")


@dataclass
class OrderResult:
    success: bool
    order_id: str | None = None
    order_number: str | None = None
    error: str | None = None


def idempotency_key(subscription_id: uuid.UUID, order_date: date) -> uuid.UUID:
    return uuid.uuid5(IDEMPOTENCY_NAMESPACE, f"{subscription_id}:{order_date.isoformat()}")


async def create_subscription_order(subscription, order_date: date) -> OrderResult:
    """
    Create the order for `subscription` scheduled on `order_date`.

    Returns:
        OrderResult(success=True, order_id=...) when the order exists
        (newly created or already present), otherwise success=False
        with an error message.
    """
    url = f"{settings.ORDER_SERVICE_URL}/api/orders/subscription"
    payload: dict[str, Any] = {
        "subscription_id": str(subscription.id),
        "user_id": str(subscription.user_id) if subscription.user_id else None,
        "scheduled_date": order_date.isoformat(),
        "fulfillment_type": subscription.fulfillment_type,
        "fulfillment_location_id": _str_or_none(subscription.fulfillment_location_id),
        "delivery_zone_id": _str_or_none(subscription.delivery_zone_id),
        "shipping_zone_id": _str_or_none(subscription.shipping_zone_id),
        "idempotency_key": str(idempotency_key(subscription.id, order_date)),
    }
    headers = {}
    if settings.ORDER_SERVICE_TOKEN:
        headers["Authorization"] = f"Bearer {settings.ORDER_SERVICE_TOKEN}"

    try:
        async with httpx.AsyncClient(timeout=settings.ORDER_SERVICE_TIMEOUT) as client:
            resp = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        logger.error(
            "Order service unreachable: subscription=%s date=%s error=%s",
            subscription.id, order_date, str(e),
        )
        return OrderResult(success=False, error=f"Order service unreachable: {e}")

    # 409 means the idempotency key already produced an order
    if resp.status_code in (200, 201, 409):
        body = _json_or_empty(resp)
        logger.info(
            "Order placed: subscription=%s date=%s order_id=%s",
            subscription.id, order_date, body.get("id"),
        )
        return OrderResult(
            success=True,
            order_id=body.get("id"),
            order_number=body.get("order_number"),
        )

    logger.warning(
        "Order creation failed: subscription=%s date=%s status=%s body=%s",
        subscription.id, order_date, resp.status_code, resp.text[:200],
    )
    return OrderResult(
        success=False,
        error=f"Order service returned {resp.status_code}",
    )


def _str_or_none(value) -> str | None:
    return str(value) if value else None


def _json_or_empty(resp: httpx.Response) -> dict:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
