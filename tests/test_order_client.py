"""Tests for the order service client (mocked HTTP)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from services.order_client import create_subscription_order, idempotency_key


def _sub():
    return SimpleNamespace(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        fulfillment_type="delivery",
        fulfillment_location_id=None,
        delivery_zone_id=uuid.uuid4(),
        shipping_zone_id=None,
    )


def test_idempotency_key_is_stable():
    sub_id = uuid.uuid4()
    assert idempotency_key(sub_id, date(2024, 6, 7)) == idempotency_key(sub_id, date(2024, 6, 7))
    assert idempotency_key(sub_id, date(2024, 6, 7)) != idempotency_key(sub_id, date(2024, 6, 14))


@pytest.mark.asyncio
async def test_created_order_is_a_success():
    sub = _sub()
    post = AsyncMock(return_value=httpx.Response(201, json={"id": "ord-1", "order_number": "SUB-1"}))

    with patch.object(httpx.AsyncClient, "post", new=post):
        result = await create_subscription_order(sub, date(2024, 6, 7))

    assert result.success is True
    assert result.order_id == "ord-1"
    payload = post.await_args.kwargs["json"]
    assert payload["scheduled_date"] == "2024-06-07"
    assert payload["idempotency_key"] == str(idempotency_key(sub.id, date(2024, 6, 7)))
    assert payload["delivery_zone_id"] == str(sub.delivery_zone_id)


@pytest.mark.asyncio
async def test_existing_order_counts_as_success():
    """A replay with the same key returns 409 and the existing order."""
    post = AsyncMock(return_value=httpx.Response(409, json={"id": "ord-1"}))
    with patch.object(httpx.AsyncClient, "post", new=post):
        result = await create_subscription_order(_sub(), date(2024, 6, 7))
    assert result.success is True
    assert result.order_id == "ord-1"


@pytest.mark.asyncio
async def test_server_error_is_a_failure():
    post = AsyncMock(return_value=httpx.Response(503, text="unavailable"))
    with patch.object(httpx.AsyncClient, "post", new=post):
        result = await create_subscription_order(_sub(), date(2024, 6, 7))
    assert result.success is False
    assert "503" in result.error


@pytest.mark.asyncio
async def test_unreachable_service_is_a_failure():
    post = AsyncMock(side_effect=httpx.ConnectError("refused"))
    with patch.object(httpx.AsyncClient, "post", new=post):
        result = await create_subscription_order(_sub(), date(2024, 6, 7))
    assert result.success is False
    assert "unreachable" in result.error
