"""Tests for the renewal scan (mocked order service, DB and Redis)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
from datetime import date, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from services.clock import FrozenClock
from services.order_client import OrderResult

TODAY = date(2024, 6, 7)


def _clock():
    return FrozenClock(datetime(2024, 6, 7, 6, 0), "America/New_York")


def _sub(sub_id, status="active", next_order_date=TODAY):
    return SimpleNamespace(id=sub_id, status=status, next_order_date=next_order_date)


def _renewed(sub_id, next_date=date(2024, 6, 14)):
    return SimpleNamespace(id=sub_id, status="active", next_order_date=next_date, needs_review=False)


@pytest.mark.asyncio
async def test_due_subscription_is_ordered_then_renewed():
    sub_id = uuid.uuid4()
    order = AsyncMock(return_value=OrderResult(success=True, order_id="ord-1"))
    renew = AsyncMock(return_value=_renewed(sub_id))

    with patch("services.renewal.list_due_subscription_ids", new=AsyncMock(return_value=[sub_id])), \
         patch("services.renewal.get_subscription", new=AsyncMock(return_value=_sub(sub_id))), \
         patch("services.renewal.create_subscription_order", new=order), \
         patch("services.renewal.renew_subscription", new=renew), \
         patch("services.renewal.get_redis") as mock_get_redis:
        mock_get_redis.return_value = AsyncMock()

        from services.renewal import process_due_subscriptions
        report = await process_due_subscriptions(AsyncMock(), _clock())

    assert report.success_count == 1
    assert report.error_count == 0
    outcome = report.processed[0]
    assert outcome.order_id == "ord-1"
    assert outcome.order_date == "2024-06-07"
    assert outcome.next_order_date == "2024-06-14"
    order.assert_awaited_once()
    assert renew.await_args.args[2] == TODAY


@pytest.mark.asyncio
async def test_failed_order_does_not_advance():
    sub_id = uuid.uuid4()
    renew = AsyncMock()

    with patch("services.renewal.list_due_subscription_ids", new=AsyncMock(return_value=[sub_id])), \
         patch("services.renewal.get_subscription", new=AsyncMock(return_value=_sub(sub_id))), \
         patch("services.renewal.create_subscription_order",
               new=AsyncMock(return_value=OrderResult(success=False, error="Order service returned 503"))), \
         patch("services.renewal.renew_subscription", new=renew), \
         patch("services.renewal.get_redis") as mock_get_redis:
        mock_get_redis.return_value = AsyncMock()

        from services.renewal import process_due_subscriptions
        report = await process_due_subscriptions(AsyncMock(), _clock())

    assert report.error_count == 1
    assert report.processed[0].error == "Order service returned 503"
    renew.assert_not_awaited()


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_scan():
    broken, healthy = uuid.uuid4(), uuid.uuid4()

    async def get_sub(db, sub_id):
        if sub_id == broken:
            raise RuntimeError("connection reset")
        return _sub(sub_id)

    db = AsyncMock()
    with patch("services.renewal.list_due_subscription_ids",
               new=AsyncMock(return_value=[broken, healthy])), \
         patch("services.renewal.get_subscription", new=get_sub), \
         patch("services.renewal.create_subscription_order",
               new=AsyncMock(return_value=OrderResult(success=True, order_id="ord-2"))), \
         patch("services.renewal.renew_subscription",
               new=AsyncMock(return_value=_renewed(healthy))), \
         patch("services.renewal.get_redis") as mock_get_redis:
        mock_get_redis.return_value = AsyncMock()

        from services.renewal import process_due_subscriptions
        report = await process_due_subscriptions(db, _clock())

    assert [o.success for o in report.processed] == [False, True]
    assert report.processed[0].error == "connection reset"
    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_paused_subscription_is_not_ordered():
    sub_id = uuid.uuid4()
    order = AsyncMock()

    with patch("services.renewal.get_subscription",
               new=AsyncMock(return_value=_sub(sub_id, status="paused"))), \
         patch("services.renewal.create_subscription_order", new=order):
        from services.renewal import renew_one
        outcome = await renew_one(AsyncMock(), sub_id, _clock())

    assert outcome.success is False
    order.assert_not_awaited()


@pytest.mark.asyncio
async def test_summary_stored_in_redis():
    with patch("services.renewal.list_due_subscription_ids", new=AsyncMock(return_value=[])), \
         patch("services.renewal.get_redis") as mock_get_redis:
        mock_conn = AsyncMock()
        mock_get_redis.return_value = mock_conn

        from services.renewal import LAST_RUN_KEY, process_due_subscriptions
        report = await process_due_subscriptions(AsyncMock(), _clock())

    assert report.as_dict()["processed"] == 0
    mock_conn.hset.assert_called_once()
    assert mock_conn.hset.call_args.args[0] == LAST_RUN_KEY
    mock_conn.expire.assert_called_once()


@pytest.mark.asyncio
async def test_redis_outage_does_not_fail_the_scan():
    with patch("services.renewal.list_due_subscription_ids", new=AsyncMock(return_value=[])), \
         patch("services.renewal.get_redis") as mock_get_redis:
        mock_conn = AsyncMock()
        mock_conn.hset.side_effect = RedisConnectionError("down")
        mock_get_redis.return_value = mock_conn

        from services.renewal import process_due_subscriptions
        report = await process_due_subscriptions(AsyncMock(), _clock())

    assert report.processed == []


@pytest.mark.asyncio
async def test_get_last_run_empty():
    with patch("services.renewal.get_redis") as mock_get_redis:
        mock_conn = AsyncMock()
        mock_conn.hgetall.return_value = {}
        mock_get_redis.return_value = mock_conn

        from services.renewal import get_last_run
        assert await get_last_run() is None
