"""
Renewal Scan: places orders for due subscriptions and advances them.

For each active subscription with next_order_date <= today:
  1. Ask the order service to create the order for next_order_date
  2. Only after it succeeds, renew the subscription (advance the date)

A crash between 1 and 2 leaves the subscription due; the next scan repeats
step 1 with the same idempotency key (no duplicate order) and then
advances. One subscription failing never stops the others. Overlapping
scans are safe for the same reasons, plus the version check on renewal.

The summary of the latest run is kept in Redis for the admin endpoint.
"""

from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from services.clock import Clock
from services.order_client import create_subscription_order
from services.subscriptions import (
    get_subscription, list_due_subscription_ids, renew_subscription,
)

logger = logging.getLogger(__name__)

LAST_RUN_KEY = "renewal:last_run"
LAST_RUN_TTL = 7 * 24 * 3600

_redis: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Singleton Redis connection."""
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


@dataclass
class RenewalOutcome:
    subscription_id: str
    success: bool
    order_date: str | None = None
    order_id: str | None = None
    next_order_date: str | None = None
    needs_review: bool = False
    error: str | None = None


@dataclass
class RenewalReport:
    started_at: datetime
    processed: list[RenewalOutcome] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for p in self.processed if p.success)

    @property
    def error_count(self) -> int:
        return sum(1 for p in self.processed if not p.success)

    def as_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "processed": len(self.processed),
            "success_count": self.success_count,
            "error_count": self.error_count,
            "details": [asdict(p) for p in self.processed],
        }


async def renew_one(db: AsyncSession, subscription_id: uuid.UUID, clock: Clock) -> RenewalOutcome:
    """Place the due order for one subscription, then advance it."""
    sub = await get_subscription(db, subscription_id)
    if sub.status != "active" or sub.next_order_date is None:
        return RenewalOutcome(
            subscription_id=str(subscription_id),
            success=False,
            error=f"Subscription is {sub.status}" if sub.status != "active" else "No order date",
        )

    order_date = sub.next_order_date
    order = await create_subscription_order(sub, order_date)
    if not order.success:
        return RenewalOutcome(
            subscription_id=str(subscription_id),
            success=False,
            order_date=order_date.isoformat(),
            error=order.error,
        )

    sub = await renew_subscription(db, subscription_id, order_date, clock)
    return RenewalOutcome(
        subscription_id=str(subscription_id),
        success=True,
        order_date=order_date.isoformat(),
        order_id=order.order_id,
        next_order_date=sub.next_order_date.isoformat() if sub.next_order_date else None,
        needs_review=sub.needs_review,
    )


async def process_due_subscriptions(db: AsyncSession, clock: Clock | None = None) -> RenewalReport:
    """Run one renewal pass over every due subscription."""
    clock = clock or Clock()
    report = RenewalReport(started_at=clock.now())

    due = await list_due_subscription_ids(db, clock.today())
    logger.info("Renewal scan: %d subscriptions due on or before %s", len(due), clock.today())

    for subscription_id in due:
        try:
            outcome = await renew_one(db, subscription_id, clock)
        except Exception as e:
            # Isolate this subscription; the scan carries on
            await db.rollback()
            logger.exception("Renewal failed for subscription %s", subscription_id)
            outcome = RenewalOutcome(
                subscription_id=str(subscription_id), success=False, error=str(e),
            )

        if outcome.success:
            logger.info(
                "Renewed subscription %s: order %s for %s, next %s",
                outcome.subscription_id, outcome.order_id,
                outcome.order_date, outcome.next_order_date,
            )
        else:
            logger.warning(
                "Subscription %s not renewed: %s", outcome.subscription_id, outcome.error,
            )
        report.processed.append(outcome)

    await record_last_run(report)
    return report


async def record_last_run(report: RenewalReport) -> None:
    """Store the run summary; a Redis outage only costs the summary."""
    try:
        r = await get_redis()
        await r.hset(LAST_RUN_KEY, mapping={
            "started_at": report.started_at.isoformat(),
            "processed": str(len(report.processed)),
            "success_count": str(report.success_count),
            "error_count": str(report.error_count),
        })
        await r.expire(LAST_RUN_KEY, LAST_RUN_TTL)
    except RedisError as e:
        logger.warning("Could not record renewal summary: %s", e)


async def get_last_run() -> dict | None:
    r = await get_redis()
    data = await r.hgetall(LAST_RUN_KEY)
    return data or None
