"""Subscription API endpoints: create, inspect and move through the lifecycle."""

import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from schemas import (
    SubscriptionCreate, SubscriptionCancel, SubscriptionResponse, SubscriptionStatus,
    SubscriptionFrequencyUpdate, SubscriptionFulfillmentUpdate,
)
from services import subscriptions as lifecycle
from services.clock import Clock, get_clock

router = APIRouter()


@router.post("/", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
    data: SubscriptionCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await lifecycle.create_subscription(
        db,
        name=data.name,
        frequency=data.frequency.value,
        fulfillment_type=data.fulfillment_type.value,
        channel_id=data.channel_id,
        user_id=data.user_id,
        start_date=data.start_date,
        clock=clock,
    )


@router.get("/", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    status: SubscriptionStatus | None = None,
    needs_review: bool | None = None,
    skip: int = 0,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
):
    """List subscriptions; `needs_review=true` is the manual review queue."""
    return await lifecycle.list_subscriptions(
        db, status.value if status else None, needs_review, skip, limit,
    )


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(subscription_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await lifecycle.get_subscription(db, subscription_id)


@router.post("/{subscription_id}/skip", response_model=SubscriptionResponse)
async def skip_next_order(
    subscription_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await lifecycle.skip_next_order(db, subscription_id, clock)


@router.post("/{subscription_id}/pause", response_model=SubscriptionResponse)
async def pause_subscription(subscription_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await lifecycle.pause_subscription(db, subscription_id)


@router.post("/{subscription_id}/resume", response_model=SubscriptionResponse)
async def resume_subscription(
    subscription_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await lifecycle.resume_subscription(db, subscription_id, clock)


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: uuid.UUID,
    data: SubscriptionCancel,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await lifecycle.cancel_subscription(db, subscription_id, data.reason, clock)


@router.put("/{subscription_id}/frequency", response_model=SubscriptionResponse)
async def change_frequency(
    subscription_id: uuid.UUID,
    data: SubscriptionFrequencyUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await lifecycle.change_frequency(db, subscription_id, data.frequency.value, clock)


@router.put("/{subscription_id}/fulfillment", response_model=SubscriptionResponse)
async def change_fulfillment(
    subscription_id: uuid.UUID,
    data: SubscriptionFulfillmentUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Move to another pickup location or zone; the next order date follows its schedules."""
    return await lifecycle.change_fulfillment(
        db, subscription_id, data.fulfillment_type.value, data.channel_id, clock,
    )
