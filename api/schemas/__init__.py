"""Pydantic schemas for API request/response models."""

from __future__ import annotations
import uuid
from datetime import date, datetime, time
from enum import Enum
from pydantic import BaseModel, Field, model_validator


# ── Enums ──────────────────────────────────────────────────

class FulfillmentType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    SHIPPING = "shipping"


class ScheduleType(str, Enum):
    RECURRING = "recurring"
    ONE_TIME = "one_time"


class RuleFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class SubscriptionFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


# ── Schedule Schemas ───────────────────────────────────────

class RecurrenceRuleIn(BaseModel):
    frequency: RuleFrequency
    day_of_week: int | None = Field(default=None, ge=0, le=6)  # 0 = Sunday
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    interval: int = Field(default=1, ge=1)
    anchor_date: date | None = None

    def as_rule(self) -> dict:
        data = self.model_dump(mode="json", exclude_none=True)
        data["frequency"] = self.frequency.value
        return data


class ScheduleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    schedule_type: ScheduleType = ScheduleType.RECURRING
    recurrence_rule: RecurrenceRuleIn | None = None
    cutoff_hours_before: int = Field(default=24, ge=0)
    cutoff_time: time = time(23, 59, 59)
    available_dates: list[date] = []
    blocked_dates: list[date] = []
    is_active: bool = True

    def as_fields(self) -> dict:
        fields = self.model_dump(exclude={"recurrence_rule"})
        fields["schedule_type"] = self.schedule_type.value
        fields["recurrence_rule"] = self.recurrence_rule.as_rule() if self.recurrence_rule else None
        return fields


class ScheduleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    schedule_type: ScheduleType | None = None
    recurrence_rule: RecurrenceRuleIn | None = None
    cutoff_hours_before: int | None = Field(default=None, ge=0)
    cutoff_time: time | None = None
    available_dates: list[date] | None = None
    blocked_dates: list[date] | None = None
    is_active: bool | None = None

    def as_changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True, exclude={"recurrence_rule", "schedule_type"})
        if self.schedule_type is not None:
            changes["schedule_type"] = self.schedule_type.value
        if "recurrence_rule" in self.model_fields_set:
            changes["recurrence_rule"] = self.recurrence_rule.as_rule() if self.recurrence_rule else None
        return changes


class ScheduleResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    schedule_type: str
    recurrence_rule: dict | None
    cutoff_hours_before: int
    cutoff_time: time
    available_dates: list[str]
    blocked_dates: list[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AssignmentCreate(BaseModel):
    schedule_id: uuid.UUID
    fulfillment_location_id: uuid.UUID | None = None
    delivery_zone_id: uuid.UUID | None = None
    shipping_zone_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def exactly_one_target(self):
        targets = [self.fulfillment_location_id, self.delivery_zone_id, self.shipping_zone_id]
        if sum(t is not None for t in targets) != 1:
            raise ValueError("Must specify exactly one location or zone")
        return self


class AssignmentResponse(BaseModel):
    id: uuid.UUID
    schedule_id: uuid.UUID
    fulfillment_location_id: uuid.UUID | None
    delivery_zone_id: uuid.UUID | None
    shipping_zone_id: uuid.UUID | None
    created_at: datetime

    class Config:
        from_attributes = True


# ── Zone / Location Schemas ────────────────────────────────

class DeliveryZoneCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    description: str | None = None
    zip_codes: list[str] = []
    delivery_fee: float = Field(default=0, ge=0)
    free_delivery_minimum: float | None = Field(default=None, ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    is_active: bool = True
    sort_order: int = 0


class DeliveryZoneResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    zip_codes: list[str]
    delivery_fee: float
    free_delivery_minimum: float | None
    min_order_amount: float | None
    is_active: bool
    sort_order: int

    class Config:
        from_attributes = True


class ShippingZoneCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    description: str | None = None
    states: list[str] = []
    base_rate: float = Field(ge=0)
    per_lb_rate: float = Field(default=0, ge=0)
    free_shipping_minimum: float | None = Field(default=None, ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    carrier: str = "ups"
    is_active: bool = True
    sort_order: int = 0


class ShippingZoneResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    states: list[str]
    base_rate: float
    per_lb_rate: float
    free_shipping_minimum: float | None
    min_order_amount: float | None
    carrier: str
    is_active: bool
    sort_order: int

    class Config:
        from_attributes = True


class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    instructions: str | None = None
    is_coop: bool = False
    is_active: bool = True
    sort_order: int = 0


class LocationResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    address_line1: str | None
    address_line2: str | None
    city: str | None
    state: str | None
    postal_code: str | None
    instructions: str | None
    is_coop: bool
    is_active: bool
    sort_order: int

    class Config:
        from_attributes = True


class DeliveryZoneUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    zip_codes: list[str] | None = None
    delivery_fee: float | None = Field(default=None, ge=0)
    free_delivery_minimum: float | None = Field(default=None, ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    is_active: bool | None = None
    sort_order: int | None = None


class ShippingZoneUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    states: list[str] | None = None
    base_rate: float | None = Field(default=None, ge=0)
    per_lb_rate: float | None = Field(default=None, ge=0)
    free_shipping_minimum: float | None = Field(default=None, ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    carrier: str | None = None
    is_active: bool | None = None
    sort_order: int | None = None


class LocationUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    instructions: str | None = None
    is_coop: bool | None = None
    is_active: bool | None = None
    sort_order: int | None = None


class ZipCodesAdd(BaseModel):
    zip_codes: list[str] = Field(min_length=1)


class LocationReorder(BaseModel):
    ordered_ids: list[uuid.UUID] = Field(min_length=1)


class DeliveryZoneMatch(BaseModel):
    zone: DeliveryZoneResponse | None


class ShippingZoneMatch(BaseModel):
    zone: ShippingZoneResponse | None


# ── Subscription Schemas ───────────────────────────────────

class ChannelSelection(BaseModel):
    """A fulfillment type plus the one location/zone id it needs."""

    fulfillment_type: FulfillmentType
    fulfillment_location_id: uuid.UUID | None = None
    delivery_zone_id: uuid.UUID | None = None
    shipping_zone_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def channel_matches_type(self):
        expected = {
            FulfillmentType.PICKUP: self.fulfillment_location_id,
            FulfillmentType.DELIVERY: self.delivery_zone_id,
            FulfillmentType.SHIPPING: self.shipping_zone_id,
        }
        if expected[self.fulfillment_type] is None:
            raise ValueError(f"{self.fulfillment_type.value} subscriptions need a location or zone id")
        others = [v for k, v in expected.items() if k != self.fulfillment_type and v is not None]
        if others:
            raise ValueError("Only the location/zone for the chosen fulfillment type may be set")
        return self

    @property
    def channel_id(self) -> uuid.UUID:
        return {
            FulfillmentType.PICKUP: self.fulfillment_location_id,
            FulfillmentType.DELIVERY: self.delivery_zone_id,
            FulfillmentType.SHIPPING: self.shipping_zone_id,
        }[self.fulfillment_type]


class SubscriptionCreate(ChannelSelection):
    name: str | None = None
    user_id: uuid.UUID | None = None
    frequency: SubscriptionFrequency
    start_date: date | None = None


class SubscriptionFrequencyUpdate(BaseModel):
    frequency: SubscriptionFrequency


class SubscriptionFulfillmentUpdate(ChannelSelection):
    pass


class SubscriptionCancel(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class SubscriptionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID | None
    name: str
    status: str
    frequency: str
    fulfillment_type: str
    fulfillment_location_id: uuid.UUID | None
    delivery_zone_id: uuid.UUID | None
    shipping_zone_id: uuid.UUID | None
    next_order_date: date | None
    last_order_date: date | None
    skip_dates: list[str]
    needs_review: bool
    review_reason: str | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime

    class Config:
        from_attributes = True


# ── Renewal Schemas ────────────────────────────────────────

class RenewalOutcomeResponse(BaseModel):
    subscription_id: str
    success: bool
    order_date: str | None = None
    order_id: str | None = None
    next_order_date: str | None = None
    needs_review: bool = False
    error: str | None = None


class RenewalRunResponse(BaseModel):
    started_at: datetime
    processed: int
    success_count: int
    error_count: int
    details: list[RenewalOutcomeResponse]


class UpcomingSubscription(BaseModel):
    id: uuid.UUID
    name: str
    user_id: uuid.UUID | None
    frequency: str
    next_order_date: date

    class Config:
        from_attributes = True
