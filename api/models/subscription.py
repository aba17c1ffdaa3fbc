"""Subscription ORM model: recurring order intent bound to one channel."""

import uuid
from datetime import date, datetime
from sqlalchemy import (
    String, Integer, Boolean, Date, DateTime, ForeignKey, Text, JSON,
    Enum as PgEnum,
)
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        PgEnum("active", "paused", "cancelled", name="subscription_status", create_type=False),
        default="active",
        index=True,
    )
    frequency: Mapped[str] = mapped_column(
        PgEnum("weekly", "biweekly", "monthly", name="subscription_frequency", create_type=False),
        nullable=False,
    )

    # Channel binding
    fulfillment_type: Mapped[str] = mapped_column(
        PgEnum("pickup", "delivery", "shipping", name="fulfillment_type", create_type=False),
        nullable=False,
    )
    fulfillment_location_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("fulfillment_locations.id"))
    delivery_zone_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("delivery_zones.id"))
    shipping_zone_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("shipping_zones.id"))

    # Cadence
    next_order_date: Mapped[date | None] = mapped_column(Date, index=True)
    last_order_date: Mapped[date | None] = mapped_column(Date)
    skip_dates: Mapped[list] = mapped_column(JSON, default=list)  # ISO YYYY-MM-DD

    # Manual review when no date could be found
    needs_review: Mapped[bool] = mapped_column(Boolean, default=False)
    review_reason: Mapped[str | None] = mapped_column(Text)

    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    @property
    def channel_id(self) -> uuid.UUID | None:
        """Location/zone id matching the fulfillment type."""
        return {
            "pickup": self.fulfillment_location_id,
            "delivery": self.delivery_zone_id,
            "shipping": self.shipping_zone_id,
        }.get(self.fulfillment_type)
