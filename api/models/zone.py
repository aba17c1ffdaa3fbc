"""DeliveryZone and ShippingZone ORM models."""

import uuid
from datetime import datetime
from sqlalchemy import String, Integer, Numeric, Boolean, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class DeliveryZone(Base):
    __tablename__ = "delivery_zones"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    zip_codes: Mapped[list] = mapped_column(JSON, default=list)  # exact codes or prefixes
    delivery_fee: Mapped[float] = mapped_column(Numeric(10, 2), default=0.00)
    free_delivery_minimum: Mapped[float | None] = mapped_column(Numeric(10, 2))
    min_order_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class ShippingZone(Base):
    __tablename__ = "shipping_zones"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    states: Mapped[list] = mapped_column(JSON, default=list)
    base_rate: Mapped[float] = mapped_column(Numeric(10, 2), default=0.00)
    per_lb_rate: Mapped[float] = mapped_column(Numeric(10, 2), default=0.00)
    free_shipping_minimum: Mapped[float | None] = mapped_column(Numeric(10, 2))
    min_order_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))
    carrier: Mapped[str] = mapped_column(String(20), default="ups")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
