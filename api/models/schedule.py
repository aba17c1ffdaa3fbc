"""Schedule and ScheduleAssignment ORM models."""

import uuid
from datetime import datetime, time
from sqlalchemy import (
    String, Integer, Boolean, Time, DateTime, ForeignKey, Text, JSON,
    CheckConstraint, Enum as PgEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from db.database import Base


class Schedule(Base):
    __tablename__ = "schedules"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    schedule_type: Mapped[str] = mapped_column(
        PgEnum("recurring", "one_time", name="schedule_type", create_type=False),
        default="recurring",
    )
    # {"frequency": "weekly", "day_of_week": 5, "interval": 1, ...}
    recurrence_rule: Mapped[dict | None] = mapped_column(JSON)
    cutoff_hours_before: Mapped[int] = mapped_column(Integer, default=24)
    cutoff_time: Mapped[time] = mapped_column(Time, default=time(23, 59, 59))
    available_dates: Mapped[list] = mapped_column(JSON, default=list)  # ISO YYYY-MM-DD
    blocked_dates: Mapped[list] = mapped_column(JSON, default=list)    # ISO YYYY-MM-DD
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    assignments = relationship(
        "ScheduleAssignment", back_populates="schedule",
        cascade="all, delete-orphan", lazy="selectin",
    )


class ScheduleAssignment(Base):
    __tablename__ = "schedule_assignments"
    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN fulfillment_location_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN delivery_zone_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN shipping_zone_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_schedule_assignment_single_target",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    schedule_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False,
    )
    fulfillment_location_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("fulfillment_locations.id", ondelete="CASCADE"), index=True,
    )
    delivery_zone_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("delivery_zones.id", ondelete="CASCADE"), index=True,
    )
    shipping_zone_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("shipping_zones.id", ondelete="CASCADE"), index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    # Relationships
    schedule = relationship("Schedule", back_populates="assignments", lazy="selectin")
