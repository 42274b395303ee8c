# backend/clubhouse/models/recurring_class.py
"""
Weekly recurring class template.

Templates are soft-disabled by toggling ``is_active``; they are never hard
deleted while bookings reference them, so historical bookings stay valid.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class RecurringClass(Base):
    __tablename__ = "recurring_classes"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    instructor = Column(String(120), nullable=True)
    # 0 = Monday ... 6 = Sunday (date.weekday())
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    max_capacity = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=_now_utc)

    overrides = relationship("DateOverride", back_populates="recurring_class")
    instructor_assignments = relationship("InstructorAssignment", back_populates="recurring_class")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_recurring_classes_day_of_week"),
        CheckConstraint("max_capacity >= 1", name="ck_recurring_classes_capacity_positive"),
        CheckConstraint("start_time < end_time", name="ck_recurring_classes_time_order"),
        Index("idx_recurring_classes_day_active", "day_of_week", "is_active"),
    )

    def __repr__(self) -> str:
        return (
            f"<RecurringClass {self.id}: {self.title} dow={self.day_of_week} "
            f"{self.start_time}-{self.end_time} cap={self.max_capacity} active={self.is_active}>"
        )
