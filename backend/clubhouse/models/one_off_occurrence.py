# backend/clubhouse/models/one_off_occurrence.py
"""Manually created single-date class, independent of any recurring template."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class OneOffOccurrence(Base):
    __tablename__ = "one_off_occurrences"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(120), nullable=False)
    instructor = Column(String(120), nullable=True)
    occurrence_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    max_capacity = Column(Integer, nullable=False, default=10)
    is_enabled = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=_now_utc)

    __table_args__ = (
        CheckConstraint("max_capacity >= 1", name="ck_one_off_capacity_positive"),
        CheckConstraint("start_time < end_time", name="ck_one_off_time_order"),
        Index("idx_one_off_date_enabled", "occurrence_date", "is_enabled"),
    )

    def __repr__(self) -> str:
        return (
            f"<OneOffOccurrence {self.id}: {self.title} {self.occurrence_date} "
            f"{self.start_time}-{self.end_time} enabled={self.is_enabled}>"
        )
