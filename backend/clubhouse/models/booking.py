# backend/clubhouse/models/booking.py
"""
Booking model.

A booking points at exactly one occurrence source: a recurring template
(plus the booking date) or a one-off class. A user holds at most one
confirmed booking per (date, occurrence); cancelled rows are kept as
history and a later re-booking inserts a fresh row.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import BookingStatus
from ..database import Base
from ..domain.occurrence import OccurrenceKind, OccurrenceRef

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)

    recurring_class_id = Column(String(26), ForeignKey("recurring_classes.id"), nullable=True)
    one_off_occurrence_id = Column(String(26), ForeignKey("one_off_occurrences.id"), nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    # NULL = attendance not recorded yet
    attended = Column(Boolean, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=_now_utc)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(64), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    recurring_class = relationship("RecurringClass")
    one_off_occurrence = relationship("OneOffOccurrence")

    __table_args__ = (
        CheckConstraint(
            "(recurring_class_id IS NULL) <> (one_off_occurrence_id IS NULL)",
            name="ck_bookings_single_occurrence_ref",
        ),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="ck_bookings_status"),
        Index(
            "uq_bookings_confirmed_recurring",
            "user_id",
            "booking_date",
            "recurring_class_id",
            unique=True,
            postgresql_where=text("status = 'confirmed' AND recurring_class_id IS NOT NULL"),
            sqlite_where=text("status = 'confirmed' AND recurring_class_id IS NOT NULL"),
        ),
        Index(
            "uq_bookings_confirmed_one_off",
            "user_id",
            "booking_date",
            "one_off_occurrence_id",
            unique=True,
            postgresql_where=text("status = 'confirmed' AND one_off_occurrence_id IS NOT NULL"),
            sqlite_where=text("status = 'confirmed' AND one_off_occurrence_id IS NOT NULL"),
        ),
        Index("idx_bookings_recurring_date_status", "recurring_class_id", "booking_date", "status"),
        Index("idx_bookings_one_off_date_status", "one_off_occurrence_id", "booking_date", "status"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.CONFIRMED.value

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: user={self.user_id}, date={self.booking_date}, "
            f"ref={self.occurrence_ref}, status={self.status}, attended={self.attended}>"
        )

    @property
    def occurrence_ref(self) -> OccurrenceRef:
        if self.recurring_class_id is not None:
            return OccurrenceRef(OccurrenceKind.RECURRING, self.recurring_class_id)
        return OccurrenceRef(OccurrenceKind.ONE_OFF, self.one_off_occurrence_id)

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED.value

    def cancel(self, cancelled_by_user_id: str, reason: Optional[str] = None) -> None:
        """Cancel this booking."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = _now_utc()
        self.cancelled_by_id = cancelled_by_user_id
        self.cancellation_reason = reason
        logger.info(f"Booking {self.id} cancelled by user {cancelled_by_user_id}")
