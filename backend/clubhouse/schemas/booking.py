"""Reservation schemas."""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.enums import BookingStatus
from ..domain.occurrence import OccurrenceKind
from ..models.booking import Booking
from .base import StandardizedModel, StrictRequestModel, ensure_date_only
from .schedule import OccurrenceRefPayload


class ReservationCreate(StrictRequestModel):
    booking_date: date = Field(..., description="Date of the class")
    occurrence: OccurrenceRefPayload
    user_id: Optional[str] = Field(
        None, description="Staff only: book on behalf of this member"
    )

    @field_validator("booking_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "booking_date")


class CancellationRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)


class ForceCancellationRequest(StrictRequestModel):
    reason: str = Field(..., min_length=1, max_length=500)


class AttendanceUpdate(StrictRequestModel):
    attended: bool


class BookingResponse(StandardizedModel):
    id: str
    user_id: str
    booking_date: date
    occurrence_id: str
    kind: OccurrenceKind
    status: BookingStatus
    attended: Optional[bool] = None
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        ref = booking.occurrence_ref
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            booking_date=booking.booking_date,
            occurrence_id=ref.id,
            kind=ref.kind,
            status=BookingStatus(booking.status),
            attended=booking.attended,
            created_at=booking.created_at,
            cancelled_at=booking.cancelled_at,
            cancelled_by_id=booking.cancelled_by_id,
            cancellation_reason=booking.cancellation_reason,
        )


class ReservationConfirmation(StandardizedModel):
    """Successful create/cancel outcome with a message the member can read."""

    booking: BookingResponse
    message: str
    remaining_classes: int
    title: Optional[str] = None
    start_time: Optional[time] = None


class CancellationCheck(StandardizedModel):
    can_cancel: bool
    reason: Optional[str] = None
    minutes_until_class: Optional[int] = None


class BookingCount(StandardizedModel):
    occurrence_id: str
    kind: OccurrenceKind
    date: date
    count: int


class BookingCountsResponse(StandardizedModel):
    counts: List[BookingCount]
