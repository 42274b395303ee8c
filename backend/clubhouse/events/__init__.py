"""Domain events emitted after reservation-engine commits."""

from .booking_events import (
    AttendanceMarked,
    OccurrenceDisabled,
    ReservationCancelled,
    ReservationCreated,
)
from .publisher import EventPublisher

__all__ = [
    "AttendanceMarked",
    "EventPublisher",
    "OccurrenceDisabled",
    "ReservationCancelled",
    "ReservationCreated",
]
