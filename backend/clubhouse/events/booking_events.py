"""Reservation domain events."""
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional


@dataclass
class ReservationCreated:
    """Fired after a reservation is committed."""

    booking_id: str
    user_id: str
    occurrence_key: str
    booking_date: date
    title: str
    remaining_classes: int
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReservationCancelled:
    """Fired after a reservation is cancelled, by its owner or by staff."""

    booking_id: str
    user_id: str
    occurrence_key: str
    booking_date: date
    cancelled_by: str
    forced: bool
    cancelled_at: datetime
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AttendanceMarked:
    """Fired after staff record attendance for a booking."""

    booking_id: str
    user_id: str
    attended: bool
    penalty_applied: bool
    marked_by: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class OccurrenceDisabled:
    """Fired after staff cancel a whole class for one date."""

    occurrence_key: str
    occurrence_date: date
    disabled_by: str
    cancelled_booking_ids: List[str]
    affected_user_ids: List[str]
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
