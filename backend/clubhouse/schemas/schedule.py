"""Schedule schemas: resolved occurrences and staff-side schedule edits."""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..domain.occurrence import (
    EffectiveOccurrence,
    OccurrenceAvailability,
    OccurrenceKind,
    OccurrenceRef,
)
from .base import StandardizedModel, StrictRequestModel, ensure_date_only, parse_hhmm


class OccurrenceRefPayload(StrictRequestModel):
    kind: OccurrenceKind
    id: str = Field(..., min_length=1, max_length=26)

    def to_ref(self) -> OccurrenceRef:
        return OccurrenceRef(self.kind, self.id)


class OccurrenceResponse(StandardizedModel):
    occurrence_id: str
    kind: OccurrenceKind
    date: date
    title: str
    instructor: Optional[str] = None
    start_time: time
    end_time: time
    max_capacity: int
    is_special: bool = False
    is_cancelled: bool = False
    notes: Optional[str] = None
    current_bookings: Optional[int] = None
    spots_left: Optional[int] = None

    @classmethod
    def from_occurrence(cls, occurrence: EffectiveOccurrence) -> "OccurrenceResponse":
        return cls(
            occurrence_id=occurrence.occurrence_id,
            kind=occurrence.kind,
            date=occurrence.date,
            title=occurrence.title,
            instructor=occurrence.instructor,
            start_time=occurrence.start_time,
            end_time=occurrence.end_time,
            max_capacity=occurrence.max_capacity,
            is_special=occurrence.is_special,
            is_cancelled=occurrence.is_cancelled,
            notes=occurrence.notes,
        )

    @classmethod
    def from_availability(cls, availability: OccurrenceAvailability) -> "OccurrenceResponse":
        response = cls.from_occurrence(availability.occurrence)
        response.current_bookings = availability.current_bookings
        response.spots_left = availability.spots_left
        return response


class ScheduleResponse(StandardizedModel):
    start_date: date
    end_date: date
    occurrences: List[OccurrenceResponse]


class RecurringClassCreate(StrictRequestModel):
    title: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=2000)
    instructor: Optional[str] = Field(None, max_length=120)
    day_of_week: int = Field(..., ge=0, le=6, description="0=Monday ... 6=Sunday")
    start_time: time
    end_time: time
    max_capacity: int = Field(10, ge=1)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_hhmm(v)

    @model_validator(mode="after")
    def _check_times(self) -> "RecurringClassCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class RecurringClassUpdate(StrictRequestModel):
    title: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=2000)
    instructor: Optional[str] = Field(None, max_length=120)
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    max_capacity: Optional[int] = Field(None, ge=1)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_hhmm(v)


class RecurringClassResponse(StandardizedModel):
    id: str
    title: str
    description: Optional[str] = None
    instructor: Optional[str] = None
    day_of_week: int
    start_time: time
    end_time: time
    max_capacity: int
    is_active: bool


class DateOverrideCreate(StrictRequestModel):
    recurring_class_id: str
    override_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    instructor: Optional[str] = Field(None, max_length=120)
    max_capacity: Optional[int] = Field(None, ge=1)
    is_cancelled: bool = False
    migrate_existing_bookings: bool = True
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("override_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "override_date")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_hhmm(v)


class DateOverrideResponse(StandardizedModel):
    id: str
    recurring_class_id: str
    override_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    instructor: Optional[str] = None
    max_capacity: Optional[int] = None
    is_cancelled: bool
    migrate_existing_bookings: bool
    notes: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: Optional[datetime] = None


class OneOffOccurrenceCreate(StrictRequestModel):
    title: str = Field(..., min_length=1, max_length=120)
    instructor: Optional[str] = Field(None, max_length=120)
    occurrence_date: date
    start_time: time
    end_time: time
    max_capacity: int = Field(10, ge=1)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("occurrence_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "occurrence_date")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_hhmm(v)

    @model_validator(mode="after")
    def _check_times(self) -> "OneOffOccurrenceCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class OneOffOccurrenceResponse(StandardizedModel):
    id: str
    title: str
    instructor: Optional[str] = None
    occurrence_date: date
    start_time: time
    end_time: time
    max_capacity: int
    is_enabled: bool
    notes: Optional[str] = None


class InstructorAssignmentRequest(StrictRequestModel):
    instructor_name: str = Field(..., min_length=1, max_length=120)
    assignment_date: Optional[date] = Field(
        None, description="Omit to set the standing default instructor"
    )


class InstructorAssignmentResponse(StandardizedModel):
    id: str
    recurring_class_id: str
    assignment_date: Optional[date] = None
    instructor_name: str


class DisableClassRequest(StrictRequestModel):
    occurrence: OccurrenceRefPayload
    date: date
    reason: Optional[str] = Field(None, max_length=500)


class DisableClassResponse(StandardizedModel):
    occurrence_id: str
    kind: OccurrenceKind
    date: date
    cancelled_booking_ids: List[str]
    message: str
