"""
Occurrence value types.

A bookable occurrence comes from one of two storage shapes: a weekly
recurring template (optionally reshaped by a date override) or a one-off
class. Rather than a class hierarchy, every occurrence carries a source
tag plus the origin id, so a reference is never ambiguous.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Optional


class OccurrenceKind(str, Enum):
    RECURRING = "recurring"
    ONE_OFF = "one_off"


@dataclass(frozen=True)
class OccurrenceRef:
    kind: OccurrenceKind
    id: str

    @classmethod
    def recurring(cls, class_id: str) -> "OccurrenceRef":
        return cls(OccurrenceKind.RECURRING, class_id)

    @classmethod
    def one_off(cls, occurrence_id: str) -> "OccurrenceRef":
        return cls(OccurrenceKind.ONE_OFF, occurrence_id)

    @property
    def lock_key(self) -> str:
        return f"{self.kind.value}:{self.id}"

    def __str__(self) -> str:
        return self.lock_key


@dataclass(frozen=True)
class EffectiveOccurrence:
    """One resolved class instance on a concrete date (never persisted)."""

    ref: OccurrenceRef
    date: date
    title: str
    instructor: Optional[str]
    start_time: time
    end_time: time
    max_capacity: int
    is_special: bool = False
    is_cancelled: bool = False
    notes: Optional[str] = None
    override_id: Optional[str] = field(default=None, compare=False)

    @property
    def occurrence_id(self) -> str:
        return self.ref.id

    @property
    def kind(self) -> OccurrenceKind:
        return self.ref.kind

    def sort_key(self) -> tuple[time, str]:
        return (self.start_time, self.title)


@dataclass(frozen=True)
class OccurrenceAvailability:
    """An occurrence together with its confirmed-seat count at read time."""

    occurrence: EffectiveOccurrence
    current_bookings: int

    @property
    def spots_left(self) -> int:
        return max(self.occurrence.max_capacity - self.current_bookings, 0)

    @property
    def is_full(self) -> bool:
        return self.current_bookings >= self.occurrence.max_capacity
