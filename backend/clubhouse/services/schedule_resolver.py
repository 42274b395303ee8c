# backend/clubhouse/services/schedule_resolver.py
"""
Schedule Resolver for the club booking platform.

Computes the effective, bookable occurrences for calendar dates by merging:
- weekly recurring templates (active only)
- per-date overrides (cancellation or field replacement)
- instructor assignments (dated, then standing default)
- one-off single-date classes (enabled only)

Nothing here is cached: every call re-reads current state, so a staff edit
is visible to the very next resolution or booking attempt.
"""

from datetime import date, timedelta
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, ValidationException
from ..domain.occurrence import (
    EffectiveOccurrence,
    OccurrenceAvailability,
    OccurrenceKind,
    OccurrenceRef,
)
from ..models.date_override import DateOverride
from ..models.one_off_occurrence import OneOffOccurrence
from ..models.recurring_class import RecurringClass
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 62


def occurrence_from_template(
    template: RecurringClass,
    day: date,
    override: Optional[DateOverride] = None,
    assigned_instructor: Optional[str] = None,
) -> EffectiveOccurrence:
    """
    Build the occurrence of ``template`` on ``day``.

    Override fields win when set; anything left null falls back to the
    template. The instructor chain is override, assignment, template.
    """
    ref = OccurrenceRef.recurring(template.id)
    default_instructor = assigned_instructor or template.instructor
    if override is None:
        return EffectiveOccurrence(
            ref=ref,
            date=day,
            title=template.title,
            instructor=default_instructor,
            start_time=template.start_time,
            end_time=template.end_time,
            max_capacity=template.max_capacity,
            is_special=False,
            is_cancelled=not template.is_active,
        )

    return EffectiveOccurrence(
        ref=ref,
        date=day,
        title=template.title,
        instructor=override.instructor or default_instructor,
        start_time=override.start_time if override.start_time is not None else template.start_time,
        end_time=override.end_time if override.end_time is not None else template.end_time,
        max_capacity=(
            override.max_capacity if override.max_capacity is not None else template.max_capacity
        ),
        is_special=True,
        is_cancelled=bool(override.is_cancelled) or not template.is_active,
        notes=override.notes,
        override_id=override.id,
    )


def occurrence_from_one_off(row: OneOffOccurrence) -> EffectiveOccurrence:
    notes = (row.notes or "").strip() or None
    return EffectiveOccurrence(
        ref=OccurrenceRef.one_off(row.id),
        date=row.occurrence_date,
        title=row.title,
        instructor=row.instructor,
        start_time=row.start_time,
        end_time=row.end_time,
        max_capacity=row.max_capacity,
        # Only a written note marks a one-off as special
        is_special=notes is not None,
        is_cancelled=not row.is_enabled,
        notes=notes,
    )


def _days(start_date: date, end_date: date) -> List[date]:
    return [start_date + timedelta(days=i) for i in range((end_date - start_date).days + 1)]


class ScheduleResolver(BaseService):
    """
    Read-only view over the schedule sources.

    ``resolve``/``resolve_range`` are public reads with transient-failure
    retries. ``resolve_current`` and ``locate`` run inside the caller's
    transaction and never retry.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock=clock)
        self.recurring_repository = RepositoryFactory.create_recurring_class_repository(db)
        self.override_repository = RepositoryFactory.create_date_override_repository(db)
        self.assignment_repository = RepositoryFactory.create_instructor_assignment_repository(db)
        self.one_off_repository = RepositoryFactory.create_one_off_occurrence_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("resolve_schedule")
    def resolve(self, day: date) -> List[EffectiveOccurrence]:
        """Bookable occurrences on ``day`` ordered by start time, then title."""
        return self.read("resolve_schedule", lambda: self.resolve_current(day))

    @BaseService.measure_operation("resolve_schedule_range")
    def resolve_range(self, start_date: date, end_date: date) -> List[EffectiveOccurrence]:
        self._validate_range(start_date, end_date)
        return self.read(
            "resolve_schedule_range",
            lambda: [o for o in self._resolve_days(start_date, end_date) if not o.is_cancelled],
        )

    @BaseService.measure_operation("resolve_schedule_with_bookings")
    def resolve_range_with_bookings(
        self, start_date: date, end_date: date
    ) -> List[OccurrenceAvailability]:
        """Range resolution annotated with the confirmed-seat count of each occurrence."""
        self._validate_range(start_date, end_date)

        def _load() -> List[OccurrenceAvailability]:
            occurrences = [
                o for o in self._resolve_days(start_date, end_date) if not o.is_cancelled
            ]
            counts = self.booking_repository.count_confirmed_by_occurrence(
                _days(start_date, end_date)
            )
            return [
                OccurrenceAvailability(o, counts.get((o.ref, o.date), 0)) for o in occurrences
            ]

        return self.read("resolve_schedule_with_bookings", _load)

    def resolve_current(self, day: date) -> List[EffectiveOccurrence]:
        """Same as ``resolve`` but inside the active transaction, without retries."""
        return [o for o in self._resolve_days(day, day) if not o.is_cancelled]

    def locate(self, ref: OccurrenceRef, day: date, strict_date: bool = True) -> EffectiveOccurrence:
        """
        Resolve one occurrence, including cancelled ones.

        Raises NotFoundException when the reference does not exist or is not
        scheduled on ``day``. With ``strict_date=False`` a recurring template
        is projected onto ``day`` even if its weekday has since changed, which
        lets existing bookings still compute their start time.
        """
        if ref.kind == OccurrenceKind.RECURRING:
            template = self.recurring_repository.get_by_id(ref.id)
            if template is None:
                raise NotFoundException(f"Class {ref.id} not found", code="occurrence_not_found")
            if strict_date and template.day_of_week != day.weekday():
                raise NotFoundException(
                    f"Class {template.title} is not scheduled on {day.isoformat()}",
                    code="occurrence_not_found",
                    details={"occurrence_id": ref.id, "date": day.isoformat()},
                )
            override = self.override_repository.get_for_class_date(template.id, day)
            return occurrence_from_template(
                template, day, override, self._assigned_instructor(template.id, day)
            )

        row = self.one_off_repository.get_by_id(ref.id)
        if row is None:
            raise NotFoundException(f"Class {ref.id} not found", code="occurrence_not_found")
        if strict_date and row.occurrence_date != day:
            raise NotFoundException(
                f"Class {row.title} takes place on {row.occurrence_date.isoformat()}",
                code="occurrence_not_found",
                details={"occurrence_id": ref.id, "date": day.isoformat()},
            )
        return occurrence_from_one_off(row)

    def _assigned_instructor(self, class_id: str, day: date) -> Optional[str]:
        dated = self.assignment_repository.get_assignment(class_id, day)
        if dated is not None:
            return dated.instructor_name
        standing = self.assignment_repository.get_assignment(class_id, None)
        return standing.instructor_name if standing is not None else None

    def _resolve_days(self, start_date: date, end_date: date) -> List[EffectiveOccurrence]:
        days = _days(start_date, end_date)
        templates = self.recurring_repository.get_active_for_weekdays(d.weekday() for d in days)
        by_weekday: Dict[int, List[RecurringClass]] = {}
        for template in templates:
            by_weekday.setdefault(template.day_of_week, []).append(template)

        overrides = self.override_repository.get_map_for_range(start_date, end_date)
        standing, dated = self.assignment_repository.resolve_names(
            (t.id for t in templates), start_date, end_date
        )

        resolved: List[EffectiveOccurrence] = []
        for day in days:
            for template in by_weekday.get(day.weekday(), []):
                assigned = dated.get((template.id, day)) or standing.get(template.id)
                resolved.append(
                    occurrence_from_template(
                        template, day, overrides.get((template.id, day)), assigned
                    )
                )

        for row in self.one_off_repository.list_in_range(start_date, end_date):
            resolved.append(occurrence_from_one_off(row))

        resolved.sort(key=_range_sort_key)
        return resolved

    @staticmethod
    def _validate_range(start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise ValidationException(
                "end_date must not be before start_date", code="invalid_date_range"
            )
        if (end_date - start_date).days >= MAX_RANGE_DAYS:
            raise ValidationException(
                f"Date range cannot exceed {MAX_RANGE_DAYS} days", code="invalid_date_range"
            )


def _range_sort_key(occurrence: EffectiveOccurrence) -> Tuple[date, object, str]:
    start, title = occurrence.sort_key()
    return (occurrence.date, start, title)
