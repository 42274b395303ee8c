# backend/clubhouse/services/schedule_management_service.py
"""
Schedule Management Service for the club booking platform.

Staff-facing mutations of the schedule sources:
- Weekly recurring templates (create, edit, activate/deactivate)
- Per-date overrides ("exceptions"), including cancellations
- One-off classes
- Instructor assignments (standing default or one date)

Changes that could strand existing reservations take the occurrence lock
used by the booking path, so they serialise with concurrent reservations.
"""

from datetime import date, time
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    CapacityBelowBookingsException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from ..core.identity import Actor
from ..domain.occurrence import OccurrenceRef
from ..events.publisher import EventPublisher
from ..models.audit_log import AuditLog
from ..models.date_override import DateOverride, InstructorAssignment
from ..models.one_off_occurrence import OneOffOccurrence
from ..models.recurring_class import RecurringClass
from ..repositories.factory import RepositoryFactory
from ..schemas.schedule import (
    DateOverrideCreate,
    OneOffOccurrenceCreate,
    RecurringClassCreate,
    RecurringClassUpdate,
)
from .admin_booking_service import AdminBookingService
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _validate_times(start: time, end: time) -> None:
    if start >= end:
        raise ValidationException(
            "Start time must be before end time",
            code="invalid_time_range",
            details={"start_time": start.isoformat(), "end_time": end.isoformat()},
        )


def _override_snapshot(override: DateOverride) -> Dict[str, Any]:
    return {
        "override_date": override.override_date.isoformat(),
        "start_time": override.start_time.isoformat() if override.start_time else None,
        "end_time": override.end_time.isoformat() if override.end_time else None,
        "instructor": override.instructor,
        "max_capacity": override.max_capacity,
        "is_cancelled": override.is_cancelled,
        "migrate_existing_bookings": override.migrate_existing_bookings,
    }


class ScheduleManagementService(BaseService):
    """Service for staff edits of the schedule sources."""

    def __init__(
        self,
        db: Session,
        event_publisher: Optional[EventPublisher] = None,
        clock: Optional[Clock] = None,
        admin_service: Optional[AdminBookingService] = None,
    ):
        super().__init__(db, event_publisher, clock)
        self.admin_service = admin_service or AdminBookingService(db, event_publisher, self.clock)
        self.recurring_repository = RepositoryFactory.create_recurring_class_repository(db)
        self.override_repository = RepositoryFactory.create_date_override_repository(db)
        self.assignment_repository = RepositoryFactory.create_instructor_assignment_repository(db)
        self.one_off_repository = RepositoryFactory.create_one_off_occurrence_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.lock_repository = RepositoryFactory.create_occurrence_lock_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    # ------------------------------------------------------------------
    # Recurring templates
    # ------------------------------------------------------------------

    def _get_template(self, class_id: str, for_update: bool = False) -> RecurringClass:
        template = self.recurring_repository.get_by_id(class_id, for_update=for_update)
        if template is None:
            raise NotFoundException(f"Class {class_id} not found", code="class_not_found")
        return template

    @BaseService.measure_operation("list_recurring_classes")
    def list_recurring_classes(self, include_inactive: bool = True) -> List[RecurringClass]:
        return self.read(
            "list_recurring_classes",
            lambda: self.recurring_repository.list_classes(include_inactive=include_inactive),
        )

    @BaseService.measure_operation("create_recurring_class")
    def create_recurring_class(self, actor: Actor, data: RecurringClassCreate) -> RecurringClass:
        actor.require_staff()
        _validate_times(data.start_time, data.end_time)
        with self.transaction():
            template = self.recurring_repository.create(
                title=data.title.strip(),
                description=data.description,
                instructor=data.instructor,
                day_of_week=data.day_of_week,
                start_time=data.start_time,
                end_time=data.end_time,
                max_capacity=data.max_capacity,
                is_active=True,
            )
        self.log_operation(
            "create_recurring_class",
            class_id=template.id,
            day_of_week=template.day_of_week,
            actor_id=actor.user_id,
        )
        return template

    @BaseService.measure_operation("update_recurring_class")
    def update_recurring_class(
        self, actor: Actor, class_id: str, data: RecurringClassUpdate
    ) -> RecurringClass:
        """
        Partial edit of a template; applies to every date without an override.

        Moving the weekday is refused while future reservations exist, and a
        capacity below the confirmed bookings of any upcoming date is refused.
        """
        actor.require_staff()
        changes = data.model_dump(exclude_unset=True)
        with self.transaction():
            template = self._get_template(class_id, for_update=True)
            start = changes.get("start_time") or template.start_time
            end = changes.get("end_time") or template.end_time
            _validate_times(start, end)

            ref = OccurrenceRef.recurring(class_id)
            today = self.now().date()
            upcoming = self.booking_repository.count_confirmed_per_date(ref, today)

            new_day = changes.get("day_of_week")
            if new_day is not None and new_day != template.day_of_week and upcoming:
                raise ConflictException(
                    "Cannot move a class to another weekday while it has upcoming reservations",
                    code="class_has_bookings",
                    details={"dates": sorted(d.isoformat() for d in upcoming)},
                )

            new_capacity = changes.get("max_capacity")
            if new_capacity is not None:
                overrides = self.override_repository.get_map_for_range(
                    today, max(upcoming) if upcoming else today
                )
                for day, confirmed in upcoming.items():
                    override = overrides.get((class_id, day))
                    if override is not None and override.max_capacity is not None:
                        continue
                    if new_capacity < confirmed:
                        raise CapacityBelowBookingsException(new_capacity, confirmed)

            for field, value in changes.items():
                if value is not None or field in ("description", "instructor"):
                    setattr(template, field, value)
            self.db.flush()

        self.log_operation("update_recurring_class", class_id=class_id, fields=sorted(changes))
        return template

    @BaseService.measure_operation("toggle_recurring_class")
    def toggle_recurring_class(self, actor: Actor, class_id: str) -> RecurringClass:
        """
        Flip the active flag.

        Inactive templates drop out of every resolution; existing bookings
        stay as historical records and can still be cancelled.
        """
        actor.require_staff()
        with self.transaction():
            template = self._get_template(class_id, for_update=True)
            template.is_active = not template.is_active
            self.db.flush()
        self.log_operation("toggle_recurring_class", class_id=class_id, active=template.is_active)
        return template

    # ------------------------------------------------------------------
    # Date overrides
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_date_override")
    def create_date_override(self, actor: Actor, data: DateOverrideCreate) -> DateOverride:
        """
        Create or replace the override for (class, date).

        - A cancelling override releases every confirmed booking.
        - A capacity below the confirmed bookings is refused.
        - With ``migrate_existing_bookings`` false, a time change releases the
          existing bookings; otherwise they stay attached to the date.
        """
        actor.require_staff()
        with self.transaction():
            template = self._get_template(data.recurring_class_id)
            if data.override_date.weekday() != template.day_of_week:
                raise ValidationException(
                    f"{template.title} runs on {_WEEKDAYS[template.day_of_week]}s; "
                    f"{data.override_date.isoformat()} is a {_WEEKDAYS[data.override_date.weekday()]}",
                    code="override_weekday_mismatch",
                )
            _validate_times(
                data.start_time or template.start_time, data.end_time or template.end_time
            )

            ref = OccurrenceRef.recurring(template.id)
            self.lock_repository.acquire(ref, data.override_date)

            if not data.is_cancelled:
                capacity = (
                    data.max_capacity if data.max_capacity is not None else template.max_capacity
                )
                confirmed = self.booking_repository.count_confirmed(ref, data.override_date)
                if capacity < confirmed:
                    raise CapacityBelowBookingsException(capacity, confirmed)

            override = self.override_repository.get_for_class_date(
                template.id, data.override_date
            )
            before = _override_snapshot(override) if override is not None else None
            if override is None:
                override = DateOverride(
                    recurring_class_id=template.id,
                    override_date=data.override_date,
                    created_by_id=actor.user_id,
                )
                override.recurring_class = template
                self.db.add(override)

            override.start_time = data.start_time
            override.end_time = data.end_time
            override.instructor = data.instructor
            override.max_capacity = data.max_capacity
            override.is_cancelled = data.is_cancelled
            override.migrate_existing_bookings = data.migrate_existing_bookings
            override.notes = data.notes
            self.db.flush()

            released = []
            if data.is_cancelled:
                released = self.admin_service.release_all(
                    actor, ref, data.override_date, data.notes or "Class cancelled"
                )
            elif not data.migrate_existing_bookings and override.changes_time:
                released = self.admin_service.release_all(
                    actor, ref, data.override_date, data.notes or "Class time changed"
                )
            for event in released:
                self.emit(event)

            self.audit_repository.write(
                AuditLog.from_change(
                    "date_override",
                    override.id,
                    "create" if before is None else "update",
                    actor,
                    before=before,
                    after={
                        **_override_snapshot(override),
                        "released_bookings": [e.booking_id for e in released],
                    },
                    reason=data.notes,
                )
            )

        self.log_operation(
            "create_date_override",
            override_id=override.id,
            class_id=template.id,
            date=data.override_date.isoformat(),
            released=len(released),
        )
        return override

    @BaseService.measure_operation("delete_date_override")
    def delete_date_override(self, actor: Actor, override_id: str) -> None:
        """Remove an override; the date reverts to the template."""
        actor.require_staff()
        with self.transaction():
            override = self.override_repository.get_by_id(override_id)
            if override is None:
                raise NotFoundException(
                    f"Override {override_id} not found", code="override_not_found"
                )
            template = self._get_template(override.recurring_class_id)
            ref = OccurrenceRef.recurring(template.id)
            self.lock_repository.acquire(ref, override.override_date)

            confirmed = self.booking_repository.count_confirmed(ref, override.override_date)
            if template.max_capacity < confirmed:
                raise CapacityBelowBookingsException(template.max_capacity, confirmed)

            before = _override_snapshot(override)
            self.db.delete(override)
            self.db.flush()
            self.audit_repository.write(
                AuditLog.from_change("date_override", override_id, "delete", actor, before=before)
            )
        self.log_operation("delete_date_override", override_id=override_id)

    @BaseService.measure_operation("list_date_overrides")
    def list_date_overrides(
        self, actor: Actor, start_date: date, end_date: date
    ) -> List[DateOverride]:
        actor.require_staff()
        if end_date < start_date:
            raise ValidationException(
                "end_date must not be before start_date", code="invalid_date_range"
            )
        return self.read(
            "list_date_overrides",
            lambda: self.override_repository.list_in_range(start_date, end_date),
        )

    # ------------------------------------------------------------------
    # One-off classes
    # ------------------------------------------------------------------

    def _get_one_off(self, occurrence_id: str, for_update: bool = False) -> OneOffOccurrence:
        row = self.one_off_repository.get_by_id(occurrence_id, for_update=for_update)
        if row is None:
            raise NotFoundException(f"Class {occurrence_id} not found", code="class_not_found")
        return row

    @BaseService.measure_operation("list_one_off_occurrences")
    def list_one_off_occurrences(
        self, start_date: date, end_date: date, include_disabled: bool = True
    ) -> List[OneOffOccurrence]:
        return self.read(
            "list_one_off_occurrences",
            lambda: self.one_off_repository.list_in_range(
                start_date, end_date, enabled_only=not include_disabled
            ),
        )

    @BaseService.measure_operation("create_one_off_occurrence")
    def create_one_off_occurrence(
        self, actor: Actor, data: OneOffOccurrenceCreate
    ) -> OneOffOccurrence:
        actor.require_staff()
        _validate_times(data.start_time, data.end_time)
        with self.transaction():
            row = self.one_off_repository.create(
                title=data.title.strip(),
                instructor=data.instructor,
                occurrence_date=data.occurrence_date,
                start_time=data.start_time,
                end_time=data.end_time,
                max_capacity=data.max_capacity,
                notes=data.notes,
                is_enabled=True,
                created_by_id=actor.user_id,
            )
        self.log_operation(
            "create_one_off_occurrence",
            occurrence_id=row.id,
            date=row.occurrence_date.isoformat(),
        )
        return row

    @BaseService.measure_operation("delete_one_off_occurrence")
    def delete_one_off_occurrence(self, actor: Actor, occurrence_id: str) -> None:
        """
        Hard-delete a one-off class that nobody ever booked.

        Classes with reservation history must be disabled instead.
        """
        actor.require_staff()
        with self.transaction():
            row = self._get_one_off(occurrence_id, for_update=True)
            if self.booking_repository.has_any_for_occurrence(OccurrenceRef.one_off(row.id)):
                raise ConflictException(
                    "This class has reservations; disable it instead of deleting it",
                    code="class_has_bookings",
                )
            self.db.delete(row)
            self.db.flush()
        self.log_operation("delete_one_off_occurrence", occurrence_id=occurrence_id)

    @BaseService.measure_operation("toggle_one_off_occurrence")
    def toggle_one_off_occurrence(self, actor: Actor, occurrence_id: str) -> OneOffOccurrence:
        """Enable/disable a one-off class; disabling releases its confirmed bookings."""
        actor.require_staff()
        with self.transaction():
            row = self._get_one_off(occurrence_id, for_update=True)
            ref = OccurrenceRef.one_off(row.id)
            self.lock_repository.acquire(ref, row.occurrence_date)
            row.is_enabled = not row.is_enabled
            self.db.flush()
            if not row.is_enabled:
                for event in self.admin_service.release_all(
                    actor, ref, row.occurrence_date, "Class cancelled"
                ):
                    self.emit(event)
        self.log_operation(
            "toggle_one_off_occurrence", occurrence_id=occurrence_id, enabled=row.is_enabled
        )
        return row

    # ------------------------------------------------------------------
    # Instructor assignments
    # ------------------------------------------------------------------

    @BaseService.measure_operation("set_instructor_assignment")
    def set_instructor_assignment(
        self,
        actor: Actor,
        class_id: str,
        instructor_name: str,
        assignment_date: Optional[date] = None,
    ) -> InstructorAssignment:
        """Set the standing instructor (no date) or the instructor for one date."""
        actor.require_staff()
        name = instructor_name.strip()
        if not name:
            raise ValidationException("Instructor name is required", code="invalid_instructor")
        with self.transaction():
            template = self._get_template(class_id)
            if assignment_date is not None and assignment_date.weekday() != template.day_of_week:
                raise ValidationException(
                    f"{template.title} does not run on {assignment_date.isoformat()}",
                    code="override_weekday_mismatch",
                )
            assignment = self.assignment_repository.get_assignment(class_id, assignment_date)
            if assignment is None:
                assignment = self.assignment_repository.create(
                    recurring_class_id=class_id,
                    assignment_date=assignment_date,
                    instructor_name=name,
                )
            else:
                assignment.instructor_name = name
                self.db.flush()
        self.log_operation(
            "set_instructor_assignment",
            class_id=class_id,
            date=assignment_date.isoformat() if assignment_date else None,
        )
        return assignment
