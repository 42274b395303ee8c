# backend/clubhouse/services/admin_booking_service.py
"""
Privileged reservation operations for trainers and administrators.

These bypass the self-service guards (cancellation cutoff, ownership) but
never the ledger: every cancelled seat is credited back, and every action
leaves an audit entry with the stated reason.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import QuotaChangeReason
from ..core.exceptions import ConflictException, NotFoundException
from ..core.identity import Actor
from ..domain.occurrence import OccurrenceKind, OccurrenceRef
from ..events.booking_events import OccurrenceDisabled, ReservationCancelled
from ..events.publisher import EventPublisher
from ..models.audit_log import AuditLog
from ..models.date_override import DateOverride
from ..repositories.factory import RepositoryFactory
from ..schemas.base import format_class_moment
from ..schemas.booking import BookingResponse, ReservationConfirmation
from ..schemas.schedule import DisableClassResponse
from .base import BaseService, Clock
from .reservation_service import REASON_NOT_CONFIRMED, ReservationService

logger = logging.getLogger(__name__)


class AdminBookingService(BaseService):
    def __init__(
        self,
        db: Session,
        event_publisher: Optional[EventPublisher] = None,
        clock: Optional[Clock] = None,
        reservation_service: Optional[ReservationService] = None,
    ):
        super().__init__(db, event_publisher, clock)
        self.reservations = reservation_service or ReservationService(
            db, event_publisher, self.clock
        )
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.lock_repository = RepositoryFactory.create_occurrence_lock_repository(db)
        self.override_repository = RepositoryFactory.create_date_override_repository(db)
        self.one_off_repository = RepositoryFactory.create_one_off_occurrence_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    @BaseService.measure_operation("force_cancel_reservation")
    def force_cancel_reservation(
        self, actor: Actor, booking_id: str, reason: str
    ) -> ReservationConfirmation:
        """Cancel any confirmed booking regardless of the cutoff; quota is always restored."""
        actor.require_staff()
        with self.transaction():
            booking = self.booking_repository.get_by_id(booking_id, for_update=True)
            if booking is None:
                raise NotFoundException(f"Booking {booking_id} not found", code="booking_not_found")
            if not booking.is_confirmed:
                raise ConflictException(
                    "This reservation is already cancelled", code=REASON_NOT_CONFIRMED
                )
            occurrence = self.reservations.resolver.locate(
                booking.occurrence_ref, booking.booking_date, strict_date=False
            )
            event, quota = self.reservations.release_booking(
                booking, actor, reason, forced=True
            )
            self.emit(event)

        self.log_operation(
            "force_cancel_reservation", booking_id=booking_id, actor_id=actor.user_id, reason=reason
        )
        return ReservationConfirmation(
            booking=BookingResponse.from_booking(booking),
            message=(
                f"Reservation cancelled by staff: {occurrence.title} on "
                f"{format_class_moment(booking.booking_date, occurrence.start_time)}."
            ),
            remaining_classes=quota.remaining_classes,
            title=occurrence.title,
            start_time=occurrence.start_time,
        )

    @BaseService.measure_operation("disable_class")
    def disable_class(
        self,
        actor: Actor,
        ref: OccurrenceRef,
        occurrence_date: date,
        reason: Optional[str] = None,
    ) -> DisableClassResponse:
        """
        Cancel one occurrence for one date.

        Recurring classes get a cancelling override; one-off classes are
        disabled. Every confirmed booking is force-cancelled with its class
        credited back and no penalty.
        """
        actor.require_staff()
        with self.transaction():
            self.lock_repository.acquire(ref, occurrence_date)
            # Validates the reference and the date
            occurrence = self.reservations.resolver.locate(ref, occurrence_date)

            if ref.kind == OccurrenceKind.RECURRING:
                self._cancel_recurring_date(actor, ref.id, occurrence_date, reason)
            else:
                row = self.one_off_repository.get_by_id(ref.id, for_update=True)
                row.is_enabled = False
                self.db.flush()

            released = self.release_all(actor, ref, occurrence_date, reason or "Class cancelled")
            for event in released:
                self.emit(event)
            self.audit_repository.write(
                AuditLog.from_change(
                    "occurrence",
                    ref.lock_key,
                    "disable_class",
                    actor,
                    after={
                        "date": occurrence_date.isoformat(),
                        "cancelled_bookings": [e.booking_id for e in released],
                    },
                    reason=reason,
                )
            )
            self.emit(
                OccurrenceDisabled(
                    occurrence_key=ref.lock_key,
                    occurrence_date=occurrence_date,
                    disabled_by=actor.user_id,
                    cancelled_booking_ids=[e.booking_id for e in released],
                    affected_user_ids=sorted({e.user_id for e in released}),
                    reason=reason,
                )
            )

        self.log_operation(
            "disable_class",
            occurrence=str(ref),
            date=occurrence_date.isoformat(),
            cancelled=len(released),
        )
        return DisableClassResponse(
            occurrence_id=ref.id,
            kind=ref.kind,
            date=occurrence_date,
            cancelled_booking_ids=[e.booking_id for e in released],
            message=(
                f"{occurrence.title} on {format_class_moment(occurrence_date, occurrence.start_time)} "
                f"cancelled; {len(released)} reservation(s) released."
            ),
        )

    def release_all(
        self, actor: Actor, ref: OccurrenceRef, occurrence_date: date, reason: str
    ) -> List[ReservationCancelled]:
        """
        Force-cancel every confirmed booking of one occurrence.

        The caller holds the occurrence lock and emits the returned events.
        """
        released: List[ReservationCancelled] = []
        for booking in self.booking_repository.list_confirmed_for_occurrence(
            ref, occurrence_date, for_update=True
        ):
            event, _quota = self.reservations.release_booking(
                booking,
                actor,
                reason,
                forced=True,
                quota_reason=QuotaChangeReason.FORCED_CANCELLATION,
            )
            released.append(event)
        return released

    def _cancel_recurring_date(
        self, actor: Actor, class_id: str, occurrence_date: date, reason: Optional[str]
    ) -> DateOverride:
        override = self.override_repository.get_for_class_date(class_id, occurrence_date)
        if override is None:
            override = DateOverride(
                recurring_class_id=class_id,
                override_date=occurrence_date,
                is_cancelled=True,
                notes=reason,
                created_by_id=actor.user_id,
            )
            self.db.add(override)
        else:
            override.is_cancelled = True
            if reason:
                override.notes = reason
        self.db.flush()
        return override
