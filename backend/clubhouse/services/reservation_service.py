# backend/clubhouse/services/reservation_service.py
"""
Reservation Engine for the club booking platform.

Handles all reservation business logic including:
- Creating reservations under capacity, window and quota rules
- Self-service cancellation with the pre-class cutoff
- Attendance recording with the no-show penalty
- Rosters, per-member history and calendar fill counts

Every mutating operation runs as one transaction: the occurrence lock and
the quota row are held from the first read until commit, so two requests
can never both take the last seat or the last class of the month.
"""

from datetime import date, time
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.booking_window import booking_window_for
from ..core.config import settings
from ..core.enums import BookingErrorCode, BookingStatus, QuotaChangeReason
from ..core.exceptions import (
    AlreadyBookedException,
    AuthorizationException,
    ClassFullException,
    ConflictException,
    MemberNotApprovedException,
    NoClassesRemainingException,
    NotFoundException,
    OccurrenceCancelledException,
    OutsideBookingWindowException,
    PolicyViolationException,
    WithinTimeLimitException,
)
from ..core.identity import Actor
from ..core.timezone_utils import localize_class_start, minutes_between
from ..domain.occurrence import EffectiveOccurrence, OccurrenceRef
from ..events.booking_events import AttendanceMarked, ReservationCancelled, ReservationCreated
from ..events.publisher import EventPublisher
from ..models.audit_log import AuditLog
from ..models.booking import Booking
from ..models.monthly_quota import MonthlyQuota
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import ref_columns
from ..repositories.factory import RepositoryFactory
from ..schemas.base import format_class_moment
from ..schemas.booking import (
    BookingCount,
    BookingResponse,
    CancellationCheck,
    ReservationConfirmation,
)
from .base import BaseService, Clock
from .quota_service import QuotaService
from .schedule_resolver import ScheduleResolver

logger = logging.getLogger(__name__)

REASON_NOT_CONFIRMED = "booking_not_confirmed"


def _booking_snapshot(booking: Booking) -> dict:
    return {
        "status": booking.status,
        "attended": booking.attended,
        "booking_date": booking.booking_date.isoformat(),
        "occurrence": booking.occurrence_ref.lock_key,
    }


class ReservationService(BaseService):
    """
    Service layer for reservation operations.

    Members act on their own bookings; trainers and administrators use the
    privileged operations (attendance, rosters, forced cancellation).
    """

    def __init__(
        self,
        db: Session,
        event_publisher: Optional[EventPublisher] = None,
        clock: Optional[Clock] = None,
        resolver: Optional[ScheduleResolver] = None,
        quota_service: Optional[QuotaService] = None,
    ):
        super().__init__(db, event_publisher, clock)
        self.resolver = resolver or ScheduleResolver(db, clock=self.clock)
        self.quota_service = quota_service or QuotaService(db, event_publisher, self.clock)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.lock_repository = RepositoryFactory.create_occurrence_lock_repository(db)
        self.member_repository = RepositoryFactory.create_member_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_reservation")
    def create_reservation(
        self,
        actor: Actor,
        booking_date: date,
        ref: OccurrenceRef,
        user_id: Optional[str] = None,
    ) -> ReservationConfirmation:
        """
        Reserve a seat in ``ref`` on ``booking_date``.

        Checks run in this order, all inside one transaction:
        occurrence exists and is not cancelled, member approval, booking
        window and start instant, duplicate booking, capacity, monthly quota.

        Raises:
            NotFoundException: unknown occurrence or not scheduled that day
            AuthorizationException: a member booking for someone else
            PolicyViolationException: any of the booking rules refused it
        """
        target_user = user_id or actor.user_id
        if target_user != actor.user_id:
            actor.require_staff()

        try:
            with self.transaction():
                # Serialise with every other writer of this occurrence/date
                self.lock_repository.acquire(ref, booking_date)
                occurrence = self.resolver.locate(ref, booking_date)
                if occurrence.is_cancelled:
                    raise OccurrenceCancelledException(
                        {"occurrence_id": ref.id, "date": booking_date.isoformat()}
                    )

                self._ensure_member_can_book(actor, target_user)
                self._ensure_within_window(booking_date, occurrence.start_time)

                if self.repository.find_confirmed(target_user, ref, booking_date) is not None:
                    raise AlreadyBookedException(
                        {"occurrence_id": ref.id, "date": booking_date.isoformat()}
                    )

                confirmed = self.repository.count_confirmed(ref, booking_date)
                if confirmed >= occurrence.max_capacity:
                    raise ClassFullException(
                        {"max_capacity": occurrence.max_capacity, "confirmed": confirmed}
                    )

                quota = self.quota_service.ensure_quota(target_user, for_update=True)
                if quota.remaining_classes <= 0:
                    raise NoClassesRemainingException(
                        {"remaining_classes": quota.remaining_classes}
                    )

                booking = Booking(
                    user_id=target_user,
                    booking_date=booking_date,
                    status=BookingStatus.CONFIRMED.value,
                    **ref_columns(ref),
                )
                self.db.add(booking)
                try:
                    self.db.flush()
                except IntegrityError as e:
                    # Partial unique index: a concurrent duplicate won the race
                    raise AlreadyBookedException(
                        {"occurrence_id": ref.id, "date": booking_date.isoformat()}
                    ) from e

                quota = self.quota_service.apply_delta(target_user, -1, QuotaChangeReason.RESERVATION)
                self.emit(
                    ReservationCreated(
                        booking_id=booking.id,
                        user_id=target_user,
                        occurrence_key=ref.lock_key,
                        booking_date=booking_date,
                        title=occurrence.title,
                        remaining_classes=quota.remaining_classes,
                        created_at=self.now(),
                    )
                )
                remaining = quota.remaining_classes
        except PolicyViolationException as exc:
            prometheus_metrics.record_reservation_outcome("create", exc.code)
            self.logger.info(
                "Reservation refused",
                extra={"user_id": target_user, "occurrence": str(ref), "code": exc.code},
            )
            raise

        prometheus_metrics.record_reservation_outcome("create", "success")
        self.log_operation(
            "create_reservation",
            booking_id=booking.id,
            user_id=target_user,
            occurrence=str(ref),
            booking_date=booking_date.isoformat(),
        )
        return ReservationConfirmation(
            booking=BookingResponse.from_booking(booking),
            message=(
                f"Reservation confirmed: {occurrence.title} on "
                f"{format_class_moment(booking_date, occurrence.start_time)}. "
                f"Classes left this month: {remaining}."
            ),
            remaining_classes=remaining,
            title=occurrence.title,
            start_time=occurrence.start_time,
        )

    def _ensure_member_can_book(self, actor: Actor, target_user: str) -> None:
        # Staff booking for themselves need no membership profile
        if actor.is_staff and target_user == actor.user_id:
            return
        profile = self.member_repository.get_by_user_id(target_user)
        if profile is None or not profile.can_book:
            raise MemberNotApprovedException(
                {
                    "user_id": target_user,
                    "approval_status": profile.approval_status if profile else None,
                    "is_active": profile.is_active if profile else None,
                }
            )

    def _ensure_within_window(self, booking_date: date, start_time: time) -> None:
        now = self.now()
        window = booking_window_for(now.date(), settings.weekly_release_weekday)
        if not window.contains(booking_date) or localize_class_start(booking_date, start_time) <= now:
            raise OutsideBookingWindowException(
                {
                    "date": booking_date.isoformat(),
                    "window_start": window.first_day.isoformat(),
                    "window_end": window.last_day.isoformat(),
                }
            )

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def _class_start_for(self, booking: Booking) -> EffectiveOccurrence:
        return self.resolver.locate(booking.occurrence_ref, booking.booking_date, strict_date=False)

    def evaluate_cancellation(self, booking: Booking) -> CancellationCheck:
        """
        Time-window verdict shared by ``can_cancel`` and ``cancel_reservation``.

        Minutes are whole minutes, floored; exactly the cutoff is still allowed.
        """
        if not booking.is_confirmed:
            return CancellationCheck(can_cancel=False, reason=REASON_NOT_CONFIRMED)

        occurrence = self._class_start_for(booking)
        starts_at = localize_class_start(booking.booking_date, occurrence.start_time)
        minutes_until = minutes_between(self.now(), starts_at)
        cutoff = settings.cancellation_cutoff_minutes
        if minutes_until < cutoff:
            return CancellationCheck(
                can_cancel=False,
                reason=BookingErrorCode.WITHIN_TIME_LIMIT.value,
                minutes_until_class=minutes_until,
            )
        return CancellationCheck(can_cancel=True, reason=None, minutes_until_class=minutes_until)

    def _owned_booking(self, actor: Actor, booking_id: str, for_update: bool) -> Booking:
        booking = self.repository.get_by_id(booking_id, for_update=for_update)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", code="booking_not_found")
        if booking.user_id != actor.user_id:
            raise AuthorizationException("You can only manage your own reservations")
        return booking

    @BaseService.measure_operation("can_cancel")
    def can_cancel(self, actor: Actor, booking_id: str) -> CancellationCheck:
        """Read-only preview of whether ``cancel_reservation`` would succeed now."""

        def _check() -> CancellationCheck:
            return self.evaluate_cancellation(self._owned_booking(actor, booking_id, False))

        return self.read("can_cancel", _check)

    @BaseService.measure_operation("cancel_reservation")
    def cancel_reservation(
        self, actor: Actor, booking_id: str, reason: Optional[str] = None
    ) -> ReservationConfirmation:
        """
        Self-service cancellation by the booking's owner.

        Refused with ``within_time_limit`` inside the cutoff; staff use
        ``AdminBookingService.force_cancel_reservation`` instead.
        """
        try:
            with self.transaction():
                booking = self._owned_booking(actor, booking_id, for_update=True)
                if not booking.is_confirmed:
                    raise ConflictException(
                        "This reservation is already cancelled", code=REASON_NOT_CONFIRMED
                    )
                verdict = self.evaluate_cancellation(booking)
                if not verdict.can_cancel:
                    raise WithinTimeLimitException(
                        settings.cancellation_cutoff_minutes, verdict.minutes_until_class or 0
                    )
                occurrence = self._class_start_for(booking)
                event, quota = self.release_booking(
                    booking, actor, reason, forced=False, quota_reason=QuotaChangeReason.CANCELLATION
                )
                self.emit(event)
        except PolicyViolationException as exc:
            prometheus_metrics.record_reservation_outcome("cancel", exc.code)
            raise

        prometheus_metrics.record_reservation_outcome("cancel", "success")
        self.log_operation("cancel_reservation", booking_id=booking.id, user_id=actor.user_id)
        return ReservationConfirmation(
            booking=BookingResponse.from_booking(booking),
            message=(
                f"Reservation cancelled: {occurrence.title} on "
                f"{format_class_moment(booking.booking_date, occurrence.start_time)}. "
                f"Classes left this month: {quota.remaining_classes}."
            ),
            remaining_classes=quota.remaining_classes,
            title=occurrence.title,
            start_time=occurrence.start_time,
        )

    def release_booking(
        self,
        booking: Booking,
        actor: Actor,
        reason: Optional[str],
        forced: bool,
        quota_reason: QuotaChangeReason = QuotaChangeReason.FORCED_CANCELLATION,
    ) -> Tuple[ReservationCancelled, MonthlyQuota]:
        """
        Cancel ``booking`` and credit one class back, inside the caller's transaction.

        Forced releases are audited. Returns the event to emit after commit
        and the updated quota row.
        """
        before = _booking_snapshot(booking)
        booking.cancel(actor.user_id, reason)
        self.db.flush()
        quota = self.quota_service.apply_delta(booking.user_id, 1, quota_reason)
        if forced:
            self.audit_repository.write(
                AuditLog.from_change(
                    "booking",
                    booking.id,
                    "force_cancel",
                    actor,
                    before=before,
                    after=_booking_snapshot(booking),
                    reason=reason,
                )
            )
        event = ReservationCancelled(
            booking_id=booking.id,
            user_id=booking.user_id,
            occurrence_key=booking.occurrence_ref.lock_key,
            booking_date=booking.booking_date,
            cancelled_by=actor.user_id,
            forced=forced,
            cancelled_at=self.now(),
            reason=reason,
        )
        return event, quota

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    @BaseService.measure_operation("mark_attendance")
    def mark_attendance(self, actor: Actor, booking_id: str, attended: bool) -> Booking:
        """
        Record attendance; idempotent.

        Marking a no-show debits one extra class unless the booking was
        already marked as a no-show. Marking attended never touches the ledger.
        """
        actor.require_staff()
        with self.transaction():
            booking = self.repository.get_by_id(booking_id, for_update=True)
            if booking is None:
                raise NotFoundException(f"Booking {booking_id} not found", code="booking_not_found")
            if not booking.is_confirmed:
                raise ConflictException(
                    "Attendance can only be recorded for confirmed reservations",
                    code=REASON_NOT_CONFIRMED,
                )

            previous = booking.attended
            penalty = attended is False and previous is not False
            if penalty:
                # Raises no_classes_remaining and leaves attendance untouched
                self.quota_service.apply_delta(
                    booking.user_id, -1, QuotaChangeReason.NO_SHOW_PENALTY
                )

            if previous is not attended:
                before = _booking_snapshot(booking)
                booking.attended = attended
                self.db.flush()
                self.audit_repository.write(
                    AuditLog.from_change(
                        "booking",
                        booking.id,
                        "mark_attendance",
                        actor,
                        before=before,
                        after=_booking_snapshot(booking),
                    )
                )
                self.emit(
                    AttendanceMarked(
                        booking_id=booking.id,
                        user_id=booking.user_id,
                        attended=attended,
                        penalty_applied=penalty,
                        marked_by=actor.user_id,
                    )
                )

        self.log_operation(
            "mark_attendance", booking_id=booking_id, attended=attended, penalty=penalty
        )
        return booking

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @BaseService.measure_operation("list_user_bookings")
    def list_user_bookings(
        self,
        actor: Actor,
        user_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        from_date: Optional[date] = None,
    ) -> List[Booking]:
        target = user_id or actor.user_id
        if target != actor.user_id:
            actor.require_staff()
        return self.read(
            "list_user_bookings",
            lambda: self.repository.list_for_user(target, status=status, from_date=from_date),
        )

    @BaseService.measure_operation("list_occurrence_roster")
    def list_occurrence_roster(
        self, actor: Actor, ref: OccurrenceRef, booking_date: date
    ) -> List[Booking]:
        """Confirmed bookings for one occurrence with their attendance state (staff only)."""
        actor.require_staff()

        def _load() -> List[Booking]:
            # Raises NotFound for unknown occurrences
            self.resolver.locate(ref, booking_date, strict_date=False)
            return self.repository.list_confirmed_for_occurrence(ref, booking_date)

        return self.read("list_occurrence_roster", _load)

    @BaseService.measure_operation("get_booking_counts")
    def get_booking_counts(self, dates: Iterable[date]) -> List[BookingCount]:
        day_list = sorted(set(dates))
        counts = self.read(
            "get_booking_counts", lambda: self.repository.count_confirmed_by_occurrence(day_list)
        )
        return [
            BookingCount(occurrence_id=ref.id, kind=ref.kind, date=day, count=count)
            for (ref, day), count in sorted(
                counts.items(), key=lambda item: (item[0][1], item[0][0].lock_key)
            )
        ]
