"""End-to-end reservation behaviour against a real database."""

from datetime import time, timedelta

import pytest

from clubhouse.core.enums import ApprovalStatus, BookingErrorCode, BookingStatus
from clubhouse.core.exceptions import (
    AuthorizationException,
    NotFoundException,
    PolicyViolationException,
)
from clubhouse.domain.occurrence import OccurrenceRef
from clubhouse.models import AuditLog, Booking, DateOverride, MonthlyQuota
from tests.support import (
    MEMBER,
    NEXT_MONDAY,
    OTHER_MEMBER,
    TODAY,
    TOMORROW,
    TRAINER,
    club_time,
)


def _quota(db, user_id: str) -> MonthlyQuota:
    db.expire_all()
    return (
        db.query(MonthlyQuota)
        .filter_by(user_id=user_id, month=TODAY.month, year=TODAY.year)
        .one()
    )


class TestCreateReservation:
    def test_books_seat_and_debits_quota(self, db, services, make_member, make_class, set_quota, published):
        make_member()
        yoga = make_class(capacity=2)
        set_quota(MEMBER.user_id, remaining=3)

        result = services.reservations.create_reservation(
            MEMBER, TODAY, OccurrenceRef.recurring(yoga.id)
        )

        assert result.remaining_classes == 2
        assert result.title == "Hatha Yoga"
        assert "Classes left this month: 2" in result.message
        assert result.booking.status == BookingStatus.CONFIRMED.value
        assert _quota(db, MEMBER.user_id).remaining_classes == 2
        assert [name for name, _ in published] == ["ReservationCreated"]
        assert published[0][1]["remaining_classes"] == 2

    def test_first_access_creates_default_allowance(self, db, services, make_member, make_class):
        make_member()
        yoga = make_class()

        result = services.reservations.create_reservation(
            MEMBER, TODAY, OccurrenceRef.recurring(yoga.id)
        )

        quota = _quota(db, MEMBER.user_id)
        assert quota.max_monthly_classes == 12
        assert result.remaining_classes == 11 == quota.remaining_classes

    def test_one_off_booking(self, db, services, make_member, make_one_off):
        make_member()
        open_mat = make_one_off(occurrence_date=TOMORROW)

        result = services.reservations.create_reservation(
            MEMBER, TOMORROW, OccurrenceRef.one_off(open_mat.id)
        )

        booking = db.get(Booking, result.booking.id)
        assert booking.one_off_occurrence_id == open_mat.id
        assert booking.recurring_class_id is None

    def test_class_full(self, services, make_member, make_class):
        make_member()
        make_member(OTHER_MEMBER.user_id)
        yoga = make_class(capacity=1)
        ref = OccurrenceRef.recurring(yoga.id)
        services.reservations.create_reservation(OTHER_MEMBER, TODAY, ref)

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(MEMBER, TODAY, ref)

        assert exc_info.value.code == BookingErrorCode.CLASS_FULL.value

    def test_double_booking_refused(self, services, make_member, make_class):
        make_member()
        ref = OccurrenceRef.recurring(make_class().id)
        services.reservations.create_reservation(MEMBER, TODAY, ref)

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(MEMBER, TODAY, ref)

        assert exc_info.value.code == BookingErrorCode.ALREADY_BOOKED.value

    def test_rebooking_last_seat_reports_duplicate(self, services, make_member, make_class):
        make_member()
        ref = OccurrenceRef.recurring(make_class(capacity=1).id)
        services.reservations.create_reservation(MEMBER, TODAY, ref)

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(MEMBER, TODAY, ref)

        assert exc_info.value.code == BookingErrorCode.ALREADY_BOOKED.value

    def test_no_classes_remaining_leaves_no_booking(self, db, services, make_member, make_class, set_quota):
        make_member()
        yoga = make_class()
        set_quota(MEMBER.user_id, remaining=0)

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(
                MEMBER, TODAY, OccurrenceRef.recurring(yoga.id)
            )

        assert exc_info.value.code == BookingErrorCode.NO_CLASSES_REMAINING.value
        assert db.query(Booking).count() == 0
        assert _quota(db, MEMBER.user_id).remaining_classes == 0

    def test_outside_booking_window(self, services, make_member, make_class):
        make_member()
        monday_class = make_class(day_of_week=NEXT_MONDAY.weekday())

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(
                MEMBER, NEXT_MONDAY, OccurrenceRef.recurring(monday_class.id)
            )

        assert exc_info.value.code == BookingErrorCode.OUTSIDE_BOOKING_WINDOW.value
        assert exc_info.value.details["window_end"] == "2025-03-09"

    def test_past_date_is_outside_window(self, services, make_member, make_class):
        make_member()
        last_week = TODAY - timedelta(days=7)
        yoga = make_class()

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(
                MEMBER, last_week, OccurrenceRef.recurring(yoga.id)
            )

        assert exc_info.value.code == BookingErrorCode.OUTSIDE_BOOKING_WINDOW.value

    def test_class_already_started_is_outside_window(self, db, services, clock, make_member, make_class):
        make_member()
        yoga = make_class(start=time(18, 0), end=time(19, 0))
        clock.set(club_time(TODAY, 18, 30))

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(
                MEMBER, TODAY, OccurrenceRef.recurring(yoga.id)
            )

        assert exc_info.value.code == BookingErrorCode.OUTSIDE_BOOKING_WINDOW.value
        assert db.query(Booking).count() == 0

    def test_cancelled_occurrence(self, services, make_member, make_one_off):
        make_member()
        disabled = make_one_off(is_enabled=False)

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(
                MEMBER, TOMORROW, OccurrenceRef.one_off(disabled.id)
            )

        assert exc_info.value.code == BookingErrorCode.OCCURRENCE_CANCELLED.value

    def test_wrong_weekday_is_not_found(self, services, make_member, make_class):
        make_member()
        yoga = make_class()

        with pytest.raises(NotFoundException):
            services.reservations.create_reservation(
                MEMBER, TOMORROW, OccurrenceRef.recurring(yoga.id)
            )

    def test_unknown_occurrence(self, services, make_member):
        make_member()
        with pytest.raises(NotFoundException):
            services.reservations.create_reservation(
                MEMBER, TODAY, OccurrenceRef.recurring("01JNBZ000000000000000NOPE0")
            )

    @pytest.mark.parametrize(
        "status,is_active",
        [
            (ApprovalStatus.PENDING, True),
            (ApprovalStatus.REJECTED, True),
            (ApprovalStatus.APPROVED, False),
        ],
    )
    def test_member_must_be_approved_and_active(
        self, services, make_member, make_class, status, is_active
    ):
        make_member(approval_status=status, is_active=is_active)
        yoga = make_class()

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(
                MEMBER, TODAY, OccurrenceRef.recurring(yoga.id)
            )

        assert exc_info.value.code == BookingErrorCode.MEMBER_NOT_APPROVED.value

    def test_member_without_profile(self, services, make_class):
        yoga = make_class()
        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(
                MEMBER, TODAY, OccurrenceRef.recurring(yoga.id)
            )
        assert exc_info.value.code == BookingErrorCode.MEMBER_NOT_APPROVED.value

    def test_staff_book_for_themselves_without_profile(self, services, make_class):
        yoga = make_class()
        result = services.reservations.create_reservation(
            TRAINER, TODAY, OccurrenceRef.recurring(yoga.id)
        )
        assert result.booking.user_id == TRAINER.user_id

    def test_staff_book_on_behalf_of_member(self, services, make_member, make_class):
        make_member()
        yoga = make_class()
        result = services.reservations.create_reservation(
            TRAINER, TODAY, OccurrenceRef.recurring(yoga.id), user_id=MEMBER.user_id
        )
        assert result.booking.user_id == MEMBER.user_id

    def test_member_cannot_book_for_someone_else(self, services, make_member, make_class):
        make_member()
        yoga = make_class()
        with pytest.raises(AuthorizationException):
            services.reservations.create_reservation(
                MEMBER, TODAY, OccurrenceRef.recurring(yoga.id), user_id=OTHER_MEMBER.user_id
            )

    def test_rebooking_after_cancellation_creates_new_row(self, db, services, make_member, make_class):
        make_member()
        ref = OccurrenceRef.recurring(make_class().id)
        first = services.reservations.create_reservation(MEMBER, TODAY, ref)
        services.reservations.cancel_reservation(MEMBER, first.booking.id)

        second = services.reservations.create_reservation(MEMBER, TODAY, ref)

        assert second.booking.id != first.booking.id
        assert db.query(Booking).filter_by(user_id=MEMBER.user_id).count() == 2
        assert _quota(db, MEMBER.user_id).remaining_classes == 11


class TestQueries:
    def test_list_user_bookings_filters_status(self, services, make_member, make_class):
        make_member()
        yoga = make_class()
        pilates = make_class(title="Pilates", start=time(19, 0), end=time(20, 0))
        kept = services.reservations.create_reservation(MEMBER, TODAY, OccurrenceRef.recurring(yoga.id))
        dropped = services.reservations.create_reservation(
            MEMBER, TODAY, OccurrenceRef.recurring(pilates.id)
        )
        services.reservations.cancel_reservation(MEMBER, dropped.booking.id)

        confirmed = services.reservations.list_user_bookings(MEMBER, status=BookingStatus.CONFIRMED)
        everything = services.reservations.list_user_bookings(MEMBER)

        assert [b.id for b in confirmed] == [kept.booking.id]
        assert len(everything) == 2

    def test_members_cannot_list_other_members(self, services):
        with pytest.raises(AuthorizationException):
            services.reservations.list_user_bookings(MEMBER, user_id=OTHER_MEMBER.user_id)

    def test_roster_is_staff_only(self, services, make_member, make_class):
        make_member()
        yoga = make_class()
        ref = OccurrenceRef.recurring(yoga.id)
        services.reservations.create_reservation(MEMBER, TODAY, ref)

        with pytest.raises(AuthorizationException):
            services.reservations.list_occurrence_roster(MEMBER, ref, TODAY)

        roster = services.reservations.list_occurrence_roster(TRAINER, ref, TODAY)
        assert [b.user_id for b in roster] == [MEMBER.user_id]
        assert roster[0].attended is None

    def test_booking_counts(self, services, make_member, make_class, make_one_off):
        make_member()
        make_member(OTHER_MEMBER.user_id)
        yoga = make_class()
        open_mat = make_one_off(occurrence_date=TOMORROW)
        services.reservations.create_reservation(MEMBER, TODAY, OccurrenceRef.recurring(yoga.id))
        services.reservations.create_reservation(
            OTHER_MEMBER, TODAY, OccurrenceRef.recurring(yoga.id)
        )
        services.reservations.create_reservation(
            MEMBER, TOMORROW, OccurrenceRef.one_off(open_mat.id)
        )

        counts = services.reservations.get_booking_counts([TODAY, TOMORROW])

        assert [(c.occurrence_id, c.date, c.count) for c in counts] == [
            (yoga.id, TODAY, 2),
            (open_mat.id, TOMORROW, 1),
        ]


def test_no_audit_for_self_service(db, services, make_member, make_class):
    make_member()
    ref = OccurrenceRef.recurring(make_class().id)
    created = services.reservations.create_reservation(MEMBER, TODAY, ref)
    services.reservations.cancel_reservation(MEMBER, created.booking.id)
    assert db.query(AuditLog).count() == 0


def test_cancelled_override_refuses_reservation(db, services, make_member, make_class):
    make_member()
    yoga = make_class()
    db.add(DateOverride(recurring_class_id=yoga.id, override_date=TODAY, is_cancelled=True))
    db.commit()

    with pytest.raises(PolicyViolationException) as exc_info:
        services.reservations.create_reservation(MEMBER, TODAY, OccurrenceRef.recurring(yoga.id))

    assert exc_info.value.code == BookingErrorCode.OCCURRENCE_CANCELLED.value


def test_last_seat_changes_hands(db, services, clock, make_member, make_class, set_quota):
    make_member()
    make_member(OTHER_MEMBER.user_id)
    set_quota(MEMBER.user_id, remaining=3)
    ref = OccurrenceRef.recurring(make_class(capacity=1, start=time(18, 0)).id)

    first = services.reservations.create_reservation(MEMBER, TODAY, ref)
    assert first.remaining_classes == 2

    with pytest.raises(PolicyViolationException) as exc_info:
        services.reservations.create_reservation(OTHER_MEMBER, TODAY, ref)
    assert exc_info.value.code == BookingErrorCode.CLASS_FULL.value

    clock.set(clock.moment.replace(hour=16))
    cancelled = services.reservations.cancel_reservation(MEMBER, first.booking.id)
    assert cancelled.remaining_classes == 3

    second = services.reservations.create_reservation(OTHER_MEMBER, TODAY, ref)
    assert second.booking.user_id == OTHER_MEMBER.user_id
    assert _quota(db, MEMBER.user_id).remaining_classes == 3
