import pytest

from clubhouse.core.enums import ApprovalStatus, BookingErrorCode, BookingStatus
from clubhouse.core.exceptions import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    PolicyViolationException,
)
from clubhouse.domain.occurrence import OccurrenceRef
from clubhouse.models import AuditLog, Booking, MonthlyQuota
from clubhouse.schemas.member import MemberRegistration
from tests.support import ADMIN, MEMBER, OTHER_MEMBER, TODAY, TRAINER

REGISTRATION = MemberRegistration(
    first_name=" Lucia ", last_name="Garcia", phone="+34600111222", email="lucia@example.com"
)


class TestRegistration:
    def test_register_creates_pending_profile(self, services):
        profile = services.members.register_member(MEMBER, REGISTRATION)

        assert profile.approval_status == ApprovalStatus.PENDING.value
        assert profile.first_name == "Lucia"
        assert profile.is_reregistration is False
        assert profile.can_book is False

    def test_second_registration_conflicts(self, services):
        services.members.register_member(MEMBER, REGISTRATION)
        with pytest.raises(ConflictException) as exc_info:
            services.members.register_member(MEMBER, REGISTRATION)
        assert exc_info.value.code == "already_registered"

    @pytest.mark.parametrize("status", [ApprovalStatus.REJECTED, ApprovalStatus.EXPELLED])
    def test_reregistration_after_rejection_or_expulsion(self, services, make_member, status):
        make_member(approval_status=status, is_active=False)

        profile = services.members.register_member(MEMBER, REGISTRATION)

        assert profile.approval_status == ApprovalStatus.PENDING.value
        assert profile.previous_status == status.value
        assert profile.is_reregistration is True
        assert profile.is_active is True


class TestApprovalWorkflow:
    def test_approval_enables_booking(self, services, make_class):
        yoga = make_class()
        services.members.register_member(MEMBER, REGISTRATION)
        ref = OccurrenceRef.recurring(yoga.id)

        with pytest.raises(PolicyViolationException) as exc_info:
            services.reservations.create_reservation(MEMBER, TODAY, ref)
        assert exc_info.value.code == BookingErrorCode.MEMBER_NOT_APPROVED.value

        services.members.approve_member(ADMIN, MEMBER.user_id)

        confirmation = services.reservations.create_reservation(MEMBER, TODAY, ref)
        assert confirmation.remaining_classes == 11

    def test_deactivation_blocks_booking_until_reactivated(self, services, make_member, make_class):
        make_member()
        ref = OccurrenceRef.recurring(make_class().id)

        profile = services.members.deactivate_member(ADMIN, MEMBER.user_id, "Unpaid fees")
        assert profile.is_active is False
        assert profile.approval_status == ApprovalStatus.APPROVED.value
        with pytest.raises(PolicyViolationException):
            services.reservations.create_reservation(MEMBER, TODAY, ref)

        services.members.reactivate_member(ADMIN, MEMBER.user_id)
        services.reservations.create_reservation(MEMBER, TODAY, ref)

    def test_reject_records_reason(self, db, services):
        services.members.register_member(MEMBER, REGISTRATION)

        services.members.reject_member(ADMIN, MEMBER.user_id, "Incomplete details")

        entry = db.query(AuditLog).filter_by(entity_type="member", action="reject").one()
        assert entry.reason == "Incomplete details"
        assert entry.before["approval_status"] == ApprovalStatus.PENDING.value
        assert entry.after["approval_status"] == ApprovalStatus.REJECTED.value

    def test_expel_releases_upcoming_bookings(self, db, services, make_member, make_class, published):
        make_member()
        make_member(OTHER_MEMBER.user_id)
        ref = OccurrenceRef.recurring(make_class().id)
        services.reservations.create_reservation(MEMBER, TODAY, ref)
        services.reservations.create_reservation(OTHER_MEMBER, TODAY, ref)

        profile = services.members.expel_member(ADMIN, MEMBER.user_id, "Code of conduct")

        assert profile.approval_status == ApprovalStatus.EXPELLED.value
        assert profile.is_active is False
        db.expire_all()
        statuses = {b.user_id: b.status for b in db.query(Booking)}
        assert statuses == {
            MEMBER.user_id: BookingStatus.CANCELLED.value,
            OTHER_MEMBER.user_id: BookingStatus.CONFIRMED.value,
        }
        quota = db.query(MonthlyQuota).filter_by(user_id=MEMBER.user_id).one()
        assert quota.remaining_classes == 12
        cancelled = [p for name, p in published if name == "ReservationCancelled"]
        assert [(p["user_id"], p["forced"]) for p in cancelled] == [(MEMBER.user_id, True)]

    def test_unknown_member(self, services):
        with pytest.raises(NotFoundException):
            services.members.approve_member(ADMIN, "ghost")


class TestAccess:
    def test_trainers_cannot_change_status(self, services, make_member):
        make_member(approval_status=ApprovalStatus.PENDING)
        with pytest.raises(AuthorizationException):
            services.members.approve_member(TRAINER, MEMBER.user_id)

    def test_members_read_only_themselves(self, services, make_member):
        make_member()
        make_member(OTHER_MEMBER.user_id)

        assert services.members.get_member(MEMBER).user_id == MEMBER.user_id
        with pytest.raises(AuthorizationException):
            services.members.get_member(MEMBER, OTHER_MEMBER.user_id)
        assert services.members.get_member(TRAINER, OTHER_MEMBER.user_id).user_id == OTHER_MEMBER.user_id

    def test_list_filters_by_status(self, services, make_member):
        make_member()
        make_member(OTHER_MEMBER.user_id, approval_status=ApprovalStatus.PENDING)

        pending = services.members.list_members(TRAINER, ApprovalStatus.PENDING)

        assert [p.user_id for p in pending] == [OTHER_MEMBER.user_id]
        assert len(services.members.list_members(TRAINER)) == 2
        with pytest.raises(AuthorizationException):
            services.members.list_members(MEMBER)
