# backend/clubhouse/services/member_service.py
"""
Membership approval workflow.

A registration creates a pending profile. Administrators approve, reject,
deactivate, reactivate or expel members; only approved, active members may
reserve classes. Expelling a member also releases their upcoming bookings.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import ApprovalStatus, BookingStatus
from ..core.exceptions import ConflictException, NotFoundException
from ..core.identity import Actor
from ..events.publisher import EventPublisher
from ..models.audit_log import AuditLog
from ..models.member import MemberProfile
from ..repositories.factory import RepositoryFactory
from ..schemas.member import MemberRegistration
from .base import BaseService, Clock
from .reservation_service import ReservationService

logger = logging.getLogger(__name__)

_REREGISTRABLE = {ApprovalStatus.REJECTED.value, ApprovalStatus.EXPELLED.value}


def _member_snapshot(profile: MemberProfile) -> Dict[str, Any]:
    return {
        "approval_status": profile.approval_status,
        "is_active": profile.is_active,
        "previous_status": profile.previous_status,
    }


class MemberService(BaseService):
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
        self.repository = RepositoryFactory.create_member_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    def _get_profile(self, user_id: str, for_update: bool = False) -> MemberProfile:
        profile = self.repository.get_by_user_id(user_id, for_update=for_update)
        if profile is None:
            raise NotFoundException(f"Member {user_id} not found", code="member_not_found")
        return profile

    @BaseService.measure_operation("register_member")
    def register_member(self, actor: Actor, data: MemberRegistration) -> MemberProfile:
        """
        Create a pending profile for the acting user.

        A rejected or expelled member may register again: the profile returns
        to pending and remembers the status it came from.
        """
        with self.transaction():
            profile = self.repository.get_by_user_id(actor.user_id, for_update=True)
            if profile is None:
                profile = self.repository.create(
                    user_id=actor.user_id,
                    first_name=data.first_name,
                    last_name=data.last_name,
                    phone=data.phone,
                    email=data.email,
                    approval_status=ApprovalStatus.PENDING.value,
                    is_active=True,
                )
            elif profile.approval_status in _REREGISTRABLE:
                profile.previous_status = profile.approval_status
                profile.approval_status = ApprovalStatus.PENDING.value
                profile.is_reregistration = True
                profile.is_active = True
                profile.first_name = data.first_name
                profile.last_name = data.last_name
                profile.phone = data.phone
                profile.email = data.email
                self.db.flush()
            else:
                raise ConflictException(
                    "A registration already exists for this account",
                    code="already_registered",
                    details={"approval_status": profile.approval_status},
                )
        self.log_operation(
            "register_member", user_id=actor.user_id, reregistration=profile.is_reregistration
        )
        return profile

    @BaseService.measure_operation("get_member")
    def get_member(self, actor: Actor, user_id: Optional[str] = None) -> MemberProfile:
        target = user_id or actor.user_id
        if target != actor.user_id:
            actor.require_staff()
        return self.read("get_member", lambda: self._get_profile(target))

    @BaseService.measure_operation("list_members")
    def list_members(
        self, actor: Actor, status: Optional[ApprovalStatus] = None
    ) -> List[MemberProfile]:
        actor.require_staff()
        return self.read("list_members", lambda: self.repository.list_members(status))

    def approve_member(self, actor: Actor, user_id: str) -> MemberProfile:
        return self._change_status(actor, user_id, "approve", ApprovalStatus.APPROVED, True)

    def reject_member(self, actor: Actor, user_id: str, reason: Optional[str] = None) -> MemberProfile:
        return self._change_status(actor, user_id, "reject", ApprovalStatus.REJECTED, None, reason)

    def deactivate_member(
        self, actor: Actor, user_id: str, reason: Optional[str] = None
    ) -> MemberProfile:
        return self._change_status(actor, user_id, "deactivate", None, False, reason)

    def reactivate_member(self, actor: Actor, user_id: str) -> MemberProfile:
        return self._change_status(actor, user_id, "reactivate", None, True)

    def expel_member(self, actor: Actor, user_id: str, reason: Optional[str] = None) -> MemberProfile:
        return self._change_status(
            actor, user_id, "expel", ApprovalStatus.EXPELLED, False, reason, release_bookings=True
        )

    @BaseService.measure_operation("change_member_status")
    def _change_status(
        self,
        actor: Actor,
        user_id: str,
        action: str,
        status: Optional[ApprovalStatus],
        is_active: Optional[bool],
        reason: Optional[str] = None,
        release_bookings: bool = False,
    ) -> MemberProfile:
        actor.require_admin()
        with self.transaction():
            profile = self._get_profile(user_id, for_update=True)
            before = _member_snapshot(profile)
            if status is not None:
                profile.approval_status = status.value
            if is_active is not None:
                profile.is_active = is_active
            self.db.flush()

            released: List[str] = []
            if release_bookings:
                upcoming = self.booking_repository.list_for_user(
                    user_id,
                    status=BookingStatus.CONFIRMED,
                    from_date=self.now().date(),
                    for_update=True,
                )
                for booking in upcoming:
                    event, _quota = self.reservations.release_booking(
                        booking, actor, reason or "Membership ended", forced=True
                    )
                    self.emit(event)
                    released.append(booking.id)

            self.audit_repository.write(
                AuditLog.from_change(
                    "member",
                    profile.id,
                    action,
                    actor,
                    before=before,
                    after={**_member_snapshot(profile), "released_bookings": released},
                    reason=reason,
                )
            )
        self.log_operation(
            f"{action}_member", user_id=user_id, actor_id=actor.user_id, released=len(released)
        )
        return profile
