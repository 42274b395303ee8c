# backend/clubhouse/routes/v1/members.py
"""
Membership routes - API v1

Endpoints:
    POST /register - Register (or re-register) the caller as a member
    GET /me - The caller's profile
    GET / - List members, optionally by approval status (staff)
    GET /{user_id} - One member's profile (staff)
    POST /{user_id}/approve|reject|deactivate|reactivate|expel - Admin workflow
"""

import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from ...api.dependencies import get_current_actor, get_member_service, require_admin, require_staff
from ...core.enums import ApprovalStatus
from ...core.exceptions import DomainException
from ...core.identity import Actor
from ...models.member import MemberProfile
from ...schemas.member import MemberRegistration, MemberResponse, MemberStatusChange
from ...services.member_service import MemberService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["members-v1"])


def _run(action: Callable[[], MemberProfile]) -> MemberResponse:
    try:
        profile = action()
    except DomainException as e:
        handle_domain_exception(e)
    return MemberResponse.model_validate(profile)


@router.post("/register", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
def register_member(
    data: MemberRegistration = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    """Create a pending profile; administrators approve it before the member can book."""
    return _run(lambda: service.register_member(actor, data))


@router.get("/me", response_model=MemberResponse)
def get_my_profile(
    actor: Actor = Depends(get_current_actor),
    service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    return _run(lambda: service.get_member(actor))


@router.get("", response_model=List[MemberResponse])
def list_members(
    status_filter: Optional[ApprovalStatus] = Query(None, alias="status"),
    actor: Actor = Depends(require_staff),
    service: MemberService = Depends(get_member_service),
) -> List[MemberResponse]:
    try:
        rows = service.list_members(actor, status_filter)
    except DomainException as e:
        handle_domain_exception(e)
    return [MemberResponse.model_validate(row) for row in rows]


@router.get("/{user_id}", response_model=MemberResponse)
def get_member(
    user_id: str = Path(..., min_length=1, max_length=64),
    actor: Actor = Depends(require_staff),
    service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    return _run(lambda: service.get_member(actor, user_id))


@router.post("/{user_id}/approve", response_model=MemberResponse)
def approve_member(
    user_id: str = Path(..., min_length=1, max_length=64),
    actor: Actor = Depends(require_admin),
    service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    return _run(lambda: service.approve_member(actor, user_id))


@router.post("/{user_id}/reject", response_model=MemberResponse)
def reject_member(
    user_id: str = Path(..., min_length=1, max_length=64),
    data: Optional[MemberStatusChange] = Body(None),
    actor: Actor = Depends(require_admin),
    service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    return _run(lambda: service.reject_member(actor, user_id, data.reason if data else None))


@router.post("/{user_id}/deactivate", response_model=MemberResponse)
def deactivate_member(
    user_id: str = Path(..., min_length=1, max_length=64),
    data: Optional[MemberStatusChange] = Body(None),
    actor: Actor = Depends(require_admin),
    service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    return _run(lambda: service.deactivate_member(actor, user_id, data.reason if data else None))


@router.post("/{user_id}/reactivate", response_model=MemberResponse)
def reactivate_member(
    user_id: str = Path(..., min_length=1, max_length=64),
    actor: Actor = Depends(require_admin),
    service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    return _run(lambda: service.reactivate_member(actor, user_id))


@router.post("/{user_id}/expel", response_model=MemberResponse)
def expel_member(
    user_id: str = Path(..., min_length=1, max_length=64),
    data: Optional[MemberStatusChange] = Body(None),
    actor: Actor = Depends(require_admin),
    service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    """Expel a member; their upcoming reservations are cancelled and credited back."""
    return _run(lambda: service.expel_member(actor, user_id, data.reason if data else None))
