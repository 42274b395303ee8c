# backend/clubhouse/routes/v1/bookings.py
"""
Reservation routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to ReservationService and AdminBookingService.

Endpoints:
    POST / - Reserve a seat
    GET / - List a member's reservations
    GET /roster - Confirmed reservations for one occurrence (staff)
    GET /{booking_id}/can-cancel - Preview the cancellation verdict
    POST /{booking_id}/cancel - Self-service cancellation
    POST /{booking_id}/force-cancel - Staff cancellation, no cutoff
    POST /{booking_id}/attendance - Record attendance (staff)
"""

from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from ...api.dependencies import (
    get_admin_booking_service,
    get_current_actor,
    get_reservation_service,
    require_staff,
)
from ...core.enums import BookingStatus
from ...core.exceptions import DomainException
from ...core.identity import Actor
from ...domain.occurrence import OccurrenceKind, OccurrenceRef
from ...schemas.booking import (
    AttendanceUpdate,
    BookingResponse,
    CancellationCheck,
    CancellationRequest,
    ForceCancellationRequest,
    ReservationConfirmation,
    ReservationCreate,
)
from ...services.admin_booking_service import AdminBookingService
from ...services.reservation_service import ReservationService
from .errors import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])


# ============================================================================
# Static routes first
# ============================================================================


@router.post(
    "",
    response_model=ReservationConfirmation,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Booking on behalf of another member without staff role"},
        404: {"description": "Occurrence not found or not scheduled that day"},
        422: {"description": "Business rule refused the reservation"},
    },
)
def create_reservation(
    data: ReservationCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationConfirmation:
    """Reserve one seat; the response carries the remaining monthly classes."""
    try:
        return service.create_reservation(
            actor, data.booking_date, data.occurrence.to_ref(), user_id=data.user_id
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[BookingResponse])
def list_reservations(
    user_id: Optional[str] = Query(None, description="Staff only: another member's bookings"),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    from_date: Optional[date] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> List[BookingResponse]:
    try:
        bookings = service.list_user_bookings(
            actor, user_id=user_id, status=status_filter, from_date=from_date
        )
    except DomainException as e:
        handle_domain_exception(e)
    return [BookingResponse.from_booking(b) for b in bookings]


@router.get("/roster", response_model=List[BookingResponse])
def get_roster(
    kind: OccurrenceKind = Query(...),
    occurrence_id: str = Query(..., pattern=ULID_PATH_PATTERN),
    booking_date: date = Query(..., alias="date"),
    actor: Actor = Depends(require_staff),
    service: ReservationService = Depends(get_reservation_service),
) -> List[BookingResponse]:
    try:
        bookings = service.list_occurrence_roster(
            actor, OccurrenceRef(kind, occurrence_id), booking_date
        )
    except DomainException as e:
        handle_domain_exception(e)
    return [BookingResponse.from_booking(b) for b in bookings]


# ============================================================================
# Dynamic routes (with path parameters - placed last)
# ============================================================================


@router.get("/{booking_id}/can-cancel", response_model=CancellationCheck)
def can_cancel_reservation(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> CancellationCheck:
    try:
        return service.can_cancel(actor, booking_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=ReservationConfirmation)
def cancel_reservation(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    data: Optional[CancellationRequest] = Body(None),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationConfirmation:
    """Cancel one of your own reservations before the cutoff."""
    try:
        return service.cancel_reservation(actor, booking_id, data.reason if data else None)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/force-cancel", response_model=ReservationConfirmation)
def force_cancel_reservation(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    data: ForceCancellationRequest = Body(...),
    actor: Actor = Depends(require_staff),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> ReservationConfirmation:
    try:
        return service.force_cancel_reservation(actor, booking_id, data.reason)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/attendance", response_model=BookingResponse)
def mark_attendance(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    data: AttendanceUpdate = Body(...),
    actor: Actor = Depends(require_staff),
    service: ReservationService = Depends(get_reservation_service),
) -> BookingResponse:
    try:
        booking = service.mark_attendance(actor, booking_id, data.attended)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.from_booking(booking)
