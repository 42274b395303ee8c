# backend/clubhouse/routes/v1/admin.py
"""
Schedule administration routes - API v1

Staff-only endpoints for templates, date overrides, one-off classes and
instructor assignments. All business logic delegated to
ScheduleManagementService and AdminBookingService.

Endpoints:
    GET /recurring-classes - List templates
    POST /recurring-classes - Create a template
    PATCH /recurring-classes/{class_id} - Partial edit
    POST /recurring-classes/{class_id}/toggle - Activate/deactivate
    PUT /recurring-classes/{class_id}/instructor - Standing or dated instructor
    GET /overrides - Overrides in a date range
    POST /overrides - Create or replace the override for (class, date)
    DELETE /overrides/{override_id} - Revert a date to its template
    GET /one-offs - One-off classes in a date range
    POST /one-offs - Create a one-off class
    POST /one-offs/{occurrence_id}/toggle - Enable/disable
    DELETE /one-offs/{occurrence_id} - Delete a never-booked one-off
    POST /disable-class - Cancel one occurrence and release its bookings
"""

from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Response, status

from ...api.dependencies import (
    get_admin_booking_service,
    get_schedule_management_service,
    require_staff,
)
from ...core.exceptions import DomainException
from ...core.identity import Actor
from ...schemas.schedule import (
    DateOverrideCreate,
    DateOverrideResponse,
    DisableClassRequest,
    DisableClassResponse,
    InstructorAssignmentRequest,
    InstructorAssignmentResponse,
    OneOffOccurrenceCreate,
    OneOffOccurrenceResponse,
    RecurringClassCreate,
    RecurringClassResponse,
    RecurringClassUpdate,
)
from ...services.admin_booking_service import AdminBookingService
from ...services.schedule_management_service import ScheduleManagementService
from .errors import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-schedule-v1"])


# Recurring classes


@router.get("/recurring-classes", response_model=List[RecurringClassResponse])
def list_recurring_classes(
    include_inactive: bool = Query(True),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> List[RecurringClassResponse]:
    try:
        rows = service.list_recurring_classes(include_inactive=include_inactive)
    except DomainException as e:
        handle_domain_exception(e)
    return [RecurringClassResponse.model_validate(row) for row in rows]


@router.post(
    "/recurring-classes",
    response_model=RecurringClassResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_recurring_class(
    data: RecurringClassCreate = Body(...),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> RecurringClassResponse:
    try:
        return RecurringClassResponse.model_validate(service.create_recurring_class(actor, data))
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/recurring-classes/{class_id}", response_model=RecurringClassResponse)
def update_recurring_class(
    class_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    data: RecurringClassUpdate = Body(...),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> RecurringClassResponse:
    try:
        template = service.update_recurring_class(actor, class_id, data)
    except DomainException as e:
        handle_domain_exception(e)
    return RecurringClassResponse.model_validate(template)


@router.post("/recurring-classes/{class_id}/toggle", response_model=RecurringClassResponse)
def toggle_recurring_class(
    class_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> RecurringClassResponse:
    try:
        return RecurringClassResponse.model_validate(service.toggle_recurring_class(actor, class_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/recurring-classes/{class_id}/instructor", response_model=InstructorAssignmentResponse
)
def set_instructor_assignment(
    class_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    data: InstructorAssignmentRequest = Body(...),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> InstructorAssignmentResponse:
    try:
        assignment = service.set_instructor_assignment(
            actor, class_id, data.instructor_name, data.assignment_date
        )
    except DomainException as e:
        handle_domain_exception(e)
    return InstructorAssignmentResponse.model_validate(assignment)


# Date overrides


@router.get("/overrides", response_model=List[DateOverrideResponse])
def list_date_overrides(
    start_date: date = Query(...),
    end_date: date = Query(...),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> List[DateOverrideResponse]:
    try:
        rows = service.list_date_overrides(actor, start_date, end_date)
    except DomainException as e:
        handle_domain_exception(e)
    return [DateOverrideResponse.model_validate(row) for row in rows]


@router.post(
    "/overrides",
    response_model=DateOverrideResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"description": "New capacity is below confirmed bookings"}},
)
def create_date_override(
    data: DateOverrideCreate = Body(...),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> DateOverrideResponse:
    try:
        return DateOverrideResponse.model_validate(service.create_date_override(actor, data))
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/overrides/{override_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_date_override(
    override_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> Response:
    try:
        service.delete_date_override(actor, override_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# One-off classes


@router.get("/one-offs", response_model=List[OneOffOccurrenceResponse])
def list_one_off_occurrences(
    start_date: date = Query(...),
    end_date: Optional[date] = Query(None),
    include_disabled: bool = Query(True),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> List[OneOffOccurrenceResponse]:
    try:
        rows = service.list_one_off_occurrences(
            start_date, end_date or start_date, include_disabled=include_disabled
        )
    except DomainException as e:
        handle_domain_exception(e)
    return [OneOffOccurrenceResponse.model_validate(row) for row in rows]


@router.post(
    "/one-offs",
    response_model=OneOffOccurrenceResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_one_off_occurrence(
    data: OneOffOccurrenceCreate = Body(...),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> OneOffOccurrenceResponse:
    try:
        return OneOffOccurrenceResponse.model_validate(
            service.create_one_off_occurrence(actor, data)
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/one-offs/{occurrence_id}/toggle", response_model=OneOffOccurrenceResponse)
def toggle_one_off_occurrence(
    occurrence_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> OneOffOccurrenceResponse:
    try:
        row = service.toggle_one_off_occurrence(actor, occurrence_id)
    except DomainException as e:
        handle_domain_exception(e)
    return OneOffOccurrenceResponse.model_validate(row)


@router.delete("/one-offs/{occurrence_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_one_off_occurrence(
    occurrence_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    actor: Actor = Depends(require_staff),
    service: ScheduleManagementService = Depends(get_schedule_management_service),
) -> Response:
    try:
        service.delete_one_off_occurrence(actor, occurrence_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Occurrence cancellation


@router.post("/disable-class", response_model=DisableClassResponse)
def disable_class(
    data: DisableClassRequest = Body(...),
    actor: Actor = Depends(require_staff),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> DisableClassResponse:
    """Cancel one occurrence on one date; every confirmed booking is credited back."""
    try:
        return service.disable_class(actor, data.occurrence.to_ref(), data.date, data.reason)
    except DomainException as e:
        handle_domain_exception(e)
