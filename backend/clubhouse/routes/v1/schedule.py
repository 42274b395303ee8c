# backend/clubhouse/routes/v1/schedule.py
"""
Schedule routes - API v1

Read-only calendar views for members and staff.

Endpoints:
    GET / - Resolved occurrences for a date range, with seat counts
    GET /counts - Confirmed bookings per occurrence for a list of dates
"""

from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import (
    get_current_actor,
    get_reservation_service,
    get_schedule_resolver,
)
from ...core.exceptions import DomainException
from ...core.identity import Actor
from ...schemas.booking import BookingCountsResponse
from ...schemas.schedule import OccurrenceResponse, ScheduleResponse
from ...services.reservation_service import ReservationService
from ...services.schedule_resolver import ScheduleResolver
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedule-v1"])


@router.get("", response_model=ScheduleResponse)
def get_schedule(
    start_date: date = Query(..., description="First day (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Last day; defaults to start_date"),
    actor: Actor = Depends(get_current_actor),
    resolver: ScheduleResolver = Depends(get_schedule_resolver),
) -> ScheduleResponse:
    """Bookable occurrences in the range, each with its confirmed-seat count."""
    last_day = end_date or start_date
    try:
        rows = resolver.resolve_range_with_bookings(start_date, last_day)
    except DomainException as e:
        handle_domain_exception(e)
    return ScheduleResponse(
        start_date=start_date,
        end_date=last_day,
        occurrences=[OccurrenceResponse.from_availability(row) for row in rows],
    )


@router.get("/counts", response_model=BookingCountsResponse)
def get_booking_counts(
    dates: List[date] = Query(..., description="Dates to count (repeat the parameter)"),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
) -> BookingCountsResponse:
    try:
        return BookingCountsResponse(counts=service.get_booking_counts(dates))
    except DomainException as e:
        handle_domain_exception(e)
