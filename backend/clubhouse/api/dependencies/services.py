# backend/clubhouse/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Services that compose
others share one session per request, so one request is one unit of work.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.timezone_utils import club_now
from ...events.publisher import EventPublisher
from ...services.admin_booking_service import AdminBookingService
from ...services.base import Clock
from ...services.member_service import MemberService
from ...services.notification_service import NotificationService
from ...services.quota_service import QuotaService
from ...services.reservation_service import ReservationService
from ...services.schedule_management_service import ScheduleManagementService
from ...services.schedule_resolver import ScheduleResolver
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_event_publisher_singleton() -> EventPublisher:
    """Process-wide publisher with notification handlers attached."""
    publisher = EventPublisher()
    NotificationService().register(publisher)
    return publisher


def get_event_publisher() -> EventPublisher:
    """Get event publisher instance for dependency injection."""
    return get_event_publisher_singleton()


def get_clock() -> Clock:
    """Club-local wall clock; overridden in tests to pin "now"."""
    return club_now


def get_schedule_resolver(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> ScheduleResolver:
    return ScheduleResolver(db, clock=clock)


def get_quota_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
) -> QuotaService:
    return QuotaService(db, publisher, clock)


def get_reservation_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
) -> ReservationService:
    """Get ReservationService with its resolver and quota ledger on the same session."""
    return ReservationService(db, publisher, clock)


def get_admin_booking_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> AdminBookingService:
    return AdminBookingService(db, publisher, clock, reservation_service)


def get_schedule_management_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
    admin_service: AdminBookingService = Depends(get_admin_booking_service),
) -> ScheduleManagementService:
    return ScheduleManagementService(db, publisher, clock, admin_service)


def get_member_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> MemberService:
    return MemberService(db, publisher, clock, reservation_service)
