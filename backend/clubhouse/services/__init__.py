# backend/clubhouse/services/__init__.py
"""
Service layer for the club booking platform.

Services own business rules and transaction boundaries; repositories only
read and write rows.
"""

from .admin_booking_service import AdminBookingService
from .base import BaseService
from .member_service import MemberService
from .notification_service import NotificationService
from .quota_service import QuotaService
from .reservation_service import ReservationService
from .schedule_management_service import ScheduleManagementService
from .schedule_resolver import ScheduleResolver

__all__ = [
    "AdminBookingService",
    "BaseService",
    "MemberService",
    "NotificationService",
    "QuotaService",
    "ReservationService",
    "ScheduleManagementService",
    "ScheduleResolver",
]
