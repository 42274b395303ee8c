# backend/clubhouse/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_actor, require_admin, require_staff
from .database import get_db
from .services import (
    get_admin_booking_service,
    get_clock,
    get_event_publisher,
    get_member_service,
    get_quota_service,
    get_reservation_service,
    get_schedule_management_service,
    get_schedule_resolver,
)

__all__ = [
    # Auth
    "get_current_actor",
    "require_staff",
    "require_admin",
    # Database
    "get_db",
    # Services
    "get_clock",
    "get_event_publisher",
    "get_schedule_resolver",
    "get_quota_service",
    "get_reservation_service",
    "get_admin_booking_service",
    "get_schedule_management_service",
    "get_member_service",
]
