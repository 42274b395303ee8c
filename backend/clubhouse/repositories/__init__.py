# backend/clubhouse/repositories/__init__.py
"""
Repository layer for the club booking platform.

Repositories encapsulate data access; services own the transactions.
"""

from .audit_repository import AuditRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .date_override_repository import DateOverrideRepository, InstructorAssignmentRepository
from .factory import RepositoryFactory
from .member_repository import MemberRepository
from .monthly_quota_repository import MonthlyQuotaRepository
from .occurrence_lock_repository import OccurrenceLockRepository
from .one_off_occurrence_repository import OneOffOccurrenceRepository
from .recurring_class_repository import RecurringClassRepository

__all__ = [
    "AuditRepository",
    "BaseRepository",
    "BookingRepository",
    "DateOverrideRepository",
    "InstructorAssignmentRepository",
    "MemberRepository",
    "MonthlyQuotaRepository",
    "OccurrenceLockRepository",
    "OneOffOccurrenceRepository",
    "RecurringClassRepository",
    "RepositoryFactory",
]
