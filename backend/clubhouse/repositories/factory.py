# backend/clubhouse/repositories/factory.py
"""
Repository Factory for the club booking platform.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .audit_repository import AuditRepository
    from .booking_repository import BookingRepository
    from .date_override_repository import DateOverrideRepository, InstructorAssignmentRepository
    from .member_repository import MemberRepository
    from .monthly_quota_repository import MonthlyQuotaRepository
    from .occurrence_lock_repository import OccurrenceLockRepository
    from .one_off_occurrence_repository import OneOffOccurrenceRepository
    from .recurring_class_repository import RecurringClassRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_recurring_class_repository(db: Session) -> "RecurringClassRepository":
        from .recurring_class_repository import RecurringClassRepository

        return RecurringClassRepository(db)

    @staticmethod
    def create_date_override_repository(db: Session) -> "DateOverrideRepository":
        from .date_override_repository import DateOverrideRepository

        return DateOverrideRepository(db)

    @staticmethod
    def create_instructor_assignment_repository(db: Session) -> "InstructorAssignmentRepository":
        from .date_override_repository import InstructorAssignmentRepository

        return InstructorAssignmentRepository(db)

    @staticmethod
    def create_one_off_occurrence_repository(db: Session) -> "OneOffOccurrenceRepository":
        from .one_off_occurrence_repository import OneOffOccurrenceRepository

        return OneOffOccurrenceRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_monthly_quota_repository(db: Session) -> "MonthlyQuotaRepository":
        """Create repository for the monthly quota ledger."""
        from .monthly_quota_repository import MonthlyQuotaRepository

        return MonthlyQuotaRepository(db)

    @staticmethod
    def create_occurrence_lock_repository(db: Session) -> "OccurrenceLockRepository":
        from .occurrence_lock_repository import OccurrenceLockRepository

        return OccurrenceLockRepository(db)

    @staticmethod
    def create_member_repository(db: Session) -> "MemberRepository":
        from .member_repository import MemberRepository

        return MemberRepository(db)

    @staticmethod
    def create_audit_repository(db: Session) -> "AuditRepository":
        from .audit_repository import AuditRepository

        return AuditRepository(db)
