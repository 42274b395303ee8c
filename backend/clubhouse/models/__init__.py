"""
Database models for the club booking platform.

- Schedule sources: RecurringClass, DateOverride, InstructorAssignment,
  OneOffOccurrence
- Reservations: Booking, OccurrenceLock
- Ledger: MonthlyQuota
- Membership and audit: MemberProfile, AuditLog
"""

from .audit_log import AuditLog
from .booking import Booking
from .date_override import DateOverride, InstructorAssignment
from .member import MemberProfile
from .monthly_quota import MonthlyQuota
from .occurrence_lock import OccurrenceLock
from .one_off_occurrence import OneOffOccurrence
from .recurring_class import RecurringClass

__all__ = [
    "AuditLog",
    "Booking",
    "DateOverride",
    "InstructorAssignment",
    "MemberProfile",
    "MonthlyQuota",
    "OccurrenceLock",
    "OneOffOccurrence",
    "RecurringClass",
]
