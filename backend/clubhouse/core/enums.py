# backend/clubhouse/core/enums.py
"""
Core enums for the club booking platform.

These values are persisted as plain strings so the database stays readable
and stable across releases.
"""

from enum import Enum


class RoleName(str, Enum):
    """Role claims produced by the identity provider."""

    MEMBER = "member"
    TRAINER = "trainer"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    """Booking lifecycle: confirmed -> cancelled, never back."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ApprovalStatus(str, Enum):
    """Membership approval states managed by administrators."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPELLED = "expelled"


class BookingErrorCode(str, Enum):
    """Machine-readable reasons for refused reservations and cancellations."""

    OCCURRENCE_CANCELLED = "occurrence_cancelled"
    OUTSIDE_BOOKING_WINDOW = "outside_booking_window"
    CLASS_FULL = "class_full"
    ALREADY_BOOKED = "already_booked"
    NO_CLASSES_REMAINING = "no_classes_remaining"
    WITHIN_TIME_LIMIT = "within_time_limit"
    CAPACITY_BELOW_BOOKINGS = "capacity_below_bookings"
    MEMBER_NOT_APPROVED = "member_not_approved"


class QuotaChangeReason(str, Enum):
    """Why a monthly ledger row moved; used for metrics and audit entries."""

    RESERVATION = "reservation"
    CANCELLATION = "cancellation"
    NO_SHOW_PENALTY = "no_show_penalty"
    ADMIN_ADJUSTMENT = "admin_adjustment"
    ADMIN_RESET = "admin_reset"
    FORCED_CANCELLATION = "forced_cancellation"
    MONTHLY_ROLLOVER = "monthly_rollover"
