# backend/clubhouse/core/exceptions.py
"""
Domain-specific exceptions for the club booking platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.

Taxonomy:
- PolicyViolationException: the request is valid but a business rule
  refuses it right now (class full, outside the window, ...).
- AuthorizationException: the acting party lacks the role or ownership.
- NotFoundException: the referenced booking/occurrence does not exist.
- TransientInfrastructureException: the persistence layer is unavailable;
  the only failure a caller may retry.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from .enums import BookingErrorCode

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when request data fails business validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class AuthorizationException(DomainException):
    """Raised when the acting party lacks the role or ownership for an action."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Not allowed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="not_allowed", details=details)


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details,
            },
        )


class TransientInfrastructureException(ServiceException):
    """Raised when the persistence layer is temporarily unavailable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Service temporarily unavailable. Please retry."):
        super().__init__(message=message, code="transient_infrastructure")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail=self.to_dict(),
            headers={"Retry-After": "2"},
        )


# Business rule violations


class PolicyViolationException(DomainException):
    """Raised when a booking policy refuses an otherwise well-formed request."""

    status_code = HTTP_422_UNPROCESSABLE

    def __init__(
        self,
        code: BookingErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code.value, details=details)
        self.error_code = code


class OccurrenceCancelledException(PolicyViolationException):
    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            BookingErrorCode.OCCURRENCE_CANCELLED,
            "This class has been cancelled for the selected date",
            details,
        )


class OutsideBookingWindowException(PolicyViolationException):
    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            BookingErrorCode.OUTSIDE_BOOKING_WINDOW,
            "This date is not open for booking yet",
            details,
        )


class ClassFullException(PolicyViolationException):
    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            BookingErrorCode.CLASS_FULL,
            "This class has reached its maximum capacity",
            details,
        )


class AlreadyBookedException(PolicyViolationException):
    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            BookingErrorCode.ALREADY_BOOKED,
            "You already have a reservation for this class",
            details,
        )


class NoClassesRemainingException(PolicyViolationException):
    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            BookingErrorCode.NO_CLASSES_REMAINING,
            "No classes remaining this month",
            details,
        )


class WithinTimeLimitException(PolicyViolationException):
    def __init__(self, cutoff_minutes: int, minutes_until_class: int):
        super().__init__(
            BookingErrorCode.WITHIN_TIME_LIMIT,
            f"Reservations can only be cancelled up to {cutoff_minutes} minutes before the class starts",
            {"cutoff_minutes": cutoff_minutes, "minutes_until_class": minutes_until_class},
        )


class CapacityBelowBookingsException(PolicyViolationException):
    def __init__(self, requested_capacity: int, confirmed_bookings: int):
        super().__init__(
            BookingErrorCode.CAPACITY_BELOW_BOOKINGS,
            (
                f"Capacity {requested_capacity} is below the {confirmed_bookings} "
                "confirmed bookings for this date"
            ),
            {"requested_capacity": requested_capacity, "confirmed_bookings": confirmed_bookings},
        )


class MemberNotApprovedException(PolicyViolationException):
    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            BookingErrorCode.MEMBER_NOT_APPROVED,
            "Your membership is not active; reservations are not available",
            details,
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
