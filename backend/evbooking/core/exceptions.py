# backend/evbooking/core/exceptions.py
"""
Domain-specific exceptions for the EV booking service.

These exceptions carry a stable machine-readable ``code`` and a ``details``
mapping so every failure reaches the caller as a typed result. The API layer
converts them with ``to_http_exception``.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from .enums import InadmissibleReason, QrFailure

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

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when request validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class ServiceBusyException(ServiceException):
    """Raised when a serializing lock could not be obtained in time."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={"message": self.message, "code": self.code, "details": self.details},
            headers={"Retry-After": "2"},
        )


class ConfigurationError(DomainException):
    """Raised for invalid deployment configuration such as an unknown zone id."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="CONFIGURATION_ERROR", details=details)


# Specific business exceptions


class InadmissibleBookingException(BusinessRuleException):
    """Raised when a requested booking window fails an admission guard."""

    def __init__(self, reason: InadmissibleReason, message: Optional[str] = None):
        self.reason = reason
        if reason in (InadmissibleReason.FULL, InadmissibleReason.OWNER_OVERLAP):
            self.status_code = status.HTTP_409_CONFLICT
        super().__init__(
            message=message or _INADMISSIBLE_MESSAGES[reason],
            code="INADMISSIBLE_BOOKING",
            details={"reason": reason.value},
        )


_INADMISSIBLE_MESSAGES: Dict[InadmissibleReason, str] = {
    InadmissibleReason.INVALID_WINDOW: "Booking end must be after its start",
    InadmissibleReason.PAST_START: "Cannot book past or started slots",
    InadmissibleReason.HORIZON_EXCEEDED: "Bookings are only allowed within the booking horizon",
    InadmissibleReason.NO_SCHEDULE: "No schedule for the selected date",
    InadmissibleReason.OUTSIDE_SCHEDULE: "Slot is outside the station schedule",
    InadmissibleReason.FULL: "Slot is full. Choose another slot",
    InadmissibleReason.OWNER_OVERLAP: "You already have a booking that overlaps this slot",
}


class TooLateToModifyException(BusinessRuleException):
    """Raised when an update/cancel arrives inside the modification cutoff."""

    def __init__(self, required_hours: int, provided_hours: float):
        super().__init__(
            message=f"Update/cancel requires at least {required_hours} hours before start",
            code="TOO_LATE_TO_MODIFY",
            details={
                "required_hours": required_hours,
                "provided_hours": round(provided_hours, 2),
            },
        )


class BadScheduleException(BusinessRuleException):
    """Raised when a station schedule has an empty, inverted or out-of-range window."""

    def __init__(self, open_minutes: int, close_minutes: int):
        super().__init__(
            message=f"Invalid schedule window {open_minutes}-{close_minutes}",
            code="BAD_SCHEDULE",
            details={"open_minutes": open_minutes, "close_minutes": close_minutes},
        )


class InvalidTransitionException(ConflictException):
    """Raised when a booking status change is not allowed from its current state."""

    def __init__(self, current: str, target: str):
        super().__init__(
            message=f"Cannot move booking from {current} to {target}",
            code="INVALID_TRANSITION",
            details={"current": current, "target": target},
        )


class CapacityRaceException(ConflictException):
    """Raised when a committed booking lost a concurrent race for the last slot."""

    def __init__(self, booking_id: str):
        super().__init__(
            message="Slot filled concurrently; booking was rejected",
            code="CAPACITY_RACE",
            details={"booking_id": booking_id},
        )


class QrValidationException(UnauthorizedException):
    """Raised when a presented QR token fails validation."""

    def __init__(self, failure: QrFailure, message: str):
        self.failure = failure
        super().__init__(
            message=message,
            code="QR_INVALID",
            details={"failure": failure.value},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
