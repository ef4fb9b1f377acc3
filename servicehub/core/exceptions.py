# servicehub/core/exceptions.py
"""
Domain-specific exceptions for the servicehub core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

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
    """Raised when input validation fails before any store access."""

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


class ForbiddenException(DomainException):
    """Raised when the acting user is not a party allowed to perform the action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class StateConflictException(ConflictException):
    """
    Raised when a booking is no longer in the state the caller expected.

    The operation was a no-op; the caller may re-fetch and retry.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        booking_id: Optional[str] = None,
        expected_status: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = dict(details or {})
        if booking_id is not None:
            merged["booking_id"] = booking_id
        if expected_status is not None:
            merged["expected_status"] = expected_status
        super().__init__(
            message=message or "The booking was changed by someone else. Refresh and try again.",
            code="STATE_CONFLICT",
            details=merged,
        )


class InsufficientFundsException(BusinessRuleException):
    """Raised when a wallet cannot cover a debit."""

    def __init__(self, required_amount: int, available_amount: int):
        super().__init__(
            message=(
                f"Insufficient wallet balance: {required_amount} required, "
                f"{available_amount} available. Please top up your wallet."
            ),
            code="INSUFFICIENT_FUNDS",
            details={
                "required_amount": required_amount,
                "available_amount": available_amount,
            },
        )


class LedgerWriteException(ServiceException):
    """
    Raised when the ledger store fails mid-settlement.

    The settlement transaction was rolled back; retrying with ``reference``
    is safe.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, reference: str, cause: Optional[str] = None):
        self.reference = reference
        super().__init__(
            message="Payment could not be completed. Please try again.",
            code="LEDGER_WRITE_FAILED",
            details={"reference": reference, "cause": cause} if cause else {"reference": reference},
        )


class NotificationException(DomainException):
    """Raised by notification dispatchers; always caught and logged by the core."""


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
