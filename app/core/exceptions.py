"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the application
- Machine-readable error codes for logs and provider acknowledgements
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    └── ExternalServiceError - Third-party service failures (SMS gateways)

Usage:
    from core.exceptions import ValidationError

    raise ValidationError(
        "Invalid transaction amount",
        error_code="INVALID_AMOUNT",
        details={"amount": raw_amount},
    )

    try:
        ...
    except BaseApplicationError as e:
        return JsonResponse({"success": False, "message": e.message}, status=400)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code
        details: Additional error context (field values, identifiers, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Missing required fields in an inbound payload
    - Values that cannot be parsed (amounts, phone numbers)
    """

    default_error_code: str = "VALIDATION_ERROR"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - SMS gateway failures and unexpected responses
    - Network timeouts

    Note:
        Log the original error for debugging but don't expose
        internal details to providers or clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
