"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ErrorKind: Coarse failure classification shared by every service
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (unknown tenant, subscriber
      not found, voucher already resolved)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Only ErrorKind.FATAL is allowed to surface as an HTTP error from a
callback endpoint. Every other kind is logged and acknowledged.

Usage:
    from core.services import BaseService, ErrorKind, ServiceResult

    class SubscriberService(BaseService):
        @classmethod
        def find(cls, username: str) -> ServiceResult[Subscriber]:
            subscriber = Subscriber.objects.filter(pppoe_username=username).first()
            if subscriber is None:
                return ServiceResult.failure(
                    f"No subscriber with username {username}",
                    error_code="SUBSCRIBER_NOT_FOUND",
                    kind=ErrorKind.NOT_FOUND,
                )
            return ServiceResult.success(subscriber)

Related:
    - core.exceptions: For unexpected/exceptional errors
"""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """
    Failure classification carried by ServiceResult.

    NOT_FOUND: The referenced tenant/entity does not exist
    INVALID_INPUT: The caller supplied unusable data
    CONFLICT: The entity is not in a state that allows the operation
    FATAL: Unexpected error (storage failure or a bug) that must be logged loudly
    """

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    FATAL = "fatal"


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for logs and responses
        kind: Coarse classification of the failure

    Usage:
        result = AccountResolver.resolve(GatewayProvider.MPESA, "600100")
        if result.success:
            config = result.data
        elif result.kind is ErrorKind.NOT_FOUND:
            logger.warning(result.error)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        kind: ErrorKind = ErrorKind.INVALID_INPUT,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code
            kind: Failure classification (defaults to INVALID_INPUT)

        Returns:
            ServiceResult with success=False and error details

        Example:
            return ServiceResult.failure(
                "Package configuration is incomplete",
                error_code="INCOMPLETE_CONFIGURATION",
                kind=ErrorKind.INVALID_INPUT,
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            kind=kind,
        )

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        error_code: str | None = None,
        kind: ErrorKind = ErrorKind.FATAL,
    ) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Args:
            exc: The caught exception
            error_code: Optional error code (defaults to the exception's
                error_code attribute, then its class name)
            kind: Failure classification (defaults to FATAL)

        Returns:
            ServiceResult with error details from exception
        """
        code = error_code or getattr(exc, "error_code", None)
        return cls(
            success=False,
            error=getattr(exc, "message", None) or str(exc),
            error_code=code or exc.__class__.__name__.upper(),
            kind=kind,
        )

    @property
    def is_fatal(self) -> bool:
        """True when the failure came from an unexpected error rather than a business rule."""
        return not self.success and self.kind is ErrorKind.FATAL

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "message": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        return response

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        kind: ErrorKind = ErrorKind.FATAL,
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Args:
            exc: The caught exception
            context: Additional context for logging
            kind: Failure classification for the returned result
            log_level: Logging level (default ERROR)

        Returns:
            ServiceResult with error details
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=True)
        return ServiceResult.from_exception(exc, kind=kind)
