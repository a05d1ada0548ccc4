"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps
(tenants, subscribers, vouchers, payments, notifications).

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling
    - ErrorKind: Failure classification (NOT_FOUND, INVALID_INPUT, CONFLICT, FATAL)

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - ExternalServiceError: Third-party service failures

Helpers (import from core.helpers):
    - generate_token: Cryptographically secure token generation
    - get_client_ip: Client IP extraction from request

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .services import BaseService, ErrorKind, ServiceResult

from .exceptions import (
    BaseApplicationError,
    ExternalServiceError,
    ValidationError,
)

from .helpers import generate_token, get_client_ip

__all__ = [
    # Services
    "BaseService",
    "ErrorKind",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "ExternalServiceError",
    # Helpers
    "generate_token",
    "get_client_ip",
]
