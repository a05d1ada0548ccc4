"""
Payment callback exceptions.

Raised by the callback normalizers when a provider payload cannot be
turned into a CallbackEvent, and by the ledger when a transaction record
cannot be stored.

Exception Hierarchy:
    CallbackError (base, HTTP 400)
    ├── MalformedCallback - Required envelope fields missing or unparseable
    ├── InvalidAmount - Amount absent, non-numeric or not positive
    ├── MissingPhone - Payer phone number absent on a successful payment
    └── InvalidSignature - Webhook signature missing or wrong (HTTP 401)

    LedgerWriteError - Storage failure other than a duplicate key (HTTP 500)

Everything a callback view can raise maps to exactly one HTTP status via
`status_code`. Failures that are not exceptions (unknown tenant, unknown
subscriber, voucher already resolved) are ServiceResult failures and are
acknowledged with 200.

Usage:
    from payments.exceptions import CallbackError, LedgerWriteError

    try:
        event = normalize_stk_callback(payload)
    except CallbackError as e:
        return JsonResponse({"success": False, "message": e.message}, status=e.status_code)
"""

from __future__ import annotations

from core.exceptions import ValidationError
from payments.ledger.exceptions import LedgerWriteError

__all__ = [
    "CallbackError",
    "InvalidAmount",
    "InvalidSignature",
    "LedgerWriteError",
    "MalformedCallback",
    "MissingPhone",
]


class CallbackError(ValidationError):
    """
    Base exception for provider payloads that cannot be accepted.

    No ledger write and no state change happen once this is raised.
    """

    default_error_code: str = "MALFORMED_CALLBACK"
    status_code: int = 400


class MalformedCallback(CallbackError):
    """
    Raised when required envelope fields are missing.

    Example:
        if "stkCallback" not in body.get("Body", {}):
            raise MalformedCallback("Invalid callback structure")
    """

    default_error_code: str = "MALFORMED_CALLBACK"


class InvalidAmount(CallbackError):
    """Raised when the payment amount is absent, non-numeric or <= 0."""

    default_error_code: str = "INVALID_AMOUNT"


class MissingPhone(CallbackError):
    """Raised when a successful payment carries no payer phone number."""

    default_error_code: str = "MISSING_PHONE"


class InvalidSignature(CallbackError):
    """Raised when a signed webhook fails verification."""

    default_error_code: str = "INVALID_SIGNATURE"
    status_code: int = 401

