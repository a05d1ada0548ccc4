"""
Ledger-specific exceptions.

Exception Hierarchy:
    LedgerError (base)
    ├── LedgerWriteError - A record could not be stored (not a duplicate)
    └── ImmutableRecordError - Attempt to modify or delete a stored record

A duplicate provider transaction id is not an exception: the ledger
reports it as LedgerStatus.DUPLICATE so the callback can acknowledge a
retried delivery without repeating its effects.

Usage:
    from payments.ledger.exceptions import LedgerWriteError

    try:
        outcome = LedgerService.record(params)
    except LedgerWriteError as e:
        logger.error(f"Ledger write failed: {e}")
        return JsonResponse({"success": False, "message": e.message}, status=500)
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


class LedgerError(BaseApplicationError):
    """Base exception for all ledger operations."""

    default_error_code: str = "LEDGER_ERROR"


class LedgerWriteError(LedgerError):
    """
    Raised when a TransactionRecord cannot be stored.

    Covers every storage failure other than a duplicate provider
    transaction id: other constraint violations, connection loss,
    timeouts. Callback endpoints answer 500 so the provider retries.
    """

    default_error_code: str = "LEDGER_WRITE_FAILED"
    status_code: int = 500


class ImmutableRecordError(LedgerError):
    """
    Raised on save() of an existing record or on delete().

    Transaction records are append-only; corrections belong in a new
    record or in the derived entity, never in the ledger row.
    """

    default_error_code: str = "IMMUTABLE_RECORD"
