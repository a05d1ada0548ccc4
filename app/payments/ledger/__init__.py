"""
Ledger - append-only record of provider payment notifications.

Every classified callback outcome is written here exactly once per
provider transaction id, independent of the effects the callback had on
vouchers and subscribers.

Public API:
    Models:
        TransactionRecord - One provider transaction
        TransactionSource - Access type the payment was for

    Service:
        LedgerService - record() with explicit duplicate outcome

    Types:
        RecordTransactionParams - Fields for a new record
        LedgerOutcome / LedgerStatus - Result of a write

    Exceptions:
        LedgerError - Base exception for ledger operations
        LedgerWriteError - Non-duplicate storage failure
        ImmutableRecordError - Update or delete of a stored record

Usage:
    from payments.ledger import LedgerService, LedgerStatus, RecordTransactionParams

    outcome = LedgerService.record(RecordTransactionParams(
        provider_txn_id="QK12ABC34D",
        amount=Decimal("500"),
        organization_id=organization.id,
        occurred_at=timezone.now(),
    ))
    if outcome.status is LedgerStatus.DUPLICATE:
        logger.info("Retried delivery")
"""

from .exceptions import ImmutableRecordError, LedgerError, LedgerWriteError
from .models import TransactionRecord, TransactionSource
from .services import LedgerService
from .types import LedgerOutcome, LedgerStatus, RecordTransactionParams

__all__ = [
    # Models
    "TransactionRecord",
    "TransactionSource",
    # Service
    "LedgerService",
    # Types
    "LedgerOutcome",
    "LedgerStatus",
    "RecordTransactionParams",
    # Exceptions
    "LedgerError",
    "LedgerWriteError",
    "ImmutableRecordError",
]
