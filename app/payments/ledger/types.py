"""
Data types for ledger operations.

Types:
    RecordTransactionParams: Everything needed to write one TransactionRecord
    LedgerStatus: Whether a write created a row or hit an existing one
    LedgerOutcome: Result of LedgerService.record

Usage:
    from payments.ledger.types import LedgerStatus, RecordTransactionParams

    outcome = LedgerService.record(RecordTransactionParams(
        provider_txn_id="QK12ABC34D",
        amount=Decimal("500.00"),
        organization_id=organization.id,
        occurred_at=timezone.now(),
        bill_reference="jdoe",
    ))
    if outcome.status is LedgerStatus.DUPLICATE:
        # retried delivery - effects were already applied
        ...
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from payments.ledger.models import TransactionRecord


class LedgerStatus(str, enum.Enum):
    """Outcome of a ledger write."""

    CREATED = "created"
    DUPLICATE = "duplicate"


@dataclass
class RecordTransactionParams:
    """
    Parameters for recording a transaction.

    Required Attributes:
        provider_txn_id: Provider receipt / transaction id (unique key)
        amount: Positive amount paid
        organization_id: Tenant the money is attributed to
        occurred_at: Provider timestamp

    Optional Attributes:
        transaction_type, gateway, source: TextChoices values
        name, phone_number, bill_reference, invoice_number: Counterparty
            and correlation details
        org_account_balance: Informational balance from the provider
        result_code, result_desc: Provider outcome
        raw_payload: Original callback body
    """

    # Required fields
    provider_txn_id: str
    amount: Decimal
    organization_id: uuid.UUID
    occurred_at: datetime

    # Optional fields
    transaction_type: str = "paybill"
    gateway: str = "mpesa"
    source: str = "other"
    name: str = ""
    phone_number: str = ""
    bill_reference: str = ""
    invoice_number: str = ""
    org_account_balance: Decimal = Decimal("0")
    result_code: str = "0"
    result_desc: str = ""
    raw_payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate params after initialization."""
        if not self.provider_txn_id:
            raise ValueError("provider_txn_id is required")
        if self.amount is None or Decimal(self.amount) <= 0:
            raise ValueError("amount must be positive")


@dataclass
class LedgerOutcome:
    """
    Result of a ledger write.

    Attributes:
        status: CREATED for a new row, DUPLICATE when the provider
            transaction id was already recorded
        record: The stored TransactionRecord (new or existing)
    """

    status: LedgerStatus
    record: TransactionRecord

    @property
    def created(self) -> bool:
        return self.status is LedgerStatus.CREATED
