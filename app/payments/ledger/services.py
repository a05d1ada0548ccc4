"""
Ledger service layer.

All TransactionRecord writes go through LedgerService.record so that
duplicate deliveries are reported as an explicit outcome rather than a
database error.

Usage:
    from payments.ledger.services import LedgerService
    from payments.ledger.types import RecordTransactionParams

    outcome = LedgerService.record(RecordTransactionParams(...))
    outcome.status   # LedgerStatus.CREATED or LedgerStatus.DUPLICATE
    outcome.record   # the stored TransactionRecord
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import DatabaseError, IntegrityError, transaction

from payments.ledger.exceptions import LedgerWriteError
from payments.ledger.models import TransactionRecord
from payments.ledger.types import LedgerOutcome, LedgerStatus, RecordTransactionParams

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - Idempotency via the unique provider_txn_id (safe to retry)
    - Duplicate key reported as LedgerStatus.DUPLICATE, never raised
    - Any other storage failure raised as LedgerWriteError

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def get_by_provider_txn_id(provider_txn_id: str) -> TransactionRecord | None:
        return TransactionRecord.objects.filter(provider_txn_id=provider_txn_id).first()

    @staticmethod
    def record(params: RecordTransactionParams) -> LedgerOutcome:
        """
        Record a transaction exactly once per provider transaction id.

        Implementation:
            1. Return DUPLICATE if the id is already recorded
            2. Insert inside a savepoint
            3. On IntegrityError, re-check the id: present means a
               concurrent delivery won the race (DUPLICATE); absent means
               some other constraint failed (LedgerWriteError)

        Args:
            params: Transaction fields

        Returns:
            LedgerOutcome with status and the stored record

        Raises:
            LedgerWriteError: Storage failed for a reason other than a
                duplicate provider transaction id
        """
        existing = LedgerService.get_by_provider_txn_id(params.provider_txn_id)
        if existing is not None:
            logger.info(
                f"Transaction {params.provider_txn_id} already recorded",
                extra={"provider_txn_id": params.provider_txn_id},
            )
            return LedgerOutcome(status=LedgerStatus.DUPLICATE, record=existing)

        try:
            with transaction.atomic():
                record = TransactionRecord.objects.create(
                    provider_txn_id=params.provider_txn_id,
                    amount=Decimal(params.amount),
                    transaction_type=params.transaction_type,
                    occurred_at=params.occurred_at,
                    organization_id=params.organization_id,
                    name=(params.name or "")[:200],
                    phone_number=(params.phone_number or "")[:20],
                    bill_reference=(params.bill_reference or "")[:100],
                    invoice_number=(params.invoice_number or "")[:100],
                    org_account_balance=params.org_account_balance or Decimal("0"),
                    gateway=params.gateway,
                    source=params.source,
                    result_code=(params.result_code or "")[:20],
                    result_desc=(params.result_desc or "")[:255],
                    raw_payload=params.raw_payload or {},
                )
        except IntegrityError as exc:
            # Race: another delivery inserted the same id between our
            # check and the insert
            existing = LedgerService.get_by_provider_txn_id(params.provider_txn_id)
            if existing is not None:
                logger.info(
                    f"Transaction {params.provider_txn_id} recorded concurrently",
                    extra={"provider_txn_id": params.provider_txn_id},
                )
                return LedgerOutcome(status=LedgerStatus.DUPLICATE, record=existing)

            logger.error(
                f"Ledger constraint violation for {params.provider_txn_id}: {exc}",
                extra={"provider_txn_id": params.provider_txn_id},
            )
            raise LedgerWriteError(
                f"Failed to store transaction {params.provider_txn_id}",
                details={"provider_txn_id": params.provider_txn_id},
            ) from exc
        except DatabaseError as exc:
            logger.error(
                f"Ledger write failed for {params.provider_txn_id}: {exc}",
                extra={"provider_txn_id": params.provider_txn_id},
                exc_info=True,
            )
            raise LedgerWriteError(
                f"Failed to store transaction {params.provider_txn_id}",
                details={"provider_txn_id": params.provider_txn_id},
            ) from exc

        logger.info(
            f"Recorded transaction {record.provider_txn_id} ({record.amount})",
            extra={
                "provider_txn_id": record.provider_txn_id,
                "organization_id": str(record.organization_id),
                "gateway": record.gateway,
            },
        )
        return LedgerOutcome(status=LedgerStatus.CREATED, record=record)
