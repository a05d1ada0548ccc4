"""
Tests for LedgerService.

Tests cover:
- First delivery creates a record
- Retried delivery reports DUPLICATE and leaves the record unchanged
- Storage failures surface as LedgerWriteError
- Param validation
"""

from dataclasses import replace
from decimal import Decimal

import pytest
from django.db import DatabaseError, IntegrityError
from django.utils import timezone

from payments.ledger.exceptions import LedgerWriteError
from payments.ledger.models import TransactionRecord
from payments.ledger.services import LedgerService
from payments.ledger.types import LedgerStatus, RecordTransactionParams


class TestRecord:
    """Tests for LedgerService.record()."""

    def test_creates_record(self, record_params):
        outcome = LedgerService.record(record_params)

        assert outcome.status is LedgerStatus.CREATED
        assert outcome.created
        record = TransactionRecord.objects.get(provider_txn_id="QK12ABC34D")
        assert record.amount == Decimal("500.00")
        assert record.bill_reference == "jdoe"
        assert record.raw_payload == {"TransID": "QK12ABC34D"}

    def test_long_text_fields_truncated_to_columns(self, record_params):
        params = replace(
            record_params,
            phone_number="+254 712 345 678 ext 9001",
            bill_reference="b" * 150,
            invoice_number="i" * 150,
            result_code="9" * 30,
        )

        LedgerService.record(params)

        record = TransactionRecord.objects.get()
        assert record.phone_number == "+254 712 345 678 ext"
        assert record.bill_reference == "b" * 100
        assert record.invoice_number == "i" * 100
        assert record.result_code == "9" * 20

    def test_duplicate_returns_existing(self, record_params):
        first = LedgerService.record(record_params)

        second = LedgerService.record(replace(record_params, amount=Decimal("900")))

        assert second.status is LedgerStatus.DUPLICATE
        assert second.record.pk == first.record.pk
        assert TransactionRecord.objects.count() == 1
        assert TransactionRecord.objects.get().amount == Decimal("500.00")

    def test_concurrent_insert_reported_as_duplicate(self, record_params, mocker):
        """The pre-check misses, the insert hits the unique key."""
        LedgerService.record(record_params)
        existing = TransactionRecord.objects.get()
        mocker.patch.object(
            LedgerService,
            "get_by_provider_txn_id",
            side_effect=[None, existing],
        )

        outcome = LedgerService.record(record_params)

        assert outcome.status is LedgerStatus.DUPLICATE
        assert outcome.record == existing

    def test_other_integrity_error_raises(self, record_params, mocker):
        mocker.patch.object(
            TransactionRecord.objects,
            "create",
            side_effect=IntegrityError("NOT NULL constraint failed"),
        )

        with pytest.raises(LedgerWriteError) as exc_info:
            LedgerService.record(record_params)

        assert exc_info.value.status_code == 500
        assert exc_info.value.error_code == "LEDGER_WRITE_FAILED"

    def test_database_error_raises(self, record_params, mocker):
        mocker.patch.object(
            TransactionRecord.objects,
            "create",
            side_effect=DatabaseError("connection lost"),
        )

        with pytest.raises(LedgerWriteError):
            LedgerService.record(record_params)


class TestRecordTransactionParams:
    def test_requires_provider_txn_id(self, organization):
        with pytest.raises(ValueError):
            RecordTransactionParams(
                provider_txn_id="",
                amount=Decimal("1"),
                organization_id=organization.id,
                occurred_at=timezone.now(),
            )

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_requires_positive_amount(self, organization, amount):
        with pytest.raises(ValueError):
            RecordTransactionParams(
                provider_txn_id="QK1",
                amount=amount,
                organization_id=organization.id,
                occurred_at=timezone.now(),
            )
