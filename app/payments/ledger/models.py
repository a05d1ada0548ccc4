"""
Ledger model for provider payment notifications.

TransactionRecord is the append-only audit ledger: one row per provider
transaction id, written for every classified callback outcome (success
or failure) and independent of whatever the callback did to vouchers or
subscribers. Derived effects can always be reconciled from it manually.

Invariants:
    - provider_txn_id is unique (the only deduplication primitive)
    - amount is positive
    - rows are never updated or deleted

Usage:
    from payments.ledger.models import TransactionRecord, TransactionSource

    TransactionRecord.objects.filter(
        organization=organization,
        source=TransactionSource.HOTSPOT,
    ).order_by("-occurred_at")
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from payments.ledger.exceptions import ImmutableRecordError
from tenants.models import GatewayProvider, TransactionType


class TransactionSource(models.TextChoices):
    """
    Access type the payment was for, when known.

    Values:
        PPPOE: Subscriber on a PPPoE package
        HOTSPOT: Hotspot subscriber or prepaid voucher
        OTHER: Could not be attributed to an access type
    """

    PPPOE = "pppoe", "PPPoE"
    HOTSPOT = "hotspot", "Hotspot"
    OTHER = "other", "Other"


class TransactionRecordQuerySet(models.QuerySet):
    """QuerySet that refuses bulk mutation of ledger rows."""

    def update(self, **kwargs):
        raise ImmutableRecordError("Transaction records cannot be updated")

    def delete(self):
        raise ImmutableRecordError("Transaction records cannot be deleted")


class TransactionRecord(UUIDPrimaryKeyMixin, models.Model):
    """
    A payment notification as reported by the provider.

    Fields:
        provider_txn_id: Receipt / transaction id from the provider (unique)
        amount: Amount paid (positive)
        transaction_type: Paybill or buy goods
        occurred_at: Provider timestamp (ingestion time if unparseable)
        organization: Tenant the money belongs to
        name / phone_number: Counterparty as reported by the provider
        bill_reference: Account reference used for correlation
        invoice_number: Provider invoice / receipt reference
        org_account_balance: Balance reported by the provider (informational)
        gateway: M-Pesa or Kopo Kopo
        source: Access type, when known
        result_code / result_desc: Provider outcome (0 = success for M-Pesa)
        raw_payload: Original callback body for audit
    """

    provider_txn_id = models.CharField(
        max_length=100,
        unique=True,
        help_text="Provider transaction id - unique constraint for idempotency",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount paid",
    )

    transaction_type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        default=TransactionType.PAYBILL,
    )

    occurred_at = models.DateTimeField(
        db_index=True,
        help_text="When the provider says the payment happened",
    )

    organization = models.ForeignKey(
        "tenants.Organization",
        on_delete=models.PROTECT,
        related_name="transactions",
    )

    name = models.CharField(max_length=200, blank=True, default="")
    phone_number = models.CharField(max_length=20, blank=True, default="")

    bill_reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        help_text="Account reference (username, voucher code or charge id)",
    )

    invoice_number = models.CharField(max_length=100, blank=True, default="")

    org_account_balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        help_text="Merchant balance reported by the provider (informational)",
    )

    gateway = models.CharField(
        max_length=20,
        choices=GatewayProvider.choices,
        default=GatewayProvider.MPESA,
        db_index=True,
    )

    source = models.CharField(
        max_length=10,
        choices=TransactionSource.choices,
        default=TransactionSource.OTHER,
    )

    result_code = models.CharField(max_length=20, blank=True, default="0")
    result_desc = models.CharField(max_length=255, blank=True, default="")

    raw_payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Callback body as received",
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When the record was written",
    )

    objects = TransactionRecordQuerySet.as_manager()

    class Meta:
        ordering = ["-occurred_at"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(fields=["organization", "-occurred_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="transaction_record_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"TransactionRecord({self.provider_txn_id}, {self.amount})"

    @property
    def is_success(self) -> bool:
        return self.result_code == "0"

    def save(self, *args, **kwargs):
        """Insert only; an existing record is never rewritten."""
        if not self._state.adding:
            raise ImmutableRecordError(
                f"Transaction {self.provider_txn_id} is immutable",
                details={"provider_txn_id": self.provider_txn_id},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(
            f"Transaction {self.provider_txn_id} cannot be deleted",
            details={"provider_txn_id": self.provider_txn_id},
        )
