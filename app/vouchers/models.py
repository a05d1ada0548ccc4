"""
Prepaid voucher model.

Usage:
    from vouchers.models import PrepaidVoucher, VoucherStatus

    voucher = PrepaidVoucher.objects.create(
        organization=organization,
        package=package,
        phone_number="254712345678",
        payment_reference=checkout_request_id,
        expires_at=timezone.now() + timedelta(hours=1),
    )

    # State transitions using django-fsm
    voucher.activate(receipt_number="QK12ABC34D")  # pending -> active
    voucher.save()
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

VOUCHER_CODE_ALPHABET = string.ascii_uppercase + string.digits
VOUCHER_CODE_LENGTH = 8


def generate_voucher_code() -> str:
    return "".join(secrets.choice(VOUCHER_CODE_ALPHABET) for _ in range(VOUCHER_CODE_LENGTH))


class VoucherStatus(models.TextChoices):
    """
    States for the PrepaidVoucher lifecycle.

    State Flow:
        PENDING -> ACTIVE -> USED
        PENDING -> CANCELLED
        PENDING/ACTIVE -> EXPIRED

    Terminal states: USED, EXPIRED, CANCELLED
    """

    PENDING = "pending", "Pending"
    ACTIVE = "active", "Active"
    USED = "used", "Used"
    EXPIRED = "expired", "Expired"
    CANCELLED = "cancelled", "Cancelled"


class PrepaidVoucher(UUIDPrimaryKeyMixin, BaseModel):
    """
    A hotspot access voucher paid for by STK push.

    Fields:
        voucher_code: Code the customer types at the hotspot login page
        phone_number: Purchaser's phone (SMS destination)
        payment_reference: Charge-request id while PENDING, replaced by
            the provider receipt number on activation
        status: Lifecycle state (managed by FSM)
        expires_at: Validity deadline
        last_used_at: First login, written by the access controller
    """

    organization = models.ForeignKey(
        "tenants.Organization",
        on_delete=models.CASCADE,
        related_name="vouchers",
    )

    package = models.ForeignKey(
        "subscribers.ServicePackage",
        on_delete=models.PROTECT,
        related_name="vouchers",
    )

    voucher_code = models.CharField(
        max_length=32,
        unique=True,
        default=generate_voucher_code,
    )

    phone_number = models.CharField(max_length=20)

    payment_reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        help_text="Charge-request id, then provider receipt once paid",
    )

    status = FSMField(
        default=VoucherStatus.PENDING,
        choices=VoucherStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the voucher (managed by FSM)",
    )

    expires_at = models.DateTimeField(null=True, blank=True)
    last_used_at = models.DateTimeField(null=True, blank=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Prepaid Voucher"
        verbose_name_plural = "Prepaid Vouchers"

    def __str__(self) -> str:
        return f"PrepaidVoucher({self.voucher_code}, {self.status})"

    @property
    def usage_expiry(self) -> datetime | None:
        """
        When the voucher stops granting access.

        One package period after first use, or expires_at if the voucher
        has not been used yet.
        """
        if self.last_used_at is not None:
            return self.last_used_at + self.package.period()
        return self.expires_at

    def is_past_expiry(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (now or timezone.now())

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=VoucherStatus.PENDING,
        target=VoucherStatus.ACTIVE,
    )
    def activate(self, receipt_number: str):
        """
        Mark the voucher as paid.

        Transition: PENDING -> ACTIVE

        The payment reference switches from the charge-request id to the
        provider receipt number.
        """
        if receipt_number:
            self.payment_reference = receipt_number
        self.activated_at = timezone.now()

    @transition(
        field=status,
        source=VoucherStatus.PENDING,
        target=VoucherStatus.CANCELLED,
    )
    def cancel(self):
        """
        Cancel an unpaid voucher.

        Transition: PENDING -> CANCELLED

        Called when the provider reports the charge failed.
        """
        self.cancelled_at = timezone.now()

    @transition(
        field=status,
        source=[VoucherStatus.PENDING, VoucherStatus.ACTIVE],
        target=VoucherStatus.EXPIRED,
    )
    def expire(self):
        """
        Transition: PENDING/ACTIVE -> EXPIRED

        Applied lazily when the voucher is read after expires_at.
        """
        pass

    @transition(
        field=status,
        source=VoucherStatus.ACTIVE,
        target=VoucherStatus.USED,
    )
    def mark_used(self):
        """
        Transition: ACTIVE -> USED

        Called on behalf of the access controller once the voucher is
        consumed.
        """
        if self.last_used_at is None:
            self.last_used_at = timezone.now()
