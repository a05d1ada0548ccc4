"""
Subscriber domain models.

Models:
    ServicePackage: A priced, time-boxed internet package sold by a tenant
    Subscriber: A PPPoE or hotspot customer on a package
    PaymentLinkRequest: Token-addressable request for a fixed payment
    SubscriberPayment: One reconciled payment and the time it bought

Subscriber expiry and status are mutated only by
SubscriptionReconciliationService (on payment) and by an external
expiry sweep. Subscribers and payment links are never created by the
callback flow.

Usage:
    from subscribers.models import Subscriber, SubscriberStatus

    subscriber = Subscriber.objects.for_username("jdoe", organization.id).first()
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.db import models
from django.db.models import Q

from core.helpers import generate_token
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


# =============================================================================
# Choices
# =============================================================================


class DurationUnit(models.TextChoices):
    """
    Unit of a package duration.

    Conversion to days is fixed, not calendar-aware:
    MONTH is 30 days and YEAR is 365 days.
    """

    MINUTE = "minute", "Minute"
    HOUR = "hour", "Hour"
    DAY = "day", "Day"
    WEEK = "week", "Week"
    MONTH = "month", "Month"
    YEAR = "year", "Year"


# Days per unit
DAYS_PER_UNIT: dict[str, Decimal] = {
    DurationUnit.MINUTE: Decimal(1) / Decimal(1440),
    DurationUnit.HOUR: Decimal(1) / Decimal(24),
    DurationUnit.DAY: Decimal(1),
    DurationUnit.WEEK: Decimal(7),
    DurationUnit.MONTH: Decimal(30),
    DurationUnit.YEAR: Decimal(365),
}


class PackageType(models.TextChoices):
    """Access technology a package is sold for."""

    PPPOE = "pppoe", "PPPoE"
    HOTSPOT = "hotspot", "Hotspot"


class SubscriberStatus(models.TextChoices):
    """Subscriber service status."""

    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    EXPIRED = "expired", "Expired"


# =============================================================================
# ServicePackage
# =============================================================================


class ServicePackage(UUIDPrimaryKeyMixin, BaseModel):
    """
    A package a tenant sells: price buys duration * duration_unit of service.

    Fields:
        organization: Owning tenant
        name: Display name (packageName in SMS templates)
        price: Full price of one period
        duration: Number of duration units in one period
        duration_unit: Minute, hour, day, week, month or year
        package_type: PPPoE or hotspot
    """

    organization = models.ForeignKey(
        "tenants.Organization",
        on_delete=models.CASCADE,
        related_name="packages",
    )

    name = models.CharField(max_length=100)

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Price of one full period",
    )

    duration = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        help_text="Number of duration units in one period",
    )

    duration_unit = models.CharField(
        max_length=10,
        choices=DurationUnit.choices,
        default=DurationUnit.MONTH,
    )

    package_type = models.CharField(
        max_length=10,
        choices=PackageType.choices,
        default=PackageType.PPPOE,
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["organization", "price"]
        verbose_name = "Service Package"
        verbose_name_plural = "Service Packages"

    def __str__(self) -> str:
        return f"{self.name} ({self.duration} {self.duration_unit})"

    @property
    def is_complete(self) -> bool:
        """Whether price and duration are usable for proration."""
        return bool(
            self.price
            and self.price > 0
            and self.duration
            and self.duration > 0
            and self.duration_unit in DAYS_PER_UNIT
        )

    def period_days(self) -> Decimal:
        """Length of one full period in (possibly fractional) days."""
        return Decimal(self.duration) * DAYS_PER_UNIT[self.duration_unit]

    def period(self) -> timedelta:
        """Length of one full period as a timedelta."""
        return timedelta(days=float(self.period_days()))


# =============================================================================
# Subscriber
# =============================================================================


class SubscriberQuerySet(models.QuerySet):
    def for_username(self, username: str, organization_id=None):
        """Match on PPPoE or hotspot username, optionally within one tenant."""
        qs = self.filter(Q(pppoe_username=username) | Q(hotspot_username=username))
        if organization_id is not None:
            qs = qs.filter(organization_id=organization_id)
        return qs


class Subscriber(UUIDPrimaryKeyMixin, BaseModel):
    """
    A customer receiving service from a tenant.

    Fields:
        organization: Owning tenant
        name: Customer name
        phone_number: SMS destination for payment confirmations
        pppoe_username / hotspot_username: Access usernames; payers quote
            one of these as the paybill account reference
        package: Current package (null until assigned)
        expires_at: When service ends
        status: Active, inactive or expired
    """

    organization = models.ForeignKey(
        "tenants.Organization",
        on_delete=models.CASCADE,
        related_name="subscribers",
    )

    name = models.CharField(max_length=200)

    phone_number = models.CharField(max_length=20, blank=True, default="")

    pppoe_username = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
    )

    hotspot_username = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
    )

    package = models.ForeignKey(
        ServicePackage,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="subscribers",
    )

    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the current service period ends",
    )

    status = models.CharField(
        max_length=10,
        choices=SubscriberStatus.choices,
        default=SubscriberStatus.INACTIVE,
        db_index=True,
    )

    objects = SubscriberQuerySet.as_manager()

    class Meta:
        ordering = ["name"]
        verbose_name = "Subscriber"
        verbose_name_plural = "Subscribers"
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "pppoe_username"],
                name="unique_pppoe_username_per_organization",
            ),
            models.UniqueConstraint(
                fields=["organization", "hotspot_username"],
                name="unique_hotspot_username_per_organization",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.access_username or 'no username'})"

    @property
    def access_username(self) -> str | None:
        """PPPoE username, else hotspot username."""
        return self.pppoe_username or self.hotspot_username


# =============================================================================
# PaymentLinkRequest
# =============================================================================


def _default_link_token() -> str:
    return generate_token(16)


class PaymentLinkRequest(UUIDPrimaryKeyMixin, BaseModel):
    """
    A shareable request for one subscriber to pay a fixed amount.

    When the subscriber opens the link and a charge is initiated, the
    provider's charge-request id is stored in checkout_request_id. The
    STK callback for that charge is correlated back through it.

    Fields:
        token: URL token for the link
        subscriber: Who the payment is for
        amount: Amount requested
        checkout_request_id: Provider charge-request id (correlation token)
        paid_at: When a successful callback was reconciled
    """

    organization = models.ForeignKey(
        "tenants.Organization",
        on_delete=models.CASCADE,
        related_name="payment_links",
    )

    subscriber = models.ForeignKey(
        Subscriber,
        on_delete=models.CASCADE,
        related_name="payment_links",
    )

    token = models.CharField(
        max_length=64,
        unique=True,
        default=_default_link_token,
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)

    checkout_request_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
        help_text="Provider charge-request id once a charge is initiated",
    )

    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Link"
        verbose_name_plural = "Payment Links"

    def __str__(self) -> str:
        return f"PaymentLinkRequest({self.token}, {self.amount})"

    @property
    def bill_reference(self) -> str | None:
        """Reference recorded in the ledger for payments through this link."""
        return self.subscriber.access_username or self.checkout_request_id


# =============================================================================
# SubscriberPayment
# =============================================================================


class SubscriberPayment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A payment applied to a subscriber and the service time it bought.

    Written by SubscriptionReconciliationService alongside the expiry
    update, so the effect on the subscriber can be audited against the
    ledger record that caused it.
    """

    organization = models.ForeignKey(
        "tenants.Organization",
        on_delete=models.CASCADE,
        related_name="subscriber_payments",
    )

    subscriber = models.ForeignKey(
        Subscriber,
        on_delete=models.CASCADE,
        related_name="payments",
    )

    package = models.ForeignKey(
        ServicePackage,
        on_delete=models.SET_NULL,
        null=True,
        related_name="payments",
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)

    days_credited = models.DecimalField(
        max_digits=12,
        decimal_places=6,
        help_text="Service days granted for this payment",
    )

    previous_expires_at = models.DateTimeField(null=True, blank=True)
    new_expires_at = models.DateTimeField()

    provider_txn_id = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        help_text="Ledger transaction that triggered this payment",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Subscriber Payment"
        verbose_name_plural = "Subscriber Payments"

    def __str__(self) -> str:
        return f"SubscriberPayment({self.subscriber_id}, {self.amount})"
