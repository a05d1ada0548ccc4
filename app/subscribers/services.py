"""
Subscription reconciliation engine.

Turns a payment into a service-period extension for the subscriber whose
access username the payment names.

Proration:
    period_days = duration * days_per_unit (month = 30, year = 365)
    amount == price  -> extension = period_days           (exact fast path)
    otherwise        -> extension = period_days * amount / price

    Over- and under-payments are prorated without a cap.

Expiry policy (SUBSCRIPTION_EXPIRY_POLICY setting):
    reset_from_now      new expiry = now + extension (default)
    extend_from_expiry  new expiry = max(now, current expiry) + extension

    Under reset_from_now a subscriber who pays before expiry loses the
    remaining unexpired time.

Usage:
    from subscribers.services import SubscriptionReconciliationService

    result = SubscriptionReconciliationService.apply_payment(
        username="jdoe",
        amount=Decimal("500"),
        organization_id=organization.id,
        provider_txn_id="QK12ABC34D",
    )
    if not result.success:
        logger.warning(result.error)  # SUBSCRIBER_NOT_FOUND / INCOMPLETE_CONFIGURATION
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from core.services import BaseService, ErrorKind, ServiceResult
from notifications.services import NotificationDispatcher, format_amount, format_datetime

from subscribers.models import (
    PaymentLinkRequest,
    ServicePackage,
    Subscriber,
    SubscriberPayment,
    SubscriberStatus,
)


class ExpiryPolicy:
    """Where a payment's extension is measured from."""

    RESET_FROM_NOW = "reset_from_now"
    EXTEND_FROM_EXPIRY = "extend_from_expiry"

    choices = (RESET_FROM_NOW, EXTEND_FROM_EXPIRY)


# Upper bound of SubscriberPayment.days_credited (max_digits=12, decimal_places=6)
MAX_EXTENSION_DAYS = Decimal("999999")


@dataclass
class ReconciliationOutcome:
    """Effect of one payment on one subscriber."""

    subscriber: Subscriber
    payment: SubscriberPayment
    days_credited: Decimal
    new_expires_at: datetime


def extension_days(amount: Decimal, package: ServicePackage) -> Decimal:
    """
    Service days bought by a payment against a package.

    Exact payments take the full period without division so the common
    case carries no rounding.
    """
    period_days = package.period_days()
    price = Decimal(package.price)
    amount = Decimal(amount)

    if amount == price:
        return period_days
    return period_days * amount / price


def compute_new_expiry(
    now: datetime,
    current_expiry: datetime | None,
    days: Decimal,
    policy: str = ExpiryPolicy.RESET_FROM_NOW,
) -> datetime:
    """Apply an extension under the given expiry policy."""
    start = now
    if policy == ExpiryPolicy.EXTEND_FROM_EXPIRY and current_expiry and current_expiry > now:
        start = current_expiry
    return start + timedelta(days=float(days))


def get_expiry_policy() -> str:
    policy = getattr(settings, "SUBSCRIPTION_EXPIRY_POLICY", ExpiryPolicy.RESET_FROM_NOW)
    if policy not in ExpiryPolicy.choices:
        return ExpiryPolicy.RESET_FROM_NOW
    return policy


class SubscriptionReconciliationService(BaseService):
    """
    Apply payments to subscribers.

    Methods:
        find_subscriber: Resolve an access username to a subscriber
        apply_payment: Extend the subscriber's expiry and notify them
    """

    @classmethod
    def find_subscriber(
        cls,
        username: str,
        organization_id=None,
    ) -> ServiceResult[Subscriber]:
        """
        Look up a subscriber by PPPoE or hotspot username.

        When organization_id is given the lookup is scoped to that tenant.
        A username that matches more than one subscriber (possible only
        across tenants) is treated as not found.
        """
        username = (username or "").strip()
        if not username:
            return ServiceResult.failure(
                "No account reference supplied",
                error_code="SUBSCRIBER_NOT_FOUND",
                kind=ErrorKind.NOT_FOUND,
            )

        matches = list(
            Subscriber.objects.select_related("package", "organization")
            .for_username(username, organization_id)[:2]
        )
        if len(matches) != 1:
            return ServiceResult.failure(
                f"Subscriber not found for username: {username}",
                error_code="SUBSCRIBER_NOT_FOUND",
                kind=ErrorKind.NOT_FOUND,
            )
        return ServiceResult.success(matches[0])

    @classmethod
    def apply_payment(
        cls,
        username: str,
        amount: Decimal,
        organization_id=None,
        provider_txn_id: str = "",
    ) -> ServiceResult[ReconciliationOutcome]:
        """
        Extend a subscriber's service period for a payment.

        Implementation:
            1. Resolve the subscriber (NOT_FOUND otherwise)
            2. Require a package with positive price and duration
            3. Compute extension days and the new expiry under the policy
            4. Lock the subscriber row, persist expiry + ACTIVE status and
               a SubscriberPayment record
            5. Queue the payment_confirmation SMS (best effort)

        Args:
            username: PPPoE or hotspot username quoted by the payer
            amount: Amount paid
            organization_id: Tenant scope, when known
            provider_txn_id: Ledger transaction id for the audit trail

        Returns:
            ServiceResult with ReconciliationOutcome

        Error codes:
            SUBSCRIBER_NOT_FOUND: No unique subscriber for the username
            INCOMPLETE_CONFIGURATION: Subscriber has no usable package
            EXTENSION_OUT_OF_RANGE: Payment buys more time than can be stored
        """
        logger = cls.get_logger()

        lookup = cls.find_subscriber(username, organization_id)
        if not lookup.success:
            logger.warning(
                lookup.error,
                extra={"username": username, "provider_txn_id": provider_txn_id},
            )
            return lookup

        subscriber = lookup.data
        package = subscriber.package
        if package is None or not package.is_complete:
            logger.warning(
                f"Package configuration is incomplete for subscriber {subscriber.id}",
                extra={"subscriber_id": str(subscriber.id), "provider_txn_id": provider_txn_id},
            )
            return ServiceResult.failure(
                f"Package configuration is incomplete for {username}",
                error_code="INCOMPLETE_CONFIGURATION",
                kind=ErrorKind.INVALID_INPUT,
            )

        days = extension_days(amount, package)
        if days >= MAX_EXTENSION_DAYS:
            return cls._extension_out_of_range(subscriber, days, provider_txn_id)
        policy = get_expiry_policy()

        with cls.atomic():
            locked = Subscriber.objects.select_for_update().get(pk=subscriber.pk)
            previous_expiry = locked.expires_at
            try:
                new_expiry = compute_new_expiry(timezone.now(), previous_expiry, days, policy)
            except OverflowError:
                return cls._extension_out_of_range(subscriber, days, provider_txn_id)

            locked.expires_at = new_expiry
            locked.status = SubscriberStatus.ACTIVE
            locked.save(update_fields=["expires_at", "status", "updated_at"])

            payment = SubscriberPayment.objects.create(
                organization_id=locked.organization_id,
                subscriber=locked,
                package=package,
                amount=amount,
                days_credited=days.quantize(Decimal("0.000001")),
                previous_expires_at=previous_expiry,
                new_expires_at=new_expiry,
                provider_txn_id=provider_txn_id or "",
            )

        logger.info(
            f"Extended subscriber {locked.id} by {days:.4f} days to {new_expiry.isoformat()}",
            extra={
                "subscriber_id": str(locked.id),
                "provider_txn_id": provider_txn_id,
                "policy": policy,
            },
        )

        if locked.phone_number:
            NotificationDispatcher.dispatch(
                organization_id=locked.organization_id,
                template_name="payment_confirmation",
                phone_number=locked.phone_number,
                variables={
                    "amount": format_amount(amount),
                    "packageName": package.name,
                    "expiryDate": format_datetime(new_expiry),
                    "organizationName": subscriber.organization.name,
                },
            )

        return ServiceResult.success(
            ReconciliationOutcome(
                subscriber=locked,
                payment=payment,
                days_credited=days,
                new_expires_at=new_expiry,
            )
        )

    @classmethod
    def _extension_out_of_range(
        cls,
        subscriber: Subscriber,
        days: Decimal,
        provider_txn_id: str,
    ) -> ServiceResult[ReconciliationOutcome]:
        cls.get_logger().warning(
            f"Extension of {days} days for subscriber {subscriber.id} is out of range",
            extra={"subscriber_id": str(subscriber.id), "provider_txn_id": provider_txn_id},
        )
        return ServiceResult.failure(
            f"Payment extends the service period beyond the supported range ({days} days)",
            error_code="EXTENSION_OUT_OF_RANGE",
            kind=ErrorKind.INVALID_INPUT,
        )


class PaymentLinkService(BaseService):
    """
    Complete payment links from provider callbacks.

    Methods:
        find_by_checkout_request_id: Link awaiting a given charge
        complete: Mark the link paid and reconcile the subscriber
    """

    @classmethod
    def find_by_checkout_request_id(cls, checkout_request_id: str) -> PaymentLinkRequest | None:
        if not checkout_request_id:
            return None
        return (
            PaymentLinkRequest.objects.select_related("subscriber", "organization")
            .filter(checkout_request_id=checkout_request_id)
            .first()
        )

    @classmethod
    def complete(
        cls,
        link: PaymentLinkRequest,
        amount: Decimal,
        provider_txn_id: str = "",
    ) -> ServiceResult[ReconciliationOutcome]:
        """
        Record payment of a link and extend its subscriber.

        paid_at is informational and set on the first successful payment
        only. The subscriber is resolved by the username the link's
        bill reference carries, scoped to the link's organization.
        """
        with cls.atomic():
            updated = PaymentLinkRequest.objects.filter(pk=link.pk, paid_at__isnull=True).update(
                paid_at=timezone.now(),
                updated_at=timezone.now(),
            )
        if not updated:
            cls.get_logger().info(
                f"Payment link {link.token} was already paid",
                extra={"payment_link_id": str(link.id), "provider_txn_id": provider_txn_id},
            )

        return SubscriptionReconciliationService.apply_payment(
            username=link.bill_reference or "",
            amount=amount,
            organization_id=link.organization_id,
            provider_txn_id=provider_txn_id,
        )
