"""
Correlation of callback events to the entity they pay for.

Strategies, tried in order; the first match wins:
    1. PrepaidVoucher whose payment_reference is the correlation token
       (or, once activated, the receipt number of a redelivered result)
    2. PaymentLinkRequest whose checkout_request_id is the correlation token
    3. Subscriber named by the provider-supplied bill reference

The correlated entity also decides the tenant when the callback itself
carries no business identifier (STK push results).

Usage:
    from payments.correlation import CorrelationKind, CorrelationResolver

    correlation = CorrelationResolver(repository).resolve(event, organization_id)
    if correlation is None:
        ...  # nothing in this system is waiting for the payment
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from payments.ledger.models import TransactionSource

if TYPE_CHECKING:
    from payments.callbacks.events import CallbackEvent
    from payments.repository import CallbackRepository
    from subscribers.models import PaymentLinkRequest, Subscriber
    from vouchers.models import PrepaidVoucher

logger = logging.getLogger(__name__)


class CorrelationKind(str, enum.Enum):
    VOUCHER = "voucher"
    PAYMENT_LINK = "payment_link"
    SUBSCRIBER = "subscriber"


@dataclass
class Correlation:
    """
    What a callback pays for.

    Attributes:
        kind: Which strategy matched
        bill_reference: Reference written to the ledger (voucher code,
            subscriber username, or the provider's own reference)
        organization_id: Tenant, from the entity or the resolved account
        source: TransactionSource value for the ledger
        voucher / payment_link / subscriber: The matched entity
    """

    kind: CorrelationKind
    bill_reference: str
    organization_id: Any = None
    source: str = TransactionSource.OTHER
    voucher: PrepaidVoucher | None = None
    payment_link: PaymentLinkRequest | None = None
    subscriber: Subscriber | None = None


def _subscriber_source(subscriber: Subscriber | None, username: str) -> str:
    if subscriber is None:
        return TransactionSource.OTHER
    if subscriber.pppoe_username and subscriber.pppoe_username == username:
        return TransactionSource.PPPOE
    if subscriber.hotspot_username and subscriber.hotspot_username == username:
        return TransactionSource.HOTSPOT
    return TransactionSource.OTHER


class CorrelationResolver:
    """Match a CallbackEvent to a voucher, payment link or subscriber."""

    def __init__(self, repository: CallbackRepository):
        self.repository = repository

    def resolve(self, event: CallbackEvent, organization_id=None) -> Correlation | None:
        """
        Find what the event pays for.

        Args:
            event: Normalized callback
            organization_id: Tenant resolved from the business identifier,
                when the callback carried one

        Returns:
            Correlation, or None when no strategy matches
        """
        token = event.correlation_token
        if token:
            correlation = self._by_voucher(token) or self._by_payment_link(token)
            if correlation is None and event.provider_txn_id != token:
                # Activation replaces the voucher reference with the receipt
                correlation = self._by_voucher(event.provider_txn_id)
            if correlation is not None:
                logger.info(
                    f"Correlated {event.provider_txn_id} to {correlation.kind.value}",
                    extra=event.log_context(),
                )
                return correlation

        if event.bill_reference:
            subscriber = self.repository.find_subscriber(event.bill_reference, organization_id)
            return Correlation(
                kind=CorrelationKind.SUBSCRIBER,
                bill_reference=event.bill_reference,
                organization_id=organization_id,
                source=_subscriber_source(subscriber, event.bill_reference),
                subscriber=subscriber,
            )

        logger.info(
            f"No correlation for {event.provider_txn_id}",
            extra=event.log_context(),
        )
        return None

    def _by_voucher(self, token: str) -> Correlation | None:
        voucher = self.repository.find_voucher_by_correlation(token)
        if voucher is None:
            return None
        return Correlation(
            kind=CorrelationKind.VOUCHER,
            bill_reference=voucher.voucher_code,
            organization_id=voucher.organization_id,
            source=TransactionSource.HOTSPOT,
            voucher=voucher,
        )

    def _by_payment_link(self, token: str) -> Correlation | None:
        link = self.repository.find_payment_link_by_correlation(token)
        if link is None:
            return None
        subscriber = link.subscriber
        username = subscriber.access_username or ""
        return Correlation(
            kind=CorrelationKind.PAYMENT_LINK,
            bill_reference=username or token,
            organization_id=link.organization_id,
            source=_subscriber_source(subscriber, username),
            payment_link=link,
            subscriber=subscriber,
        )
