"""
Storage seam for callback processing.

CallbackProcessor and CorrelationResolver only talk to a
CallbackRepository, so the reconciliation flow can be exercised against
an in-memory implementation. DjangoCallbackRepository is the production
implementation and delegates to the owning apps' services.

Usage:
    from payments.repository import DjangoCallbackRepository

    processor = CallbackProcessor(repository=DjangoCallbackRepository())
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from core.services import ServiceResult
from subscribers.services import PaymentLinkService, SubscriptionReconciliationService
from tenants.services import AccountResolver
from vouchers.services import VoucherService

from payments.ledger.services import LedgerService

if TYPE_CHECKING:
    from payments.ledger.types import LedgerOutcome, RecordTransactionParams
    from subscribers.models import PaymentLinkRequest, Subscriber
    from subscribers.services import ReconciliationOutcome
    from tenants.models import GatewayConfiguration
    from vouchers.models import PrepaidVoucher


class CallbackRepository(Protocol):
    """Everything the callback flow reads and writes."""

    def resolve_account(self, provider: str, business_id: str | None) -> ServiceResult[GatewayConfiguration]: ...

    def account_for_organization(self, organization_id, provider: str) -> GatewayConfiguration | None: ...

    def find_voucher_by_correlation(self, token: str) -> PrepaidVoucher | None: ...

    def find_payment_link_by_correlation(self, token: str) -> PaymentLinkRequest | None: ...

    def find_subscriber(self, username: str, organization_id=None) -> Subscriber | None: ...

    def record_transaction(self, params: RecordTransactionParams) -> LedgerOutcome: ...

    def apply_subscriber_payment(
        self,
        username: str,
        amount: Decimal,
        organization_id=None,
        provider_txn_id: str = "",
    ) -> ServiceResult[ReconciliationOutcome]: ...

    def complete_payment_link(
        self,
        link: PaymentLinkRequest,
        amount: Decimal,
        provider_txn_id: str = "",
    ) -> ServiceResult[ReconciliationOutcome]: ...

    def transition_voucher(
        self,
        voucher_id,
        success: bool,
        receipt_number: str = "",
    ) -> ServiceResult[PrepaidVoucher]: ...


class DjangoCallbackRepository:
    """CallbackRepository backed by the Django ORM."""

    def resolve_account(self, provider, business_id):
        return AccountResolver.resolve(provider, business_id)

    def account_for_organization(self, organization_id, provider):
        return AccountResolver.for_organization(organization_id, provider)

    def find_voucher_by_correlation(self, token):
        return VoucherService.find_by_payment_reference(token)

    def find_payment_link_by_correlation(self, token):
        return PaymentLinkService.find_by_checkout_request_id(token)

    def find_subscriber(self, username, organization_id=None):
        result = SubscriptionReconciliationService.find_subscriber(username, organization_id)
        return result.data if result.success else None

    def record_transaction(self, params):
        return LedgerService.record(params)

    def apply_subscriber_payment(self, username, amount, organization_id=None, provider_txn_id=""):
        return SubscriptionReconciliationService.apply_payment(
            username=username,
            amount=amount,
            organization_id=organization_id,
            provider_txn_id=provider_txn_id,
        )

    def complete_payment_link(self, link, amount, provider_txn_id=""):
        return PaymentLinkService.complete(link, amount, provider_txn_id=provider_txn_id)

    def transition_voucher(self, voucher_id, success, receipt_number=""):
        return VoucherService.apply_callback(voucher_id, success=success, receipt_number=receipt_number)
