"""
Callback processing service.

CallbackProcessor takes a normalized CallbackEvent through the rest of
the reconciliation flow:

    account resolution -> correlation -> ledger write -> effect

Ordering:
    The ledger write comes before any effect. A DUPLICATE ledger outcome
    means an earlier delivery already got this far, so subscriber and
    payment-link effects are skipped and the retry cannot extend a
    subscription twice. Voucher transitions always run: only a PENDING
    voucher can change, so a repeated transition is a no-op.

Failure handling:
    - LedgerWriteError propagates (the endpoint answers 500 so the
      provider redelivers)
    - Every other failure (unknown tenant, no correlation, unknown
      subscriber, voucher already resolved) is logged and acknowledged
    - An exception raised by an effect is logged at ERROR with its
      traceback and acknowledged: the ledger row is already committed

Usage:
    from payments.services import CallbackProcessor

    ack = CallbackProcessor().process(event)
    return JsonResponse(ack.to_response())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.services import BaseService, ServiceResult
from tenants.models import TransactionType

from payments.correlation import Correlation, CorrelationKind, CorrelationResolver
from payments.ledger.models import TransactionSource
from payments.ledger.types import LedgerOutcome, LedgerStatus, RecordTransactionParams
from payments.repository import CallbackRepository, DjangoCallbackRepository

if TYPE_CHECKING:
    from payments.callbacks.events import CallbackEvent
    from tenants.models import GatewayConfiguration

logger = logging.getLogger(__name__)


@dataclass
class CallbackAck:
    """
    Outcome of processing one callback, as acknowledged to the provider.

    Attributes:
        message: Human-readable summary
        transaction_id: Provider transaction id
        result_code / result_desc: Echo of the provider outcome
        ledger_status: CREATED, DUPLICATE, or None when nothing was written
        correlation: What the payment was matched to, if anything
        effect_error_code: ServiceResult error code of a failed effect
    """

    message: str
    transaction_id: str = ""
    result_code: str = ""
    result_desc: str = ""
    ledger_status: LedgerStatus | None = None
    correlation: CorrelationKind | None = None
    effect_error_code: str | None = None

    @property
    def recorded(self) -> bool:
        return self.ledger_status is not None

    def to_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": self.message,
            "transactionId": self.transaction_id,
            "resultCode": self.result_code,
            "resultDesc": self.result_desc,
        }


class CallbackProcessor(BaseService):
    """
    Reconcile a normalized callback.

    Stateless apart from its repository; one instance may serve any
    number of requests.
    """

    def __init__(self, repository: CallbackRepository | None = None):
        self.repository = repository or DjangoCallbackRepository()
        self.resolver = CorrelationResolver(self.repository)

    def process(
        self,
        event: CallbackEvent,
        account: GatewayConfiguration | None = None,
    ) -> CallbackAck:
        """
        Record a callback and apply its effect.

        Args:
            event: Normalized callback
            account: Gateway configuration already resolved by the caller
                (signed webhooks resolve it to find the signing key)

        Returns:
            CallbackAck describing what happened

        Raises:
            LedgerWriteError: The ledger could not store the transaction
        """
        log = self.get_logger()
        context = event.log_context()

        if account is None and event.gateway_business_id:
            resolved = self.repository.resolve_account(event.provider, event.gateway_business_id)
            if not resolved.success:
                log.warning(
                    f"Callback for unknown business id {event.gateway_business_id}: {resolved.error}",
                    extra={**context, "error_code": resolved.error_code},
                )
                return self._ack(event, "Callback acknowledged; business id not recognised")
            account = resolved.data

        account_organization_id = account.organization_id if account is not None else None
        correlation = self.resolver.resolve(event, account_organization_id)
        organization_id = (
            correlation.organization_id if correlation and correlation.organization_id else account_organization_id
        )

        if organization_id is None:
            log.warning(
                f"No organization for callback {event.provider_txn_id}, not recorded",
                extra=context,
            )
            return self._ack(event, "Callback acknowledged; no matching payment request")

        ledger = self._record(event, correlation, organization_id, account)
        ack = self._ack(
            event,
            "Callback processed successfully",
            ledger_status=ledger.status if ledger else None,
            correlation=correlation.kind if correlation else None,
        )

        if correlation is None:
            return ack

        # Ledger row is committed: effect errors are acknowledged, never re-raised
        try:
            effect = self._apply_effect(event, correlation, ledger)
        except Exception as exc:
            effect = self.handle_exception(
                exc,
                context=f"Effect of callback {event.provider_txn_id} failed",
            )

        if effect is not None and not effect.success:
            ack.effect_error_code = effect.error_code
            log.log(
                logging.ERROR if effect.is_fatal else logging.WARNING,
                f"Callback {event.provider_txn_id} recorded without effect: {effect.error}",
                extra={**context, "error_code": effect.error_code},
            )
        return ack

    # ==========================================================================
    # Ledger
    # ==========================================================================

    def _record(
        self,
        event: CallbackEvent,
        correlation: Correlation | None,
        organization_id,
        account: GatewayConfiguration | None,
    ) -> LedgerOutcome | None:
        """Write the ledger record; None when there is no amount to record."""
        amount = event.amount or self._expected_amount(correlation)
        if amount is None or amount <= 0:
            self.get_logger().info(
                f"No amount for callback {event.provider_txn_id}, not recorded",
                extra=event.log_context(),
            )
            return None

        if account is None or account.organization_id != organization_id:
            account = self.repository.account_for_organization(organization_id, event.provider)

        transaction_type = event.transaction_type or (
            account.transaction_type if account is not None else TransactionType.PAYBILL
        )
        bill_reference = (
            correlation.bill_reference if correlation else event.bill_reference or event.correlation_token or ""
        )

        return self.repository.record_transaction(
            RecordTransactionParams(
                provider_txn_id=event.provider_txn_id,
                amount=amount,
                organization_id=organization_id,
                occurred_at=event.occurred_at,
                transaction_type=transaction_type,
                gateway=event.provider,
                source=correlation.source if correlation else TransactionSource.OTHER,
                name=event.name or event.phone,
                phone_number=event.phone,
                bill_reference=bill_reference,
                invoice_number=event.invoice_number or event.provider_txn_id,
                org_account_balance=event.org_account_balance,
                result_code=event.result_code,
                result_desc=event.result_desc,
                raw_payload=event.raw,
            )
        )

    @staticmethod
    def _expected_amount(correlation: Correlation | None) -> Decimal | None:
        """Amount the matched entity was waiting for (failed charges report none)."""
        if correlation is None:
            return None
        if correlation.voucher is not None:
            return correlation.voucher.package.price
        if correlation.payment_link is not None:
            return correlation.payment_link.amount
        return None

    # ==========================================================================
    # Effects
    # ==========================================================================

    def _apply_effect(
        self,
        event: CallbackEvent,
        correlation: Correlation,
        ledger: LedgerOutcome | None,
    ) -> ServiceResult | None:
        if correlation.kind is CorrelationKind.VOUCHER:
            return self.repository.transition_voucher(
                correlation.voucher.id,
                success=event.is_success,
                receipt_number=event.provider_txn_id if event.is_success else "",
            )

        if not event.is_success:
            return None

        if ledger is not None and ledger.status is LedgerStatus.DUPLICATE:
            self.get_logger().info(
                f"Duplicate delivery of {event.provider_txn_id}, effect already applied",
                extra=event.log_context(),
            )
            return None

        if correlation.kind is CorrelationKind.PAYMENT_LINK:
            return self.repository.complete_payment_link(
                correlation.payment_link,
                event.amount,
                provider_txn_id=event.provider_txn_id,
            )

        return self.repository.apply_subscriber_payment(
            correlation.bill_reference,
            event.amount,
            organization_id=correlation.organization_id,
            provider_txn_id=event.provider_txn_id,
        )

    @staticmethod
    def _ack(event: CallbackEvent, message: str, **kwargs) -> CallbackAck:
        return CallbackAck(
            message=message,
            transaction_id=event.provider_txn_id,
            result_code=event.result_code,
            result_desc=event.result_desc,
            **kwargs,
        )
