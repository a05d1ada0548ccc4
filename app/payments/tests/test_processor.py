"""
Tests for CallbackProcessor.

Tests cover:
- Voucher activation and cancellation from STK results
- Payment link completion
- C2B and Kopo Kopo subscriber reconciliation
- Retried deliveries (no repeated effects)
- Unknown tenant / no correlation (acknowledged, nothing recorded)
- Ledger failure (raised, no effects)
- Notification failure (outcome unchanged)
- Effect errors after the ledger write (acknowledged, logged)
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from freezegun import freeze_time

from payments.callbacks import kopokopo, mpesa
from payments.correlation import CorrelationKind
from payments.exceptions import LedgerWriteError
from payments.ledger.models import TransactionRecord, TransactionSource
from payments.ledger.types import LedgerStatus
from payments.repository import DjangoCallbackRepository
from payments.services import CallbackProcessor
from payments.tests.payloads import (
    STK_LINK_CHECKOUT_ID,
    STK_VOUCHER_CHECKOUT_ID,
    c2b_payload,
    kopokopo_payload,
    stk_failure_payload,
    stk_success_payload,
)
from subscribers.models import PaymentLinkRequest, Subscriber, SubscriberPayment
from subscribers.tests.factories import SubscriberFactory
from tenants.models import TransactionType
from tenants.tests.factories import GatewayConfigurationFactory
from vouchers.models import PrepaidVoucher, VoucherStatus


def process(event, account=None):
    return CallbackProcessor().process(event, account=account)


# =============================================================================
# STK push: vouchers
# =============================================================================


class TestVoucherCallbacks:
    """STK results correlated to a prepaid voucher."""

    def test_success_records_and_activates(self, pending_voucher, mock_sms):
        event = mpesa.normalize_stk_callback(
            stk_success_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID, amount=20)
        )

        ack = process(event)

        assert ack.ledger_status is LedgerStatus.CREATED
        assert ack.correlation is CorrelationKind.VOUCHER
        assert ack.effect_error_code is None
        record = TransactionRecord.objects.get(provider_txn_id="NLJ7RT61SV")
        assert record.amount == Decimal("20")
        assert record.bill_reference == "AB12CD34"
        assert record.source == TransactionSource.HOTSPOT
        assert record.organization_id == pending_voucher.organization_id
        assert record.transaction_type == TransactionType.PAYBILL
        voucher = PrepaidVoucher.objects.get(pk=pending_voucher.pk)
        assert voucher.status == VoucherStatus.ACTIVE
        assert voucher.payment_reference == "NLJ7RT61SV"
        mock_sms.assert_called_once()
        assert mock_sms.call_args.kwargs["template_name"] == "hotspot_voucher"

    def test_failure_records_package_price_and_cancels(self, pending_voucher, mock_sms):
        event = mpesa.normalize_stk_callback(stk_failure_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID))

        ack = process(event)

        record = TransactionRecord.objects.get(provider_txn_id=STK_VOUCHER_CHECKOUT_ID)
        assert record.amount == Decimal("20.00")
        assert record.result_code == "1032"
        assert not record.is_success
        assert ack.ledger_status is LedgerStatus.CREATED
        assert PrepaidVoucher.objects.get(pk=pending_voucher.pk).status == VoucherStatus.CANCELLED
        mock_sms.assert_not_called()

    def test_retry_is_acknowledged_without_second_effect(self, pending_voucher, mock_sms):
        payload = stk_success_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID, amount=20)
        process(mpesa.normalize_stk_callback(payload))

        ack = process(mpesa.normalize_stk_callback(payload))

        assert ack.ledger_status is LedgerStatus.DUPLICATE
        assert ack.effect_error_code == "VOUCHER_NOT_PENDING"
        assert TransactionRecord.objects.count() == 1
        assert PrepaidVoucher.objects.get(pk=pending_voucher.pk).status == VoucherStatus.ACTIVE
        mock_sms.assert_called_once()

    def test_failure_after_success_keeps_voucher_active(self, pending_voucher, mock_sms):
        process(
            mpesa.normalize_stk_callback(
                stk_success_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID, amount=20)
            )
        )

        ack = process(mpesa.normalize_stk_callback(stk_failure_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID)))

        assert not ack.recorded
        assert PrepaidVoucher.objects.get(pk=pending_voucher.pk).status == VoucherStatus.ACTIVE

    def test_success_after_failure_keeps_voucher_cancelled(self, pending_voucher, mock_sms):
        process(mpesa.normalize_stk_callback(stk_failure_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID)))

        ack = process(
            mpesa.normalize_stk_callback(
                stk_success_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID, amount=20)
            )
        )

        assert ack.ledger_status is LedgerStatus.CREATED
        assert ack.effect_error_code == "VOUCHER_NOT_PENDING"
        assert TransactionRecord.objects.count() == 2
        assert PrepaidVoucher.objects.get(pk=pending_voucher.pk).status == VoucherStatus.CANCELLED
        mock_sms.assert_not_called()

    def test_uses_tenant_transaction_type(self, pending_voucher, mock_sms):
        GatewayConfigurationFactory(
            organization=pending_voucher.organization,
            transaction_type=TransactionType.BUYGOODS,
        )
        event = mpesa.normalize_stk_callback(
            stk_success_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID, amount=20)
        )

        process(event)

        assert TransactionRecord.objects.get().transaction_type == TransactionType.BUYGOODS


# =============================================================================
# STK push: payment links
# =============================================================================


class TestPaymentLinkCallbacks:
    """STK results correlated to a payment link."""

    @freeze_time("2024-03-01 12:00:00")
    def test_success_completes_link(self, payment_link, mock_sms):
        event = mpesa.normalize_stk_callback(
            stk_success_payload(checkout_request_id=STK_LINK_CHECKOUT_ID, amount=1000)
        )

        ack = process(event)

        assert ack.correlation is CorrelationKind.PAYMENT_LINK
        assert PaymentLinkRequest.objects.get(pk=payment_link.pk).paid_at == timezone.now()
        subscriber = Subscriber.objects.get(pk=payment_link.subscriber_id)
        assert subscriber.expires_at == timezone.now() + timedelta(days=30)
        record = TransactionRecord.objects.get()
        assert record.bill_reference == "jdoe"
        assert record.source == TransactionSource.PPPOE

    def test_retry_does_not_extend_twice(self, payment_link, mock_sms):
        payload = stk_success_payload(checkout_request_id=STK_LINK_CHECKOUT_ID, amount=1000)
        process(mpesa.normalize_stk_callback(payload))
        first_expiry = Subscriber.objects.get(pk=payment_link.subscriber_id).expires_at

        ack = process(mpesa.normalize_stk_callback(payload))

        assert ack.ledger_status is LedgerStatus.DUPLICATE
        assert Subscriber.objects.get(pk=payment_link.subscriber_id).expires_at == first_expiry
        assert SubscriberPayment.objects.count() == 1

    def test_failure_records_link_amount_without_effect(self, payment_link, mock_sms):
        event = mpesa.normalize_stk_callback(stk_failure_payload(checkout_request_id=STK_LINK_CHECKOUT_ID))

        process(event)

        assert TransactionRecord.objects.get().amount == Decimal("1000.00")
        assert PaymentLinkRequest.objects.get(pk=payment_link.pk).paid_at is None
        assert Subscriber.objects.get(pk=payment_link.subscriber_id).expires_at is None


# =============================================================================
# STK push: nothing waiting
# =============================================================================


class TestUncorrelatedStk:
    def test_success_without_correlation_not_recorded(self, db, mock_sms):
        event = mpesa.normalize_stk_callback(stk_success_payload(checkout_request_id="ws_CO_NOBODY"))

        ack = process(event)

        assert not ack.recorded
        assert ack.correlation is None
        assert not TransactionRecord.objects.exists()

    def test_failure_without_correlation_not_recorded(self, db, mock_sms):
        event = mpesa.normalize_stk_callback(stk_failure_payload(checkout_request_id="ws_CO_NOBODY"))

        ack = process(event)

        assert not ack.recorded
        assert ack.result_code == "1032"


# =============================================================================
# C2B confirmations
# =============================================================================


class TestC2bCallbacks:
    """C2B confirmations resolved by short code and bill reference."""

    @freeze_time("2024-03-01 12:00:00")
    def test_extends_subscriber(self, mpesa_config, subscriber, mock_sms):
        event = mpesa.normalize_c2b_confirmation(c2b_payload(amount="500"))

        ack = process(event)

        assert ack.ledger_status is LedgerStatus.CREATED
        assert ack.correlation is CorrelationKind.SUBSCRIBER
        record = TransactionRecord.objects.get(provider_txn_id="RKTQDM7W6S")
        assert record.organization_id == mpesa_config.organization_id
        assert record.name == "John Doe"
        assert record.org_account_balance == Decimal("49197.00")
        assert record.invoice_number == "RKTQDM7W6S"
        assert Subscriber.objects.get(pk=subscriber.pk).expires_at == timezone.now() + timedelta(days=15)
        mock_sms.assert_called_once()

    def test_duplicate_does_not_extend_twice(self, mpesa_config, subscriber, mock_sms):
        process(mpesa.normalize_c2b_confirmation(c2b_payload()))
        first_expiry = Subscriber.objects.get(pk=subscriber.pk).expires_at

        ack = process(mpesa.normalize_c2b_confirmation(c2b_payload()))

        assert ack.ledger_status is LedgerStatus.DUPLICATE
        assert Subscriber.objects.get(pk=subscriber.pk).expires_at == first_expiry
        assert SubscriberPayment.objects.count() == 1
        mock_sms.assert_called_once()

    def test_unknown_short_code_not_recorded(self, mpesa_config, subscriber, mock_sms):
        event = mpesa.normalize_c2b_confirmation(c2b_payload(short_code="999999"))

        ack = process(event)

        assert not ack.recorded
        assert not TransactionRecord.objects.exists()
        assert Subscriber.objects.get(pk=subscriber.pk).expires_at is None

    def test_unknown_subscriber_recorded_without_effect(self, mpesa_config, mock_sms):
        event = mpesa.normalize_c2b_confirmation(c2b_payload(bill_ref="ghost"))

        ack = process(event)

        assert ack.ledger_status is LedgerStatus.CREATED
        assert ack.effect_error_code == "SUBSCRIBER_NOT_FOUND"
        record = TransactionRecord.objects.get()
        assert record.bill_reference == "ghost"
        assert record.source == TransactionSource.OTHER

    def test_subscriber_in_other_tenant_not_extended(self, mpesa_config, mock_sms):
        stranger = SubscriberFactory(pppoe_username="jdoe")

        ack = process(mpesa.normalize_c2b_confirmation(c2b_payload()))

        assert ack.effect_error_code == "SUBSCRIBER_NOT_FOUND"
        assert Subscriber.objects.get(pk=stranger.pk).expires_at is None

    def test_incomplete_package_recorded_without_effect(self, mpesa_config, subscriber, mock_sms):
        package = subscriber.package
        package.price = Decimal("0")
        package.save()

        ack = process(mpesa.normalize_c2b_confirmation(c2b_payload()))

        assert ack.recorded
        assert ack.effect_error_code == "INCOMPLETE_CONFIGURATION"


# =============================================================================
# Kopo Kopo
# =============================================================================


class TestKopoKopoCallbacks:
    def test_received_extends_subscriber(self, kopokopo_config, subscriber, mock_sms):
        event = kopokopo.normalize_kopokopo_webhook(kopokopo_payload(metadata_reference="jdoe", amount="1000"))

        ack = process(event, account=kopokopo_config)

        assert ack.recorded
        record = TransactionRecord.objects.get(provider_txn_id="OJM6Q1W84K")
        assert record.transaction_type == TransactionType.BUYGOODS
        assert record.gateway == "kopokopo"
        assert Subscriber.objects.get(pk=subscriber.pk).expires_at is not None

    def test_failed_status_recorded_without_effect(self, kopokopo_config, subscriber, mock_sms):
        event = kopokopo.normalize_kopokopo_webhook(
            kopokopo_payload(metadata_reference="jdoe", status="Failed")
        )

        ack = process(event, account=kopokopo_config)

        assert ack.recorded
        assert TransactionRecord.objects.get().result_code == kopokopo.FAILED_RESULT_CODE
        assert Subscriber.objects.get(pk=subscriber.pk).expires_at is None

    def test_resolves_account_when_not_supplied(self, kopokopo_config, subscriber, mock_sms):
        event = kopokopo.normalize_kopokopo_webhook(kopokopo_payload(metadata_reference="jdoe"))

        ack = process(event)

        assert ack.recorded
        assert TransactionRecord.objects.get().organization_id == kopokopo_config.organization_id


# =============================================================================
# Failure isolation
# =============================================================================


class TestFailureIsolation:
    def test_ledger_failure_propagates_before_effects(self, mpesa_config, subscriber, mocker):
        repository = DjangoCallbackRepository()
        mocker.patch.object(
            repository,
            "record_transaction",
            side_effect=LedgerWriteError("Failed to store transaction RKTQDM7W6S"),
        )
        apply_payment = mocker.patch.object(repository, "apply_subscriber_payment")

        with pytest.raises(LedgerWriteError):
            CallbackProcessor(repository=repository).process(
                mpesa.normalize_c2b_confirmation(c2b_payload())
            )

        apply_payment.assert_not_called()
        assert Subscriber.objects.get(pk=subscriber.pk).expires_at is None

    def test_voucher_ledger_failure_leaves_voucher_pending(self, pending_voucher, mocker):
        repository = DjangoCallbackRepository()
        mocker.patch.object(repository, "record_transaction", side_effect=LedgerWriteError("down"))

        with pytest.raises(LedgerWriteError):
            CallbackProcessor(repository=repository).process(
                mpesa.normalize_stk_callback(stk_success_payload(checkout_request_id=STK_VOUCHER_CHECKOUT_ID))
            )

        assert PrepaidVoucher.objects.get(pk=pending_voucher.pk).status == VoucherStatus.PENDING

    def test_notification_failure_does_not_change_outcome(self, mpesa_config, subscriber, mocker):
        mocker.patch(
            "notifications.tasks.send_template_sms.delay",
            side_effect=ConnectionError("broker down"),
        )

        ack = process(mpesa.normalize_c2b_confirmation(c2b_payload(amount="1000")))

        assert ack.recorded
        assert ack.effect_error_code is None
        assert Subscriber.objects.get(pk=subscriber.pk).expires_at is not None

    def test_effect_error_is_acknowledged(self, mpesa_config, subscriber, mocker):
        repository = DjangoCallbackRepository()
        mocker.patch.object(repository, "apply_subscriber_payment", side_effect=RuntimeError("lock timeout"))
        handle_exception = mocker.spy(CallbackProcessor, "handle_exception")

        ack = CallbackProcessor(repository=repository).process(
            mpesa.normalize_c2b_confirmation(c2b_payload())
        )

        assert ack.ledger_status is LedgerStatus.CREATED
        assert ack.effect_error_code == "RUNTIMEERROR"
        assert TransactionRecord.objects.count() == 1
        handle_exception.assert_called_once()

    def test_oversized_payment_recorded_without_extension(self, mpesa_config, subscriber, mock_sms):
        """Price 1 / 30 days: 200000 buys more days than can be stored."""
        package = subscriber.package
        package.price = Decimal("1")
        package.save()

        ack = process(mpesa.normalize_c2b_confirmation(c2b_payload(amount="200000")))

        assert ack.ledger_status is LedgerStatus.CREATED
        assert ack.effect_error_code == "EXTENSION_OUT_OF_RANGE"
        assert Subscriber.objects.get(pk=subscriber.pk).expires_at is None
        assert not SubscriberPayment.objects.exists()
        mock_sms.assert_not_called()
