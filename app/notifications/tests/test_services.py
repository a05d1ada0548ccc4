"""
Tests for SmsService and NotificationDispatcher.

Tests cover:
- Configuration and template checks (error codes)
- Rendering and SmsMessage bookkeeping
- Gateway failures (permanent and transient)
- Dispatcher never raising
"""

import pytest

from core.services import ErrorKind
from notifications.models import SmsMessage, SmsStatus
from notifications.services import NotificationDispatcher, SmsService
from notifications.tests.factories import SmsConfigurationFactory, SmsTemplateFactory
from notifications.transports import SmsDeliveryError


# =============================================================================
# SmsService
# =============================================================================


class TestSendTemplateSms:
    """Tests for SmsService.send_template_sms."""

    def test_sends_rendered_message(
        self, organization, sms_config, payment_template, payment_variables, mock_transport
    ):
        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", payment_variables
        )

        assert result.success
        mock_transport.send.assert_called_once_with(
            "254712345678",
            "Paid KES 500 for Home 10Mbps. Active until 16 Mar 2024 15:00.",
        )
        message = SmsMessage.objects.get()
        assert message.status == SmsStatus.SENT
        assert message.provider_message_id == "msg-001"
        assert message.template_name == "payment_confirmation"

    def test_no_configuration(self, organization, payment_template, payment_variables, mock_transport):
        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", payment_variables
        )

        assert result.error_code == "NO_CONFIGURATION"
        assert result.kind is ErrorKind.NOT_FOUND
        mock_transport.send.assert_not_called()

    def test_inactive_configuration(self, organization, payment_template, payment_variables, mock_transport):
        SmsConfigurationFactory(organization=organization, is_active=False)

        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", payment_variables
        )

        assert result.error_code == "NO_CONFIGURATION"

    def test_incomplete_configuration(self, organization, payment_template, payment_variables, mock_transport):
        SmsConfigurationFactory(organization=organization, api_key="")

        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", payment_variables
        )

        assert result.error_code == "INCOMPLETE_CONFIGURATION"
        assert "api_key" in result.error
        assert not SmsMessage.objects.exists()

    def test_template_not_found(self, organization, sms_config, payment_variables, mock_transport):
        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", payment_variables
        )

        assert result.error_code == "TEMPLATE_NOT_FOUND"

    def test_inactive_template(self, organization, sms_config, payment_variables, mock_transport):
        SmsTemplateFactory(organization=organization, is_active=False)

        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", payment_variables
        )

        assert result.error_code == "TEMPLATE_NOT_FOUND"

    def test_missing_variables(self, organization, sms_config, payment_template, mock_transport):
        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", {"amount": "500"}
        )

        assert result.error_code == "MISSING_VARIABLES"
        assert "packageName" in result.error
        assert "expiryDate" in result.error
        mock_transport.send.assert_not_called()

    def test_gateway_rejection(
        self, organization, sms_config, payment_template, payment_variables, mock_transport
    ):
        mock_transport.send.side_effect = SmsDeliveryError("Invalid sender id")

        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", payment_variables
        )

        assert result.error_code == "SEND_FAILED"
        message = SmsMessage.objects.get()
        assert message.status == SmsStatus.FAILED
        assert message.failure_code == "SEND_FAILED"
        assert message.failure_reason == "Invalid sender id"

    def test_transient_error_returned_by_default(
        self, organization, sms_config, payment_template, payment_variables, mock_transport
    ):
        mock_transport.send.side_effect = SmsDeliveryError("timed out", is_transient=True)

        result = SmsService.send_template_sms(
            organization.id, "payment_confirmation", "254712345678", payment_variables
        )

        assert result.error_code == "SEND_FAILED"

    def test_transient_error_raised_on_request(
        self, organization, sms_config, payment_template, payment_variables, mock_transport
    ):
        mock_transport.send.side_effect = SmsDeliveryError("timed out", is_transient=True)

        with pytest.raises(SmsDeliveryError):
            SmsService.send_template_sms(
                organization.id,
                "payment_confirmation",
                "254712345678",
                payment_variables,
                raise_transient=True,
            )

        assert SmsMessage.objects.get().status == SmsStatus.FAILED


# =============================================================================
# NotificationDispatcher
# =============================================================================


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher.dispatch."""

    def test_queues_task(self, mocker):
        mock_delay = mocker.patch("notifications.tasks.send_template_sms.delay")

        queued = NotificationDispatcher.dispatch(
            organization_id="org-1",
            template_name="payment_confirmation",
            phone_number="254712345678",
            variables={"amount": 500, "packageName": None},
        )

        assert queued
        mock_delay.assert_called_once_with(
            organization_id="org-1",
            template_name="payment_confirmation",
            phone_number="254712345678",
            variables={"amount": "500", "packageName": ""},
        )

    def test_skips_without_phone(self, mocker):
        mock_delay = mocker.patch("notifications.tasks.send_template_sms.delay")

        queued = NotificationDispatcher.dispatch("org-1", "payment_confirmation", "", {})

        assert not queued
        mock_delay.assert_not_called()

    def test_never_raises(self, mocker):
        mocker.patch(
            "notifications.tasks.send_template_sms.delay",
            side_effect=RuntimeError("broker unreachable"),
        )

        queued = NotificationDispatcher.dispatch("org-1", "payment_confirmation", "254712345678", {})

        assert not queued
