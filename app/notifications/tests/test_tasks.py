"""
Tests for notification Celery tasks.

Tasks run eagerly (see the root conftest).
"""

from notifications.models import SmsMessage, SmsStatus
from notifications.tasks import send_template_sms
from notifications.transports import SmsDeliveryError


class TestSendTemplateSmsTask:
    """Tests for the send_template_sms task."""

    def test_sends(self, organization, sms_config, payment_template, payment_variables, mock_transport):
        result = send_template_sms.apply(
            kwargs={
                "organization_id": str(organization.id),
                "template_name": "payment_confirmation",
                "phone_number": "254712345678",
                "variables": payment_variables,
            }
        )

        assert result.get() is True
        assert SmsMessage.objects.get().status == SmsStatus.SENT

    def test_expected_failure_returns_false(self, organization, payment_variables, mock_transport):
        result = send_template_sms.apply(
            kwargs={
                "organization_id": str(organization.id),
                "template_name": "payment_confirmation",
                "phone_number": "254712345678",
                "variables": payment_variables,
            }
        )

        assert result.get() is False

    def test_transient_failure_is_retried(
        self, organization, sms_config, payment_template, payment_variables, mock_transport
    ):
        """Each attempt records its own failed SmsMessage."""
        mock_transport.send.side_effect = SmsDeliveryError("timed out", is_transient=True)

        result = send_template_sms.apply(
            kwargs={
                "organization_id": str(organization.id),
                "template_name": "payment_confirmation",
                "phone_number": "254712345678",
                "variables": payment_variables,
            }
        )

        assert result.failed()
        assert mock_transport.send.call_count > 1
        assert SmsMessage.objects.filter(status=SmsStatus.FAILED).count() == mock_transport.send.call_count
