"""
Pytest fixtures for notification tests.
"""

import pytest

from notifications.tests.factories import SmsConfigurationFactory, SmsTemplateFactory


@pytest.fixture
def sms_config(db, organization):
    """Active TextSMS configuration for the organization."""
    return SmsConfigurationFactory(organization=organization)


@pytest.fixture
def payment_template(db, organization):
    """payment_confirmation template requiring amount, packageName, expiryDate."""
    return SmsTemplateFactory(organization=organization)


@pytest.fixture
def payment_variables():
    return {"amount": "500", "packageName": "Home 10Mbps", "expiryDate": "16 Mar 2024 15:00"}


@pytest.fixture
def mock_transport(mocker):
    """Patch the transport factory; the returned mock's send() succeeds."""
    from notifications.transports import SmsSendResult

    transport = mocker.Mock()
    transport.send.return_value = SmsSendResult(provider_message_id="msg-001")
    mocker.patch("notifications.services.get_transport", return_value=transport)
    return transport
