"""
Pytest fixtures for callback tests.

Sections:
    - Notification mocks
    - Correlated entities (voucher, payment link)
"""

import pytest

from payments.tests.payloads import STK_LINK_CHECKOUT_ID, STK_VOUCHER_CHECKOUT_ID
from subscribers.tests.factories import HotspotPackageFactory, PaymentLinkRequestFactory
from vouchers.tests.factories import PrepaidVoucherFactory


# ==========================================================================
# Notification mocks
# ==========================================================================


@pytest.fixture
def mock_sms(mocker):
    """Capture queued SMS instead of running the task."""
    return mocker.patch("notifications.tasks.send_template_sms.delay")


# ==========================================================================
# Correlated entities
# ==========================================================================


@pytest.fixture
def hotspot_package(db, organization):
    """Package: price 20 for 1 hour."""
    return HotspotPackageFactory(organization=organization, name="1 Hour Unlimited")


@pytest.fixture
def pending_voucher(db, organization, hotspot_package):
    """PENDING voucher awaiting the STK charge ws_CO_VOUCHER_0001."""
    return PrepaidVoucherFactory(
        organization=organization,
        package=hotspot_package,
        voucher_code="AB12CD34",
        phone_number="254722000111",
        payment_reference=STK_VOUCHER_CHECKOUT_ID,
    )


@pytest.fixture
def payment_link(db, subscriber):
    """Unpaid link for jdoe awaiting the STK charge ws_CO_LINK_0001."""
    return PaymentLinkRequestFactory(
        subscriber=subscriber,
        amount=subscriber.package.price,
        checkout_request_id=STK_LINK_CHECKOUT_ID,
    )
