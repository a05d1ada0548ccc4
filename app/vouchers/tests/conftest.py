"""
Pytest fixtures for voucher tests.
"""

import pytest
from rest_framework.test import APIClient

from subscribers.tests.factories import HotspotPackageFactory
from vouchers.tests.factories import PrepaidVoucherFactory


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def hotspot_package(db, organization):
    """Package: price 20 for 1 hour."""
    return HotspotPackageFactory(organization=organization, name="1 Hour Unlimited")


@pytest.fixture
def pending_voucher(db, organization, hotspot_package):
    """PENDING voucher awaiting charge ws_CO_VOUCHER_1."""
    return PrepaidVoucherFactory(
        organization=organization,
        package=hotspot_package,
        voucher_code="AB12CD34",
        phone_number="254722000111",
        payment_reference="ws_CO_VOUCHER_1",
    )
