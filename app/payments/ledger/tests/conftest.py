"""
Pytest fixtures for ledger tests.
"""

from decimal import Decimal

import pytest
from django.utils import timezone

from payments.ledger.types import RecordTransactionParams


@pytest.fixture
def record_params(organization):
    """Params for a 500 KES paybill payment by jdoe."""
    return RecordTransactionParams(
        provider_txn_id="QK12ABC34D",
        amount=Decimal("500.00"),
        organization_id=organization.id,
        occurred_at=timezone.now(),
        bill_reference="jdoe",
        phone_number="254712345678",
        name="John Doe",
        raw_payload={"TransID": "QK12ABC34D"},
    )
