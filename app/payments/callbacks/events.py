"""
Canonical callback event.

Every provider normalizer produces a CallbackEvent; nothing downstream of
the normalizers looks at a provider payload again. Fields a provider does
not send are None or empty.

Usage:
    from payments.callbacks.events import CallbackEvent

    if event.is_success:
        ...
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from payments.exceptions import InvalidAmount, MalformedCallback

logger = logging.getLogger(__name__)

SUCCESS_RESULT_CODE = "0"

# Column limits of TransactionRecord.provider_txn_id, .amount and .org_account_balance
MAX_TXN_ID_LENGTH = 100
MAX_AMOUNT = Decimal("9999999999.99")
MAX_BALANCE = Decimal("999999999999.99")


class CallbackChannel(models.TextChoices):
    """
    Which provider flow produced the event.

    STK_PUSH: M-Pesa STK push result (correlated by CheckoutRequestID)
    C2B: M-Pesa paybill/till confirmation (correlated by BillRefNumber)
    BUYGOODS: Kopo Kopo buy goods webhook
    """

    STK_PUSH = "stk_push", "STK Push"
    C2B = "c2b", "C2B Confirmation"
    BUYGOODS = "buygoods", "Buy Goods"


@dataclass(frozen=True)
class CallbackEvent:
    """
    A provider callback in provider-independent form.

    Attributes:
        provider: GatewayProvider value
        channel: CallbackChannel value
        provider_txn_id: Ledger key (receipt number, else charge-request id)
        result_code: "0" on success, provider code otherwise
        result_desc: Provider's description of the outcome
        amount: Amount paid (None when a failed charge reports none)
        phone: Payer phone number
        occurred_at: Provider timestamp, or ingestion time
        correlation_token: Charge-request id for STK/voucher/link matching
        gateway_business_id: Short code or till number, when sent
        bill_reference: Account reference typed by the payer, when sent
        name: Payer name, when sent
        invoice_number: Provider invoice / receipt reference
        org_account_balance: Merchant balance reported by the provider
        transaction_type: TransactionType value, when the payload says
        raw: Original payload
    """

    provider: str
    channel: str
    provider_txn_id: str
    result_code: str
    result_desc: str = ""
    amount: Decimal | None = None
    phone: str = ""
    occurred_at: datetime = field(default_factory=timezone.now)
    correlation_token: str | None = None
    gateway_business_id: str | None = None
    bill_reference: str = ""
    name: str = ""
    invoice_number: str = ""
    org_account_balance: Decimal = Decimal("0")
    transaction_type: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.provider_txn_id) > MAX_TXN_ID_LENGTH:
            raise MalformedCallback(
                f"Transaction id longer than {MAX_TXN_ID_LENGTH} characters",
                details={"provider_txn_id": self.provider_txn_id[:MAX_TXN_ID_LENGTH]},
            )
        if self.amount is not None and self.amount > MAX_AMOUNT:
            raise InvalidAmount(
                "Amount exceeds the largest recordable value",
                details={"provider_txn_id": self.provider_txn_id, "amount": str(self.amount)},
            )

    @property
    def is_success(self) -> bool:
        return self.result_code == SUCCESS_RESULT_CODE

    def log_context(self) -> dict[str, Any]:
        """Identifiers passed to logger calls as `extra`."""
        return {
            "provider": self.provider,
            "channel": self.channel,
            "provider_txn_id": self.provider_txn_id,
            "correlation_token": self.correlation_token,
            "business_id": self.gateway_business_id,
        }


# =============================================================================
# Field parsing
# =============================================================================


def parse_amount(value: Any) -> Decimal | None:
    """
    Parse a provider amount (number or numeric string).

    Returns None for missing, non-numeric or non-finite values; callers
    decide whether that is fatal.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_positive_amount(value: Any) -> Decimal | None:
    amount = parse_amount(value)
    if amount is None or amount <= 0:
        return None
    return amount


def _provider_timezone() -> ZoneInfo:
    name = getattr(settings, "MPESA_TIMEZONE", "Africa/Nairobi")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown MPESA_TIMEZONE {name!r}, using UTC")
        return ZoneInfo("UTC")


def parse_compact_timestamp(value: Any) -> datetime:
    """
    Parse an M-Pesa YYYYMMDDHHMMSS timestamp (number or string).

    The digits are read positionally and interpreted in MPESA_TIMEZONE.
    Anything unparseable falls back to the current time: the payment
    outcome matters more than its exact timestamp.
    """
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip() if value is not None else ""

    if len(text) == 14 and text.isdigit():
        try:
            return datetime(
                int(text[0:4]),
                int(text[4:6]),
                int(text[6:8]),
                int(text[8:10]),
                int(text[10:12]),
                int(text[12:14]),
                tzinfo=_provider_timezone(),
            )
        except ValueError:
            pass

    if text:
        logger.warning(f"Unparseable provider timestamp {text!r}, using ingestion time")
    return timezone.now()


def parse_iso_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp, falling back to the current time."""
    if isinstance(value, str) and value:
        try:
            parsed = parse_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            if timezone.is_naive(parsed):
                parsed = timezone.make_aware(parsed, _provider_timezone())
            return parsed
        logger.warning(f"Unparseable provider timestamp {value!r}, using ingestion time")
    return timezone.now()


def clean_text(value: Any) -> str:
    """Coerce an optional scalar (phone numbers arrive as ints) to text."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()
