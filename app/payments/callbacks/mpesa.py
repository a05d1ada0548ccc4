"""
M-Pesa (Daraja) callback normalizers.

Payload shapes handled here:

    STK push result:
        {"Body": {"stkCallback": {
            "MerchantRequestID": "...",
            "CheckoutRequestID": "ws_CO_...",
            "ResultCode": 0,
            "ResultDesc": "The service request is processed successfully.",
            "CallbackMetadata": {"Item": [
                {"Name": "Amount", "Value": 1.0},
                {"Name": "MpesaReceiptNumber", "Value": "NLJ7RT61SV"},
                {"Name": "TransactionDate", "Value": 20191219102115},
                {"Name": "PhoneNumber", "Value": 254708374149}
            ]}
        }}}

    C2B confirmation / validation:
        {"TransactionType": "Pay Bill", "TransID": "RKTQDM7W6S",
         "TransTime": "20191122063845", "TransAmount": "10",
         "BusinessShortCode": "600638", "BillRefNumber": "jdoe",
         "InvoiceNumber": "", "OrgAccountBalance": "49197.00",
         "MSISDN": "254708374149", "FirstName": "John", ...}

Usage:
    from payments.callbacks.mpesa import normalize_stk_callback

    event = normalize_stk_callback(json.loads(request.body))
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Any

from tenants.models import GatewayProvider, TransactionType

from payments.callbacks.events import (
    MAX_BALANCE,
    SUCCESS_RESULT_CODE,
    CallbackChannel,
    CallbackEvent,
    clean_text,
    parse_amount,
    parse_compact_timestamp,
    parse_positive_amount,
)
from payments.exceptions import InvalidAmount, MalformedCallback, MissingPhone

logger = logging.getLogger(__name__)

C2B_REQUIRED_FIELDS = (
    "TransID",
    "TransTime",
    "TransAmount",
    "BusinessShortCode",
    "BillRefNumber",
    "MSISDN",
)

# Daraja C2B validation result codes
C2B_ACCEPTED = "0"
C2B_REJECT_INVALID_MSISDN = "C2B00011"
C2B_REJECT_INVALID_ACCOUNT = "C2B00012"
C2B_REJECT_INVALID_AMOUNT = "C2B00013"

KENYAN_MSISDN = re.compile(r"^254\d{9}$")

_C2B_TRANSACTION_TYPES = {
    "pay bill": TransactionType.PAYBILL,
    "paybill": TransactionType.PAYBILL,
    "buy goods": TransactionType.BUYGOODS,
    "buygoods": TransactionType.BUYGOODS,
    "customerbuygoodsonline": TransactionType.BUYGOODS,
    "customerpaybillonline": TransactionType.PAYBILL,
}


# =============================================================================
# STK push
# =============================================================================


def _metadata_values(callback: dict[str, Any]) -> dict[str, Any]:
    """Flatten CallbackMetadata.Item into a name -> value dict."""
    metadata = callback.get("CallbackMetadata")
    if not isinstance(metadata, dict):
        return {}
    items = metadata.get("Item")
    if not isinstance(items, list):
        return {}

    values = {}
    for item in items:
        if isinstance(item, dict) and "Name" in item:
            values[item["Name"]] = item.get("Value")
    return values


def normalize_stk_callback(payload: Any) -> CallbackEvent:
    """
    Normalize an STK push result callback.

    A failed charge (non-zero ResultCode) usually has no metadata, so
    amount and phone are only required when the result is a success.

    Raises:
        MalformedCallback: Envelope, CheckoutRequestID or ResultCode missing
        InvalidAmount: Amount missing/non-positive on success, or a supplied
            amount that is not positive
        MissingPhone: Successful result without a phone number
    """
    body = payload.get("Body") if isinstance(payload, dict) else None
    callback = body.get("stkCallback") if isinstance(body, dict) else None
    if not isinstance(callback, dict):
        raise MalformedCallback("Invalid callback structure")

    checkout_request_id = clean_text(callback.get("CheckoutRequestID"))
    raw_result_code = callback.get("ResultCode")
    if not checkout_request_id or raw_result_code is None or clean_text(raw_result_code) == "":
        raise MalformedCallback("Missing required fields in callback")

    result_code = clean_text(raw_result_code)
    metadata = _metadata_values(callback)
    receipt = clean_text(metadata.get("MpesaReceiptNumber"))
    phone = clean_text(metadata.get("PhoneNumber"))
    is_success = result_code == SUCCESS_RESULT_CODE

    raw_amount = metadata.get("Amount")
    amount = parse_positive_amount(raw_amount)
    if amount is None and (is_success or raw_amount is not None):
        raise InvalidAmount(
            "Invalid amount in callback",
            details={"checkout_request_id": checkout_request_id, "amount": raw_amount},
        )

    if is_success and not phone:
        raise MissingPhone(
            "Missing phone number in callback",
            details={"checkout_request_id": checkout_request_id},
        )

    return CallbackEvent(
        provider=GatewayProvider.MPESA,
        channel=CallbackChannel.STK_PUSH,
        provider_txn_id=receipt or checkout_request_id,
        result_code=result_code,
        result_desc=clean_text(callback.get("ResultDesc")),
        amount=amount,
        phone=phone,
        occurred_at=parse_compact_timestamp(metadata.get("TransactionDate")),
        correlation_token=checkout_request_id,
        name=phone,
        invoice_number=receipt,
        raw=payload,
    )


# =============================================================================
# C2B confirmation
# =============================================================================


def _c2b_transaction_type(value: Any) -> str | None:
    return _C2B_TRANSACTION_TYPES.get(clean_text(value).lower())


def _c2b_payer_name(payload: dict[str, Any]) -> str:
    parts = (clean_text(payload.get(key)) for key in ("FirstName", "MiddleName", "LastName"))
    return " ".join(part for part in parts if part) or "Unknown"


def normalize_c2b_confirmation(payload: Any) -> CallbackEvent:
    """
    Normalize a C2B paybill/till confirmation.

    Confirmations are only sent for completed payments, so the event is
    always a success.

    Raises:
        MalformedCallback: A required field is missing or empty
        InvalidAmount: TransAmount is not a positive number
    """
    if not isinstance(payload, dict):
        raise MalformedCallback("Invalid callback structure")

    missing = [name for name in C2B_REQUIRED_FIELDS if not clean_text(payload.get(name))]
    if missing:
        raise MalformedCallback(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing_fields": missing},
        )

    trans_id = clean_text(payload["TransID"])
    balance = parse_amount(payload.get("OrgAccountBalance"))
    if balance is None or abs(balance) > MAX_BALANCE:
        balance = Decimal("0")
    amount = parse_positive_amount(payload["TransAmount"])
    if amount is None:
        raise InvalidAmount(
            "Invalid transaction amount",
            details={"trans_id": trans_id, "amount": payload["TransAmount"]},
        )

    return CallbackEvent(
        provider=GatewayProvider.MPESA,
        channel=CallbackChannel.C2B,
        provider_txn_id=trans_id,
        result_code=SUCCESS_RESULT_CODE,
        result_desc="Accepted",
        amount=amount,
        phone=clean_text(payload["MSISDN"]),
        occurred_at=parse_compact_timestamp(payload["TransTime"]),
        gateway_business_id=clean_text(payload["BusinessShortCode"]),
        bill_reference=clean_text(payload["BillRefNumber"]),
        name=_c2b_payer_name(payload),
        invoice_number=clean_text(payload.get("InvoiceNumber")),
        org_account_balance=balance,
        transaction_type=_c2b_transaction_type(payload.get("TransactionType")),
        raw=payload,
    )


# =============================================================================
# C2B validation
# =============================================================================


def validate_c2b_request(payload: Any) -> tuple[str, str]:
    """
    Decide a C2B validation request before the payer is charged.

    Returns:
        (ResultCode, ResultDesc) for the Daraja response body. "0"
        accepts the payment; C2B000xx codes reject it.
    """
    if not isinstance(payload, dict):
        return C2B_REJECT_INVALID_ACCOUNT, "Rejected"

    if not clean_text(payload.get("BillRefNumber")):
        return C2B_REJECT_INVALID_ACCOUNT, "Rejected"

    if parse_positive_amount(payload.get("TransAmount")) is None:
        return C2B_REJECT_INVALID_AMOUNT, "Rejected"

    if not KENYAN_MSISDN.match(clean_text(payload.get("MSISDN"))):
        return C2B_REJECT_INVALID_MSISDN, "Rejected"

    return C2B_ACCEPTED, "Accepted"
