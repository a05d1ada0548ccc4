"""
Kopo Kopo buy goods webhook normalizer and signature check.

Kopo Kopo has shipped several webhook envelopes (v1 "event.resource",
v2 "data.attributes", and mixtures), so every field is looked up along a
list of paths and the first present value wins.

Signature:
    X-KopoKopo-Signature = hex(HMAC-SHA256(key=till api_key, msg=raw body))

Usage:
    from payments.callbacks import kopokopo

    till = kopokopo.extract_till_number(body)
    kopokopo.verify_signature(request.body, signature, config.api_key)
    event = kopokopo.normalize_kopokopo_webhook(body)
"""

from __future__ import annotations

import hashlib
import hmac
import re
from typing import Any

from tenants.models import GatewayProvider, TransactionType

from payments.callbacks.events import (
    SUCCESS_RESULT_CODE,
    CallbackChannel,
    CallbackEvent,
    clean_text,
    parse_iso_timestamp,
    parse_positive_amount,
)
from payments.exceptions import InvalidAmount, InvalidSignature, MalformedCallback

SIGNATURE_HEADER = "X-KopoKopo-Signature"
FAILED_RESULT_CODE = "1"

SUCCESS_STATUS = re.compile(r"received|success", re.IGNORECASE)

TILL_NUMBER_PATHS = (
    ("event", "resource", "till_number"),
    ("data", "attributes", "till_number"),
    ("event", "resource", "tillNumber"),
    ("data", "attributes", "resource", "till_number"),
    ("data", "attributes", "event", "resource", "till_number"),
)

RESOURCE_PATHS = (
    ("event", "resource"),
    ("data", "attributes", "event", "resource"),
    ("data", "attributes", "resource"),
    ("data", "attributes"),
)


def pick(data: Any, path: tuple[str, ...]) -> Any:
    """Walk nested dicts along path; None if any step is missing."""
    current = data
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def first_present(data: Any, *paths: tuple[str, ...]) -> Any:
    for path in paths:
        value = pick(data, path)
        if value not in (None, ""):
            return value
    return None


def extract_till_number(body: Any) -> str:
    """
    Till number that received the payment.

    Raises:
        MalformedCallback: No till number at any known path
    """
    till = clean_text(first_present(body, *TILL_NUMBER_PATHS))
    if not till:
        raise MalformedCallback("Unable to determine till number from payload")
    return till


def verify_signature(raw_body: bytes, signature: str | None, api_key: str) -> None:
    """
    Check the webhook signature against the till's API key.

    Raises:
        InvalidSignature: Header missing, key not configured, or mismatch
    """
    if not signature:
        raise InvalidSignature("Missing signature")
    if not api_key:
        raise InvalidSignature("No API key configured for till")

    expected = hmac.new(api_key.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature.strip()):
        raise InvalidSignature("Invalid signature")


def _resource(body: dict[str, Any]) -> dict[str, Any]:
    for path in RESOURCE_PATHS:
        value = pick(body, path)
        if isinstance(value, dict):
            return value
    return {}


def normalize_kopokopo_webhook(body: Any) -> CallbackEvent:
    """
    Normalize a Kopo Kopo buy goods webhook.

    The metadata reference set when the charge was initiated is the
    correlation token and, failing that, the provider reference or
    transaction id serves as the bill reference.

    Raises:
        MalformedCallback: Payload is not an object, or carries no till
            number or transaction id
        InvalidAmount: Amount missing or not positive
    """
    if not isinstance(body, dict):
        raise MalformedCallback("Invalid callback structure")

    till_number = extract_till_number(body)
    resource = _resource(body)
    attributes = pick(body, ("data", "attributes")) or {}

    status = clean_text(resource.get("status") or attributes.get("status"))
    raw_amount = resource.get("amount")
    if raw_amount is None:
        raw_amount = attributes.get("amount")
    amount = parse_positive_amount(raw_amount)
    if amount is None:
        raise InvalidAmount("Invalid amount", details={"till_number": till_number, "amount": raw_amount})

    phone = clean_text(
        resource.get("sender_phone_number")
        or resource.get("msisdn")
        or pick(resource, ("customer", "phone_number"))
    )

    provider_reference = clean_text(resource.get("reference") or attributes.get("reference"))
    transaction_id = clean_text(
        provider_reference or resource.get("id") or body.get("id") or pick(body, ("data", "id"))
    )
    metadata_reference = clean_text(
        pick(resource, ("metadata", "reference"))
        or pick(body, ("metadata", "reference"))
        or pick(attributes, ("metadata", "reference"))
    )
    bill_reference = metadata_reference or provider_reference or transaction_id

    if not transaction_id:
        raise MalformedCallback("Unable to determine transaction id from payload")

    is_success = bool(SUCCESS_STATUS.search(status))

    return CallbackEvent(
        provider=GatewayProvider.KOPOKOPO,
        channel=CallbackChannel.BUYGOODS,
        provider_txn_id=transaction_id,
        result_code=SUCCESS_RESULT_CODE if is_success else FAILED_RESULT_CODE,
        result_desc=status,
        amount=amount,
        phone=phone,
        occurred_at=parse_iso_timestamp(resource.get("origination_time")),
        correlation_token=metadata_reference or None,
        gateway_business_id=till_number,
        bill_reference=bill_reference,
        name=phone,
        invoice_number=provider_reference or transaction_id,
        transaction_type=TransactionType.BUYGOODS,
        raw=body,
    )
