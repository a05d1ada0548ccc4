"""
Payment provider callback endpoints.

Endpoints:
    POST /callback/stk            - M-Pesa STK push result
    POST /callback/c2b            - M-Pesa C2B confirmation
    POST /callback/c2b/validation - M-Pesa C2B validation
    POST /callback/kopokopo       - Kopo Kopo buy goods webhook (signed)

Status codes:
    - 400: Payload could not be normalized (nothing recorded)
    - 401: Kopo Kopo signature missing or wrong
    - 500: Ledger write failed (the provider should redeliver)
    - 200: Everything else, including unknown tenants, unknown
      subscribers and retried deliveries

Security:
    - CSRF exemption required for external callbacks
    - Only POST requests accepted
    - Kopo Kopo bodies are verified with the till's API key before any
      processing
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.helpers import get_client_ip
from tenants.models import GatewayProvider

from payments.callbacks import kopokopo, mpesa
from payments.callbacks.events import CallbackEvent
from payments.exceptions import CallbackError, LedgerWriteError, MalformedCallback
from payments.services import CallbackAck, CallbackProcessor

logger = logging.getLogger(__name__)

DARAJA_ACCEPTED = {"ResultCode": 0, "ResultDesc": "Accepted"}


def _parse_json(request: HttpRequest) -> Any:
    try:
        return json.loads(request.body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise MalformedCallback("Invalid JSON payload") from exc


def _error_response(exc: CallbackError | LedgerWriteError) -> JsonResponse:
    return JsonResponse({"success": False, "message": exc.message}, status=exc.status_code)


def _handle(
    request: HttpRequest,
    channel: str,
    normalize: Callable[[Any], CallbackEvent],
) -> tuple[CallbackAck | None, JsonResponse | None]:
    """
    Normalize and process a callback body.

    Returns (ack, None) on success, (None, error response) otherwise.
    """
    try:
        event = normalize(_parse_json(request))
    except CallbackError as exc:
        logger.warning(
            f"Rejected {channel} callback: {exc.message}",
            extra={"channel": channel, "error_code": exc.error_code, "client_ip": get_client_ip(request)},
        )
        return None, _error_response(exc)

    logger.info(
        f"Received {channel} callback {event.provider_txn_id}",
        extra={**event.log_context(), "client_ip": get_client_ip(request)},
    )

    try:
        return CallbackProcessor().process(event), None
    except LedgerWriteError as exc:
        logger.error(
            f"Failed to store {channel} callback {event.provider_txn_id}",
            extra=event.log_context(),
        )
        return None, _error_response(exc)


@csrf_exempt
@require_POST
def stk_callback(request: HttpRequest) -> JsonResponse:
    """
    Receive an M-Pesa STK push result.

    The charge is correlated through its CheckoutRequestID to the voucher
    or payment link that initiated it; the tenant comes from that entity.
    """
    ack, error = _handle(request, "stk", mpesa.normalize_stk_callback)
    if error is not None:
        return error
    return JsonResponse(ack.to_response())


@csrf_exempt
@require_POST
def c2b_confirmation(request: HttpRequest) -> JsonResponse:
    """
    Receive an M-Pesa C2B confirmation.

    The tenant comes from BusinessShortCode and the subscriber from
    BillRefNumber. The Daraja acknowledgement fields are included so the
    response also satisfies the C2B confirmation contract.
    """
    ack, error = _handle(request, "c2b", mpesa.normalize_c2b_confirmation)
    if error is not None:
        return error
    return JsonResponse({**ack.to_response(), **DARAJA_ACCEPTED})


@csrf_exempt
@require_POST
def c2b_validation(request: HttpRequest) -> JsonResponse:
    """
    Accept or reject a C2B payment before the payer is charged.

    Always HTTP 200; the decision is in ResultCode.
    """
    try:
        payload = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        payload = None

    result_code, result_desc = mpesa.validate_c2b_request(payload)
    if result_code != mpesa.C2B_ACCEPTED:
        logger.info(
            f"Rejected C2B validation: {result_code}",
            extra={"result_code": result_code, "client_ip": get_client_ip(request)},
        )
    return JsonResponse({"ResultCode": result_code, "ResultDesc": result_desc})


@csrf_exempt
@require_POST
def kopokopo_callback(request: HttpRequest) -> JsonResponse:
    """
    Receive a Kopo Kopo buy goods webhook.

    Flow:
        1. Require the X-KopoKopo-Signature header
        2. Find the till number and the organization that owns it
           (unknown till: acknowledged, nothing recorded)
        3. Verify the signature with the till's API key
        4. Normalize and process

    Example X-KopoKopo-Signature header:
        3a5b...  (hex HMAC-SHA256 of the raw body)
    """
    signature = request.headers.get(kopokopo.SIGNATURE_HEADER, "")

    try:
        if not signature:
            kopokopo.verify_signature(request.body, signature, "")
        body = _parse_json(request)
        till_number = kopokopo.extract_till_number(body)
    except CallbackError as exc:
        logger.warning(
            f"Rejected Kopo Kopo webhook: {exc.message}",
            extra={"error_code": exc.error_code, "client_ip": get_client_ip(request)},
        )
        return _error_response(exc)

    processor = CallbackProcessor()
    resolved = processor.repository.resolve_account(GatewayProvider.KOPOKOPO, till_number)
    if not resolved.success:
        logger.warning(
            f"Kopo Kopo webhook for unknown till {till_number}",
            extra={"business_id": till_number, "error_code": resolved.error_code},
        )
        return JsonResponse(
            {"success": True, "message": f"No Kopo Kopo configuration for till {till_number}"}
        )
    account = resolved.data

    try:
        kopokopo.verify_signature(request.body, signature, account.api_key)
        event = kopokopo.normalize_kopokopo_webhook(body)
    except CallbackError as exc:
        logger.warning(
            f"Rejected Kopo Kopo webhook: {exc.message}",
            extra={"business_id": till_number, "error_code": exc.error_code},
        )
        return _error_response(exc)

    logger.info(
        f"Received Kopo Kopo webhook {event.provider_txn_id}",
        extra={**event.log_context(), "client_ip": get_client_ip(request)},
    )

    try:
        ack = processor.process(event, account=account)
    except LedgerWriteError as exc:
        logger.error(
            f"Failed to store Kopo Kopo webhook {event.provider_txn_id}",
            extra=event.log_context(),
        )
        return _error_response(exc)

    return JsonResponse(ack.to_response())
