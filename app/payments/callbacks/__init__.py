"""
Provider callback normalizers.

The only place that knows provider payload shapes. Each normalizer turns
one provider payload into a CallbackEvent or raises a CallbackError.

Modules:
    events: CallbackEvent, CallbackChannel and field parsers
    mpesa: STK push results, C2B confirmations and C2B validation
    kopokopo: Buy goods webhooks and their HMAC signature
"""

from .events import CallbackChannel, CallbackEvent
from .kopokopo import normalize_kopokopo_webhook, verify_signature
from .mpesa import normalize_c2b_confirmation, normalize_stk_callback, validate_c2b_request

__all__ = [
    "CallbackChannel",
    "CallbackEvent",
    "normalize_c2b_confirmation",
    "normalize_kopokopo_webhook",
    "normalize_stk_callback",
    "validate_c2b_request",
    "verify_signature",
]
