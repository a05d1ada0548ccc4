"""
SMS gateway transports.

Each transport sends one rendered message through one gateway and
reports the outcome as an SmsSendResult. Network failures and gateway
rejections raise SmsDeliveryError, classified as transient (worth a
retry) or permanent.

Transports:
    TextSmsTransport: JSON API at sms.textsms.co.ke
    ZetaTelTransport: Form-encoded API at portal.zettatel.com

Usage:
    from notifications.transports import get_transport

    transport = get_transport(sms_configuration)
    result = transport.send("254712345678", "Payment received")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import requests
from django.conf import settings

from core.exceptions import ExternalServiceError

from notifications.models import SmsProvider

if TYPE_CHECKING:
    from notifications.models import SmsConfiguration


logger = logging.getLogger(__name__)


class SmsDeliveryError(ExternalServiceError):
    """Raised when a gateway cannot be reached or rejects a message."""

    default_error_code = "SEND_FAILED"

    def __init__(self, message: str, is_transient: bool = False, details=None):
        super().__init__(message, details=details)
        self.is_transient = is_transient


@dataclass
class SmsSendResult:
    """Gateway acceptance of a single message."""

    provider_message_id: str = ""
    raw: dict | None = None


def _timeout() -> float:
    return float(getattr(settings, "SMS_HTTP_TIMEOUT_SECONDS", 10))


class BaseTransport:
    """Shared HTTP handling for SMS gateways."""

    provider: str = ""

    def __init__(self, config: SmsConfiguration):
        self.config = config

    def send(self, phone_number: str, message: str) -> SmsSendResult:
        raise NotImplementedError

    def _post(self, url: str, **kwargs) -> dict:
        """POST and decode JSON, converting failures to SmsDeliveryError."""
        try:
            with requests.Session() as session:
                resp = session.post(url, timeout=_timeout(), **kwargs)
        except requests.Timeout as exc:
            raise SmsDeliveryError(
                f"{self.provider} request timed out", is_transient=True
            ) from exc
        except requests.RequestException as exc:
            raise SmsDeliveryError(
                f"{self.provider} network error: {exc}", is_transient=True
            ) from exc

        if resp.status_code >= 500:
            raise SmsDeliveryError(
                f"{self.provider} HTTP {resp.status_code}", is_transient=True
            )

        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text[:300]}

        if not resp.ok:
            raise SmsDeliveryError(
                f"{self.provider} HTTP {resp.status_code}",
                details={"response": data},
            )

        logger.debug(f"{self.provider} HTTP {resp.status_code}: {data}")
        return data


class TextSmsTransport(BaseTransport):
    """
    TextSMS gateway.

    Request: JSON {apikey, partnerID, message, shortcode, mobile}
    Success: responses[0]["response-code"] == 200
    """

    provider = SmsProvider.TEXT_SMS

    def send(self, phone_number: str, message: str) -> SmsSendResult:
        data = self._post(
            settings.TEXTSMS_API_URL,
            json={
                "apikey": self.config.api_key,
                "partnerID": self.config.partner_id,
                "message": message,
                "shortcode": self.config.sender_id,
                "mobile": phone_number,
            },
        )

        responses = data.get("responses") or [{}]
        first = responses[0] if isinstance(responses, list) and responses else {}
        code = first.get("response-code", first.get("respose-code"))
        if str(code) != "200":
            raise SmsDeliveryError(
                first.get("response-description") or "TextSMS rejected the message",
                details={"response": data},
            )

        return SmsSendResult(
            provider_message_id=str(first.get("messageid", "")),
            raw=data,
        )


class ZetaTelTransport(BaseTransport):
    """
    ZetaTel gateway.

    Request: form POST with sendMethod=quick, userid/password credentials
    and an optional apikey header.
    Success: status == "success" and statusCode == "200"
    """

    provider = SmsProvider.ZETATEL

    def send(self, phone_number: str, message: str) -> SmsSendResult:
        headers = {}
        if self.config.api_key:
            headers["apikey"] = self.config.api_key

        data = self._post(
            settings.ZETATEL_API_URL,
            data={
                "userid": self.config.user_id,
                "password": self.config.password,
                "sendMethod": "quick",
                "mobile": phone_number,
                "msg": message,
                "senderid": self.config.sender_id,
                "msgType": "text",
                "duplicatecheck": "true",
                "output": "json",
            },
            headers=headers,
        )

        accepted = str(data.get("status", "")).lower() == "success" and str(
            data.get("statusCode", "200")
        ) == "200"
        if not accepted:
            raise SmsDeliveryError(
                data.get("reason") or "ZetaTel rejected the message",
                details={"response": data},
            )

        return SmsSendResult(
            provider_message_id=str(data.get("transactionId", "")),
            raw=data,
        )


TRANSPORTS: dict[str, type[BaseTransport]] = {
    SmsProvider.TEXT_SMS: TextSmsTransport,
    SmsProvider.ZETATEL: ZetaTelTransport,
}


def get_transport(config: SmsConfiguration) -> BaseTransport:
    """Build the transport for a configuration's provider."""
    try:
        transport_class = TRANSPORTS[config.provider]
    except KeyError:
        raise SmsDeliveryError(f"Unsupported SMS provider: {config.provider}")
    return transport_class(config)
