"""
SMS notification service layer.

Services:
    SmsService: Render a tenant template and send it through the tenant's
        SMS gateway, logging every attempt as an SmsMessage
    NotificationDispatcher: Fire-and-forget entry point used by payment
        reconciliation; queues the send on Celery and never raises

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure() with an error code:
      NO_CONFIGURATION, INCOMPLETE_CONFIGURATION, TEMPLATE_NOT_FOUND,
      MISSING_VARIABLES, SEND_FAILED
    - A notification failure never affects the payment that triggered it

Usage:
    from notifications.services import NotificationDispatcher

    NotificationDispatcher.dispatch(
        organization_id=subscriber.organization_id,
        template_name="payment_confirmation",
        phone_number=subscriber.phone_number,
        variables={"amount": "500", "packageName": "Home 10Mbps", ...},
    )
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.utils import timezone

from core.services import BaseService, ErrorKind, ServiceResult

from notifications.models import SmsConfiguration, SmsMessage, SmsTemplate
from notifications.transports import SmsDeliveryError, get_transport

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}|\{(\w+)\}")

DEFAULT_TEMPLATES: list[dict[str, Any]] = [
    {
        "name": "payment_confirmation",
        "body": (
            "Payment received! Amount: KES {{amount}} for {{packageName}}. "
            "Your service is active until {{expiryDate}}. Thank you! - {{organizationName}}"
        ),
        "variables": ["amount", "packageName", "expiryDate", "organizationName"],
    },
    {
        "name": "hotspot_voucher",
        "body": (
            "Your {{packageName}} voucher code is {{voucherCode}}. Amount paid: KES {{amount}}. "
            "Valid until {{expiryDate}}. - {{organizationName}}"
        ),
        "variables": ["voucherCode", "packageName", "amount", "expiryDate", "organizationName"],
    },
    {
        "name": "welcome_message",
        "body": (
            "Welcome to {{organizationName}}! Your internet service has been activated. "
            "Your account details: Username: {{username}}, Password: {{password}}. "
            "For support, contact us at {{supportNumber}}. Thank you for choosing us!"
        ),
        "variables": ["organizationName", "username", "password", "supportNumber"],
    },
    {
        "name": "customer_expiry_reminder",
        "body": (
            "Dear {{customerName}}, your internet package expires on {{expiryDate}}. "
            "Please renew to avoid service interruption. Contact {{supportNumber}} "
            "for assistance. - {{organizationName}}"
        ),
        "variables": ["customerName", "expiryDate", "supportNumber", "organizationName"],
    },
]


# =============================================================================
# Formatting helpers
# =============================================================================


def format_amount(amount: Decimal | int | float | None) -> str:
    """KES amount for SMS text: '500' or '499.50'."""
    if amount is None:
        return ""
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return str(value.quantize(Decimal("1")))
    return str(value.quantize(Decimal("0.01")))


def format_datetime(value: datetime | None) -> str:
    """Local (MPESA_TIMEZONE) date and time for SMS text."""
    if value is None:
        return ""
    try:
        tz = ZoneInfo(getattr(settings, "MPESA_TIMEZONE", "Africa/Nairobi"))
    except (ZoneInfoNotFoundError, ValueError):
        tz = ZoneInfo("UTC")
    if timezone.is_naive(value):
        value = timezone.make_aware(value, tz)
    return value.astimezone(tz).strftime("%d %b %Y %H:%M")


def render_template(body: str, variables: dict[str, Any]) -> str:
    """
    Substitute {{name}} and {name} placeholders in one pass.

    Substituted values are not re-scanned, and placeholders without a
    supplied value are left as written.
    """

    def replace(match: re.Match) -> str:
        key = match.group(1) or match.group(2)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return PLACEHOLDER.sub(replace, body)


def seed_default_templates(organization) -> int:
    """
    Create any missing default templates for an organization.

    Existing templates (including edited ones) are left alone.

    Returns:
        Number of templates created
    """
    created = 0
    for template in DEFAULT_TEMPLATES:
        _, was_created = SmsTemplate.objects.get_or_create(
            organization=organization,
            name=template["name"],
            defaults={
                "body": template["body"],
                "variables": list(template["variables"]),
            },
        )
        created += int(was_created)
    return created


# =============================================================================
# SmsService
# =============================================================================


class SmsService(BaseService):
    """Send templated SMS through an organization's gateway."""

    @classmethod
    def send_template_sms(
        cls,
        organization_id,
        template_name: str,
        phone_number: str,
        variables: dict[str, Any] | None = None,
        raise_transient: bool = False,
    ) -> ServiceResult[SmsMessage]:
        """
        Render and send one templated SMS.

        Flow:
            1. Load the active SmsConfiguration (NO_CONFIGURATION)
            2. Check provider credentials (INCOMPLETE_CONFIGURATION)
            3. Load the active template (TEMPLATE_NOT_FOUND)
            4. Check required variables (MISSING_VARIABLES)
            5. Render, record an SmsMessage, send through the transport
            6. Mark the message sent or failed (SEND_FAILED)

        Args:
            organization_id: Tenant whose template and gateway are used
            template_name: Template key, e.g. "payment_confirmation"
            phone_number: Destination
            variables: Placeholder values
            raise_transient: Re-raise transient gateway errors after
                recording the failed attempt (used by the Celery task to
                trigger a retry)

        Returns:
            ServiceResult with the SmsMessage on success
        """
        log = cls.get_logger()
        variables = variables or {}
        context = {
            "organization_id": str(organization_id),
            "template_name": template_name,
        }

        config = SmsConfiguration.objects.filter(
            organization_id=organization_id,
            is_active=True,
        ).first()
        if config is None:
            log.info("No SMS configuration for organization", extra=context)
            return ServiceResult.failure(
                "SMS configuration not found for organization",
                error_code="NO_CONFIGURATION",
                kind=ErrorKind.NOT_FOUND,
            )

        missing_credentials = config.missing_fields()
        if missing_credentials:
            log.warning(
                f"SMS configuration incomplete: {', '.join(missing_credentials)}",
                extra=context,
            )
            return ServiceResult.failure(
                f"SMS configuration is incomplete: {', '.join(missing_credentials)}",
                error_code="INCOMPLETE_CONFIGURATION",
                kind=ErrorKind.INVALID_INPUT,
            )

        template = SmsTemplate.objects.filter(
            organization_id=organization_id,
            name=template_name,
            is_active=True,
        ).first()
        if template is None:
            log.warning(f"SMS template '{template_name}' not found or inactive", extra=context)
            return ServiceResult.failure(
                f"SMS template '{template_name}' not found or inactive",
                error_code="TEMPLATE_NOT_FOUND",
                kind=ErrorKind.NOT_FOUND,
            )

        missing_variables = [name for name in (template.variables or []) if name not in variables]
        if missing_variables:
            log.warning(
                f"Missing required variables: {', '.join(missing_variables)}",
                extra=context,
            )
            return ServiceResult.failure(
                f"Missing required variables: {', '.join(missing_variables)}",
                error_code="MISSING_VARIABLES",
                kind=ErrorKind.INVALID_INPUT,
            )

        message = SmsMessage.objects.create(
            organization_id=organization_id,
            provider=config.provider,
            template_name=template_name,
            phone_number=phone_number,
            body=render_template(template.body, variables),
        )

        try:
            result = get_transport(config).send(phone_number, message.body)
        except SmsDeliveryError as exc:
            message.mark_failed("SEND_FAILED", exc.message)
            message.save(update_fields=["status", "failed_at", "failure_code", "failure_reason", "updated_at"])
            log.warning(
                f"SMS send failed: {exc.message}",
                extra={**context, "sms_message_id": str(message.id), "transient": exc.is_transient},
            )
            if raise_transient and exc.is_transient:
                raise
            return ServiceResult.failure(
                f"Failed to send SMS: {exc.message}",
                error_code="SEND_FAILED",
                kind=ErrorKind.CONFLICT,
            )

        message.mark_sent(result.provider_message_id)
        message.save(update_fields=["status", "sent_at", "provider_message_id", "updated_at"])
        log.info(
            f"SMS '{template_name}' sent",
            extra={**context, "sms_message_id": str(message.id)},
        )
        return ServiceResult.success(message)


# =============================================================================
# NotificationDispatcher
# =============================================================================


class NotificationDispatcher(BaseService):
    """
    Best-effort notification entry point for payment flows.

    dispatch() only queues work. It returns False instead of raising when
    the queue is unavailable, so callers can fire it after committing
    state changes without guarding it.
    """

    @classmethod
    def dispatch(
        cls,
        organization_id,
        template_name: str,
        phone_number: str,
        variables: dict[str, Any],
    ) -> bool:
        """
        Queue a templated SMS.

        Returns:
            True if the send was queued, False otherwise
        """
        # Import tasks here to avoid circular imports
        from notifications import tasks

        log = cls.get_logger()
        context = {"organization_id": str(organization_id), "template_name": template_name}

        if not phone_number:
            log.info("No phone number for notification, skipping", extra=context)
            return False

        try:
            tasks.send_template_sms.delay(
                organization_id=str(organization_id),
                template_name=template_name,
                phone_number=phone_number,
                variables={key: "" if value is None else str(value) for key, value in variables.items()},
            )
        except Exception as exc:
            log.error(f"Failed to queue SMS '{template_name}': {exc}", extra=context, exc_info=True)
            return False

        log.info(f"Queued SMS '{template_name}'", extra=context)
        return True
