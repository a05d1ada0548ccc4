"""
SMS notification models.

This module defines the models for tenant SMS notifications:
- SmsConfiguration: A tenant's SMS gateway account (TextSMS or ZetaTel)
- SmsTemplate: Named message bodies with {{variable}} placeholders
- SmsMessage: Per-send delivery record

Design Decisions:
    - One active SmsConfiguration per organization
    - Templates are looked up by (organization, name); names are stable
      keys such as "payment_confirmation" and "hotspot_voucher"
    - SmsMessage rows are written for every attempt so failures are
      visible even though callers never see them

Usage:
    from notifications.models import SmsTemplate

    template = SmsTemplate.objects.get(
        organization=organization,
        name="payment_confirmation",
        is_active=True,
    )
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


# =============================================================================
# Enums
# =============================================================================


class SmsProvider(models.TextChoices):
    """Supported SMS gateways."""

    TEXT_SMS = "text_sms", "TextSMS"
    ZETATEL = "zetatel", "ZetaTel"


class SmsStatus(models.TextChoices):
    """
    Delivery status of an SmsMessage.

    Flow:
        PENDING -> SENT (gateway accepted)
        PENDING -> FAILED (gateway rejected or unreachable)
    """

    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


# =============================================================================
# SmsConfiguration
# =============================================================================


class SmsConfiguration(UUIDPrimaryKeyMixin, BaseModel):
    """
    SMS gateway credentials for an organization.

    Fields used per provider:
        TEXT_SMS: api_key, partner_id, sender_id
        ZETATEL: user_id, password, sender_id, api_key (optional header)
    """

    organization = models.OneToOneField(
        "tenants.Organization",
        on_delete=models.CASCADE,
        related_name="sms_configuration",
    )

    provider = models.CharField(
        max_length=20,
        choices=SmsProvider.choices,
        default=SmsProvider.TEXT_SMS,
    )

    api_key = models.CharField(max_length=255, blank=True, default="")
    partner_id = models.CharField(max_length=100, blank=True, default="")
    user_id = models.CharField(max_length=100, blank=True, default="")
    password = models.CharField(max_length=255, blank=True, default="")

    sender_id = models.CharField(
        max_length=20,
        blank=True,
        default="",
        help_text="Sender name or short code shown to recipients",
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = "SMS Configuration"
        verbose_name_plural = "SMS Configurations"

    def __str__(self) -> str:
        return f"SmsConfiguration({self.organization_id}, {self.provider})"

    def missing_fields(self) -> list[str]:
        """Credential fields the configured provider needs but lacks."""
        if self.provider == SmsProvider.ZETATEL:
            required = ["user_id", "password", "sender_id"]
        else:
            required = ["api_key", "partner_id", "sender_id"]
        return [name for name in required if not getattr(self, name)]


# =============================================================================
# SmsTemplate
# =============================================================================


class SmsTemplate(UUIDPrimaryKeyMixin, BaseModel):
    """
    A named SMS body for an organization.

    Placeholders use {{name}} or {name}. Variables listed in
    `variables` must be supplied when the template is sent.

    Example body:
        "Payment received! Amount: KES {{amount}} for {{packageName}}."
    """

    organization = models.ForeignKey(
        "tenants.Organization",
        on_delete=models.CASCADE,
        related_name="sms_templates",
    )

    name = models.CharField(
        max_length=100,
        help_text="Stable key, e.g. 'payment_confirmation'",
    )

    body = models.TextField()

    variables = models.JSONField(
        default=list,
        blank=True,
        help_text="Variable names that must be supplied",
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["organization", "name"]
        verbose_name = "SMS Template"
        verbose_name_plural = "SMS Templates"
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "name"],
                name="unique_sms_template_name_per_organization",
            ),
        ]

    def __str__(self) -> str:
        return f"SmsTemplate({self.name})"


# =============================================================================
# SmsMessage
# =============================================================================


class SmsMessage(UUIDPrimaryKeyMixin, BaseModel):
    """
    One attempt to deliver a templated SMS.

    Fields:
        template_name: Template key that was rendered
        phone_number: Destination
        body: Rendered text
        status: Pending, sent or failed
        provider_message_id: Gateway message id when available
        failure_code / failure_reason: Why the send failed
    """

    organization = models.ForeignKey(
        "tenants.Organization",
        on_delete=models.CASCADE,
        related_name="sms_messages",
    )

    provider = models.CharField(
        max_length=20,
        choices=SmsProvider.choices,
        blank=True,
        default="",
    )

    template_name = models.CharField(max_length=100, db_index=True)

    phone_number = models.CharField(max_length=20)

    body = models.TextField()

    status = models.CharField(
        max_length=10,
        choices=SmsStatus.choices,
        default=SmsStatus.PENDING,
        db_index=True,
    )

    provider_message_id = models.CharField(max_length=255, blank=True, default="")

    sent_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    failure_code = models.CharField(max_length=50, blank=True, default="")
    failure_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "SMS Message"
        verbose_name_plural = "SMS Messages"
        indexes = [
            models.Index(fields=["organization", "status", "-created_at"]),
        ]

    def __str__(self) -> str:
        return f"SmsMessage({self.template_name}, {self.phone_number}, {self.status})"

    def mark_sent(self, provider_message_id: str = "") -> None:
        """
        Mark message as accepted by the gateway.

        Note: Does not save - caller must save after calling.
        """
        from django.utils import timezone

        self.status = SmsStatus.SENT
        self.sent_at = timezone.now()
        self.provider_message_id = provider_message_id or ""

    def mark_failed(self, code: str, reason: str) -> None:
        """
        Mark message as failed.

        Note: Does not save - caller must save after calling.
        """
        from django.utils import timezone

        self.status = SmsStatus.FAILED
        self.failed_at = timezone.now()
        self.failure_code = code
        self.failure_reason = reason
