"""
Tenant models.

Organization is the tenant every ledger record, subscriber and voucher
belongs to. GatewayConfiguration holds the provider-specific business
identifier (M-Pesa short code, Kopo Kopo till number) that an inbound
callback carries, plus the credentials for that provider.

Usage:
    from tenants.models import GatewayConfiguration, GatewayProvider

    config = GatewayConfiguration.objects.get(
        provider=GatewayProvider.MPESA,
        business_id="600100",
    )
    config.organization  # tenant the money belongs to
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class GatewayProvider(models.TextChoices):
    """Payment providers that deliver callbacks."""

    MPESA = "mpesa", "M-Pesa"
    KOPOKOPO = "kopokopo", "Kopo Kopo"


class TransactionType(models.TextChoices):
    """
    How money reaches the tenant.

    PAYBILL: Payer enters a business number and an account reference
    BUYGOODS: Payer pays a till number directly
    """

    PAYBILL = "paybill", "Paybill"
    BUYGOODS = "buygoods", "Buy Goods"


class Organization(UUIDPrimaryKeyMixin, BaseModel):
    """
    A tenant (ISP) that receives payments from its subscribers.

    Fields:
        name: Display name, used in SMS templates as organizationName
        phone_number: Contact number for the organization
        is_active: Inactive organizations are never resolved
    """

    name = models.CharField(
        max_length=200,
        help_text="Organization display name",
    )

    phone_number = models.CharField(
        max_length=20,
        blank=True,
        default="",
        help_text="Contact phone number",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether callbacks may be attributed to this organization",
    )

    class Meta:
        ordering = ["name"]
        verbose_name = "Organization"
        verbose_name_plural = "Organizations"

    def __str__(self) -> str:
        return self.name


class GatewayConfiguration(UUIDPrimaryKeyMixin, BaseModel):
    """
    Per-organization, per-provider payment gateway settings.

    The business_id is what the provider puts on the wire, so it must
    identify exactly one organization for a given provider. This is
    enforced by a unique constraint on (provider, business_id).

    Fields:
        organization: Owning tenant
        provider: M-Pesa or Kopo Kopo
        business_id: Short code (M-Pesa) or till number (Kopo Kopo)
        transaction_type: Paybill or buy goods
        consumer_key / consumer_secret / passkey: M-Pesa Daraja credentials
        api_key: Kopo Kopo API key, also the webhook HMAC signing key
        is_active: Inactive configurations are ignored by the resolver
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="gateway_configurations",
        help_text="Organization this configuration belongs to",
    )

    provider = models.CharField(
        max_length=20,
        choices=GatewayProvider.choices,
        db_index=True,
        help_text="Payment provider",
    )

    business_id = models.CharField(
        max_length=32,
        db_index=True,
        help_text="Short code or till number reported in callbacks",
    )

    transaction_type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        default=TransactionType.PAYBILL,
        help_text="Paybill or buy goods",
    )

    # ==========================================================================
    # Credentials
    # ==========================================================================

    consumer_key = models.CharField(max_length=255, blank=True, default="")
    consumer_secret = models.CharField(max_length=255, blank=True, default="")
    passkey = models.CharField(max_length=255, blank=True, default="")

    api_key = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Kopo Kopo API key, used to verify webhook signatures",
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Gateway Configuration"
        verbose_name_plural = "Gateway Configurations"
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "business_id"],
                name="unique_business_id_per_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"GatewayConfiguration({self.provider}, {self.business_id})"
