"""
Tenant admin configuration.
"""

from django.contrib import admin

from tenants.models import GatewayConfiguration, Organization


class GatewayConfigurationInline(admin.TabularInline):
    model = GatewayConfiguration
    extra = 0
    fields = ["provider", "business_id", "transaction_type", "is_active"]


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ["name", "phone_number", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["name"]
    inlines = [GatewayConfigurationInline]


@admin.register(GatewayConfiguration)
class GatewayConfigurationAdmin(admin.ModelAdmin):
    """
    Admin configuration for GatewayConfiguration.

    Credentials are excluded from the list view.
    """

    list_display = [
        "business_id",
        "provider",
        "transaction_type",
        "organization",
        "is_active",
    ]
    list_filter = ["provider", "transaction_type", "is_active"]
    search_fields = ["business_id", "organization__name"]
    readonly_fields = ["id", "created_at", "updated_at"]
