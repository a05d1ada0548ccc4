"""
Subscriber admin configuration.
"""

from django.contrib import admin

from subscribers.models import (
    PaymentLinkRequest,
    ServicePackage,
    Subscriber,
    SubscriberPayment,
)


@admin.register(ServicePackage)
class ServicePackageAdmin(admin.ModelAdmin):
    list_display = ["name", "organization", "price", "duration", "duration_unit", "package_type"]
    list_filter = ["package_type", "duration_unit", "is_active"]
    search_fields = ["name", "organization__name"]


@admin.register(Subscriber)
class SubscriberAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "organization",
        "pppoe_username",
        "hotspot_username",
        "status",
        "expires_at",
    ]
    list_filter = ["status"]
    search_fields = ["name", "phone_number", "pppoe_username", "hotspot_username"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(PaymentLinkRequest)
class PaymentLinkRequestAdmin(admin.ModelAdmin):
    list_display = ["token", "subscriber", "amount", "checkout_request_id", "paid_at"]
    search_fields = ["token", "checkout_request_id", "subscriber__name"]


@admin.register(SubscriberPayment)
class SubscriberPaymentAdmin(admin.ModelAdmin):
    """Read-only view of reconciled payments."""

    list_display = ["subscriber", "amount", "days_credited", "new_expires_at", "provider_txn_id"]
    search_fields = ["provider_txn_id", "subscriber__name"]

    def has_change_permission(self, request, obj=None):
        return False
