"""
Voucher admin configuration.

Status is FSM-protected and shown read-only; it changes only through
VoucherService.
"""

from django.contrib import admin

from vouchers.models import PrepaidVoucher


@admin.register(PrepaidVoucher)
class PrepaidVoucherAdmin(admin.ModelAdmin):
    list_display = [
        "voucher_code",
        "organization",
        "package",
        "phone_number",
        "status",
        "expires_at",
        "activated_at",
    ]
    list_filter = ["status"]
    search_fields = ["voucher_code", "phone_number", "payment_reference"]
    readonly_fields = [
        "id",
        "status",
        "payment_reference",
        "activated_at",
        "cancelled_at",
        "last_used_at",
        "created_at",
        "updated_at",
    ]
