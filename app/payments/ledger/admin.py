"""
Django admin configuration for the transaction ledger.

TransactionRecord is append-only: the admin shows records but cannot add,
edit or delete them.
"""

from django.contrib import admin

from .models import TransactionRecord


@admin.register(TransactionRecord)
class TransactionRecordAdmin(admin.ModelAdmin):
    """
    Admin configuration for TransactionRecord.

    Records are written only by LedgerService from provider callbacks.
    """

    list_display = [
        "provider_txn_id",
        "occurred_at",
        "organization",
        "amount",
        "gateway",
        "transaction_type",
        "source",
        "bill_reference",
        "result_code",
    ]
    list_filter = ["gateway", "transaction_type", "source", "result_code", "occurred_at"]
    search_fields = [
        "provider_txn_id",
        "bill_reference",
        "phone_number",
        "invoice_number",
        "name",
    ]
    readonly_fields = [field.name for field in TransactionRecord._meta.fields]
    date_hierarchy = "occurred_at"
    ordering = ["-occurred_at"]

    fieldsets = (
        (
            "Transaction",
            {
                "fields": (
                    "id",
                    "provider_txn_id",
                    "amount",
                    "occurred_at",
                    "organization",
                ),
            },
        ),
        (
            "Provider",
            {
                "fields": (
                    "gateway",
                    "transaction_type",
                    "result_code",
                    "result_desc",
                    "invoice_number",
                    "org_account_balance",
                ),
            },
        ),
        (
            "Payer",
            {
                "fields": ("name", "phone_number", "bill_reference", "source"),
            },
        ),
        (
            "Audit",
            {
                "fields": ("raw_payload", "created_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Records are immutable."""
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        """Records are only created through LedgerService."""
        return False
