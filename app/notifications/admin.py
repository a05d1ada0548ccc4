"""
Django admin configuration for SMS notification models.

Registers:
- SmsConfiguration
- SmsTemplate (with a "seed default templates" action on configurations)
- SmsMessage (read-only delivery log)
"""

from django.contrib import admin

from notifications.models import SmsConfiguration, SmsMessage, SmsTemplate
from notifications.services import seed_default_templates


@admin.register(SmsConfiguration)
class SmsConfigurationAdmin(admin.ModelAdmin):
    """
    Admin configuration for SmsConfiguration.

    Credentials are editable; the seed action creates any default
    templates the organization does not have yet.
    """

    list_display = ["organization", "provider", "sender_id", "is_active", "updated_at"]
    list_filter = ["provider", "is_active"]
    search_fields = ["organization__name", "sender_id"]
    actions = ["seed_templates"]

    @admin.action(description="Create missing default SMS templates")
    def seed_templates(self, request, queryset):
        created = sum(seed_default_templates(config.organization) for config in queryset)
        self.message_user(request, f"Created {created} template(s).")


@admin.register(SmsTemplate)
class SmsTemplateAdmin(admin.ModelAdmin):
    list_display = ["name", "organization", "is_active", "updated_at"]
    list_filter = ["is_active", "name"]
    search_fields = ["name", "body", "organization__name"]


@admin.register(SmsMessage)
class SmsMessageAdmin(admin.ModelAdmin):
    """
    Admin configuration for SmsMessage.

    Read-only view of send attempts for debugging and support.
    """

    list_display = [
        "id",
        "template_name",
        "phone_number",
        "provider",
        "status",
        "sent_at",
        "failed_at",
    ]
    list_filter = ["status", "provider", "template_name"]
    search_fields = ["phone_number", "provider_message_id", "organization__name"]
    ordering = ["-created_at"]
    readonly_fields = [
        "organization",
        "provider",
        "template_name",
        "phone_number",
        "body",
        "status",
        "provider_message_id",
        "sent_at",
        "failed_at",
        "failure_code",
        "failure_reason",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request):
        return False
