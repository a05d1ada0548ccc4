"""
Vouchers app configuration.
"""

from django.apps import AppConfig


class VouchersConfig(AppConfig):
    """Configuration for the vouchers application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "vouchers"
    verbose_name = "Prepaid Vouchers"
