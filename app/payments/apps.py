"""
Payments app configuration.

This app provides payment callback reconciliation:
- Append-only transaction ledger
- M-Pesa and Kopo Kopo callback normalizers
- Callback endpoints and the reconciliation flow behind them
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
