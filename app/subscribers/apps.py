"""
Subscribers app configuration.
"""

from django.apps import AppConfig


class SubscribersConfig(AppConfig):
    """Configuration for the subscribers application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "subscribers"
    verbose_name = "Subscribers"
