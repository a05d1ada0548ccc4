"""
Celery configuration for the Django application.

Celery runs the work that must not hold up a provider callback:
- Templated SMS delivery after a payment or voucher activation

Callback views only enqueue; a slow or failing SMS gateway never delays
the acknowledgement returned to the payment provider.

Configuration is read from Django settings with the CELERY_ prefix and
tasks are auto-discovered from all installed apps.

Usage:
    from notifications.tasks import send_template_sms

    send_template_sms.delay(
        organization_id=str(organization.id),
        template_name="payment_confirmation",
        phone_number="254712345678",
        variables={"amount": "500.00"},
    )

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
