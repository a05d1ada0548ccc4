"""
Celery tasks for SMS delivery.

Tasks:
    send_template_sms: Render and send one templated SMS

Design:
    - Queued by NotificationDispatcher after a payment is reconciled
    - Expected failures (no configuration, missing template, missing
      variables, gateway rejection) are logged and end the task
    - Transient gateway errors (timeouts, connection errors, 5xx) are
      retried with backoff; each attempt is its own SmsMessage row

Usage:
    from notifications.tasks import send_template_sms

    send_template_sms.delay(
        organization_id=str(organization.id),
        template_name="payment_confirmation",
        phone_number="254712345678",
        variables={"amount": "500", ...},
    )
"""

from __future__ import annotations

import logging

from celery import shared_task

from notifications.services import SmsService
from notifications.transports import SmsDeliveryError

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(SmsDeliveryError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_template_sms(
    self,
    organization_id: str,
    template_name: str,
    phone_number: str,
    variables: dict[str, str] | None = None,
) -> bool:
    """
    Send a templated SMS for an organization.

    Flow:
        1. Delegate to SmsService.send_template_sms
        2. On success: SmsMessage marked SENT
        3. On expected failure: log and return False
        4. On transient gateway error: raise for retry

    Returns:
        True if the gateway accepted the message

    Raises:
        SmsDeliveryError: On transient failure (triggers retry)
    """
    logger.info(
        f"Sending SMS '{template_name}' for organization {organization_id} "
        f"(attempt {self.request.retries + 1})"
    )

    result = SmsService.send_template_sms(
        organization_id=organization_id,
        template_name=template_name,
        phone_number=phone_number,
        variables=variables or {},
        raise_transient=True,
    )

    if not result.success:
        logger.warning(
            f"SMS '{template_name}' not sent: {result.error_code} - {result.error}",
            extra={"organization_id": organization_id, "template_name": template_name},
        )
        return False

    return True
