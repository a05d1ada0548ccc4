"""
Notifications app for tenant SMS delivery.

This app provides:
- SmsConfiguration, SmsTemplate and SmsMessage models
- TextSMS and ZetaTel gateway transports
- SmsService for rendering and sending templates
- NotificationDispatcher, the fire-and-forget entry point used by
  payment reconciliation
- A Celery task for asynchronous delivery with retry

Usage:
    from notifications.services import NotificationDispatcher

    NotificationDispatcher.dispatch(
        organization_id=organization.id,
        template_name="hotspot_voucher",
        phone_number=voucher.phone_number,
        variables={"voucherCode": voucher.voucher_code, ...},
    )
"""
