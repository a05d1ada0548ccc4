"""
Payments app for provider callback reconciliation.

This app handles:
- M-Pesa STK push results, C2B confirmations and C2B validation
- Kopo Kopo buy goods webhooks (HMAC-signed)
- The append-only TransactionRecord ledger
- Correlating each payment to a voucher, payment link or subscriber

Related apps:
    - tenants: Business id to organization resolution
    - subscribers: Service-period extension
    - vouchers: Prepaid voucher lifecycle
    - notifications: Payment confirmation SMS

Usage:
    from payments.services import CallbackProcessor
    from payments.callbacks import normalize_c2b_confirmation

    ack = CallbackProcessor().process(normalize_c2b_confirmation(payload))
"""
