"""
Vouchers app.

Prepaid hotspot vouchers bought through an STK push charge. A voucher is
created PENDING with the charge-request id as its payment reference and
is resolved exactly once by the provider callback for that charge.
"""
