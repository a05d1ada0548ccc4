"""
URL configuration for the vouchers app.

Mounted at /api/v1/vouchers/ in config/urls.py.
"""

from django.urls import path

from vouchers.views import VoucherStatusView

app_name = "vouchers"

urlpatterns = [
    path("<str:code>/", VoucherStatusView.as_view(), name="voucher-status"),
]
