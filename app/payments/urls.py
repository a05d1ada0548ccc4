"""
URL configuration for payment provider callbacks.

Routes:
    - POST stk - M-Pesa STK push result
    - POST c2b - M-Pesa C2B confirmation
    - POST c2b/validation - M-Pesa C2B validation
    - POST kopokopo - Kopo Kopo buy goods webhook

All routes are prefixed with /callback/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import c2b_confirmation, c2b_validation, kopokopo_callback, stk_callback

app_name = "payments"

urlpatterns = [
    path("stk", stk_callback, name="stk_callback"),
    path("c2b", c2b_confirmation, name="c2b_confirmation"),
    path("c2b/validation", c2b_validation, name="c2b_validation"),
    path("kopokopo", kopokopo_callback, name="kopokopo_callback"),
]
