"""
DRF views for the vouchers app.

Endpoints:
    GET /api/v1/vouchers/<code>/ - Voucher status (applies lazy expiry)
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from vouchers.serializers import VoucherStatusSerializer
from vouchers.services import VoucherService

logger = logging.getLogger(__name__)


class VoucherStatusView(APIView):
    """
    Voucher status lookup for the captive portal.

    GET /api/v1/vouchers/<code>/

    Public: the voucher code itself is the credential.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="get_voucher_status",
        summary="Get voucher status",
        description=(
            "Look up a prepaid voucher by code. A pending or active voucher "
            "past its expiry is marked expired before it is returned."
        ),
        responses={
            200: OpenApiResponse(response=VoucherStatusSerializer, description="Voucher status"),
            404: OpenApiResponse(description="Invalid voucher code"),
        },
        tags=["Vouchers"],
    )
    def get(self, request, code: str):
        result = VoucherService.get_for_connectivity(code)
        if not result.success:
            return Response(result.to_response(), status=status.HTTP_404_NOT_FOUND)
        return Response(VoucherStatusSerializer(result.data).data)
