"""
DRF serializers for the vouchers app.

Usage:
    serializer = VoucherStatusSerializer(voucher)
    data = serializer.data
"""

from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from vouchers.models import PrepaidVoucher


class VoucherPackageSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    duration = serializers.DecimalField(max_digits=8, decimal_places=2, read_only=True)
    duration_unit = serializers.CharField(read_only=True)


class VoucherStatusSerializer(serializers.ModelSerializer):
    """
    Voucher status for the hotspot login page.

    Fields:
        usage_expiry: When access ends (one package period after first
            use, otherwise expires_at)
        remaining_seconds: Access time left once the voucher has been used
    """

    package = VoucherPackageSerializer(read_only=True)
    organization_name = serializers.CharField(source="organization.name", read_only=True)
    usage_expiry = serializers.DateTimeField(read_only=True)
    remaining_seconds = serializers.SerializerMethodField()

    class Meta:
        model = PrepaidVoucher
        fields = [
            "id",
            "voucher_code",
            "status",
            "organization_name",
            "package",
            "expires_at",
            "last_used_at",
            "activated_at",
            "usage_expiry",
            "remaining_seconds",
        ]
        read_only_fields = fields

    def get_remaining_seconds(self, obj: PrepaidVoucher) -> int | None:
        if obj.last_used_at is None:
            return None
        remaining = obj.usage_expiry - timezone.now()
        return max(0, int(remaining.total_seconds()))
