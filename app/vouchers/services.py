"""
Voucher lifecycle service.

Every status change of a PrepaidVoucher made by this system goes through
VoucherService, inside a transaction with the voucher row locked, so a
callback retry racing the original delivery sees the first one's result.

Usage:
    from vouchers.services import VoucherService

    result = VoucherService.apply_callback(voucher.id, success=True, receipt_number="QK12ABC34D")
    if not result.success and result.error_code == "VOUCHER_NOT_PENDING":
        pass  # already resolved by an earlier delivery

    result = VoucherService.get_for_connectivity("AB12CD34")
"""

from __future__ import annotations

from django.conf import settings
from django.utils import timezone

from core.services import BaseService, ErrorKind, ServiceResult
from notifications.services import NotificationDispatcher, format_amount, format_datetime

from vouchers.models import PrepaidVoucher, VoucherStatus

DEFAULT_PACKAGE_NAME = "Hotspot Package"


class VoucherService(BaseService):
    """
    Service class for voucher state transitions.

    Methods:
        find_by_payment_reference: Voucher awaiting a given charge
        apply_callback: Resolve a PENDING voucher from a payment outcome
        get_for_connectivity: Read a voucher, expiring it lazily
    """

    @classmethod
    def find_by_payment_reference(cls, reference: str) -> PrepaidVoucher | None:
        if not reference:
            return None
        return (
            PrepaidVoucher.objects.select_related("organization", "package")
            .filter(payment_reference=reference)
            .first()
        )

    @classmethod
    def apply_callback(
        cls,
        voucher_id,
        success: bool,
        receipt_number: str = "",
    ) -> ServiceResult[PrepaidVoucher]:
        """
        Activate or cancel a PENDING voucher.

        A voucher that is no longer PENDING is left untouched: the
        callback is a retry or arrived after the voucher was resolved.

        Args:
            voucher_id: Voucher primary key
            success: Whether the provider reported a successful payment
            receipt_number: Provider receipt, stored on activation

        Returns:
            ServiceResult with the voucher, or a CONFLICT failure with
            error_code VOUCHER_NOT_PENDING

        Side effects:
            Queues the hotspot_voucher SMS after a successful activation.
        """
        logger = cls.get_logger()

        with cls.atomic():
            try:
                voucher = PrepaidVoucher.objects.select_for_update().get(pk=voucher_id)
            except PrepaidVoucher.DoesNotExist:
                return ServiceResult.failure(
                    f"Voucher {voucher_id} not found",
                    error_code="VOUCHER_NOT_FOUND",
                    kind=ErrorKind.NOT_FOUND,
                )

            if voucher.status != VoucherStatus.PENDING:
                logger.info(
                    f"Voucher {voucher.voucher_code} is {voucher.status}, ignoring callback",
                    extra={"voucher_id": str(voucher.id), "receipt_number": receipt_number},
                )
                return ServiceResult.failure(
                    f"Voucher {voucher.voucher_code} is not pending",
                    error_code="VOUCHER_NOT_PENDING",
                    kind=ErrorKind.CONFLICT,
                )

            if success:
                voucher.activate(receipt_number)
            else:
                voucher.cancel()
            voucher.save()

        logger.info(
            f"Voucher {voucher.voucher_code} {voucher.status}",
            extra={"voucher_id": str(voucher.id), "receipt_number": receipt_number},
        )

        if voucher.status == VoucherStatus.ACTIVE:
            cls._notify_activation(voucher)

        return ServiceResult.success(voucher)

    @classmethod
    def _notify_activation(cls, voucher: PrepaidVoucher) -> None:
        package = voucher.package
        organization = voucher.organization
        NotificationDispatcher.dispatch(
            organization_id=voucher.organization_id,
            template_name="hotspot_voucher",
            phone_number=voucher.phone_number,
            variables={
                "voucherCode": voucher.voucher_code,
                "packageName": package.name or DEFAULT_PACKAGE_NAME,
                "amount": format_amount(package.price),
                "expiryDate": format_datetime(voucher.usage_expiry or timezone.now()),
                "organizationName": organization.name or settings.DEFAULT_ORGANIZATION_NAME,
            },
        )

    @classmethod
    def get_for_connectivity(cls, voucher_code: str) -> ServiceResult[PrepaidVoucher]:
        """
        Look up a voucher for a hotspot login, applying lazy expiry.

        The code is matched exactly first, then case-insensitively. A
        PENDING or ACTIVE voucher past expires_at is moved to EXPIRED
        before it is returned.
        """
        code = (voucher_code or "").strip()
        queryset = PrepaidVoucher.objects.select_related("organization", "package")
        voucher = queryset.filter(voucher_code=code).first() if code else None
        if voucher is None and code:
            voucher = queryset.filter(voucher_code__iexact=code).first()
        if voucher is None:
            return ServiceResult.failure(
                "Invalid voucher code",
                error_code="VOUCHER_NOT_FOUND",
                kind=ErrorKind.NOT_FOUND,
            )

        if voucher.status in (VoucherStatus.PENDING, VoucherStatus.ACTIVE) and voucher.is_past_expiry():
            with cls.atomic():
                locked = PrepaidVoucher.objects.select_for_update().get(pk=voucher.pk)
                if locked.status in (VoucherStatus.PENDING, VoucherStatus.ACTIVE) and locked.is_past_expiry():
                    locked.expire()
                    locked.save()
                    cls.get_logger().info(
                        f"Voucher {locked.voucher_code} expired",
                        extra={"voucher_id": str(locked.id)},
                    )
            voucher = queryset.get(pk=voucher.pk)

        return ServiceResult.success(voucher)
