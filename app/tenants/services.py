"""
Account resolution for inbound payment callbacks.

Maps a provider business identifier (short code or till number) to
the organization and gateway configuration that own it.

Resolution fails closed: if no active configuration matches, or if
more than one does (possible only when data was loaded around the
unique constraint), the callback is not attributed to anyone.

Usage:
    from tenants.services import AccountResolver

    result = AccountResolver.resolve(GatewayProvider.MPESA, "600100")
    if not result.success:
        logger.warning(result.error)  # UNKNOWN_TENANT / AMBIGUOUS_TENANT
"""

from __future__ import annotations

from core.services import BaseService, ErrorKind, ServiceResult

from tenants.models import GatewayConfiguration


class AccountResolver(BaseService):
    """Resolve a provider business identifier to a tenant."""

    @classmethod
    def resolve(
        cls,
        provider: str,
        business_id: str | None,
    ) -> ServiceResult[GatewayConfiguration]:
        """
        Find the active gateway configuration for a business identifier.

        Args:
            provider: GatewayProvider value
            business_id: Short code or till number from the callback

        Returns:
            ServiceResult with the GatewayConfiguration (organization
            pre-fetched), or a NOT_FOUND failure with error_code
            UNKNOWN_TENANT or AMBIGUOUS_TENANT.
        """
        business_id = (business_id or "").strip()
        if not business_id:
            return ServiceResult.failure(
                f"No business identifier supplied for {provider}",
                error_code="UNKNOWN_TENANT",
                kind=ErrorKind.NOT_FOUND,
            )

        matches = list(
            GatewayConfiguration.objects.select_related("organization").filter(
                provider=provider,
                business_id=business_id,
                is_active=True,
                organization__is_active=True,
            )[:2]
        )

        if not matches:
            cls.get_logger().warning(
                f"No {provider} configuration for business id {business_id}",
                extra={"provider": provider, "business_id": business_id},
            )
            return ServiceResult.failure(
                f"No {provider} configuration for business id {business_id}",
                error_code="UNKNOWN_TENANT",
                kind=ErrorKind.NOT_FOUND,
            )

        if len(matches) > 1:
            cls.get_logger().error(
                f"Multiple {provider} configurations for business id {business_id}",
                extra={"provider": provider, "business_id": business_id},
            )
            return ServiceResult.failure(
                f"Business id {business_id} matches more than one organization",
                error_code="AMBIGUOUS_TENANT",
                kind=ErrorKind.NOT_FOUND,
            )

        return ServiceResult.success(matches[0])

    @classmethod
    def for_organization(
        cls,
        organization_id,
        provider: str,
    ) -> GatewayConfiguration | None:
        """
        Get an organization's active configuration for a provider.

        Used when the tenant is already known from a correlated entity
        (voucher, payment link) and only the short code and transaction
        type are needed for the ledger.
        """
        return (
            GatewayConfiguration.objects.filter(
                organization_id=organization_id,
                provider=provider,
                is_active=True,
            )
            .order_by("-created_at")
            .first()
        )
