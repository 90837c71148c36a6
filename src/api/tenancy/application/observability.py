"""Domain probe for organization lifecycle operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class OrganizationServiceProbe(Protocol):
    """Domain probe for organization service operations."""

    def signup_received(self, pending_id: str, email: str) -> None:
        ...

    def duplicate_signup(self, email: str, name: str) -> None:
        ...

    def verification_rejected(self, reason: str) -> None:
        ...

    def organization_verified(self, tenant_id: str, database_name: str) -> None:
        ...

    def tenants_listed(self, count: int) -> None:
        ...

    def tenant_deactivated(self, tenant_id: str, connection_closed: bool) -> None:
        ...

    def with_context(self, context: ObservationContext) -> OrganizationServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultOrganizationServiceProbe:
    """Default implementation of OrganizationServiceProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(
        self, context: ObservationContext
    ) -> DefaultOrganizationServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultOrganizationServiceProbe(logger=self._logger, context=context)

    def signup_received(self, pending_id: str, email: str) -> None:
        self._logger.info(
            "organization_signup_received",
            pending_id=pending_id,
            email=email,
            **self._get_context_kwargs(),
        )

    def duplicate_signup(self, email: str, name: str) -> None:
        self._logger.warning(
            "organization_duplicate_signup",
            email=email,
            name=name,
            **self._get_context_kwargs(),
        )

    def verification_rejected(self, reason: str) -> None:
        self._logger.warning(
            "organization_verification_rejected",
            reason=reason,
            **self._get_context_kwargs(),
        )

    def organization_verified(self, tenant_id: str, database_name: str) -> None:
        self._logger.info(
            "organization_verified",
            tenant_id=tenant_id,
            database_name=database_name,
            **self._get_context_kwargs(),
        )

    def tenants_listed(self, count: int) -> None:
        self._logger.debug(
            "tenants_listed",
            count=count,
            **self._get_context_kwargs(),
        )

    def tenant_deactivated(self, tenant_id: str, connection_closed: bool) -> None:
        self._logger.info(
            "tenant_deactivated",
            tenant_id=tenant_id,
            connection_closed=connection_closed,
            **self._get_context_kwargs(),
        )
