"""Domain probes for tenancy infrastructure (provisioning, notifications)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ProvisioningProbe(Protocol):
    """Domain probe for tenant database provisioning."""

    def tenant_provisioned(
        self, tenant_id: str, database_name: str, database_created: bool
    ) -> None:
        """Record that a tenant database is ready for use."""
        ...

    def provisioning_failed(
        self, tenant_id: str, database_name: str, error: Exception
    ) -> None:
        """Record that a tenant database could not be created."""
        ...


class NotificationProbe(Protocol):
    """Domain probe for outbound organization notifications."""

    def notification_sent(self, kind: str, email: str) -> None:
        ...

    def notification_failed(self, kind: str, email: str, error: Exception) -> None:
        """Record a delivery failure. Never fails the originating operation."""
        ...

    def verification_link_issued(self, email: str, link: str) -> None:
        ...

    def welcome_issued(self, tenant_id: str, email: str, admin_name: str) -> None:
        ...


class DefaultProvisioningProbe:
    """Default implementation of ProvisioningProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultProvisioningProbe:
        """Create a new probe with observation context bound."""
        return DefaultProvisioningProbe(logger=self._logger, context=context)

    def tenant_provisioned(
        self, tenant_id: str, database_name: str, database_created: bool
    ) -> None:
        self._logger.info(
            "tenant_provisioned",
            tenant_id=tenant_id,
            database_name=database_name,
            database_created=database_created,
            **self._get_context_kwargs(),
        )

    def provisioning_failed(
        self, tenant_id: str, database_name: str, error: Exception
    ) -> None:
        self._logger.error(
            "tenant_provisioning_failed",
            tenant_id=tenant_id,
            database_name=database_name,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )


class DefaultNotificationProbe:
    """Default implementation of NotificationProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultNotificationProbe:
        """Create a new probe with observation context bound."""
        return DefaultNotificationProbe(logger=self._logger, context=context)

    def notification_sent(self, kind: str, email: str) -> None:
        self._logger.debug(
            "notification_sent",
            kind=kind,
            email=email,
            **self._get_context_kwargs(),
        )

    def notification_failed(self, kind: str, email: str, error: Exception) -> None:
        self._logger.warning(
            "notification_failed",
            kind=kind,
            email=email,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def verification_link_issued(self, email: str, link: str) -> None:
        self._logger.info(
            "verification_link_issued",
            email=email,
            link=link,
            **self._get_context_kwargs(),
        )

    def welcome_issued(self, tenant_id: str, email: str, admin_name: str) -> None:
        self._logger.info(
            "welcome_issued",
            tenant_id=tenant_id,
            email=email,
            admin_name=admin_name,
            **self._get_context_kwargs(),
        )
