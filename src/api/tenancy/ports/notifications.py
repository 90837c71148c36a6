"""Outbound notification port for organization lifecycle messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from tenancy.domain.aggregates import PendingOrganization, Tenant


class Notifier(Protocol):
    """Delivers organization lifecycle messages (email in production)."""

    async def send_verification(self, pending: PendingOrganization) -> None:
        """Send the verification link for a new signup."""
        ...

    async def send_welcome(self, tenant: Tenant, admin_name: str) -> None:
        """Greet a freshly verified organization."""
        ...
