"""Repository protocols for the tenancy context."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from shared_kernel.tenant_id import TenantId
    from tenancy.domain.aggregates import PendingOrganization, Tenant


class ITenantRepository(Protocol):
    async def save(self, tenant: Tenant) -> None: ...

    async def get_by_id(self, tenant_id: TenantId) -> Tenant | None: ...

    async def get_by_name(self, name: str) -> Tenant | None: ...

    async def list_active(self) -> list[Tenant]: ...


class IPendingOrganizationRepository(Protocol):
    async def save(self, pending: PendingOrganization) -> None: ...

    async def get_by_token(self, token: str) -> PendingOrganization | None: ...

    async def get_by_email(self, email: str) -> PendingOrganization | None: ...

    async def delete(self, pending: PendingOrganization) -> None: ...
