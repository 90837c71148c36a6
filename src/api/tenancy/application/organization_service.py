"""Organization application service.

Signup stores a pending organization and sends a verification link.
Verification turns it into a tenant with its own provisioned database.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from shared_kernel.tenant_id import TenantId
from tenancy.application.observability import (
    DefaultOrganizationServiceProbe,
    OrganizationServiceProbe,
)
from tenancy.domain.aggregates import PendingOrganization, Tenant
from tenancy.ports.exceptions import (
    DuplicateOrganizationError,
    InvalidVerificationTokenError,
    TenantNotFoundError,
)

if TYPE_CHECKING:
    from infrastructure.database.tenant_connections import ConnectionManager
    from infrastructure.database.tenant_directory import TenantDirectory
    from infrastructure.settings import OrganizationSettings
    from tenancy.infrastructure.notifications import NotificationDispatcher
    from tenancy.infrastructure.provisioner import TenantProvisioner
    from tenancy.ports.repositories import (
        IPendingOrganizationRepository,
        ITenantRepository,
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrganizationService:
    """Application service for organization signup and tenant lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        tenant_repository: ITenantRepository,
        pending_repository: IPendingOrganizationRepository,
        directory: TenantDirectory,
        provisioner: TenantProvisioner,
        manager: ConnectionManager,
        notifications: NotificationDispatcher,
        settings: OrganizationSettings,
        probe: OrganizationServiceProbe | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize OrganizationService with dependencies.

        Args:
            session: Control database session for transaction management
            tenant_repository: Repository for tenants
            pending_repository: Repository for pending organizations
            directory: Derives tenant database names
            provisioner: Creates tenant databases
            manager: Connection manager, to release deactivated tenants
            notifications: Background notification dispatcher
            settings: Signup settings (token lifetime)
            probe: Optional domain probe for observability
            clock: Current UTC time, injectable for tests
        """
        self._session = session
        self._tenants = tenant_repository
        self._pending = pending_repository
        self._directory = directory
        self._provisioner = provisioner
        self._manager = manager
        self._notifications = notifications
        self._settings = settings
        self._probe = probe or DefaultOrganizationServiceProbe()
        self._clock = clock

    async def signup(
        self, organization_name: str, admin_name: str, email: str
    ) -> PendingOrganization:
        """Register an organization pending email verification.

        Raises:
            DuplicateOrganizationError: If the email already has a pending
                signup or the organization name is taken
        """
        pending = PendingOrganization.create(
            organization_name=organization_name,
            admin_name=admin_name,
            email=email,
            ttl=timedelta(hours=self._settings.verification_token_ttl_hours),
            now=self._clock(),
        )

        async with self._session.begin():
            if await self._pending.get_by_email(pending.email) is not None:
                self._probe.duplicate_signup(pending.email, pending.organization_name)
                raise DuplicateOrganizationError(
                    f"A signup for {pending.email} is already pending"
                )
            if await self._tenants.get_by_name(pending.organization_name) is not None:
                self._probe.duplicate_signup(pending.email, pending.organization_name)
                raise DuplicateOrganizationError(
                    f"Organization '{pending.organization_name}' already exists"
                )
            await self._pending.save(pending)

        self._probe.signup_received(pending.id.value, pending.email)
        self._notifications.verification(pending)
        return pending

    async def verify(self, token: str) -> Tenant:
        """Turn a pending organization into a provisioned tenant.

        The tenant database is provisioned before the control rows commit;
        if provisioning fails the pending signup survives and the same token
        can be used again.

        Raises:
            InvalidVerificationTokenError: If the token is unknown or expired
            DuplicateOrganizationError: If the name was taken meanwhile
            ProvisioningError: If the tenant database could not be created
        """
        async with self._session.begin():
            pending = await self._pending.get_by_token(token)
            if pending is None:
                self._probe.verification_rejected("unknown token")
                raise InvalidVerificationTokenError()
            if pending.is_expired(self._clock()):
                self._probe.verification_rejected("expired token")
                raise InvalidVerificationTokenError()

            tenant = Tenant.from_pending(
                pending, database_name=self._directory.database_name(pending.id)
            )
            await self._provisioner.provision(tenant)
            await self._tenants.save(tenant)
            await self._pending.delete(pending)

        self._probe.organization_verified(tenant.id.value, tenant.database_name)
        self._notifications.welcome(tenant, admin_name=pending.admin_name)
        return tenant

    async def get_tenant(self, tenant_id: TenantId) -> Tenant:
        """Fetch a tenant, active or not.

        Raises:
            TenantNotFoundError: If no tenant has this id
        """
        tenant = await self._tenants.get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id.value)
        return tenant

    async def list_tenants(self) -> list[Tenant]:
        """List active tenants by name."""
        tenants = await self._tenants.list_active()
        self._probe.tenants_listed(len(tenants))
        return tenants

    async def deactivate_tenant(self, tenant_id: TenantId) -> Tenant:
        """Deactivate a tenant and release its database handle.

        Raises:
            TenantNotFoundError: If no tenant has this id
        """
        async with self._session.begin():
            tenant = await self._tenants.get_by_id(tenant_id)
            if tenant is None:
                raise TenantNotFoundError(tenant_id.value)
            tenant.deactivate()
            await self._tenants.save(tenant)

        closed = await self._manager.close(tenant_id)
        self._probe.tenant_deactivated(tenant_id.value, connection_closed=closed)
        return tenant
