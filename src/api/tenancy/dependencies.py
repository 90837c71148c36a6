"""FastAPI dependencies for the tenancy context.

``get_tenant_context`` is what every tenant-scoped route depends on: it
resolves the ``X-Tenant-ID`` header to an existing, active tenant and binds
the tenant to the logging context.

Usage in FastAPI routes:
    @router.get("/example")
    async def example(
        tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    ):
        # tenant.tenant_id is the canonical tenant ULID
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.dependencies import get_read_session, get_write_session
from infrastructure.database.tenant_connections import ConnectionManager
from infrastructure.database.tenant_directory import TenantDirectory
from infrastructure.dependencies import get_connection_manager
from infrastructure.logging import bind_tenant
from infrastructure.settings import (
    OrganizationSettings,
    get_database_settings,
    get_organization_settings,
    get_tenant_database_settings,
)
from shared_kernel.middleware.observability import (
    DefaultTenantContextProbe,
    TenantContextProbe,
)
from shared_kernel.middleware.tenant_context import TenantContext
from shared_kernel.tenant_id import TenantId
from tenancy.application import OrganizationService
from tenancy.infrastructure.notifications import NotificationDispatcher
from tenancy.infrastructure.provisioner import TenantProvisioner
from tenancy.infrastructure.repositories import (
    PendingOrganizationRepository,
    TenantRepository,
)
from tenancy.ports.repositories import ITenantRepository


def get_tenant_directory() -> TenantDirectory:
    """Get a TenantDirectory built from settings."""
    return TenantDirectory(get_database_settings(), get_tenant_database_settings())


def get_tenant_context_probe() -> TenantContextProbe:
    """Get TenantContextProbe instance."""
    return DefaultTenantContextProbe()


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    """Get the application-scoped notification dispatcher."""
    dispatcher = getattr(request.app.state, "notification_dispatcher", None)
    if dispatcher is None:
        raise RuntimeError("Notification dispatcher not initialized")
    return dispatcher


def get_tenant_provisioner(request: Request) -> TenantProvisioner:
    """Get the application-scoped tenant provisioner."""
    provisioner = getattr(request.app.state, "tenant_provisioner", None)
    if provisioner is None:
        raise RuntimeError("Tenant provisioner not initialized")
    return provisioner


def get_organization_service(
    session: Annotated[AsyncSession, Depends(get_write_session)],
    directory: Annotated[TenantDirectory, Depends(get_tenant_directory)],
    provisioner: Annotated[TenantProvisioner, Depends(get_tenant_provisioner)],
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
    notifications: Annotated[
        NotificationDispatcher, Depends(get_notification_dispatcher)
    ],
    settings: Annotated[OrganizationSettings, Depends(get_organization_settings)],
) -> OrganizationService:
    """Get OrganizationService instance.

    Repositories share the request's write session, which the service uses
    for transaction management.
    """
    return OrganizationService(
        session=session,
        tenant_repository=TenantRepository(session),
        pending_repository=PendingOrganizationRepository(session),
        directory=directory,
        provisioner=provisioner,
        manager=manager,
        notifications=notifications,
        settings=settings,
    )


async def resolve_tenant_context(
    x_tenant_id: str | None,
    tenant_repository: ITenantRepository,
    probe: TenantContextProbe,
) -> TenantContext:
    """Resolve the X-Tenant-ID header value to a tenant context.

    This is the core logic for the tenant context dependency.

    Args:
        x_tenant_id: The X-Tenant-ID header value, or None if missing.
        tenant_repository: Repository for looking up the tenant.
        probe: Domain probe for observability.

    Returns:
        TenantContext with the canonical tenant ID and its database name.

    Raises:
        HTTPException 400: If the header is missing or not a valid ULID.
        HTTPException 404: If no tenant has this ID.
        HTTPException 403: If the tenant is deactivated.
    """
    if x_tenant_id is None or not x_tenant_id.strip():
        probe.tenant_header_missing()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )

    try:
        tenant_id = TenantId.from_string(x_tenant_id)
    except ValueError:
        probe.invalid_tenant_id_format(raw_value=x_tenant_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Tenant-ID format. Must be a valid ULID.",
        )

    tenant = await tenant_repository.get_by_id(tenant_id)
    if tenant is None:
        probe.tenant_not_found(tenant_id.value)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant {tenant_id.value} not found",
        )
    if not tenant.is_active:
        probe.tenant_inactive(tenant_id.value)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Tenant {tenant_id.value} is not active",
        )

    probe.tenant_resolved(tenant_id.value)
    return TenantContext(tenant_id=tenant.id.value, database_name=tenant.database_name)


async def get_tenant_context(
    session: Annotated[AsyncSession, Depends(get_read_session)],
    probe: Annotated[TenantContextProbe, Depends(get_tenant_context_probe)],
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
    x_tenant_id: Annotated[str | None, Header(alias="X-Tenant-ID")] = None,
) -> TenantContext:
    """FastAPI dependency resolving the request's tenant.

    The tenant's recorded database name is handed to the connection
    manager, which connects to it instead of deriving a name from settings.
    """
    context = await resolve_tenant_context(
        x_tenant_id=x_tenant_id,
        tenant_repository=TenantRepository(session),
        probe=probe,
    )
    manager.assign_database(context.tenant_id, context.database_name)
    bind_tenant(context.tenant_id)
    return context
