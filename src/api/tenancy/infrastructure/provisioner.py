"""Creates and initializes tenant databases."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database.exceptions import DatabaseError
from tenancy.infrastructure.observability import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.ports.exceptions import ProvisioningError

if TYPE_CHECKING:
    from infrastructure.database.tenant_connections import ConnectionManager
    from tenancy.domain.aggregates import Tenant

SchemaInitializer = Callable[[AsyncEngine], Awaitable[None]]


class TenantProvisioner:
    """Creates a tenant's database on the server and builds its tables.

    Both steps are idempotent: an existing database is reused and only
    missing tables are created, so a verification that failed after
    ``CREATE DATABASE`` can simply be retried.
    """

    def __init__(
        self,
        admin_engine: AsyncEngine | None,
        manager: ConnectionManager,
        initialize_schema: SchemaInitializer,
        probe: ProvisioningProbe | None = None,
    ):
        """Initialize the provisioner.

        Args:
            admin_engine: AUTOCOMMIT engine on the server, or None when the
                tenant databases need no explicit creation (SQLite files)
            manager: Connection manager used to reach the new database
            initialize_schema: Creates the tenant tables on an engine
            probe: Optional domain probe for observability
        """
        self._admin_engine = admin_engine
        self._manager = manager
        self._initialize_schema = initialize_schema
        self._probe = probe or DefaultProvisioningProbe()

    async def provision(self, tenant: Tenant) -> None:
        """Create the tenant database if needed, then its tables.

        Raises:
            ProvisioningError: If the database or its tables could not be created
        """
        try:
            created = await self._create_database(tenant.database_name)
            self._manager.assign_database(tenant.id, tenant.database_name)
            async with self._manager.lease(tenant.id) as handle:
                await self._initialize_schema(handle.engine)
        except (SQLAlchemyError, OSError, DatabaseError) as e:
            self._probe.provisioning_failed(tenant.id.value, tenant.database_name, e)
            raise ProvisioningError(
                f"Could not provision database {tenant.database_name}: {e}"
            ) from e

        self._probe.tenant_provisioned(
            tenant.id.value, tenant.database_name, database_created=created
        )

    async def _create_database(self, database_name: str) -> bool:
        if self._admin_engine is None:
            return False

        async with self._admin_engine.connect() as conn:
            exists = await conn.scalar(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": database_name},
            )
            if exists:
                return False
            quoted = conn.dialect.identifier_preparer.quote(database_name)
            await conn.execute(text(f"CREATE DATABASE {quoted}"))
        return True
