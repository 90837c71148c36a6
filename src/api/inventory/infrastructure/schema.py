"""Creates the inventory tables inside a tenant database."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database.models import TenantBase

# Imported for its side effect of registering the tables on TenantBase
import inventory.infrastructure.models  # noqa: F401


async def create_tenant_schema(engine: AsyncEngine) -> None:
    """Create every tenant table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(TenantBase.metadata.create_all)
