"""Unit tests for TenantProvisioner against SQLite tenant databases."""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from inventory.infrastructure.schema import create_tenant_schema
from shared_kernel.tenant_id import TenantId
from tenancy.domain.aggregates import Tenant
from tenancy.infrastructure.observability import ProvisioningProbe
from tenancy.infrastructure.provisioner import TenantProvisioner
from tenancy.ports.exceptions import ProvisioningError


def make_tenant() -> Tenant:
    tenant_id = TenantId.generate()
    return Tenant(
        id=tenant_id,
        name="Corner Liquors",
        database_name=f"tenant_{tenant_id.value.lower()}",
        admin_email="owner@corner.example",
    )


async def table_names(manager, tenant: Tenant) -> set[str]:
    async with manager.lease(tenant.id) as handle:
        async with handle.engine.connect() as conn:
            return set(
                await conn.run_sync(lambda sync: inspect(sync).get_table_names())
            )


class TestProvision:
    @pytest.mark.asyncio
    async def test_creates_inventory_tables(self, connection_manager):
        probe = Mock(spec=ProvisioningProbe)
        provisioner = TenantProvisioner(
            admin_engine=None,
            manager=connection_manager,
            initialize_schema=create_tenant_schema,
            probe=probe,
        )
        tenant = make_tenant()

        await provisioner.provision(tenant)

        tables = await table_names(connection_manager, tenant)
        assert {"products", "vendors", "purchases", "purchase_items"} <= tables
        probe.tenant_provisioned.assert_called_once_with(
            tenant.id.value, tenant.database_name, database_created=False
        )

    @pytest.mark.asyncio
    async def test_tables_land_in_the_recorded_database(
        self, connection_manager, tmp_path
    ):
        provisioner = TenantProvisioner(
            admin_engine=None,
            manager=connection_manager,
            initialize_schema=create_tenant_schema,
        )
        tenant = Tenant(
            id=TenantId.generate(),
            name="Corner Liquors",
            database_name="shop_corner_liquors",
            admin_email="owner@corner.example",
        )

        await provisioner.provision(tenant)

        assert (tmp_path / "shop_corner_liquors.db").exists()
        assert "products" in await table_names(connection_manager, tenant)

    @pytest.mark.asyncio
    async def test_is_idempotent(self, connection_manager):
        provisioner = TenantProvisioner(
            admin_engine=None,
            manager=connection_manager,
            initialize_schema=create_tenant_schema,
        )
        tenant = make_tenant()

        await provisioner.provision(tenant)
        await provisioner.provision(tenant)

    @pytest.mark.asyncio
    async def test_schema_failure_becomes_provisioning_error(self, connection_manager):
        probe = Mock(spec=ProvisioningProbe)
        error = OperationalError("CREATE TABLE", {}, Exception("disk full"))
        provisioner = TenantProvisioner(
            admin_engine=None,
            manager=connection_manager,
            initialize_schema=AsyncMock(side_effect=error),
            probe=probe,
        )
        tenant = make_tenant()

        with pytest.raises(ProvisioningError) as exc_info:
            await provisioner.provision(tenant)

        assert exc_info.value.__cause__ is error
        probe.provisioning_failed.assert_called_once_with(
            tenant.id.value, tenant.database_name, error
        )
        probe.tenant_provisioned.assert_not_called()
