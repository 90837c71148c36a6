"""Unit tests for the control database repositories on SQLite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from infrastructure.database.models import Base
from shared_kernel.tenant_id import TenantId
from tenancy.domain.aggregates import PendingOrganization, Tenant
from tenancy.infrastructure.repositories import (
    PendingOrganizationRepository,
    TenantRepository,
)
from tenancy.ports.exceptions import DuplicateOrganizationError


@pytest_asyncio.fixture
async def session(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'control.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


def make_tenant(name: str, is_active: bool = True) -> Tenant:
    tenant_id = TenantId.generate()
    return Tenant(
        id=tenant_id,
        name=name,
        database_name=f"pos_tenant_{tenant_id.value.lower()}",
        admin_email=f"admin@{name.lower().replace(' ', '')}.example",
        is_active=is_active,
    )


def make_pending(email: str = "owner@corner.example") -> PendingOrganization:
    return PendingOrganization.create(
        organization_name="Corner Liquors",
        admin_name="Sam Rivera",
        email=email,
        ttl=timedelta(hours=24),
        now=datetime(2026, 3, 1, tzinfo=UTC),
    )


class TestTenantRepository:
    @pytest.mark.asyncio
    async def test_save_and_get(self, session):
        repo = TenantRepository(session)
        tenant = make_tenant("Corner Liquors")

        await repo.save(tenant)

        assert await repo.get_by_id(tenant.id) == tenant
        assert await repo.get_by_name("Corner Liquors") == tenant
        assert await repo.get_by_id(TenantId.generate()) is None

    @pytest.mark.asyncio
    async def test_save_updates_activity(self, session):
        repo = TenantRepository(session)
        tenant = make_tenant("Corner Liquors")
        await repo.save(tenant)

        tenant.deactivate()
        await repo.save(tenant)

        stored = await repo.get_by_id(tenant.id)
        assert stored.is_active is False

    @pytest.mark.asyncio
    async def test_duplicate_name(self, session):
        repo = TenantRepository(session)
        await repo.save(make_tenant("Corner Liquors"))

        with pytest.raises(DuplicateOrganizationError):
            await repo.save(make_tenant("Corner Liquors"))

    @pytest.mark.asyncio
    async def test_list_active_by_name(self, session):
        repo = TenantRepository(session)
        for tenant in (
            make_tenant("Zed Wines"),
            make_tenant("Alpha Bottles"),
            make_tenant("Closed Shop", is_active=False),
        ):
            await repo.save(tenant)

        names = [t.name for t in await repo.list_active()]

        assert names == ["Alpha Bottles", "Zed Wines"]


class TestPendingOrganizationRepository:
    @pytest.mark.asyncio
    async def test_lookup_by_token_and_email(self, session):
        repo = PendingOrganizationRepository(session)
        pending = make_pending()
        await repo.save(pending)

        by_token = await repo.get_by_token(pending.verification_token)
        by_email = await repo.get_by_email("  OWNER@corner.example")

        assert by_token.id == pending.id
        assert by_email.id == pending.id
        assert await repo.get_by_token("unknown") is None

    @pytest.mark.asyncio
    async def test_duplicate_email(self, session):
        repo = PendingOrganizationRepository(session)
        await repo.save(make_pending())

        with pytest.raises(DuplicateOrganizationError):
            await repo.save(make_pending())

    @pytest.mark.asyncio
    async def test_delete(self, session):
        repo = PendingOrganizationRepository(session)
        pending = make_pending()
        await repo.save(pending)

        await repo.delete(pending)

        assert await repo.get_by_email(pending.email) is None
