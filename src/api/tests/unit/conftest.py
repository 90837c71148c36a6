"""Unit test fixtures.

Tenant databases are SQLite files under ``tmp_path`` opened through
aiosqlite, so the connection manager, model registry and transactional
workflow run against real engines without a PostgreSQL server.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from infrastructure.database.model_registry import ModelRegistry
from infrastructure.database.tenant_connections import (
    ConnectionManager,
    EngineFactory,
)
from infrastructure.database.transactions import TransactionalWorkflow
from infrastructure.settings import (
    DatabaseSettings,
    TenantDatabaseSettings,
    TransactionSettings,
)
from inventory.application import (
    CatalogService,
    PurchaseService,
    ReportService,
    SaleService,
)
from inventory.infrastructure.accessors import EntityKind, build_model_registry
from inventory.infrastructure.schema import create_tenant_schema
from shared_kernel.tenant_id import TenantId


@pytest.fixture
def mock_db_settings() -> DatabaseSettings:
    """Provide test database settings."""
    return DatabaseSettings(
        host="testhost",
        port=5432,
        database="testdb",
        username="testuser",
        password="testpass",
    )


@pytest.fixture
def tenant_settings() -> TenantDatabaseSettings:
    """Tenant connection settings without real backoff."""
    return TenantDatabaseSettings(
        connect_attempts=3,
        connect_backoff_seconds=0.0,
        idle_timeout_seconds=60.0,
        metrics_history_size=3,
        high_connection_warning=2,
    )


@pytest.fixture
def transaction_settings() -> TransactionSettings:
    return TransactionSettings(
        conflict_retry_attempts=10,
        conflict_backoff_seconds=0.02,
        max_backoff_seconds=0.5,
    )


@pytest.fixture
def sqlite_engine_factory(tmp_path) -> EngineFactory:
    """Engine factory giving every tenant its own SQLite file."""

    def factory(tenant_id: TenantId, database_name: str | None = None) -> AsyncEngine:
        name = database_name or f"tenant_{tenant_id.value.lower()}"
        return create_async_engine(f"sqlite+aiosqlite:///{tmp_path / name}.db")

    return factory


@pytest_asyncio.fixture
async def connection_manager(
    sqlite_engine_factory: EngineFactory,
    tenant_settings: TenantDatabaseSettings,
) -> AsyncIterator[ConnectionManager]:
    manager = ConnectionManager(
        engine_factory=sqlite_engine_factory,
        settings=tenant_settings,
    )
    yield manager
    await manager.close_all()


@pytest.fixture
def workflow(transaction_settings: TransactionSettings) -> TransactionalWorkflow:
    return TransactionalWorkflow(transaction_settings)


@pytest.fixture
def registry() -> ModelRegistry[EntityKind]:
    return build_model_registry()


@pytest_asyncio.fixture
async def tenant_id(connection_manager: ConnectionManager) -> str:
    """A fresh tenant whose database already has the inventory tables."""
    tenant = TenantId.generate()
    handle = await connection_manager.acquire(tenant)
    await create_tenant_schema(handle.engine)
    return tenant.value


@pytest.fixture
def purchase_service(connection_manager, workflow, registry) -> PurchaseService:
    return PurchaseService(connection_manager, workflow, registry)


@pytest.fixture
def catalog_service(connection_manager, workflow, registry) -> CatalogService:
    return CatalogService(connection_manager, workflow, registry)


@pytest.fixture
def report_service(connection_manager, registry) -> ReportService:
    return ReportService(connection_manager, registry)


@pytest.fixture
def sale_service(connection_manager, workflow, registry) -> SaleService:
    return SaleService(connection_manager, workflow, registry)


@pytest_asyncio.fixture
async def vendor(catalog_service: CatalogService, tenant_id: str):
    """An active vendor in the test tenant."""
    return await catalog_service.create_vendor(tenant_id, "Highland Spirits Ltd")


@pytest_asyncio.fixture
async def products(catalog_service: CatalogService, tenant_id: str):
    """Two products with no stock."""
    whisky = await catalog_service.create_product(
        tenant_id,
        "Glen Test 12",
        category="whisky",
        sku="GT12-750",
        price_per_unit=Decimal("45.00"),
    )
    gin = await catalog_service.create_product(
        tenant_id,
        "Test Dry Gin",
        category="gin",
        sku="TDG-700",
        price_per_unit=Decimal("28.00"),
    )
    return whisky, gin
