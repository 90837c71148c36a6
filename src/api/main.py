"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Annotated, Literal

from fastapi import Depends, FastAPI, Request
from pydantic import BaseModel, Field

from infrastructure.database.dependencies import (
    close_database_connections,
    get_admin_engine,
    get_write_engine,
)
from infrastructure.database.models import Base
from infrastructure.database.tenant_connections import (
    ConnectionManager,
    default_engine_factory,
)
from infrastructure.database.transactions import TransactionalWorkflow
from infrastructure.dependencies import get_connection_manager
from infrastructure.logging import clear_request_context, configure_logging
from infrastructure.settings import (
    get_database_settings,
    get_organization_settings,
    get_settings,
    get_tenant_database_settings,
    get_transaction_settings,
)
from infrastructure.version import __version__
from inventory.infrastructure.accessors import build_model_registry
from inventory.infrastructure.schema import create_tenant_schema
from inventory.presentation import router as inventory_router
from tenancy.infrastructure.notifications import (
    LoggingNotifier,
    NotificationDispatcher,
)
from tenancy.infrastructure.provisioner import TenantProvisioner
from tenancy.presentation.routes import organizations_router, tenants_router


async def create_control_tables() -> None:
    """Create the control database tables that do not exist yet."""
    async with get_write_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def pos_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Control database tables and connection pools
    - The tenant connection manager and its monitoring task
    - Background notification delivery
    """
    settings = get_settings()
    configure_logging(debug=settings.debug)

    database_settings = get_database_settings()
    tenant_settings = get_tenant_database_settings()

    manager = ConnectionManager(
        engine_factory=default_engine_factory(database_settings, tenant_settings),
        settings=tenant_settings,
    )
    dispatcher = NotificationDispatcher(
        LoggingNotifier(get_organization_settings().verification_url_template)
    )

    app.state.connection_manager = manager
    app.state.transactional_workflow = TransactionalWorkflow(get_transaction_settings())
    app.state.model_registry = build_model_registry()
    app.state.notification_dispatcher = dispatcher
    app.state.tenant_provisioner = TenantProvisioner(
        admin_engine=get_admin_engine(),
        manager=manager,
        initialize_schema=create_tenant_schema,
    )

    await create_control_tables()
    manager.start_monitoring()

    yield

    await manager.stop_monitoring()
    await dispatcher.drain()
    await manager.close_all()
    await close_database_connections()


app = FastAPI(
    title="Liquor POS API",
    description="Multi-tenant point of sale backend for liquor retail",
    version=__version__,
    lifespan=pos_lifespan,
)

app.include_router(organizations_router)
app.include_router(tenants_router)
app.include_router(inventory_router)


@app.middleware("http")
async def reset_logging_context(request: Request, call_next):
    """Start every request without the tenant bound by a previous one."""
    clear_request_context()
    return await call_next(request)


class ConnectionActionRequest(BaseModel):
    """Maintenance action on tenant connections."""

    action: Literal["cleanup", "details"]
    max_idle_seconds: float | None = Field(default=None, ge=0)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/health/connections")
def connection_stats(
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
) -> dict:
    """Open tenant connections and the recent monitoring samples."""
    return asdict(manager.stats())


@app.post("/health/connections")
async def connection_action(
    request: ConnectionActionRequest,
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
) -> dict:
    """Run a maintenance action on tenant connections.

    ``cleanup`` closes idle handles (never ones with work in flight);
    ``details`` returns the per-tenant snapshot without the history.
    """
    if request.action == "cleanup":
        closed = await manager.cleanup_stale(request.max_idle_seconds)
        return {
            "action": "cleanup",
            "closed": closed,
            "open_connections": manager.open_connections,
        }

    stats = manager.stats()
    return {
        "action": "details",
        "open_connections": stats.open_connections,
        "connections": [asdict(c) for c in stats.connections],
    }
