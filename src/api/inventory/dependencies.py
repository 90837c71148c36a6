"""FastAPI dependency providers for the inventory bounded context."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends

from infrastructure.database.model_registry import ModelRegistry
from infrastructure.database.tenant_connections import ConnectionManager
from infrastructure.database.transactions import TransactionalWorkflow
from infrastructure.dependencies import (
    get_connection_manager,
    get_model_registry,
    get_transactional_workflow,
)
from inventory.application import (
    CatalogService,
    PurchaseService,
    ReportService,
    SaleService,
)


def get_purchase_service(
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
    workflow: Annotated[TransactionalWorkflow, Depends(get_transactional_workflow)],
    registry: Annotated[ModelRegistry[Any], Depends(get_model_registry)],
) -> PurchaseService:
    """Get PurchaseService instance."""
    return PurchaseService(manager=manager, workflow=workflow, registry=registry)


def get_catalog_service(
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
    workflow: Annotated[TransactionalWorkflow, Depends(get_transactional_workflow)],
    registry: Annotated[ModelRegistry[Any], Depends(get_model_registry)],
) -> CatalogService:
    """Get CatalogService instance."""
    return CatalogService(manager=manager, workflow=workflow, registry=registry)


def get_report_service(
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
    registry: Annotated[ModelRegistry[Any], Depends(get_model_registry)],
) -> ReportService:
    """Get ReportService instance."""
    return ReportService(manager=manager, registry=registry)


def get_sale_service(
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
    workflow: Annotated[TransactionalWorkflow, Depends(get_transactional_workflow)],
    registry: Annotated[ModelRegistry[Any], Depends(get_model_registry)],
) -> SaleService:
    """Get SaleService instance."""
    return SaleService(manager=manager, workflow=workflow, registry=registry)
