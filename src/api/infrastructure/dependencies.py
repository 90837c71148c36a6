"""Shared infrastructure dependencies.

Provides ONLY infrastructure resources owned by the application lifespan
(the tenant connection manager, the transactional workflow, the model
registry). They live on ``app.state``; nothing here is module-level state.
Does NOT import from bounded contexts to maintain DDD boundaries.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request

from infrastructure.database.model_registry import ModelRegistry
from infrastructure.database.tenant_connections import ConnectionManager
from infrastructure.database.transactions import TransactionalWorkflow


def get_connection_manager(request: Request) -> ConnectionManager:
    """Get the application-scoped tenant connection manager.

    Raises:
        RuntimeError: If the application lifespan has not started
    """
    manager = getattr(request.app.state, "connection_manager", None)
    if manager is None:
        raise RuntimeError("Connection manager not initialized")
    return manager


def get_transactional_workflow(request: Request) -> TransactionalWorkflow:
    """Get the application-scoped transactional workflow."""
    workflow = getattr(request.app.state, "transactional_workflow", None)
    if workflow is None:
        raise RuntimeError("Transactional workflow not initialized")
    return workflow


def get_model_registry(request: Request) -> ModelRegistry[Any]:
    """Get the application-scoped model registry."""
    registry = getattr(request.app.state, "model_registry", None)
    if registry is None:
        raise RuntimeError("Model registry not initialized")
    return registry
