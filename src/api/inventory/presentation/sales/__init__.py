"""Sale and closing stock routes and models."""

from inventory.presentation.sales.routes import router

__all__ = ["router"]
