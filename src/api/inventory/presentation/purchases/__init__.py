"""Purchase routes and models."""

from inventory.presentation.purchases.routes import router

__all__ = ["router"]
