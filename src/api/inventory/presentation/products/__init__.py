"""Product routes and models."""

from inventory.presentation.products.routes import router

__all__ = ["router"]
