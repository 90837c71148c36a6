"""Vendor routes and models."""

from inventory.presentation.vendors.routes import router

__all__ = ["router"]
