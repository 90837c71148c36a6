"""Report routes and models."""

from inventory.presentation.reports.routes import router

__all__ = ["router"]
