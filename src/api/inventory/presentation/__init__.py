"""Inventory presentation layer - aggregate-based organization.

Each aggregate package (products, vendors, purchases, sales, reports)
contains its own routes and models. Every route is tenant scoped through
the ``X-Tenant-ID`` header.
"""

from __future__ import annotations

from fastapi import APIRouter

from inventory.presentation import products, purchases, reports, sales, vendors

router = APIRouter()

router.include_router(products.router)
router.include_router(vendors.router)
router.include_router(purchases.router)
router.include_router(sales.router)
router.include_router(reports.router)

__all__ = ["router"]
