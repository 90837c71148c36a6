"""HTTP routes for products and their vendor stock."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from inventory.application import CatalogService
from inventory.dependencies import get_catalog_service
from inventory.presentation.errors import http_errors
from inventory.presentation.products.models import (
    CreateProductRequest,
    ProductResponse,
    UpdateProductRequest,
    VendorStockResponse,
)
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.dependencies import get_tenant_context

router = APIRouter(tags=["products"])


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(
    request: CreateProductRequest,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductResponse:
    """Create a product.

    Raises:
        HTTPException: 409 if the SKU or barcode is already used
    """
    fields = request.model_dump(exclude={"name"}, exclude_none=True)
    with http_errors():
        product = await service.create_product(tenant.tenant_id, request.name, **fields)
    return ProductResponse.model_validate(product)


@router.get("/products")
async def list_products(
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    search: Annotated[str | None, Query(max_length=100)] = None,
    category: str | None = None,
    include_inactive: bool = False,
) -> list[ProductResponse]:
    """List products by name, optionally filtered by text or category."""
    with http_errors():
        products = await service.list_products(
            tenant.tenant_id,
            search=search,
            category=category,
            active_only=not include_inactive,
        )
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/products/{product_id}")
async def get_product(
    product_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductResponse:
    """Get product by ID.

    Raises:
        HTTPException: 404 if the product does not exist
    """
    with http_errors():
        product = await service.get_product(tenant.tenant_id, product_id)
    return ProductResponse.model_validate(product)


@router.patch("/products/{product_id}")
async def update_product(
    product_id: str,
    request: UpdateProductRequest,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductResponse:
    """Update the given product fields.

    Stock is not editable here; it only moves through purchases.
    """
    fields = request.model_dump(exclude_unset=True, exclude_none=True)
    with http_errors():
        product = await service.update_product(tenant.tenant_id, product_id, **fields)
    return ProductResponse.model_validate(product)


@router.delete("/products/{product_id}")
async def deactivate_product(
    product_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductResponse:
    """Deactivate a product. Purchase history keeps referring to it."""
    with http_errors():
        product = await service.deactivate_product(tenant.tenant_id, product_id)
    return ProductResponse.model_validate(product)


@router.get("/inventory/vendor-stocks/{product_id}")
async def vendor_stocks_for_product(
    product_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> list[VendorStockResponse]:
    """Vendors holding the product, largest quantity first."""
    with http_errors():
        stocks = await service.vendor_stocks_for_product(tenant.tenant_id, product_id)
    return [VendorStockResponse.model_validate(s) for s in stocks]
