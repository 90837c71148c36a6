"""HTTP routes for vendors."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from inventory.application import CatalogService
from inventory.dependencies import get_catalog_service
from inventory.presentation.errors import http_errors
from inventory.presentation.vendors.models import (
    CreateVendorRequest,
    UpdateVendorRequest,
    VendorHasStockResponse,
    VendorResponse,
)
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.dependencies import get_tenant_context

router = APIRouter(
    prefix="/vendors",
    tags=["vendors"],
)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_vendor(
    request: CreateVendorRequest,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> VendorResponse:
    """Create a vendor."""
    fields = request.model_dump(exclude={"name"}, exclude_none=True)
    with http_errors():
        vendor = await service.create_vendor(tenant.tenant_id, request.name, **fields)
    return VendorResponse.model_validate(vendor)


@router.get("")
async def list_vendors(
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    include_inactive: bool = False,
) -> list[VendorResponse]:
    """List vendors, highest priority first."""
    with http_errors():
        vendors = await service.list_vendors(
            tenant.tenant_id, active_only=not include_inactive
        )
    return [VendorResponse.model_validate(v) for v in vendors]


@router.get("/{vendor_id}")
async def get_vendor(
    vendor_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> VendorResponse:
    """Get vendor by ID.

    Raises:
        HTTPException: 404 if the vendor does not exist
    """
    with http_errors():
        vendor = await service.get_vendor(tenant.tenant_id, vendor_id)
    return VendorResponse.model_validate(vendor)


@router.patch("/{vendor_id}")
async def update_vendor(
    vendor_id: str,
    request: UpdateVendorRequest,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> VendorResponse:
    fields = request.model_dump(exclude_unset=True, exclude_none=True)
    with http_errors():
        vendor = await service.update_vendor(tenant.tenant_id, vendor_id, **fields)
    return VendorResponse.model_validate(vendor)


@router.delete("/{vendor_id}")
async def deactivate_vendor(
    vendor_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> VendorResponse:
    """Deactivate a vendor. Existing purchases keep referring to it."""
    with http_errors():
        vendor = await service.deactivate_vendor(tenant.tenant_id, vendor_id)
    return VendorResponse.model_validate(vendor)


@router.get("/{vendor_id}/has-stock")
async def vendor_has_stock(
    vendor_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> VendorHasStockResponse:
    """Whether any product still holds stock bought from the vendor."""
    with http_errors():
        has_stock = await service.vendor_has_stock(tenant.tenant_id, vendor_id)
    return VendorHasStockResponse(vendor_id=vendor_id, has_stock=has_stock)
