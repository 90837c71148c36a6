"""HTTP routes for purchases."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from inventory.application import PurchaseService
from inventory.dependencies import get_purchase_service
from inventory.domain.purchase import LineItem
from inventory.domain.value_objects import PaymentStatus
from inventory.presentation.errors import http_errors
from inventory.presentation.purchases.models import PurchaseRequest, PurchaseResponse
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.dependencies import get_tenant_context

router = APIRouter(
    prefix="/purchases",
    tags=["purchases"],
)


def _line_items(request: PurchaseRequest) -> list[LineItem]:
    try:
        return [item.to_domain() for item in request.items]
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid product ID format: {e}",
        ) from e


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_purchase(
    request: PurchaseRequest,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[PurchaseService, Depends(get_purchase_service)],
) -> PurchaseResponse:
    """Record a purchase and receive its stock in one transaction.

    Raises:
        HTTPException: 400 for invalid quantities or prices
        HTTPException: 404 if the vendor or a product does not exist
        HTTPException: 409 if concurrent writes kept conflicting
        HTTPException: 503 if the tenant database is unreachable
    """
    items = _line_items(request)
    with http_errors():
        purchase = await service.record_purchase(
            tenant.tenant_id,
            vendor_id=request.vendor_id,
            items=items,
            tax=request.tax,
            paid=request.paid,
            notes=request.notes,
            invoice_number=request.invoice_number,
            purchase_date=request.purchase_date,
        )
    return PurchaseResponse.model_validate(purchase)


@router.get("")
async def list_purchases(
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[PurchaseService, Depends(get_purchase_service)],
    vendor_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    payment_status: PaymentStatus | None = None,
) -> list[PurchaseResponse]:
    """List purchases newest first."""
    with http_errors():
        purchases = await service.list_purchases(
            tenant.tenant_id,
            vendor_id=vendor_id,
            start=start,
            end=end,
            payment_status=payment_status.value if payment_status else None,
        )
    return [PurchaseResponse.model_validate(p) for p in purchases]


@router.get("/{purchase_id}")
async def get_purchase(
    purchase_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[PurchaseService, Depends(get_purchase_service)],
) -> PurchaseResponse:
    with http_errors():
        purchase = await service.get_purchase(tenant.tenant_id, purchase_id)
    return PurchaseResponse.model_validate(purchase)


@router.put("/{purchase_id}")
async def update_purchase(
    purchase_id: str,
    request: PurchaseRequest,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[PurchaseService, Depends(get_purchase_service)],
) -> PurchaseResponse:
    """Rewrite a purchase; stock moves by the net change per product.

    The vendor of an existing purchase cannot change (400).
    """
    items = _line_items(request)
    with http_errors():
        purchase = await service.update_purchase(
            tenant.tenant_id,
            purchase_id,
            items=items,
            tax=request.tax,
            paid=request.paid,
            notes=request.notes,
            invoice_number=request.invoice_number,
            vendor_id=request.vendor_id,
        )
    return PurchaseResponse.model_validate(purchase)


@router.delete("/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purchase(
    purchase_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[PurchaseService, Depends(get_purchase_service)],
) -> None:
    """Delete a purchase and take its stock back out."""
    with http_errors():
        await service.delete_purchase(tenant.tenant_id, purchase_id)
