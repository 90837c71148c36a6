"""HTTP routes for sales and closing stock counts."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from inventory.application import SaleService
from inventory.dependencies import get_sale_service
from inventory.domain.value_objects import SaleKind
from inventory.presentation.errors import http_errors
from inventory.presentation.sales.models import (
    ClosingStockRequest,
    ClosingStockResponse,
    LedgerEntryResponse,
    SaleRequest,
    SaleResponse,
)
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.dependencies import get_tenant_context

router = APIRouter(tags=["sales"])


def _invalid_product(e: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Invalid product ID format: {e}",
    )


@router.post("/sales", status_code=status.HTTP_201_CREATED)
async def record_sale(
    request: SaleRequest,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[SaleService, Depends(get_sale_service)],
) -> SaleResponse:
    """Record a bill and take its units out of stock in one transaction.

    Raises:
        HTTPException: 400 for invalid lines or insufficient stock
        HTTPException: 404 if a product does not exist
        HTTPException: 409 if concurrent writes kept conflicting
        HTTPException: 503 if the tenant database is unreachable
    """
    try:
        items = [item.to_domain() for item in request.items]
    except ValueError as e:
        raise _invalid_product(e) from e
    with http_errors():
        sale = await service.record_sale(
            tenant.tenant_id,
            items=items,
            paid=request.paid,
            payment_mode=request.payment_mode,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            notes=request.notes,
            sale_date=request.sale_date,
        )
    return SaleResponse.model_validate(sale)


@router.get("/sales")
async def list_sales(
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[SaleService, Depends(get_sale_service)],
    start: datetime | None = None,
    end: datetime | None = None,
    kind: SaleKind | None = None,
) -> list[SaleResponse]:
    """List bills newest first."""
    with http_errors():
        sales = await service.list_sales(
            tenant.tenant_id,
            start=start,
            end=end,
            kind=kind.value if kind else None,
        )
    return [SaleResponse.model_validate(s) for s in sales]


@router.get("/sales/{sale_id}")
async def get_sale(
    sale_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[SaleService, Depends(get_sale_service)],
) -> SaleResponse:
    with http_errors():
        sale = await service.get_sale(tenant.tenant_id, sale_id)
    return SaleResponse.model_validate(sale)


@router.post("/inventory/closing-stock")
async def closing_stock(
    request: ClosingStockRequest,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[SaleService, Depends(get_sale_service)],
) -> ClosingStockResponse:
    """Replace book stock with the counted stock.

    Differences are written to the stock ledger; shortages come back as a
    discrepancy bill.
    """
    try:
        counts = [item.to_domain() for item in request.items]
    except ValueError as e:
        raise _invalid_product(e) from e
    with http_errors():
        result = await service.closing_stock(
            tenant.tenant_id, counts, counted_at=request.counted_at
        )
    return ClosingStockResponse.model_validate(result)


@router.get("/inventory/ledger/{product_id}")
async def stock_ledger(
    product_id: str,
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[SaleService, Depends(get_sale_service)],
) -> list[LedgerEntryResponse]:
    """Stock movements of a product, oldest first."""
    with http_errors():
        entries = await service.ledger(tenant.tenant_id, product_id)
    return [LedgerEntryResponse.model_validate(e) for e in entries]
