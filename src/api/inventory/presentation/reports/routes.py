"""HTTP routes for reports."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from inventory.application import ReportService
from inventory.dependencies import get_report_service
from inventory.presentation.errors import http_errors
from inventory.presentation.reports.models import (
    CategorySalesResponse,
    PurchaseSummaryResponse,
    VendorSalesResponse,
)
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.dependencies import get_tenant_context

router = APIRouter(
    prefix="/reports",
    tags=["reports"],
)


@router.get("/purchase-summary")
async def purchase_summary(
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[ReportService, Depends(get_report_service)],
    start: datetime | None = None,
    end: datetime | None = None,
) -> PurchaseSummaryResponse:
    """Purchase totals for purchases dated within ``[start, end]``.

    Both bounds are inclusive and interpreted exactly as given; omit a
    bound to leave that side open.
    """
    with http_errors():
        summary = await service.purchase_summary(tenant.tenant_id, start=start, end=end)
    return PurchaseSummaryResponse.model_validate(summary)


@router.get("/vendor-wise")
async def vendor_wise(
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[ReportService, Depends(get_report_service)],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[VendorSalesResponse]:
    """Sales per vendor whose stock was sold within ``[start, end]``."""
    with http_errors():
        report = await service.vendor_wise(tenant.tenant_id, start=start, end=end)
    return [VendorSalesResponse.model_validate(v) for v in report]


@router.get("/category-wise")
async def category_wise(
    tenant: Annotated[TenantContext, Depends(get_tenant_context)],
    service: Annotated[ReportService, Depends(get_report_service)],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[CategorySalesResponse]:
    """Sales per product category within ``[start, end]``."""
    with http_errors():
        report = await service.category_wise(tenant.tenant_id, start=start, end=end)
    return [CategorySalesResponse.model_validate(c) for c in report]
