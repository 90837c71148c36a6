"""Application services for the inventory bounded context."""

from inventory.application.catalog_service import CatalogService, VendorStockView
from inventory.application.purchase_service import PurchaseService
from inventory.application.report_service import (
    CategorySales,
    PurchaseSummary,
    ReportService,
    VendorProductSales,
    VendorPurchaseTotals,
    VendorSales,
)
from inventory.application.sale_service import (
    ClosingStockResult,
    SaleService,
    StockAdjustment,
)

__all__ = [
    "CatalogService",
    "CategorySales",
    "ClosingStockResult",
    "PurchaseService",
    "PurchaseSummary",
    "ReportService",
    "SaleService",
    "StockAdjustment",
    "VendorProductSales",
    "VendorPurchaseTotals",
    "VendorSales",
    "VendorStockView",
]
