"""Pydantic models for sale and closing stock requests and responses."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from inventory.domain.sale import SaleLine, StockCount
from inventory.domain.value_objects import PaymentStatus, ProductId, SaleKind


class SaleItemRequest(BaseModel):
    """One line of a bill."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)

    def to_domain(self) -> SaleLine:
        """Convert to a domain sale line.

        Raises:
            ValueError: If product_id is not a valid ULID
        """
        return SaleLine(
            product_id=ProductId.from_string(self.product_id),
            quantity=self.quantity,
            unit_price=self.unit_price,
            discount=self.discount,
        )


class SaleRequest(BaseModel):
    """Request model for recording a bill.

    ``paid`` defaults to the bill total.
    """

    items: list[SaleItemRequest] = Field(..., min_length=1)
    paid: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    payment_mode: str = Field(default="cash", min_length=1, max_length=20)
    customer_name: str | None = Field(default=None, max_length=255)
    customer_phone: str | None = Field(default=None, max_length=50)
    notes: str | None = None
    sale_date: datetime | None = None


class SaleAllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vendor_id: str
    quantity: int


class SaleItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    product_name: str
    category: str | None
    volume_ml: int | None
    quantity: int
    unit_price: Decimal
    discount: Decimal
    line_total: Decimal
    allocations: list[SaleAllocationResponse]


class SaleResponse(BaseModel):
    """Response model for a bill."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    bill_number: str
    kind: SaleKind
    customer_name: str | None
    customer_phone: str | None
    sale_date: datetime
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    paid: Decimal
    due: Decimal
    payment_status: PaymentStatus
    payment_mode: str
    notes: str | None
    items: list[SaleItemResponse]


class StockCountRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    counted: int = Field(..., ge=0)

    def to_domain(self) -> StockCount:
        """Convert to a domain stock count.

        Raises:
            ValueError: If product_id is not a valid ULID
        """
        return StockCount(
            product_id=ProductId.from_string(self.product_id), counted=self.counted
        )


class ClosingStockRequest(BaseModel):
    """Physical counts taken at closing time."""

    items: list[StockCountRequest] = Field(..., min_length=1)
    counted_at: datetime | None = None


class StockAdjustmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    product_name: str
    previous_stock: int
    counted: int
    discrepancy: int


class ClosingStockResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    counted_at: datetime
    adjustments: list[StockAdjustmentResponse]
    discrepancy_bill: SaleResponse | None


class LedgerEntryResponse(BaseModel):
    """One stock movement of a product."""

    model_config = ConfigDict(from_attributes=True)

    kind: str
    quantity: int
    previous_stock: int
    new_stock: int
    reason: str | None
    reference: str | None
    occurred_at: datetime
