"""Pydantic models for purchase API requests and responses."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from inventory.domain.purchase import LineItem
from inventory.domain.value_objects import PaymentStatus, ProductId


class PurchaseItemRequest(BaseModel):
    """One line of a purchase request."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    purchase_price: Decimal = Field(..., ge=0, decimal_places=2)
    batch_number: str | None = Field(default=None, max_length=100)

    def to_domain(self) -> LineItem:
        """Convert to a domain line item.

        Raises:
            ValueError: If product_id is not a valid ULID
        """
        return LineItem(
            product_id=ProductId.from_string(self.product_id),
            quantity=self.quantity,
            purchase_price=self.purchase_price,
            batch_number=self.batch_number,
        )


class PurchaseRequest(BaseModel):
    """Request model for recording or rewriting a purchase."""

    vendor_id: str = Field(..., min_length=1)
    items: list[PurchaseItemRequest] = Field(..., min_length=1)
    tax: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    paid: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    notes: str | None = None
    invoice_number: str | None = Field(default=None, max_length=100)
    purchase_date: datetime | None = None


class PurchaseItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    product_name: str
    quantity: int
    purchase_price: Decimal
    line_total: Decimal
    batch_number: str | None


class PurchaseResponse(BaseModel):
    """Response model for purchase."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    purchase_number: str
    vendor_id: str
    vendor_name: str
    purchase_date: datetime
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid: Decimal
    due: Decimal
    payment_status: PaymentStatus
    invoice_number: str | None
    notes: str | None
    items: list[PurchaseItemResponse]
