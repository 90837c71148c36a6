"""Pydantic models for report responses."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class VendorTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vendor_id: str
    vendor_name: str
    purchase_count: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid: Decimal
    due: Decimal


class PurchaseSummaryResponse(BaseModel):
    """Purchase totals for a window, overall and per vendor."""

    model_config = ConfigDict(from_attributes=True)

    start: datetime | None
    end: datetime | None
    purchase_count: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid: Decimal
    due: Decimal
    vendors: list[VendorTotalsResponse]


class VendorProductSalesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    product_name: str
    quantity: int
    amount: Decimal


class VendorSalesResponse(BaseModel):
    """Sales attributed to one vendor's stock."""

    model_config = ConfigDict(from_attributes=True)

    vendor_id: str
    vendor_name: str
    quantity: int
    volume_ml: int
    amount: Decimal
    bill_count: int
    products: list[VendorProductSalesResponse]


class CategorySalesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    quantity: int
    volume_ml: int
    amount: Decimal
    product_count: int
    bill_count: int
