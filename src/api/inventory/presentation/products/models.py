"""Pydantic models for product API requests and responses."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CreateProductRequest(BaseModel):
    """Request model for creating a product."""

    name: str = Field(..., min_length=1, max_length=255)
    brand: str | None = Field(default=None, max_length=255)
    category: str | None = Field(default=None, max_length=100)
    volume_ml: int | None = Field(default=None, gt=0)
    sku: str | None = Field(default=None, max_length=100)
    barcode: str | None = Field(default=None, max_length=100)
    price_per_unit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    current_stock: int = Field(default=0, ge=0)
    reorder_level: int = Field(default=0, ge=0)


class UpdateProductRequest(BaseModel):
    """Request model for a partial product update. Omitted fields are kept."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    brand: str | None = Field(default=None, max_length=255)
    category: str | None = Field(default=None, max_length=100)
    volume_ml: int | None = Field(default=None, gt=0)
    sku: str | None = Field(default=None, max_length=100)
    barcode: str | None = Field(default=None, max_length=100)
    price_per_unit: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    reorder_level: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class ProductResponse(BaseModel):
    """Response model for product."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    brand: str | None
    category: str | None
    volume_ml: int | None
    sku: str | None
    barcode: str | None
    price_per_unit: Decimal
    current_stock: int
    reorder_level: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class VendorStockResponse(BaseModel):
    """A vendor's current holding of a product."""

    model_config = ConfigDict(from_attributes=True)

    vendor_id: str
    vendor_name: str
    product_id: str
    current_stock: int
    last_purchase_price: Decimal | None
    last_purchase_date: datetime | None
