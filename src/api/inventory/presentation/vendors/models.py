"""Pydantic models for vendor API requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreateVendorRequest(BaseModel):
    """Request model for creating a vendor."""

    name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    address: str | None = None
    gstin: str | None = Field(default=None, max_length=20)
    payment_terms: str | None = Field(default=None, max_length=100)
    notes: str | None = None
    priority: int = 0


class UpdateVendorRequest(BaseModel):
    """Request model for a partial vendor update. Omitted fields are kept."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    address: str | None = None
    gstin: str | None = Field(default=None, max_length=20)
    payment_terms: str | None = Field(default=None, max_length=100)
    notes: str | None = None
    priority: int | None = None
    is_active: bool | None = None


class VendorResponse(BaseModel):
    """Response model for vendor."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    phone: str | None
    email: str | None
    address: str | None
    gstin: str | None
    payment_terms: str | None
    notes: str | None
    priority: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class VendorHasStockResponse(BaseModel):
    vendor_id: str
    has_stock: bool
