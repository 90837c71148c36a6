"""Pydantic models for organization and tenant API requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from tenancy.domain.aggregates import PendingOrganization, Tenant

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SignupRequest(BaseModel):
    """Request model for an organization signup."""

    organization_name: str = Field(..., min_length=1, max_length=255)
    admin_name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)


class SignupResponse(BaseModel):
    """Response model for an accepted signup."""

    id: str = Field(..., description="Pending organization ID (ULID format)")
    organization_name: str
    email: str
    expires_at: datetime = Field(..., description="Verification deadline (UTC)")

    @classmethod
    def from_domain(cls, pending: PendingOrganization) -> SignupResponse:
        return cls(
            id=pending.id.value,
            organization_name=pending.organization_name,
            email=pending.email,
            expires_at=pending.expires_at,
        )


class VerifyRequest(BaseModel):
    """Request model for email verification."""

    token: str = Field(..., min_length=1, max_length=64)


class TenantResponse(BaseModel):
    """Response model for tenant."""

    id: str = Field(..., description="Tenant ID (ULID format)")
    name: str = Field(..., description="Organization name")
    database_name: str = Field(..., description="Tenant database")
    is_active: bool

    @classmethod
    def from_domain(cls, tenant: Tenant) -> TenantResponse:
        """Convert domain Tenant aggregate to API response."""
        return cls(
            id=tenant.id.value,
            name=tenant.name,
            database_name=tenant.database_name,
            is_active=tenant.is_active,
        )
