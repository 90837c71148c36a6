"""Tenant context value object for resolved tenant identification.

This module contains the pure value object that represents a resolved
tenant context. It is framework-agnostic and contains no business logic,
making it safe for the shared kernel.

The actual resolution logic (header extraction, ULID validation, tenant
lookup) lives in the tenancy context's dependency layer.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant context for the current request.

    Attributes:
        tenant_id: The validated, canonical tenant ULID.
        database_name: The tenant's database as recorded at verification.
    """

    tenant_id: str
    database_name: str
