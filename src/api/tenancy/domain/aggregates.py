"""Aggregates of the tenancy context: organizations awaiting verification
and the tenants they become."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from shared_kernel.tenant_id import TenantId


@dataclass
class PendingOrganization:
    """An organization that signed up but has not verified its email yet.

    The pending id is reused as the tenant id on verification, so retrying
    a verification that failed halfway targets the same tenant database.
    """

    id: TenantId
    organization_name: str
    admin_name: str
    email: str
    verification_token: str
    expires_at: datetime

    @classmethod
    def create(
        cls,
        organization_name: str,
        admin_name: str,
        email: str,
        ttl: timedelta,
        now: datetime | None = None,
    ) -> PendingOrganization:
        """Start a signup with a fresh random verification token."""
        now = now or datetime.now(timezone.utc)
        return cls(
            id=TenantId.generate(),
            organization_name=organization_name.strip(),
            admin_name=admin_name.strip(),
            email=email.strip().lower(),
            verification_token=secrets.token_urlsafe(32),
            expires_at=now + ttl,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; they are stored in UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at


@dataclass
class Tenant:
    """A verified organization with its own database.

    ``database_name`` is fixed when the tenant is created.
    """

    id: TenantId
    name: str
    database_name: str
    admin_email: str
    is_active: bool = True

    @classmethod
    def from_pending(
        cls, pending: PendingOrganization, database_name: str
    ) -> Tenant:
        return cls(
            id=pending.id,
            name=pending.organization_name,
            database_name=database_name,
            admin_email=pending.email,
        )

    def deactivate(self) -> None:
        self.is_active = False
