"""Tenant directory: maps a tenant identifier to its physical database."""

from __future__ import annotations

from typing import TYPE_CHECKING

from infrastructure.database.engines import build_async_url
from infrastructure.database.exceptions import InvalidTenantError
from shared_kernel.tenant_id import TenantId

if TYPE_CHECKING:
    from infrastructure.settings import DatabaseSettings, TenantDatabaseSettings


def parse_tenant_id(raw: str | TenantId) -> TenantId:
    """Validate a raw tenant identifier.

    Raises:
        InvalidTenantError: If the value is not a valid ULID
    """
    if isinstance(raw, TenantId):
        return raw
    try:
        return TenantId.from_string(raw)
    except ValueError as e:
        raise InvalidTenantError(raw) from e


class TenantDirectory:
    """Derives tenant database names and URLs.

    Names are deterministic (``<prefix><ulid lowercase>``) so the directory
    needs no lookup table; the name is also recorded on the tenant row when
    the organization is verified and never changes afterwards.
    """

    def __init__(
        self,
        settings: DatabaseSettings,
        tenant_settings: TenantDatabaseSettings,
    ):
        self._settings = settings
        self._prefix = tenant_settings.database_prefix

    def database_name(self, tenant_id: str | TenantId) -> str:
        """Return the physical database name for a tenant.

        Raises:
            InvalidTenantError: If the id is not a valid ULID
        """
        tenant = parse_tenant_id(tenant_id)
        return f"{self._prefix}{tenant.value.lower()}"

    def url_for(self, tenant_id: str | TenantId) -> str:
        """Return the async driver URL of a tenant database."""
        return build_async_url(self._settings, database=self.database_name(tenant_id))
