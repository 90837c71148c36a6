"""Tenant identifier value object.

Shared by the tenancy context (which creates tenants) and the database
infrastructure (which routes every query to a tenant database), so it lives
in the shared kernel.
"""

from __future__ import annotations

from dataclasses import dataclass

from ulid import ULID


@dataclass(frozen=True)
class TenantId:
    """Identifier for a tenant organization.

    Uses ULID for sortability and distribution-friendly generation. The
    value is always the canonical uppercase form.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> TenantId:
        """Generate a new TenantId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> TenantId:
        """Create TenantId from string value.

        Accepts case-insensitive input (per Crockford's Base32 spec) and
        returns the canonical uppercase form.

        Args:
            value: ULID string

        Returns:
            TenantId instance

        Raises:
            ValueError: If value is not a valid ULID
        """
        if not isinstance(value, str):
            raise ValueError(f"Invalid TenantId: {value!r}")
        try:
            parsed = ULID.from_str(value.strip().upper())
        except ValueError as e:
            raise ValueError(f"Invalid TenantId: {value}") from e

        return cls(value=str(parsed))
