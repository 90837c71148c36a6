"""Exceptions raised by the tenancy context.

The presentation layer maps these to HTTP status codes.
"""


class TenancyError(Exception):
    """Base class for tenancy errors."""

    pass


class DuplicateOrganizationError(TenancyError):
    """Raised when an email or organization name is already registered."""

    pass


class InvalidVerificationTokenError(TenancyError):
    """Raised when a verification token is unknown or has expired."""

    def __init__(self) -> None:
        super().__init__("Invalid or expired verification token")


class TenantNotFoundError(TenancyError):
    """Raised when no tenant exists for an id."""

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant {tenant_id} not found")
        self.tenant_id = tenant_id


class ProvisioningError(TenancyError):
    """Raised when a tenant database could not be created."""

    pass
