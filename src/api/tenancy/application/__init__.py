"""Application services for the tenancy context."""

from tenancy.application.organization_service import OrganizationService

__all__ = ["OrganizationService"]
