"""HTTP routes for organization signup and tenant management."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from shared_kernel.tenant_id import TenantId
from tenancy.application import OrganizationService
from tenancy.dependencies import get_organization_service
from tenancy.ports.exceptions import (
    DuplicateOrganizationError,
    InvalidVerificationTokenError,
    ProvisioningError,
    TenantNotFoundError,
)
from tenancy.presentation.models import (
    SignupRequest,
    SignupResponse,
    TenantResponse,
    VerifyRequest,
)

organizations_router = APIRouter(
    prefix="/organizations",
    tags=["organizations"],
)

tenants_router = APIRouter(
    prefix="/tenants",
    tags=["tenants"],
)


def _parse_tenant_id(tenant_id: str) -> TenantId:
    try:
        return TenantId.from_string(tenant_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid tenant ID format: {e}",
        ) from e


@organizations_router.post(
    "/signup",
    status_code=status.HTTP_202_ACCEPTED,
)
async def signup(
    request: SignupRequest,
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> SignupResponse:
    """Register an organization; a verification link is sent to the email.

    Raises:
        HTTPException: 409 if the email or organization name is taken
    """
    try:
        pending = await service.signup(
            organization_name=request.organization_name,
            admin_name=request.admin_name,
            email=request.email,
        )
    except DuplicateOrganizationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return SignupResponse.from_domain(pending)


@organizations_router.post(
    "/verify",
    status_code=status.HTTP_201_CREATED,
)
async def verify(
    request: VerifyRequest,
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> TenantResponse:
    """Verify a signup, creating the tenant and its database.

    Raises:
        HTTPException: 400 if the token is invalid or expired
        HTTPException: 409 if the organization name was taken meanwhile
        HTTPException: 503 if the tenant database could not be provisioned
    """
    try:
        tenant = await service.verify(request.token)
    except InvalidVerificationTokenError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DuplicateOrganizationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ProvisioningError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tenant database could not be provisioned, retry later",
        )
    return TenantResponse.from_domain(tenant)


@tenants_router.get("")
async def list_tenants(
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> list[TenantResponse]:
    """List active tenants."""
    tenants = await service.list_tenants()
    return [TenantResponse.from_domain(t) for t in tenants]


@tenants_router.get("/{tenant_id}")
async def get_tenant(
    tenant_id: str,
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> TenantResponse:
    """Get tenant by ID.

    Raises:
        HTTPException: 400 if tenant ID is invalid
        HTTPException: 404 if tenant not found
    """
    tenant_id_obj = _parse_tenant_id(tenant_id)
    try:
        tenant = await service.get_tenant(tenant_id_obj)
    except TenantNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return TenantResponse.from_domain(tenant)


@tenants_router.post("/{tenant_id}/deactivate")
async def deactivate_tenant(
    tenant_id: str,
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> TenantResponse:
    """Deactivate a tenant; its data stays, requests for it are refused.

    Raises:
        HTTPException: 400 if tenant ID is invalid
        HTTPException: 404 if tenant not found
    """
    tenant_id_obj = _parse_tenant_id(tenant_id)
    try:
        tenant = await service.deactivate_tenant(tenant_id_obj)
    except TenantNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return TenantResponse.from_domain(tenant)
