"""Control database repositories for tenants and pending organizations.

Repositories never commit; the application service owns the transaction.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared_kernel.tenant_id import TenantId
from tenancy.domain.aggregates import PendingOrganization, Tenant
from tenancy.infrastructure.models import PendingOrganizationModel, TenantModel
from tenancy.ports.exceptions import DuplicateOrganizationError


class TenantRepository:
    """SQLAlchemy implementation of ITenantRepository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, tenant: Tenant) -> None:
        """Insert or update a tenant.

        Raises:
            DuplicateOrganizationError: If the name is already taken
        """
        model = await self._session.get(TenantModel, tenant.id.value)
        if model is None:
            model = TenantModel(
                id=tenant.id.value,
                name=tenant.name,
                database_name=tenant.database_name,
                admin_email=tenant.admin_email,
                is_active=tenant.is_active,
            )
            self._session.add(model)
        else:
            model.name = tenant.name
            model.is_active = tenant.is_active

        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicateOrganizationError(
                f"Organization '{tenant.name}' already exists"
            ) from e

    async def get_by_id(self, tenant_id: TenantId) -> Tenant | None:
        model = await self._session.get(TenantModel, tenant_id.value)
        return self._to_domain(model) if model is not None else None

    async def get_by_name(self, name: str) -> Tenant | None:
        stmt = select(TenantModel).where(TenantModel.name == name)
        model = (await self._session.execute(stmt)).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    async def list_active(self) -> list[Tenant]:
        stmt = (
            select(TenantModel)
            .where(TenantModel.is_active.is_(True))
            .order_by(TenantModel.name)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars()]

    @staticmethod
    def _to_domain(model: TenantModel) -> Tenant:
        return Tenant(
            id=TenantId(value=model.id),
            name=model.name,
            database_name=model.database_name,
            admin_email=model.admin_email,
            is_active=model.is_active,
        )


class PendingOrganizationRepository:
    """SQLAlchemy implementation of IPendingOrganizationRepository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, pending: PendingOrganization) -> None:
        """Insert a pending organization.

        Raises:
            DuplicateOrganizationError: If the email already has a pending signup
        """
        self._session.add(
            PendingOrganizationModel(
                id=pending.id.value,
                organization_name=pending.organization_name,
                admin_name=pending.admin_name,
                email=pending.email,
                verification_token=pending.verification_token,
                expires_at=pending.expires_at,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicateOrganizationError(
                f"A signup for {pending.email} is already pending"
            ) from e

    async def get_by_token(self, token: str) -> PendingOrganization | None:
        stmt = select(PendingOrganizationModel).where(
            PendingOrganizationModel.verification_token == token
        )
        model = (await self._session.execute(stmt)).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    async def get_by_email(self, email: str) -> PendingOrganization | None:
        stmt = select(PendingOrganizationModel).where(
            PendingOrganizationModel.email == email.strip().lower()
        )
        model = (await self._session.execute(stmt)).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    async def delete(self, pending: PendingOrganization) -> None:
        model = await self._session.get(PendingOrganizationModel, pending.id.value)
        if model is not None:
            await self._session.delete(model)
            await self._session.flush()

    @staticmethod
    def _to_domain(model: PendingOrganizationModel) -> PendingOrganization:
        return PendingOrganization(
            id=TenantId(value=model.id),
            organization_name=model.organization_name,
            admin_name=model.admin_name,
            email=model.email,
            verification_token=model.verification_token,
            expires_at=model.expires_at,
        )
