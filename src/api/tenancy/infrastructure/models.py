"""SQLAlchemy ORM models for the shared control database."""

from datetime import datetime

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


class TenantModel(Base, TimestampMixin):
    """ORM model for the tenants table.

    One row per verified organization. ``database_name`` points at the
    tenant's own database and is never updated.
    """

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    database_name: Mapped[str] = mapped_column(String(63), nullable=False, unique=True)
    admin_email: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<TenantModel(id={self.id}, name={self.name})>"


class PendingOrganizationModel(Base, TimestampMixin):
    """ORM model for signups awaiting email verification."""

    __tablename__ = "pending_organizations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    organization_name: Mapped[str] = mapped_column(String(255), nullable=False)
    admin_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    verification_token: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True
    )
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
