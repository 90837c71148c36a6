"""SQLAlchemy declarative bases and shared model utilities.

Two metadata collections exist:

* ``Base`` - tables of the shared control database (tenants, pending
  organizations).
* ``TenantBase`` - tables created inside every tenant database. One class
  definition serves all tenants; the tenant is selected by the engine the
  session is bound to.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Generate UTC timestamp for database defaults.

    Uses a named function instead of lambda for SQLAlchemy 2.0 compatibility.
    """
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for control database ORM models."""

    type_annotation_map: dict[type, Any] = {
        datetime: DateTime(timezone=True),
    }


class TenantBase(DeclarativeBase):
    """Base class for ORM models living in each tenant database."""

    type_annotation_map: dict[type, Any] = {
        datetime: DateTime(timezone=True),
        Decimal: Numeric(12, 2),
    }


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
