"""Database infrastructure - control database and per-tenant connection primitives."""

from infrastructure.database.exceptions import (
    ConflictRetryError,
    DatabaseConnectionError,
    DatabaseError,
    InvalidTenantError,
    TenantNotRoutedError,
    TransactionError,
    TransactionStateError,
    UnknownSchemaError,
)

__all__ = [
    "ConflictRetryError",
    "DatabaseConnectionError",
    "DatabaseError",
    "InvalidTenantError",
    "TenantNotRoutedError",
    "TransactionError",
    "TransactionStateError",
    "UnknownSchemaError",
]
