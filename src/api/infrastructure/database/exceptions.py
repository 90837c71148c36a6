"""Database-layer exceptions shared by every bounded context.

Each exception carries a ``retryable`` flag. Callers may retry only the
retryable ones; everything else is surfaced immediately.
"""


class DatabaseError(Exception):
    """Base exception for database operations."""

    retryable: bool = False


class InvalidTenantError(DatabaseError):
    """Raised when a tenant identifier is not a syntactically valid ULID."""

    def __init__(self, tenant_id: object):
        super().__init__(f"Invalid tenant identifier: {tenant_id!r}")
        self.tenant_id = tenant_id


class TenantNotRoutedError(DatabaseError):
    """Raised when no database name has been recorded for a tenant."""

    def __init__(self, tenant_id: str):
        super().__init__(f"No database recorded for tenant {tenant_id}")
        self.tenant_id = tenant_id


class DatabaseConnectionError(DatabaseError):
    """Raised when a database cannot be reached after retrying."""

    retryable = True


class UnknownSchemaError(DatabaseError):
    """Raised when a model is requested for an entity kind nobody registered.

    This is a programming error, not a runtime condition.
    """

    def __init__(self, name: object):
        super().__init__(f"No schema registered for entity {name!r}")
        self.name = name


class TransactionError(DatabaseError):
    """Raised when transaction operations fail."""

    pass


class TransactionStateError(TransactionError):
    """Raised when a transaction is used in a state that forbids the call."""

    pass


class ConflictRetryError(TransactionError):
    """Raised when the engine rejects a write because of a concurrent writer.

    The whole unit of work was rolled back and may be retried.
    """

    retryable = True
