"""Binds shared schema definitions to tenant connection handles.

The ORM classes are defined once (``TenantBase``). What a tenant gets is an
*accessor*: a small typed object that knows the entity and is tied to one
``ConnectionHandle``. The registry creates at most one accessor per
(handle, entity kind); asking again returns the same object.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.exceptions import TransactionError, UnknownSchemaError
from infrastructure.observability.probes import ConnectionProbe, DefaultConnectionProbe

if TYPE_CHECKING:
    from infrastructure.database.tenant_connections import ConnectionHandle

K = TypeVar("K", bound=StrEnum)

AccessorFactory = Callable[["ConnectionHandle"], Any]


class TenantAccessor:
    """Base class for entity accessors bound to one tenant handle.

    Every operation takes the session it should run in. Sessions opened on
    another tenant's engine are rejected, so a bound accessor can never read
    or write a different tenant's data.
    """

    def __init__(self, handle: ConnectionHandle):
        self._handle = handle

    @property
    def handle(self) -> ConnectionHandle:
        return self._handle

    @property
    def tenant_id(self) -> str:
        return self._handle.tenant_id

    def _guard(self, session: AsyncSession) -> AsyncSession:
        if session.bind is not self._handle.engine:
            raise TransactionError(
                f"Session is not bound to tenant {self._handle.tenant_id}"
            )
        return session


class ModelRegistry(Generic[K]):
    """Registry of accessor factories for a closed set of entity kinds."""

    def __init__(self, kinds: type[K], probe: ConnectionProbe | None = None):
        """Initialize the registry.

        Args:
            kinds: The StrEnum listing every entity kind
            probe: Optional observability probe
        """
        self._kinds = kinds
        self._factories: dict[K, AccessorFactory] = {}
        self._probe = probe or DefaultConnectionProbe()

    def register(self, kind: K, factory: AccessorFactory) -> None:
        """Register the accessor factory for an entity kind.

        Re-registering the same factory is a no-op.

        Raises:
            UnknownSchemaError: If ``kind`` is not a member of the enum
            ValueError: If a different factory is already registered
        """
        kind = self.kind_for(kind, require_registered=False)
        existing = self._factories.get(kind)
        if existing is not None and existing is not factory:
            raise ValueError(f"A different accessor is already registered for {kind}")
        self._factories[kind] = factory

    def kind_for(self, name: K | str, require_registered: bool = True) -> K:
        """Resolve an entity name to its enum member.

        Raises:
            UnknownSchemaError: If the name is not a known, registered kind
        """
        try:
            kind = self._kinds(name)
        except ValueError as e:
            raise UnknownSchemaError(name) from e
        if require_registered and kind not in self._factories:
            raise UnknownSchemaError(name)
        return kind

    def is_complete(self) -> bool:
        """True when every enum member has a registered accessor."""
        return all(kind in self._factories for kind in self._kinds)

    def get_model(self, handle: ConnectionHandle, name: K | str) -> Any:
        """Return the accessor for ``name`` bound to ``handle``.

        Creates and binds it on first request; afterwards the same object
        is returned for the lifetime of the handle.

        Raises:
            UnknownSchemaError: If ``name`` has no registered schema
        """
        kind = self.kind_for(name)
        accessor = handle.models.get(kind.value)
        if accessor is None:
            accessor = self._factories[kind](handle)
            handle.models[kind.value] = accessor
            self._probe.model_bound(handle.tenant_id, kind.value)
        return accessor
