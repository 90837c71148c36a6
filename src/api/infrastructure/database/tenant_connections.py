"""Per-tenant connection management.

Every tenant owns a physical database. The ``ConnectionManager`` keeps one
``ConnectionHandle`` (an async engine plus its session factory) per tenant,
opens it lazily on first use, shares it between concurrent requests, and
disposes it once it has been idle for long enough.

The manager is an ordinary object owned by the application lifespan and
handed to request handlers through FastAPI dependencies; nothing here is
module-level state.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import create_tenant_engine
from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    TenantNotRoutedError,
)
from infrastructure.database.tenant_directory import parse_tenant_id
from infrastructure.observability.probes import ConnectionProbe, DefaultConnectionProbe
from shared_kernel.tenant_id import TenantId

if TYPE_CHECKING:
    from infrastructure.settings import DatabaseSettings, TenantDatabaseSettings

EngineFactory = Callable[[TenantId, str | None], AsyncEngine]


@dataclass(eq=False)
class ConnectionHandle:
    """A live connection to one tenant database.

    Attributes:
        tenant_id: Canonical tenant ULID
        engine: Engine bound to the tenant database
        session_factory: Creates sessions bound to ``engine``
        opened_at: Monotonic time the handle was opened
        last_used: Monotonic time of the last acquire or lease release
        in_flight: Operations currently using the handle; cleanup skips
            handles where this is non-zero
        models: Entity accessors bound to this handle by the model registry
    """

    tenant_id: str
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    opened_at: float
    last_used: float
    in_flight: int = 0
    models: dict[str, Any] = field(default_factory=dict)

    def new_session(self) -> AsyncSession:
        """Create a session bound to this tenant's database."""
        return self.session_factory()


@dataclass(frozen=True)
class HandleSnapshot:
    """Point-in-time view of one handle."""

    tenant_id: str
    in_flight: int
    idle_seconds: float
    models: tuple[str, ...]


@dataclass(frozen=True)
class ConnectionSample:
    """One periodic sample kept in the metrics ring buffer."""

    timestamp: datetime
    open_connections: int
    in_flight: int
    tenants: tuple[str, ...]


@dataclass(frozen=True)
class ConnectionStats:
    """Current connection state plus recent samples."""

    open_connections: int
    connections: list[HandleSnapshot]
    history: list[ConnectionSample]


def default_engine_factory(
    settings: DatabaseSettings,
    tenant_settings: TenantDatabaseSettings,
) -> EngineFactory:
    """Build the production engine factory.

    The factory connects to the database name recorded for the tenant and
    never derives one from the current settings.
    """

    def factory(tenant_id: TenantId, database_name: str | None) -> AsyncEngine:
        if database_name is None:
            raise TenantNotRoutedError(tenant_id.value)
        return create_tenant_engine(settings, tenant_settings, database=database_name)

    return factory


async def ping(engine: AsyncEngine) -> None:
    """Round-trip a trivial statement to prove the database is reachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


class ConnectionManager:
    """Opens, shares, and evicts per-tenant database handles."""

    def __init__(
        self,
        engine_factory: EngineFactory,
        settings: TenantDatabaseSettings,
        probe: ConnectionProbe | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the manager.

        Args:
            engine_factory: Creates an (unconnected) engine for a tenant and
                the database name assigned to it, if any
            settings: Retry, idle and metrics settings
            probe: Optional observability probe
            clock: Monotonic clock, injectable for tests
            sleep: Backoff sleep, injectable for tests
        """
        self._engine_factory = engine_factory
        self._settings = settings
        self._probe = probe or DefaultConnectionProbe()
        self._clock = clock
        self._sleep = sleep
        self._handles: dict[str, ConnectionHandle] = {}
        self._databases: dict[str, str] = {}
        self._creation_locks: dict[str, asyncio.Lock] = {}
        self._history: deque[ConnectionSample] = deque(
            maxlen=settings.metrics_history_size
        )
        self._monitor_task: asyncio.Task[None] | None = None

    @property
    def open_connections(self) -> int:
        """Number of live tenant handles."""
        return len(self._handles)

    def assign_database(self, tenant_id: str | TenantId, database_name: str) -> None:
        """Record the database a tenant was provisioned into.

        Handles opened afterwards connect to this name.

        Raises:
            InvalidTenantError: If the id is not a valid ULID
        """
        tenant = parse_tenant_id(tenant_id)
        self._databases[tenant.value] = database_name

    async def acquire(self, tenant_id: str | TenantId) -> ConnectionHandle:
        """Return the live handle for a tenant, opening it if needed.

        Concurrent callers for the same tenant wait on a per-tenant lock, so
        only one engine is ever opened per tenant.

        Raises:
            InvalidTenantError: If the id is not a valid ULID
            DatabaseConnectionError: If the tenant database stays unreachable
            TenantNotRoutedError: If the engine factory needs a recorded
                database name and none was assigned
        """
        tenant = parse_tenant_id(tenant_id)
        key = tenant.value

        handle = self._handles.get(key)
        if handle is not None:
            handle.last_used = self._clock()
            self._probe.tenant_connection_reused(key)
            return handle

        lock = self._creation_locks.setdefault(key, asyncio.Lock())
        async with lock:
            handle = self._handles.get(key)
            if handle is not None:
                handle.last_used = self._clock()
                self._probe.tenant_connection_reused(key)
                return handle

            handle = await self._open(tenant)
            self._handles[key] = handle
            return handle

    @asynccontextmanager
    async def lease(self, tenant_id: str | TenantId) -> AsyncIterator[ConnectionHandle]:
        """Use a tenant handle for the duration of the block.

        The handle's in-flight counter is held above zero until the block
        exits, which keeps idle cleanup away from it.
        """
        handle = await self.acquire(tenant_id)
        handle.in_flight += 1
        try:
            yield handle
        finally:
            handle.in_flight -= 1
            handle.last_used = self._clock()

    async def _open(self, tenant: TenantId) -> ConnectionHandle:
        engine = self._engine_factory(tenant, self._databases.get(tenant.value))
        attempts = self._settings.connect_attempts
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                await ping(engine)
            except (SQLAlchemyError, OSError) as e:
                last_error = e
                if attempt < attempts:
                    self._probe.tenant_connection_attempt_failed(
                        tenant_id=tenant.value, attempt=attempt, error=e
                    )
                    await self._sleep(
                        self._settings.connect_backoff_seconds * 2 ** (attempt - 1)
                    )
                continue

            now = self._clock()
            self._probe.tenant_connection_opened(tenant.value, attempts=attempt)
            return ConnectionHandle(
                tenant_id=tenant.value,
                engine=engine,
                session_factory=async_sessionmaker(
                    engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                ),
                opened_at=now,
                last_used=now,
            )

        await engine.dispose()
        if last_error is None:
            raise DatabaseConnectionError(
                f"No connection attempt was made for tenant {tenant.value}"
            )
        self._probe.tenant_connection_failed(
            tenant_id=tenant.value, attempts=attempts, error=last_error
        )
        raise DatabaseConnectionError(
            f"Tenant database for {tenant.value} unreachable after "
            f"{attempts} attempts: {last_error}"
        ) from last_error

    async def cleanup_stale(self, max_idle_seconds: float | None = None) -> int:
        """Dispose handles idle longer than ``max_idle_seconds``.

        Handles with in-flight operations are never closed, however long
        they have been idle.

        Args:
            max_idle_seconds: Idle threshold; defaults to the configured timeout

        Returns:
            Number of handles closed
        """
        threshold = (
            self._settings.idle_timeout_seconds
            if max_idle_seconds is None
            else max_idle_seconds
        )
        now = self._clock()
        closed = 0

        for key, handle in list(self._handles.items()):
            if now - handle.last_used < threshold:
                continue
            if handle.in_flight > 0:
                self._probe.stale_connection_kept(key, in_flight=handle.in_flight)
                continue
            # Removed before disposing so a concurrent acquire opens a fresh handle
            if self._handles.get(key) is handle:
                del self._handles[key]
                self._forget_lock(key)
                await self._dispose(handle, reason="idle")
                closed += 1

        self._probe.stale_connections_cleaned(
            closed=closed, remaining=len(self._handles)
        )
        return closed

    async def close(self, tenant_id: str | TenantId) -> bool:
        """Dispose one tenant's handle. Returns False if none was open."""
        tenant = parse_tenant_id(tenant_id)
        handle = self._handles.pop(tenant.value, None)
        if handle is None:
            return False
        self._forget_lock(tenant.value)
        await self._dispose(handle, reason="closed")
        return True

    async def close_all(self) -> None:
        """Dispose every handle (application shutdown)."""
        handles = list(self._handles.values())
        self._handles.clear()
        for key in list(self._creation_locks):
            self._forget_lock(key)
        for handle in handles:
            await self._dispose(handle, reason="shutdown")

    def _forget_lock(self, key: str) -> None:
        lock = self._creation_locks.get(key)
        if lock is not None and not lock.locked():
            del self._creation_locks[key]

    async def _dispose(self, handle: ConnectionHandle, reason: str) -> None:
        handle.models.clear()
        await handle.engine.dispose()
        self._probe.tenant_connection_closed(handle.tenant_id, reason=reason)

    def stats(self) -> ConnectionStats:
        """Return current handles and the recent sample history."""
        now = self._clock()
        return ConnectionStats(
            open_connections=len(self._handles),
            connections=[
                HandleSnapshot(
                    tenant_id=handle.tenant_id,
                    in_flight=handle.in_flight,
                    idle_seconds=max(0.0, now - handle.last_used),
                    models=tuple(sorted(handle.models)),
                )
                for handle in self._handles.values()
            ],
            history=list(self._history),
        )

    def sample(self) -> ConnectionSample:
        """Record one sample into the bounded history."""
        sample = ConnectionSample(
            timestamp=datetime.now(UTC),
            open_connections=len(self._handles),
            in_flight=sum(h.in_flight for h in self._handles.values()),
            tenants=tuple(sorted(self._handles)),
        )
        self._history.append(sample)

        threshold = self._settings.high_connection_warning
        if sample.open_connections > threshold:
            self._probe.high_connection_count(sample.open_connections, threshold)
        return sample

    def start_monitoring(self, interval_seconds: float | None = None) -> None:
        """Start the periodic sample-and-cleanup task (idempotent)."""
        if self._monitor_task is not None and not self._monitor_task.done():
            return
        interval = interval_seconds or self._settings.monitor_interval_seconds
        self._monitor_task = asyncio.create_task(self._monitor(interval))
        self._probe.monitoring_started(interval)

    async def stop_monitoring(self) -> None:
        """Stop the periodic task if it is running."""
        task, self._monitor_task = self._monitor_task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        self._probe.monitoring_stopped()

    async def _monitor(self, interval: float) -> None:
        while True:
            try:
                self.sample()
                await self.cleanup_stale()
            except Exception as e:
                self._probe.monitoring_tick_failed(e)
            await asyncio.sleep(interval)
