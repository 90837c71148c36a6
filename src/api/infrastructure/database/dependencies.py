"""Control database dependency injection for FastAPI.

Provides async sessions for the shared control database (tenants, pending
organizations). Tenant databases are reached through the connection manager
instead, see ``infrastructure.database.tenant_connections``.
"""

from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from infrastructure.database.engines import (
    create_admin_engine,
    create_read_engine,
    create_write_engine,
)
from infrastructure.observability import DefaultConnectionProbe
from infrastructure.settings import get_database_settings

_probe = DefaultConnectionProbe()

# Module-level engine instances (created on first use)
_write_engine: AsyncEngine | None = None
_read_engine: AsyncEngine | None = None
_admin_engine: AsyncEngine | None = None

_write_sessionmaker: async_sessionmaker[AsyncSession] | None = None
_read_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def get_write_engine() -> AsyncEngine:
    """Get the control database write engine (singleton).

    Uses double-check locking for thread-safe initialization and caches
    the sessionmaker alongside the engine.
    """
    global _write_engine, _write_sessionmaker
    if _write_engine is None:
        with _engine_lock:
            if _write_engine is None:
                settings = get_database_settings()
                _write_engine = create_write_engine(settings)
                _write_sessionmaker = async_sessionmaker(
                    _write_engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
    return _write_engine


def get_read_engine() -> AsyncEngine:
    """Get the control database read engine (singleton)."""
    global _read_engine, _read_sessionmaker
    if _read_engine is None:
        with _engine_lock:
            if _read_engine is None:
                settings = get_database_settings()
                _read_engine = create_read_engine(settings)
                _read_sessionmaker = async_sessionmaker(
                    _read_engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                )
    return _read_engine


def get_admin_engine() -> AsyncEngine:
    """Get the AUTOCOMMIT engine used to create tenant databases (singleton)."""
    global _admin_engine
    if _admin_engine is None:
        with _engine_lock:
            if _admin_engine is None:
                _admin_engine = create_admin_engine(get_database_settings())
    return _admin_engine


async def get_write_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a control database write session (FastAPI dependency).

    The session does NOT auto-commit. Callers manage transactions with
    ``async with session.begin()``.

    Yields:
        AsyncSession for control database mutations
    """
    get_write_engine()
    assert _write_sessionmaker is not None

    async with _write_sessionmaker() as session:
        yield session


async def get_read_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a control database read-only session (FastAPI dependency).

    Yields:
        AsyncSession for control database queries
    """
    get_read_engine()
    assert _read_sessionmaker is not None

    async with _read_sessionmaker() as session:
        yield session


async def close_database_connections() -> None:
    """Close all control database engine connections.

    Called on application shutdown. Also resets sessionmakers to allow
    reinitialization.
    """
    global _write_engine, _read_engine, _admin_engine
    global _write_sessionmaker, _read_sessionmaker

    if _write_engine is not None:
        await _write_engine.dispose()
        _probe.pool_closed()
        _write_engine = None
        _write_sessionmaker = None

    if _read_engine is not None:
        await _read_engine.dispose()
        _probe.pool_closed()
        _read_engine = None
        _read_sessionmaker = None

    if _admin_engine is not None:
        await _admin_engine.dispose()
        _admin_engine = None
