"""Transactional workflow layer.

Runs a business operation's writes against one tenant database as a single
atomic unit. A transaction moves through an explicit state machine:

    STARTED -> APPLYING* -> COMMITTING -> COMMITTED
    STARTED -> APPLYING* -> ABORTING   -> ABORTED

Rollback relies on the database engine; there is no compensation logic.
Engine-level write conflicts surface as ``ConflictRetryError`` and are the
only errors ``TransactionalWorkflow.run`` retries.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.exceptions import (
    ConflictRetryError,
    DatabaseConnectionError,
    DatabaseError,
    TransactionStateError,
)
from infrastructure.observability.probes import (
    DefaultTransactionProbe,
    TransactionProbe,
)

if TYPE_CHECKING:
    from infrastructure.database.tenant_connections import ConnectionHandle
    from infrastructure.settings import TransactionSettings

T = TypeVar("T")

Mutation = Callable[[AsyncSession], Awaitable[T]]

# serialization_failure, deadlock_detected
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})


class TransactionState(StrEnum):
    """Lifecycle of a transaction handle."""

    STARTED = "started"
    APPLYING = "applying"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ABORTING = "aborting"
    ABORTED = "aborted"


_OPEN_STATES = frozenset({TransactionState.STARTED, TransactionState.APPLYING})
_TERMINAL_STATES = frozenset({TransactionState.COMMITTED, TransactionState.ABORTED})


@dataclass(eq=False)
class TransactionHandle:
    """An open unit of work on one tenant database."""

    connection: ConnectionHandle
    session: AsyncSession
    state: TransactionState = TransactionState.STARTED
    applied: int = 0
    error: Exception | None = None

    @property
    def tenant_id(self) -> str:
        return self.connection.tenant_id

    @property
    def is_open(self) -> bool:
        return self.state in _OPEN_STATES

    @property
    def is_terminal(self) -> bool:
        return self.state in _TERMINAL_STATES


def is_write_conflict(error: BaseException) -> bool:
    """Whether a driver error means a concurrent writer won the race."""
    orig = getattr(error, "orig", None) or error
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in _CONFLICT_SQLSTATES:
        return True
    # SQLite reports lock contention instead of a serialization failure
    return isinstance(error, OperationalError) and "database is locked" in str(error)


def translate_error(error: Exception) -> Exception:
    """Map driver errors onto the typed error taxonomy.

    Errors that are already typed (domain or database layer) pass through.
    """
    if isinstance(error, DatabaseError) or not isinstance(error, DBAPIError):
        return error
    if is_write_conflict(error):
        return ConflictRetryError(f"Write conflict: {error.orig}")
    if error.connection_invalidated:
        return DatabaseConnectionError(f"Connection lost: {error.orig}")
    return error


class TransactionalWorkflow:
    """Executes multi-entity writes as one atomic unit per tenant."""

    def __init__(
        self,
        settings: TransactionSettings,
        probe: TransactionProbe | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the workflow layer.

        Args:
            settings: Conflict retry configuration
            probe: Optional observability probe
            sleep: Backoff sleep, injectable for tests
        """
        self._settings = settings
        self._probe = probe or DefaultTransactionProbe()
        self._sleep = sleep

    async def begin(self, connection: ConnectionHandle) -> TransactionHandle:
        """Open a transaction on the tenant database."""
        session = connection.new_session()
        try:
            await session.begin()
        except Exception as e:
            await session.close()
            translated = translate_error(e)
            if translated is e:
                raise
            raise translated from e
        return TransactionHandle(connection=connection, session=session)

    async def apply(self, txn: TransactionHandle, mutation: Mutation[T]) -> T:
        """Perform one write inside the transaction.

        Any failure aborts the whole transaction before the (translated)
        error propagates.

        Raises:
            TransactionStateError: If the transaction is no longer open
        """
        self._require_open(txn, "apply")
        txn.state = TransactionState.APPLYING
        try:
            result = await mutation(txn.session)
        except Exception as e:
            translated = translate_error(e)
            await self.abort(txn, translated)
            if translated is e:
                raise
            raise translated from e
        txn.applied += 1
        return result

    async def commit(self, txn: TransactionHandle) -> None:
        """Make every applied write visible at once.

        Raises:
            TransactionStateError: If the transaction is no longer open
            ConflictRetryError: If the engine rejected the commit
        """
        self._require_open(txn, "commit")
        txn.state = TransactionState.COMMITTING
        try:
            await txn.session.commit()
        except Exception as e:
            translated = translate_error(e)
            await self.abort(txn, translated)
            if translated is e:
                raise
            raise translated from e

        txn.state = TransactionState.COMMITTED
        await txn.session.close()
        self._probe.transaction_committed(txn.tenant_id, mutations=txn.applied)

    async def abort(
        self, txn: TransactionHandle, error: Exception | None = None
    ) -> None:
        """Undo every write applied since ``begin``. Idempotent once aborted.

        Raises:
            TransactionStateError: If the transaction already committed
        """
        if txn.state is TransactionState.ABORTED:
            return
        if txn.state is TransactionState.COMMITTED:
            raise TransactionStateError("Cannot abort a committed transaction")

        txn.state = TransactionState.ABORTING
        txn.error = error
        try:
            await txn.session.rollback()
        finally:
            txn.state = TransactionState.ABORTED
            await txn.session.close()
            self._probe.transaction_aborted(txn.tenant_id, error)

    async def run(
        self,
        connection: ConnectionHandle,
        work: Callable[[TransactionHandle], Awaitable[T]],
    ) -> T:
        """Run ``work`` in a transaction, committing if it returns normally.

        The unit runs shielded from the caller's cancellation so it always
        reaches commit or abort; a failure it meets after the caller left is
        logged as ``detached_unit_failed``. Only ``ConflictRetryError`` is
        retried, with exponential backoff, up to ``conflict_retry_attempts``
        total attempts.

        Raises:
            ConflictRetryError: If every attempt conflicted
            Exception: Whatever ``work`` raised, unretried
        """
        attempts = self._settings.conflict_retry_attempts
        for attempt in range(1, attempts + 1):
            unit = asyncio.ensure_future(self._run_once(connection, work))
            try:
                return await asyncio.shield(unit)
            except asyncio.CancelledError:
                unit.add_done_callback(
                    functools.partial(self._report_detached, connection.tenant_id)
                )
                raise
            except ConflictRetryError:
                if attempt == attempts:
                    self._probe.conflict_retries_exhausted(
                        connection.tenant_id, attempts=attempts
                    )
                    raise
                delay = min(
                    self._settings.max_backoff_seconds,
                    self._settings.conflict_backoff_seconds * 2 ** (attempt - 1),
                )
                self._probe.conflict_retry_scheduled(
                    connection.tenant_id, attempt=attempt, delay_seconds=delay
                )
                await self._sleep(delay)

        raise AssertionError("unreachable")

    async def _run_once(
        self,
        connection: ConnectionHandle,
        work: Callable[[TransactionHandle], Awaitable[T]],
    ) -> T:
        connection.in_flight += 1
        try:
            txn = await self.begin(connection)
            try:
                result = await work(txn)
            except Exception as e:
                translated = translate_error(e)
                if not txn.is_terminal:
                    await self.abort(txn, translated)
                if translated is e:
                    raise
                raise translated from e

            if txn.is_open:
                await self.commit(txn)
            return result
        finally:
            connection.in_flight -= 1

    def _report_detached(self, tenant_id: str, unit: asyncio.Future[Any]) -> None:
        if unit.cancelled():
            return
        error = unit.exception()
        if error is not None:
            self._probe.detached_unit_failed(tenant_id, error)

    def _require_open(self, txn: TransactionHandle, operation: str) -> None:
        if not txn.is_open:
            raise TransactionStateError(
                f"Cannot {operation} a transaction in state {txn.state.value}"
            )
