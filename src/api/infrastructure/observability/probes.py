"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ConnectionProbe(Protocol):
    """Domain probe for database connection observability.

    Covers the control database pools and the per-tenant connection
    handles owned by the connection manager.
    """

    def pool_closed(self) -> None:
        """Record that a control database pool was closed."""
        ...

    def tenant_connection_opened(self, tenant_id: str, attempts: int) -> None:
        """Record that a tenant database answered its first ping."""
        ...

    def tenant_connection_reused(self, tenant_id: str) -> None:
        """Record that a live tenant handle was handed out again."""
        ...

    def tenant_connection_attempt_failed(
        self, tenant_id: str, attempt: int, error: Exception
    ) -> None:
        """Record a failed ping that will be retried."""
        ...

    def tenant_connection_failed(
        self, tenant_id: str, attempts: int, error: Exception
    ) -> None:
        """Record that a tenant database stayed unreachable after all retries."""
        ...

    def tenant_connection_closed(self, tenant_id: str, reason: str) -> None:
        """Record that a tenant handle was disposed."""
        ...

    def stale_connection_kept(self, tenant_id: str, in_flight: int) -> None:
        """Record that an idle-looking handle was kept because it is busy."""
        ...

    def stale_connections_cleaned(self, closed: int, remaining: int) -> None:
        """Record the outcome of an idle cleanup pass."""
        ...

    def high_connection_count(self, open_connections: int, threshold: int) -> None:
        """Record that open tenant handles exceed the warning threshold."""
        ...

    def model_bound(self, tenant_id: str, entity: str) -> None:
        """Record that an entity accessor was bound to a tenant handle."""
        ...

    def monitoring_started(self, interval_seconds: float) -> None:
        """Record that the maintenance loop started."""
        ...

    def monitoring_stopped(self) -> None:
        """Record that the maintenance loop stopped."""
        ...

    def monitoring_tick_failed(self, error: Exception) -> None:
        """Record that one maintenance tick raised."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultConnectionProbe:
        """Create a new probe with observation context bound."""
        return DefaultConnectionProbe(logger=self._logger, context=context)

    def pool_closed(self) -> None:
        self._logger.info(
            "connection_pool_closed",
            **self._get_context_kwargs(),
        )

    def tenant_connection_opened(self, tenant_id: str, attempts: int) -> None:
        self._logger.info(
            "tenant_connection_opened",
            tenant_id=tenant_id,
            attempts=attempts,
            **self._get_context_kwargs(),
        )

    def tenant_connection_reused(self, tenant_id: str) -> None:
        self._logger.debug(
            "tenant_connection_reused",
            tenant_id=tenant_id,
            **self._get_context_kwargs(),
        )

    def tenant_connection_attempt_failed(
        self, tenant_id: str, attempt: int, error: Exception
    ) -> None:
        self._logger.warning(
            "tenant_connection_attempt_failed",
            tenant_id=tenant_id,
            attempt=attempt,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def tenant_connection_failed(
        self, tenant_id: str, attempts: int, error: Exception
    ) -> None:
        self._logger.error(
            "tenant_connection_failed",
            tenant_id=tenant_id,
            attempts=attempts,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def tenant_connection_closed(self, tenant_id: str, reason: str) -> None:
        self._logger.info(
            "tenant_connection_closed",
            tenant_id=tenant_id,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def stale_connection_kept(self, tenant_id: str, in_flight: int) -> None:
        self._logger.debug(
            "stale_connection_kept",
            tenant_id=tenant_id,
            in_flight=in_flight,
            **self._get_context_kwargs(),
        )

    def stale_connections_cleaned(self, closed: int, remaining: int) -> None:
        self._logger.info(
            "stale_connections_cleaned",
            closed=closed,
            remaining=remaining,
            **self._get_context_kwargs(),
        )

    def high_connection_count(self, open_connections: int, threshold: int) -> None:
        self._logger.warning(
            "high_connection_count",
            open_connections=open_connections,
            threshold=threshold,
            **self._get_context_kwargs(),
        )

    def model_bound(self, tenant_id: str, entity: str) -> None:
        self._logger.debug(
            "model_bound",
            tenant_id=tenant_id,
            entity=entity,
            **self._get_context_kwargs(),
        )

    def monitoring_started(self, interval_seconds: float) -> None:
        self._logger.info(
            "connection_monitoring_started",
            interval_seconds=interval_seconds,
            **self._get_context_kwargs(),
        )

    def monitoring_stopped(self) -> None:
        self._logger.info(
            "connection_monitoring_stopped",
            **self._get_context_kwargs(),
        )

    def monitoring_tick_failed(self, error: Exception) -> None:
        self._logger.error(
            "connection_monitoring_tick_failed",
            error=str(error),
            **self._get_context_kwargs(),
        )


class TransactionProbe(Protocol):
    """Domain probe for the transactional workflow layer."""

    def transaction_committed(self, tenant_id: str, mutations: int) -> None:
        """Record that a unit of work committed."""
        ...

    def transaction_aborted(self, tenant_id: str, error: Exception | None) -> None:
        """Record that a unit of work was rolled back."""
        ...

    def conflict_retry_scheduled(
        self, tenant_id: str, attempt: int, delay_seconds: float
    ) -> None:
        """Record that a conflicting unit of work will run again."""
        ...

    def conflict_retries_exhausted(self, tenant_id: str, attempts: int) -> None:
        """Record that a unit of work kept conflicting until giving up."""
        ...

    def detached_unit_failed(self, tenant_id: str, error: BaseException) -> None:
        """Record that a unit of work failed after its caller was cancelled."""
        ...

    def with_context(self, context: ObservationContext) -> TransactionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTransactionProbe:
    """Default implementation of TransactionProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultTransactionProbe:
        return DefaultTransactionProbe(logger=self._logger, context=context)

    def transaction_committed(self, tenant_id: str, mutations: int) -> None:
        self._logger.debug(
            "transaction_committed",
            tenant_id=tenant_id,
            mutations=mutations,
            **self._get_context_kwargs(),
        )

    def transaction_aborted(self, tenant_id: str, error: Exception | None) -> None:
        self._logger.info(
            "transaction_aborted",
            tenant_id=tenant_id,
            error=str(error) if error is not None else None,
            error_type=type(error).__name__ if error is not None else None,
            **self._get_context_kwargs(),
        )

    def conflict_retry_scheduled(
        self, tenant_id: str, attempt: int, delay_seconds: float
    ) -> None:
        self._logger.warning(
            "transaction_conflict_retry_scheduled",
            tenant_id=tenant_id,
            attempt=attempt,
            delay_seconds=delay_seconds,
            **self._get_context_kwargs(),
        )

    def conflict_retries_exhausted(self, tenant_id: str, attempts: int) -> None:
        self._logger.error(
            "transaction_conflict_retries_exhausted",
            tenant_id=tenant_id,
            attempts=attempts,
            **self._get_context_kwargs(),
        )

    def detached_unit_failed(self, tenant_id: str, error: BaseException) -> None:
        self._logger.error(
            "transaction_detached_unit_failed",
            tenant_id=tenant_id,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
