"""Structlog configuration for the POS API.

Colored console output when attached to a terminal, JSON lines otherwise.
Request handlers bind ``tenant_id`` through structlog's contextvars so every
probe event emitted during a request carries it.
"""

import logging
import os
import sys

import structlog


def configure_logging(debug: bool = False) -> None:
    """Configure structlog with appropriate processors.

    Args:
        debug: Emit debug-level events (connection acquisition, leases).
    """
    # FORCE_COLOR=1 enables colors even in non-TTY environments (like Docker)
    force_color = os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes")
    use_colors = force_color or sys.stdout.isatty()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if use_colors:
        processors: list[structlog.types.Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    min_level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_tenant(tenant_id: str) -> None:
    """Bind the resolved tenant to the logging context of the current task."""
    structlog.contextvars.bind_contextvars(tenant_id=tenant_id)


def clear_request_context() -> None:
    """Drop request-scoped logging context."""
    structlog.contextvars.clear_contextvars()
