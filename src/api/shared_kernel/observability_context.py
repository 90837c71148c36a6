"""Observation context for domain-oriented observability.

Observation contexts collect request-scoped metadata that probes attach to
every event they emit. The tenant is not part of it: probes take the tenant
explicitly, and request handlers bind it to structlog's contextvars.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        operation: Business operation name, e.g. "record_purchase".
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(request_id="req-123")
        probe = DefaultPurchaseServiceProbe().with_context(context)
    """

    request_id: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.operation is not None:
            result["operation"] = self.operation
        result.update(self.extra)
        return result
