"""Domain probes for the inventory application layer.

These probes capture use-case level events (a bill was recorded, a
product was deactivated) rather than database mechanics, which the
connection and transaction probes already cover.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class PurchaseServiceProbe(Protocol):
    """Domain probe for purchase operations."""

    def purchase_recorded(
        self,
        tenant_id: str,
        purchase_id: str,
        purchase_number: str,
        item_count: int,
        total: Decimal,
    ) -> None:
        """Record that a purchase and its stock movements committed."""
        ...

    def purchase_updated(
        self, tenant_id: str, purchase_id: str, total: Decimal
    ) -> None:
        """Record that a purchase was rewritten."""
        ...

    def purchase_deleted(self, tenant_id: str, purchase_id: str) -> None:
        """Record that a purchase was deleted and its stock reverted."""
        ...

    def purchase_rejected(self, tenant_id: str, reason: str) -> None:
        """Record that a purchase request failed a business rule."""
        ...

    def with_context(self, context: ObservationContext) -> PurchaseServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class SaleServiceProbe(Protocol):
    """Domain probe for sales and closing counts."""

    def sale_recorded(
        self,
        tenant_id: str,
        sale_id: str,
        bill_number: str,
        item_count: int,
        total: Decimal,
    ) -> None:
        """Record that a bill and its stock deductions committed."""
        ...

    def sale_rejected(self, tenant_id: str, reason: str) -> None:
        """Record that a sale or count failed a business rule."""
        ...

    def closing_stock_recorded(
        self,
        tenant_id: str,
        product_count: int,
        discrepancy_count: int,
        bill_number: str | None,
    ) -> None:
        """Record that a closing count replaced the book stock."""
        ...

    def with_context(self, context: ObservationContext) -> SaleServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class CatalogServiceProbe(Protocol):
    """Domain probe for product and vendor maintenance."""

    def product_created(self, tenant_id: str, product_id: str, name: str) -> None:
        ...

    def product_updated(
        self, tenant_id: str, product_id: str, fields: list[str]
    ) -> None:
        ...

    def product_deactivated(self, tenant_id: str, product_id: str) -> None:
        ...

    def vendor_created(self, tenant_id: str, vendor_id: str, name: str) -> None:
        ...

    def vendor_updated(self, tenant_id: str, vendor_id: str, fields: list[str]) -> None:
        ...

    def vendor_deactivated(self, tenant_id: str, vendor_id: str) -> None:
        ...

    def with_context(self, context: ObservationContext) -> CatalogServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class ReportServiceProbe(Protocol):
    """Domain probe for reporting queries."""

    def purchase_summary_generated(
        self, tenant_id: str, purchase_count: int, vendor_count: int
    ) -> None:
        ...

    def vendor_wise_generated(self, tenant_id: str, vendor_count: int) -> None:
        ...

    def category_wise_generated(self, tenant_id: str, category_count: int) -> None:
        ...

    def with_context(self, context: ObservationContext) -> ReportServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class _StructlogProbe:
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

    def with_context(self, context: ObservationContext) -> Any:
        """Create a new probe with observation context bound."""
        return type(self)(logger=self._logger, context=context)


class DefaultPurchaseServiceProbe(_StructlogProbe):
    """Default implementation of PurchaseServiceProbe using structlog."""

    def purchase_recorded(
        self,
        tenant_id: str,
        purchase_id: str,
        purchase_number: str,
        item_count: int,
        total: Decimal,
    ) -> None:
        self._logger.info(
            "purchase_recorded",
            tenant_id=tenant_id,
            purchase_id=purchase_id,
            purchase_number=purchase_number,
            item_count=item_count,
            total=str(total),
            **self._get_context_kwargs(),
        )

    def purchase_updated(
        self, tenant_id: str, purchase_id: str, total: Decimal
    ) -> None:
        self._logger.info(
            "purchase_updated",
            tenant_id=tenant_id,
            purchase_id=purchase_id,
            total=str(total),
            **self._get_context_kwargs(),
        )

    def purchase_deleted(self, tenant_id: str, purchase_id: str) -> None:
        self._logger.info(
            "purchase_deleted",
            tenant_id=tenant_id,
            purchase_id=purchase_id,
            **self._get_context_kwargs(),
        )

    def purchase_rejected(self, tenant_id: str, reason: str) -> None:
        self._logger.warning(
            "purchase_rejected",
            tenant_id=tenant_id,
            reason=reason,
            **self._get_context_kwargs(),
        )


class DefaultCatalogServiceProbe(_StructlogProbe):
    """Default implementation of CatalogServiceProbe using structlog."""

    def product_created(self, tenant_id: str, product_id: str, name: str) -> None:
        self._logger.info(
            "product_created",
            tenant_id=tenant_id,
            product_id=product_id,
            name=name,
            **self._get_context_kwargs(),
        )

    def product_updated(
        self, tenant_id: str, product_id: str, fields: list[str]
    ) -> None:
        self._logger.info(
            "product_updated",
            tenant_id=tenant_id,
            product_id=product_id,
            fields=fields,
            **self._get_context_kwargs(),
        )

    def product_deactivated(self, tenant_id: str, product_id: str) -> None:
        self._logger.info(
            "product_deactivated",
            tenant_id=tenant_id,
            product_id=product_id,
            **self._get_context_kwargs(),
        )

    def vendor_created(self, tenant_id: str, vendor_id: str, name: str) -> None:
        self._logger.info(
            "vendor_created",
            tenant_id=tenant_id,
            vendor_id=vendor_id,
            name=name,
            **self._get_context_kwargs(),
        )

    def vendor_updated(self, tenant_id: str, vendor_id: str, fields: list[str]) -> None:
        self._logger.info(
            "vendor_updated",
            tenant_id=tenant_id,
            vendor_id=vendor_id,
            fields=fields,
            **self._get_context_kwargs(),
        )

    def vendor_deactivated(self, tenant_id: str, vendor_id: str) -> None:
        self._logger.info(
            "vendor_deactivated",
            tenant_id=tenant_id,
            vendor_id=vendor_id,
            **self._get_context_kwargs(),
        )


class DefaultReportServiceProbe(_StructlogProbe):
    """Default implementation of ReportServiceProbe using structlog."""

    def purchase_summary_generated(
        self, tenant_id: str, purchase_count: int, vendor_count: int
    ) -> None:
        self._logger.debug(
            "purchase_summary_generated",
            tenant_id=tenant_id,
            purchase_count=purchase_count,
            vendor_count=vendor_count,
            **self._get_context_kwargs(),
        )

    def vendor_wise_generated(self, tenant_id: str, vendor_count: int) -> None:
        self._logger.debug(
            "vendor_wise_report_generated",
            tenant_id=tenant_id,
            vendor_count=vendor_count,
            **self._get_context_kwargs(),
        )

    def category_wise_generated(self, tenant_id: str, category_count: int) -> None:
        self._logger.debug(
            "category_wise_report_generated",
            tenant_id=tenant_id,
            category_count=category_count,
            **self._get_context_kwargs(),
        )


class DefaultSaleServiceProbe(_StructlogProbe):
    """Default implementation of SaleServiceProbe using structlog."""

    def sale_recorded(
        self,
        tenant_id: str,
        sale_id: str,
        bill_number: str,
        item_count: int,
        total: Decimal,
    ) -> None:
        self._logger.info(
            "sale_recorded",
            tenant_id=tenant_id,
            sale_id=sale_id,
            bill_number=bill_number,
            item_count=item_count,
            total=str(total),
            **self._get_context_kwargs(),
        )

    def sale_rejected(self, tenant_id: str, reason: str) -> None:
        self._logger.warning(
            "sale_rejected",
            tenant_id=tenant_id,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def closing_stock_recorded(
        self,
        tenant_id: str,
        product_count: int,
        discrepancy_count: int,
        bill_number: str | None,
    ) -> None:
        self._logger.info(
            "closing_stock_recorded",
            tenant_id=tenant_id,
            product_count=product_count,
            discrepancy_count=discrepancy_count,
            bill_number=bill_number,
            **self._get_context_kwargs(),
        )
