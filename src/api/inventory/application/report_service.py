"""Reporting queries over a tenant's purchases and sales."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from inventory.application.observability import (
    DefaultReportServiceProbe,
    ReportServiceProbe,
)
from inventory.domain.exceptions import ValidationError
from inventory.domain.purchase import to_money
from inventory.infrastructure.accessors import EntityKind, InventoryModels

if TYPE_CHECKING:
    from infrastructure.database.model_registry import ModelRegistry
    from infrastructure.database.tenant_connections import ConnectionManager

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class VendorPurchaseTotals:
    vendor_id: str
    vendor_name: str
    purchase_count: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid: Decimal
    due: Decimal


@dataclass(frozen=True)
class PurchaseSummary:
    """Purchase totals for a date window, overall and per vendor."""

    start: datetime | None
    end: datetime | None
    purchase_count: int = 0
    subtotal: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    paid: Decimal = Decimal("0.00")
    due: Decimal = Decimal("0.00")
    vendors: list[VendorPurchaseTotals] = field(default_factory=list)


@dataclass(frozen=True)
class VendorProductSales:
    product_id: str
    product_name: str
    quantity: int
    amount: Decimal


@dataclass(frozen=True)
class VendorSales:
    """Units sold out of one vendor's stock and their share of the bills."""

    vendor_id: str
    vendor_name: str
    quantity: int
    volume_ml: int
    amount: Decimal
    bill_count: int
    products: list[VendorProductSales] = field(default_factory=list)


@dataclass(frozen=True)
class CategorySales:
    category: str
    quantity: int
    volume_ml: int
    amount: Decimal
    product_count: int
    bill_count: int


class ReportService:
    """Read-only reports. Windows are inclusive and supplied by the caller."""

    def __init__(
        self,
        manager: ConnectionManager,
        registry: ModelRegistry[EntityKind],
        probe: ReportServiceProbe | None = None,
    ):
        self._manager = manager
        self._registry = registry
        self._probe = probe or DefaultReportServiceProbe()

    async def purchase_summary(
        self,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> PurchaseSummary:
        """Summarize purchases dated within ``[start, end]``.

        Raises:
            ValidationError: If ``start`` is after ``end``
        """
        _check_window(start, end)
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                rows = await models.purchases.totals_by_vendor(
                    session, start=start, end=end
                )

        vendors = sorted(
            (
                VendorPurchaseTotals(
                    vendor_id=vendor_id,
                    vendor_name=vendor_name,
                    purchase_count=count,
                    subtotal=to_money(subtotal),
                    tax=to_money(tax),
                    total=to_money(total),
                    paid=to_money(paid),
                    due=to_money(due),
                )
                for (
                    vendor_id,
                    vendor_name,
                    count,
                    subtotal,
                    tax,
                    total,
                    paid,
                    due,
                ) in rows
            ),
            key=lambda v: v.total,
            reverse=True,
        )
        summary = PurchaseSummary(
            start=start,
            end=end,
            purchase_count=sum(v.purchase_count for v in vendors),
            subtotal=sum((v.subtotal for v in vendors), Decimal("0.00")),
            tax=sum((v.tax for v in vendors), Decimal("0.00")),
            total=sum((v.total for v in vendors), Decimal("0.00")),
            paid=sum((v.paid for v in vendors), Decimal("0.00")),
            due=sum((v.due for v in vendors), Decimal("0.00")),
            vendors=vendors,
        )
        self._probe.purchase_summary_generated(
            tenant_id, purchase_count=summary.purchase_count, vendor_count=len(vendors)
        )
        return summary

    async def vendor_wise(
        self,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[VendorSales]:
        """Sales attributed to the vendors whose stock was sold, largest first.

        A line taken from several vendors is split by the units each one
        supplied.

        Raises:
            ValidationError: If ``start`` is after ``end``
        """
        _check_window(start, end)
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                rows = await models.sales.vendor_allocations(
                    session, start=start, end=end
                )

        names: dict[str, str] = {}
        quantity: Counter[str] = Counter()
        volume: Counter[str] = Counter()
        amount: dict[str, Decimal] = defaultdict(Decimal)
        bills: dict[str, set[str]] = defaultdict(set)
        products: dict[str, dict[str, list[Any]]] = defaultdict(dict)
        for (
            vendor_id,
            vendor_name,
            sale_id,
            product_id,
            product_name,
            _category,
            volume_ml,
            allocated,
            line_quantity,
            line_total,
        ) in rows:
            share = Decimal(line_total) * allocated / line_quantity
            names[vendor_id] = vendor_name
            quantity[vendor_id] += allocated
            volume[vendor_id] += allocated * (volume_ml or 0)
            amount[vendor_id] += share
            bills[vendor_id].add(sale_id)
            entry = products[vendor_id].setdefault(
                product_id, [product_name, 0, Decimal("0")]
            )
            entry[1] += allocated
            entry[2] += share

        report = sorted(
            (
                VendorSales(
                    vendor_id=vendor_id,
                    vendor_name=name,
                    quantity=quantity[vendor_id],
                    volume_ml=volume[vendor_id],
                    amount=to_money(amount[vendor_id]),
                    bill_count=len(bills[vendor_id]),
                    products=sorted(
                        (
                            VendorProductSales(
                                product_id=product_id,
                                product_name=product_name,
                                quantity=units,
                                amount=to_money(total),
                            )
                            for product_id, (
                                product_name,
                                units,
                                total,
                            ) in products[vendor_id].items()
                        ),
                        key=lambda p: p.amount,
                        reverse=True,
                    ),
                )
                for vendor_id, name in names.items()
            ),
            key=lambda v: v.amount,
            reverse=True,
        )
        self._probe.vendor_wise_generated(tenant_id, vendor_count=len(report))
        return report

    async def category_wise(
        self,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[CategorySales]:
        """Sales per product category, largest first.

        Raises:
            ValidationError: If ``start`` is after ``end``
        """
        _check_window(start, end)
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                rows = await models.sales.totals_by_category(
                    session, start=start, end=end
                )

        report = sorted(
            (
                CategorySales(
                    category=category or UNCATEGORIZED,
                    quantity=int(units),
                    volume_ml=int(volume),
                    amount=to_money(total),
                    product_count=product_count,
                    bill_count=bill_count,
                )
                for (
                    category,
                    units,
                    volume,
                    total,
                    product_count,
                    bill_count,
                ) in rows
            ),
            key=lambda c: c.amount,
            reverse=True,
        )
        self._probe.category_wise_generated(tenant_id, category_count=len(report))
        return report


def _check_window(start: datetime | None, end: datetime | None) -> None:
    if start is not None and end is not None and start > end:
        raise ValidationError("Report start must not be after its end")
