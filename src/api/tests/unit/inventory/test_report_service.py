"""Unit tests for the purchase summary and the sales reports."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from inventory.application import ReportService
from inventory.application.observability import ReportServiceProbe
from inventory.domain.exceptions import ValidationError
from inventory.domain.purchase import LineItem
from inventory.domain.sale import SaleLine
from inventory.domain.value_objects import ProductId


def on(day: int) -> datetime:
    return datetime(2026, 3, day, 12, 0, tzinfo=UTC)


def lines(product, quantity: int, price: str) -> list[LineItem]:
    return [
        LineItem(
            product_id=ProductId.from_string(product.id),
            quantity=quantity,
            purchase_price=Decimal(price),
        )
    ]


@pytest_asyncio.fixture
async def history(catalog_service, purchase_service, tenant_id, vendor, products):
    """Three purchases over two vendors on March 1st, 2nd and 5th."""
    whisky, gin = products
    second = await catalog_service.create_vendor(tenant_id, "Coastal Wines")

    await purchase_service.record_purchase(
        tenant_id,
        vendor.id,
        lines(whisky, 10, "20.00"),
        tax=Decimal("20.00"),
        paid=Decimal("220.00"),
        purchase_date=on(1),
    )
    await purchase_service.record_purchase(
        tenant_id,
        second.id,
        lines(gin, 5, "30.00"),
        purchase_date=on(2),
    )
    await purchase_service.record_purchase(
        tenant_id,
        vendor.id,
        lines(gin, 1, "30.00"),
        paid=Decimal("10.00"),
        purchase_date=on(5),
    )
    return vendor, second


class TestPurchaseSummary:
    @pytest.mark.asyncio
    async def test_unbounded_summary_covers_everything(
        self, report_service, tenant_id, history
    ):
        vendor, second = history

        summary = await report_service.purchase_summary(tenant_id)

        assert summary.purchase_count == 3
        assert summary.subtotal == Decimal("380.00")
        assert summary.tax == Decimal("20.00")
        assert summary.total == Decimal("400.00")
        assert summary.paid == Decimal("230.00")
        assert summary.due == Decimal("170.00")
        assert [(v.vendor_id, v.purchase_count, v.total) for v in summary.vendors] == [
            (vendor.id, 2, Decimal("250.00")),
            (second.id, 1, Decimal("150.00")),
        ]

    @pytest.mark.asyncio
    async def test_window_bounds_are_inclusive(
        self, report_service, tenant_id, history
    ):
        vendor, second = history

        summary = await report_service.purchase_summary(
            tenant_id, start=on(2), end=on(5)
        )

        assert summary.purchase_count == 2
        assert summary.total == Decimal("180.00")
        assert [v.vendor_name for v in summary.vendors] == [
            "Coastal Wines",
            "Highland Spirits Ltd",
        ]

    @pytest.mark.asyncio
    async def test_empty_window(self, report_service, tenant_id, history):
        summary = await report_service.purchase_summary(
            tenant_id, start=on(3), end=on(4)
        )

        assert summary.purchase_count == 0
        assert summary.total == Decimal("0.00")
        assert summary.vendors == []

    @pytest.mark.asyncio
    async def test_start_after_end_is_rejected(self, report_service, tenant_id):
        with pytest.raises(ValidationError):
            await report_service.purchase_summary(tenant_id, start=on(5), end=on(1))

    @pytest.mark.asyncio
    async def test_probe_records_summary(
        self, connection_manager, registry, tenant_id, history
    ):
        probe = MagicMock(spec=ReportServiceProbe)
        service = ReportService(connection_manager, registry, probe=probe)

        await service.purchase_summary(tenant_id)

        probe.purchase_summary_generated.assert_called_once_with(
            tenant_id, purchase_count=3, vendor_count=2
        )


def sold(product, quantity: int, price: str, discount: str = "0") -> list[SaleLine]:
    return [
        SaleLine(
            product_id=ProductId.from_string(product.id),
            quantity=quantity,
            unit_price=Decimal(price),
            discount=Decimal(discount),
        )
    ]


@pytest_asyncio.fixture
async def sales(
    catalog_service, purchase_service, sale_service, tenant_id, vendor, products
):
    """Two bills: 5 whisky split over both vendors on March 2nd, 2 gin on the 3rd.

    Coastal Wines has the higher priority, so it supplies its 3 whiskies
    first.
    """
    whisky, gin = products
    preferred = await catalog_service.create_vendor(
        tenant_id, "Coastal Wines", priority=5
    )
    await catalog_service.update_product(tenant_id, whisky.id, volume_ml=750)
    await purchase_service.record_purchase(tenant_id, vendor.id, lines(whisky, 4, "20"))
    await purchase_service.record_purchase(
        tenant_id, preferred.id, lines(whisky, 3, "20")
    )
    await purchase_service.record_purchase(tenant_id, vendor.id, lines(gin, 5, "15"))

    await sale_service.record_sale(
        tenant_id, sold(whisky, 5, "45.00", discount="5.00"), sale_date=on(2)
    )
    await sale_service.record_sale(tenant_id, sold(gin, 2, "28.00"), sale_date=on(3))
    return vendor, preferred


class TestVendorWise:
    @pytest.mark.asyncio
    async def test_line_amount_is_split_by_units_supplied(
        self, report_service, tenant_id, products, sales
    ):
        whisky, gin = products
        vendor, preferred = sales

        report = await report_service.vendor_wise(tenant_id)

        assert [
            (v.vendor_id, v.quantity, v.volume_ml, v.amount, v.bill_count)
            for v in report
        ] == [
            (vendor.id, 4, 1500, Decimal("144.00"), 2),
            (preferred.id, 3, 2250, Decimal("132.00"), 1),
        ]
        assert [(p.product_id, p.quantity, p.amount) for p in report[0].products] == [
            (whisky.id, 2, Decimal("88.00")),
            (gin.id, 2, Decimal("56.00")),
        ]

    @pytest.mark.asyncio
    async def test_window_limits_the_bills(
        self, report_service, tenant_id, products, sales
    ):
        vendor, _ = sales

        report = await report_service.vendor_wise(tenant_id, start=on(3), end=on(3))

        assert [(v.vendor_id, v.quantity, v.amount) for v in report] == [
            (vendor.id, 2, Decimal("56.00"))
        ]

    @pytest.mark.asyncio
    async def test_no_sales(self, report_service, tenant_id):
        assert await report_service.vendor_wise(tenant_id) == []

    @pytest.mark.asyncio
    async def test_start_after_end_is_rejected(self, report_service, tenant_id):
        with pytest.raises(ValidationError):
            await report_service.vendor_wise(tenant_id, start=on(5), end=on(1))


class TestCategoryWise:
    @pytest.mark.asyncio
    async def test_totals_per_category(self, report_service, tenant_id, sales):
        report = await report_service.category_wise(tenant_id)

        assert [
            (
                c.category,
                c.quantity,
                c.volume_ml,
                c.amount,
                c.product_count,
                c.bill_count,
            )
            for c in report
        ] == [
            ("whisky", 5, 3750, Decimal("220.00"), 1, 1),
            ("gin", 2, 0, Decimal("56.00"), 1, 1),
        ]

    @pytest.mark.asyncio
    async def test_products_without_category_are_grouped(
        self,
        catalog_service,
        purchase_service,
        sale_service,
        report_service,
        tenant_id,
        vendor,
    ):
        loose = await catalog_service.create_product(tenant_id, "Loose Rum")
        await purchase_service.record_purchase(
            tenant_id, vendor.id, lines(loose, 1, "5")
        )
        await sale_service.record_sale(tenant_id, sold(loose, 1, "10.00"))

        report = await report_service.category_wise(tenant_id)

        assert [(c.category, c.amount) for c in report] == [
            ("Uncategorized", Decimal("10.00"))
        ]

    @pytest.mark.asyncio
    async def test_generation_is_logged_with_category_count(
        self, connection_manager, registry, tenant_id, sales
    ):
        events = MagicMock(spec=ReportServiceProbe)
        service = ReportService(connection_manager, registry, probe=events)

        await service.category_wise(tenant_id)

        events.category_wise_generated.assert_called_once_with(
            tenant_id, category_count=2
        )
