"""Unit tests for CatalogService against SQLite tenant databases."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from inventory.application import CatalogService
from inventory.application.observability import CatalogServiceProbe
from inventory.domain.exceptions import (
    DuplicateProductError,
    InvalidPriceError,
    InvalidQuantityError,
    ProductNotFoundError,
    VendorNotFoundError,
)
from inventory.domain.purchase import LineItem
from inventory.domain.value_objects import ProductId


class TestProducts:
    @pytest.mark.asyncio
    async def test_create_and_get_product(self, catalog_service, tenant_id):
        product = await catalog_service.create_product(
            tenant_id,
            "Old Harbour Rum",
            brand="Old Harbour",
            category="rum",
            volume_ml=750,
            price_per_unit=Decimal("32.50"),
            reorder_level=6,
        )

        fetched = await catalog_service.get_product(tenant_id, product.id)

        assert fetched.name == "Old Harbour Rum"
        assert fetched.volume_ml == 750
        assert fetched.price_per_unit == Decimal("32.50")
        assert fetched.current_stock == 0
        assert fetched.is_active is True

    @pytest.mark.asyncio
    async def test_probe_records_creation(
        self, connection_manager, workflow, registry, tenant_id
    ):
        probe = MagicMock(spec=CatalogServiceProbe)
        service = CatalogService(connection_manager, workflow, registry, probe=probe)

        product = await service.create_product(tenant_id, "Probe Lager")

        probe.product_created.assert_called_once_with(
            tenant_id, product.id, name="Probe Lager"
        )

    @pytest.mark.asyncio
    async def test_duplicate_sku_is_rejected(
        self, catalog_service, tenant_id, products
    ):
        with pytest.raises(DuplicateProductError):
            await catalog_service.create_product(tenant_id, "Copy", sku="GT12-750")

    @pytest.mark.asyncio
    async def test_negative_price_is_rejected(self, catalog_service, tenant_id):
        with pytest.raises(InvalidPriceError):
            await catalog_service.create_product(
                tenant_id, "Bad", price_per_unit=Decimal("-1")
            )

    @pytest.mark.asyncio
    async def test_negative_stock_is_rejected(self, catalog_service, tenant_id):
        with pytest.raises(InvalidQuantityError):
            await catalog_service.create_product(tenant_id, "Bad", current_stock=-1)

    @pytest.mark.asyncio
    async def test_unknown_field_is_rejected(self, catalog_service, tenant_id):
        with pytest.raises(ValueError):
            await catalog_service.create_product(tenant_id, "Bad", colour="amber")

    @pytest.mark.asyncio
    async def test_get_missing_product(self, catalog_service, tenant_id):
        with pytest.raises(ProductNotFoundError) as exc_info:
            await catalog_service.get_product(tenant_id, "01HZX3K6Q8J4W9N2B7C5D1E0FA")

        assert exc_info.value.entity_id == "01HZX3K6Q8J4W9N2B7C5D1E0FA"

    @pytest.mark.asyncio
    async def test_list_filters(self, catalog_service, tenant_id, products):
        whisky, gin = products

        by_category = await catalog_service.list_products(tenant_id, category="gin")
        by_search = await catalog_service.list_products(tenant_id, search="glen")
        by_sku = await catalog_service.list_products(tenant_id, search="TDG-700")

        assert [p.id for p in by_category] == [gin.id]
        assert [p.id for p in by_search] == [whisky.id]
        assert [p.id for p in by_sku] == [gin.id]

    @pytest.mark.asyncio
    async def test_update_product(self, catalog_service, tenant_id, products):
        whisky, _ = products

        updated = await catalog_service.update_product(
            tenant_id, whisky.id, price_per_unit=Decimal("49.99"), reorder_level=4
        )

        assert updated.price_per_unit == Decimal("49.99")
        fetched = await catalog_service.get_product(tenant_id, whisky.id)
        assert fetched.reorder_level == 4

    @pytest.mark.asyncio
    async def test_update_to_taken_sku_is_rejected(
        self, catalog_service, tenant_id, products
    ):
        whisky, gin = products

        with pytest.raises(DuplicateProductError):
            await catalog_service.update_product(tenant_id, gin.id, sku=whisky.sku)

    @pytest.mark.asyncio
    async def test_deactivated_products_are_hidden_by_default(
        self, catalog_service, tenant_id, products
    ):
        whisky, gin = products

        await catalog_service.deactivate_product(tenant_id, whisky.id)

        active = await catalog_service.list_products(tenant_id)
        everything = await catalog_service.list_products(tenant_id, active_only=False)
        assert [p.id for p in active] == [gin.id]
        assert {p.id for p in everything} == {whisky.id, gin.id}

    @pytest.mark.asyncio
    async def test_vendor_stocks_for_missing_product(self, catalog_service, tenant_id):
        with pytest.raises(ProductNotFoundError):
            await catalog_service.vendor_stocks_for_product(
                tenant_id, "01HZX3K6Q8J4W9N2B7C5D1E0FA"
            )

    @pytest.mark.asyncio
    async def test_vendor_stocks_are_largest_first(
        self, catalog_service, purchase_service, tenant_id, vendor, products
    ):
        whisky, _ = products
        second = await catalog_service.create_vendor(tenant_id, "Second Vendor")
        for vendor_id, quantity in ((vendor.id, 3), (second.id, 8)):
            await purchase_service.record_purchase(
                tenant_id,
                vendor_id,
                [
                    LineItem(
                        product_id=ProductId.from_string(whisky.id),
                        quantity=quantity,
                        purchase_price=Decimal("20.00"),
                    )
                ],
            )

        stocks = await catalog_service.vendor_stocks_for_product(tenant_id, whisky.id)

        assert [(s.vendor_name, s.current_stock) for s in stocks] == [
            ("Second Vendor", 8),
            ("Highland Spirits Ltd", 3),
        ]


class TestVendors:
    @pytest.mark.asyncio
    async def test_create_and_list_by_priority(self, catalog_service, tenant_id):
        await catalog_service.create_vendor(tenant_id, "Zeta Wines", priority=1)
        await catalog_service.create_vendor(tenant_id, "Alpha Beers")
        await catalog_service.create_vendor(tenant_id, "Mid Spirits", priority=5)

        vendors = await catalog_service.list_vendors(tenant_id)

        assert [v.name for v in vendors] == ["Mid Spirits", "Zeta Wines", "Alpha Beers"]

    @pytest.mark.asyncio
    async def test_update_vendor(self, catalog_service, tenant_id, vendor):
        updated = await catalog_service.update_vendor(
            tenant_id, vendor.id, phone="+44 20 7946 0000", payment_terms="NET30"
        )

        assert updated.phone == "+44 20 7946 0000"
        fetched = await catalog_service.get_vendor(tenant_id, vendor.id)
        assert fetched.payment_terms == "NET30"

    @pytest.mark.asyncio
    async def test_update_missing_vendor(self, catalog_service, tenant_id):
        with pytest.raises(VendorNotFoundError):
            await catalog_service.update_vendor(
                tenant_id, "01HZX3K6Q8J4W9N2B7C5D1E0FA", phone="1"
            )

    @pytest.mark.asyncio
    async def test_deactivate_hides_vendor(self, catalog_service, tenant_id, vendor):
        await catalog_service.deactivate_vendor(tenant_id, vendor.id)

        assert await catalog_service.list_vendors(tenant_id) == []
        everything = await catalog_service.list_vendors(tenant_id, active_only=False)
        assert len(everything) == 1

    @pytest.mark.asyncio
    async def test_vendor_has_stock(
        self, catalog_service, purchase_service, tenant_id, vendor, products
    ):
        whisky, _ = products
        assert await catalog_service.vendor_has_stock(tenant_id, vendor.id) is False

        await purchase_service.record_purchase(
            tenant_id,
            vendor.id,
            [
                LineItem(
                    product_id=ProductId.from_string(whisky.id),
                    quantity=2,
                    purchase_price=Decimal("20.00"),
                )
            ],
        )

        assert await catalog_service.vendor_has_stock(tenant_id, vendor.id) is True

    @pytest.mark.asyncio
    async def test_has_stock_for_missing_vendor(self, catalog_service, tenant_id):
        with pytest.raises(VendorNotFoundError):
            await catalog_service.vendor_has_stock(
                tenant_id, "01HZX3K6Q8J4W9N2B7C5D1E0FA"
            )
