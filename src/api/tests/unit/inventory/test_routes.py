"""Unit tests for the inventory HTTP routes.

Services are mocked; the tests cover request validation, response shape
and the mapping of typed errors to status codes.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from infrastructure.database.exceptions import (
    ConflictRetryError,
    DatabaseConnectionError,
)
from inventory.application import (
    CatalogService,
    CategorySales,
    ClosingStockResult,
    PurchaseService,
    PurchaseSummary,
    ReportService,
    SaleService,
    StockAdjustment,
    VendorProductSales,
    VendorPurchaseTotals,
    VendorSales,
    VendorStockView,
)
from inventory.dependencies import (
    get_catalog_service,
    get_purchase_service,
    get_report_service,
    get_sale_service,
)
from inventory.domain.exceptions import (
    DuplicateProductError,
    EmptyPurchaseError,
    InsufficientStockError,
    ProductNotFoundError,
    PurchaseNotFoundError,
    SaleNotFoundError,
    VendorNotFoundError,
)
from inventory.presentation import router
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.dependencies import get_tenant_context

TENANT_ID = "01HZX3K6Q8J4W9N2B7C5D1E0FA"
PRODUCT_ID = "01HZX3M1B2C3D4E5F6G7H8J9KA"
VENDOR_ID = "01HZX3N0P1Q2R3S4T5V6W7X8YZ"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def purchase(**overrides) -> SimpleNamespace:
    values = dict(
        id="01HZX3P9Q8R7S6T5V4W3X2Y1Z0",
        purchase_number="PUR-1772366400000-0001",
        vendor_id=VENDOR_ID,
        vendor_name="Highland Spirits Ltd",
        purchase_date=NOW,
        subtotal=Decimal("350.00"),
        tax=Decimal("35.00"),
        total=Decimal("385.00"),
        paid=Decimal("0.00"),
        due=Decimal("385.00"),
        payment_status="pending",
        invoice_number=None,
        notes=None,
        items=[
            SimpleNamespace(
                product_id=PRODUCT_ID,
                product_name="Glen Test 12",
                quantity=10,
                purchase_price=Decimal("35.00"),
                line_total=Decimal("350.00"),
                batch_number=None,
            )
        ],
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def product(**overrides) -> SimpleNamespace:
    values = dict(
        id=PRODUCT_ID,
        name="Glen Test 12",
        brand=None,
        category="whisky",
        volume_ml=750,
        sku="GT12-750",
        barcode=None,
        price_per_unit=Decimal("45.00"),
        current_stock=0,
        reorder_level=0,
        is_active=True,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def vendor(**overrides) -> SimpleNamespace:
    values = dict(
        id=VENDOR_ID,
        name="Highland Spirits Ltd",
        phone=None,
        email=None,
        address=None,
        gstin=None,
        payment_terms=None,
        notes=None,
        priority=0,
        is_active=True,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def sale(**overrides) -> SimpleNamespace:
    values = dict(
        id="01HZX3Q0R1S2T3V4W5X6Y7Z8A9",
        bill_number="BILL-20260301-120000-0001",
        kind="sale",
        customer_name=None,
        customer_phone=None,
        sale_date=NOW,
        subtotal=Decimal("90.00"),
        discount=Decimal("0.00"),
        total=Decimal("90.00"),
        paid=Decimal("90.00"),
        due=Decimal("0.00"),
        payment_status="paid",
        payment_mode="cash",
        notes=None,
        items=[
            SimpleNamespace(
                product_id=PRODUCT_ID,
                product_name="Glen Test 12",
                category="whisky",
                volume_ml=750,
                quantity=2,
                unit_price=Decimal("45.00"),
                discount=Decimal("0.00"),
                line_total=Decimal("90.00"),
                allocations=[SimpleNamespace(vendor_id=VENDOR_ID, quantity=2)],
            )
        ],
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def purchase_service() -> AsyncMock:
    return AsyncMock(spec=PurchaseService)


@pytest.fixture
def catalog_service() -> AsyncMock:
    return AsyncMock(spec=CatalogService)


@pytest.fixture
def report_service() -> AsyncMock:
    return AsyncMock(spec=ReportService)


@pytest.fixture
def sale_service() -> AsyncMock:
    return AsyncMock(spec=SaleService)


@pytest.fixture
def client(
    purchase_service, catalog_service, report_service, sale_service
) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_tenant_context] = lambda: TenantContext(
        tenant_id=TENANT_ID, database_name=f"tenant_{TENANT_ID.lower()}"
    )
    app.dependency_overrides[get_purchase_service] = lambda: purchase_service
    app.dependency_overrides[get_catalog_service] = lambda: catalog_service
    app.dependency_overrides[get_report_service] = lambda: report_service
    app.dependency_overrides[get_sale_service] = lambda: sale_service
    return TestClient(app)


def purchase_body(**overrides) -> dict:
    body = {
        "vendor_id": VENDOR_ID,
        "items": [
            {"product_id": PRODUCT_ID, "quantity": 10, "purchase_price": "35.00"}
        ],
        "tax": "35.00",
    }
    body.update(overrides)
    return body


class TestPurchaseRoutes:
    def test_record_purchase(self, client, purchase_service):
        purchase_service.record_purchase.return_value = purchase()

        response = client.post("/purchases", json=purchase_body())

        assert response.status_code == 201
        data = response.json()
        assert data["total"] == "385.00"
        assert data["payment_status"] == "pending"
        assert data["items"][0]["product_name"] == "Glen Test 12"

        kwargs = purchase_service.record_purchase.await_args.kwargs
        assert purchase_service.record_purchase.await_args.args == (TENANT_ID,)
        assert kwargs["vendor_id"] == VENDOR_ID
        assert kwargs["tax"] == Decimal("35.00")
        assert kwargs["items"][0].product_id.value == PRODUCT_ID
        assert kwargs["items"][0].quantity == 10

    def test_invalid_product_id_is_400(self, client, purchase_service):
        body = purchase_body(
            items=[{"product_id": "nope", "quantity": 1, "purchase_price": "1.00"}]
        )

        response = client.post("/purchases", json=body)

        assert response.status_code == 400
        purchase_service.record_purchase.assert_not_awaited()

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_is_422(self, client, quantity):
        body = purchase_body(
            items=[
                {"product_id": PRODUCT_ID, "quantity": quantity, "purchase_price": "1"}
            ]
        )

        response = client.post("/purchases", json=body)

        assert response.status_code == 422

    def test_empty_items_are_422(self, client):
        response = client.post("/purchases", json=purchase_body(items=[]))

        assert response.status_code == 422

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (EmptyPurchaseError(), 400),
            (InsufficientStockError("not enough"), 400),
            (VendorNotFoundError(VENDOR_ID), 404),
            (ProductNotFoundError(PRODUCT_ID), 404),
            (ConflictRetryError("still conflicting"), 409),
            (DatabaseConnectionError("down"), 503),
        ],
    )
    def test_errors_map_to_status_codes(
        self, client, purchase_service, error, status_code
    ):
        purchase_service.record_purchase.side_effect = error

        response = client.post("/purchases", json=purchase_body())

        assert response.status_code == status_code

    def test_conflict_detail_asks_to_retry(self, client, purchase_service):
        purchase_service.record_purchase.side_effect = ConflictRetryError("x")

        response = client.post("/purchases", json=purchase_body())

        assert response.json()["detail"] == "Concurrent update conflict, please retry"

    def test_list_passes_filters(self, client, purchase_service):
        purchase_service.list_purchases.return_value = [purchase()]

        response = client.get(
            "/purchases", params={"vendor_id": VENDOR_ID, "payment_status": "partial"}
        )

        assert response.status_code == 200
        assert len(response.json()) == 1
        kwargs = purchase_service.list_purchases.await_args.kwargs
        assert kwargs["vendor_id"] == VENDOR_ID
        assert kwargs["payment_status"] == "partial"

    def test_get_missing_purchase_is_404(self, client, purchase_service):
        purchase_service.get_purchase.side_effect = PurchaseNotFoundError("X")

        response = client.get("/purchases/X")

        assert response.status_code == 404

    def test_update_purchase_passes_vendor(self, client, purchase_service):
        purchase_service.update_purchase.return_value = purchase(notes="fixed")

        response = client.put(
            "/purchases/P1", json=purchase_body(notes="fixed")
        )

        assert response.status_code == 200
        assert response.json()["notes"] == "fixed"
        kwargs = purchase_service.update_purchase.await_args.kwargs
        assert kwargs["vendor_id"] == VENDOR_ID
        assert kwargs["notes"] == "fixed"

    def test_delete_purchase(self, client, purchase_service):
        response = client.delete("/purchases/P1")

        assert response.status_code == 204
        purchase_service.delete_purchase.assert_awaited_once_with(TENANT_ID, "P1")


class TestProductRoutes:
    def test_create_product(self, client, catalog_service):
        catalog_service.create_product.return_value = product()

        response = client.post(
            "/products",
            json={"name": "Glen Test 12", "sku": "GT12-750", "price_per_unit": "45.00"},
        )

        assert response.status_code == 201
        assert response.json()["sku"] == "GT12-750"
        args = catalog_service.create_product.await_args
        assert args.args == (TENANT_ID, "Glen Test 12")
        assert args.kwargs["sku"] == "GT12-750"

    def test_duplicate_product_is_409(self, client, catalog_service):
        catalog_service.create_product.side_effect = DuplicateProductError("taken")

        response = client.post("/products", json={"name": "Copy", "sku": "GT12-750"})

        assert response.status_code == 409

    def test_update_sends_only_given_fields(self, client, catalog_service):
        catalog_service.update_product.return_value = product(reorder_level=4)

        response = client.patch(f"/products/{PRODUCT_ID}", json={"reorder_level": 4})

        assert response.status_code == 200
        catalog_service.update_product.assert_awaited_once_with(
            TENANT_ID, PRODUCT_ID, reorder_level=4
        )

    def test_vendor_stocks(self, client, catalog_service):
        catalog_service.vendor_stocks_for_product.return_value = [
            VendorStockView(
                vendor_id=VENDOR_ID,
                vendor_name="Highland Spirits Ltd",
                product_id=PRODUCT_ID,
                current_stock=8,
                last_purchase_price=Decimal("20.00"),
                last_purchase_date=NOW,
            )
        ]

        response = client.get(f"/inventory/vendor-stocks/{PRODUCT_ID}")

        assert response.status_code == 200
        assert response.json()[0]["current_stock"] == 8


class TestVendorRoutes:
    def test_create_vendor(self, client, catalog_service):
        catalog_service.create_vendor.return_value = vendor()

        response = client.post("/vendors", json={"name": "Highland Spirits Ltd"})

        assert response.status_code == 201
        assert response.json()["id"] == VENDOR_ID

    def test_has_stock(self, client, catalog_service):
        catalog_service.vendor_has_stock.return_value = True

        response = client.get(f"/vendors/{VENDOR_ID}/has-stock")

        assert response.json() == {"vendor_id": VENDOR_ID, "has_stock": True}

    def test_missing_vendor_is_404(self, client, catalog_service):
        catalog_service.get_vendor.side_effect = VendorNotFoundError(VENDOR_ID)

        response = client.get(f"/vendors/{VENDOR_ID}")

        assert response.status_code == 404


def sale_body(**overrides) -> dict:
    body = {
        "items": [{"product_id": PRODUCT_ID, "quantity": 2, "unit_price": "45.00"}],
    }
    body.update(overrides)
    return body


class TestSaleRoutes:
    def test_record_sale(self, client, sale_service):
        sale_service.record_sale.return_value = sale()

        response = client.post("/sales", json=sale_body(payment_mode="upi"))

        assert response.status_code == 201
        data = response.json()
        assert data["bill_number"] == "BILL-20260301-120000-0001"
        assert data["items"][0]["allocations"] == [
            {"vendor_id": VENDOR_ID, "quantity": 2}
        ]
        kwargs = sale_service.record_sale.await_args.kwargs
        assert sale_service.record_sale.await_args.args == (TENANT_ID,)
        assert kwargs["paid"] is None
        assert kwargs["payment_mode"] == "upi"
        assert kwargs["items"][0].product_id.value == PRODUCT_ID
        assert kwargs["items"][0].unit_price == Decimal("45.00")

    def test_invalid_product_id_is_400(self, client, sale_service):
        body = sale_body(
            items=[{"product_id": "nope", "quantity": 1, "unit_price": "1.00"}]
        )

        response = client.post("/sales", json=body)

        assert response.status_code == 400
        sale_service.record_sale.assert_not_awaited()

    def test_empty_items_are_422(self, client):
        response = client.post("/sales", json=sale_body(items=[]))

        assert response.status_code == 422

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (InsufficientStockError("Insufficient stock for Glen Test 12"), 400),
            (ProductNotFoundError(PRODUCT_ID), 404),
            (ConflictRetryError("still conflicting"), 409),
            (DatabaseConnectionError("down"), 503),
        ],
    )
    def test_errors_map_to_status_codes(self, client, sale_service, error, status_code):
        sale_service.record_sale.side_effect = error

        response = client.post("/sales", json=sale_body())

        assert response.status_code == status_code

    def test_list_filters_by_kind(self, client, sale_service):
        sale_service.list_sales.return_value = [sale(kind="discrepancy")]

        response = client.get("/sales", params={"kind": "discrepancy"})

        assert response.status_code == 200
        assert response.json()[0]["kind"] == "discrepancy"
        assert sale_service.list_sales.await_args.kwargs["kind"] == "discrepancy"

    def test_unknown_kind_is_422(self, client):
        response = client.get("/sales", params={"kind": "refund"})

        assert response.status_code == 422

    def test_get_missing_sale_is_404(self, client, sale_service):
        sale_service.get_sale.side_effect = SaleNotFoundError("X")

        response = client.get("/sales/X")

        assert response.status_code == 404

    def test_closing_stock(self, client, sale_service):
        sale_service.closing_stock.return_value = ClosingStockResult(
            counted_at=NOW,
            adjustments=[
                StockAdjustment(
                    product_id=PRODUCT_ID,
                    product_name="Glen Test 12",
                    previous_stock=7,
                    counted=5,
                )
            ],
            discrepancy_bill=sale(kind="discrepancy", bill_number="DISC-1"),
        )

        response = client.post(
            "/inventory/closing-stock",
            json={"items": [{"product_id": PRODUCT_ID, "counted": 5}]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["adjustments"][0]["discrepancy"] == -2
        assert data["discrepancy_bill"]["bill_number"] == "DISC-1"
        counts = sale_service.closing_stock.await_args.args[1]
        assert counts[0].counted == 5

    def test_negative_count_is_422(self, client):
        response = client.post(
            "/inventory/closing-stock",
            json={"items": [{"product_id": PRODUCT_ID, "counted": -1}]},
        )

        assert response.status_code == 422

    def test_ledger(self, client, sale_service):
        sale_service.ledger.return_value = [
            SimpleNamespace(
                kind="sale",
                quantity=-2,
                previous_stock=7,
                new_stock=5,
                reason=None,
                reference="BILL-20260301-120000-0001",
                occurred_at=NOW,
            )
        ]

        response = client.get(f"/inventory/ledger/{PRODUCT_ID}")

        assert response.status_code == 200
        assert response.json()[0]["new_stock"] == 5


class TestReportRoutes:
    def test_purchase_summary(self, client, report_service):
        report_service.purchase_summary.return_value = PurchaseSummary(
            start=None,
            end=None,
            purchase_count=1,
            subtotal=Decimal("350.00"),
            tax=Decimal("35.00"),
            total=Decimal("385.00"),
            paid=Decimal("0.00"),
            due=Decimal("385.00"),
            vendors=[
                VendorPurchaseTotals(
                    vendor_id=VENDOR_ID,
                    vendor_name="Highland Spirits Ltd",
                    purchase_count=1,
                    subtotal=Decimal("350.00"),
                    tax=Decimal("35.00"),
                    total=Decimal("385.00"),
                    paid=Decimal("0.00"),
                    due=Decimal("385.00"),
                )
            ],
        )

        response = client.get(
            "/reports/purchase-summary",
            params={"start": "2026-03-01T00:00:00Z", "end": "2026-03-31T23:59:59Z"},
        )

        assert response.status_code == 200
        assert response.json()["vendors"][0]["total"] == "385.00"
        kwargs = report_service.purchase_summary.await_args.kwargs
        assert kwargs["start"] == datetime(2026, 3, 1, tzinfo=UTC)

    def test_vendor_wise(self, client, report_service):
        report_service.vendor_wise.return_value = [
            VendorSales(
                vendor_id=VENDOR_ID,
                vendor_name="Highland Spirits Ltd",
                quantity=4,
                volume_ml=3000,
                amount=Decimal("180.00"),
                bill_count=2,
                products=[
                    VendorProductSales(
                        product_id=PRODUCT_ID,
                        product_name="Glen Test 12",
                        quantity=4,
                        amount=Decimal("180.00"),
                    )
                ],
            )
        ]

        response = client.get(
            "/reports/vendor-wise", params={"end": "2026-03-31T23:59:59Z"}
        )

        assert response.status_code == 200
        assert response.json()[0]["products"][0]["amount"] == "180.00"
        assert report_service.vendor_wise.await_args.kwargs["start"] is None

    def test_category_wise(self, client, report_service):
        report_service.category_wise.return_value = [
            CategorySales(
                category="whisky",
                quantity=4,
                volume_ml=3000,
                amount=Decimal("180.00"),
                product_count=1,
                bill_count=2,
            )
        ]

        response = client.get("/reports/category-wise")

        assert response.status_code == 200
        assert response.json() == [
            {
                "category": "whisky",
                "quantity": 4,
                "volume_ml": 3000,
                "amount": "180.00",
                "product_count": 1,
                "bill_count": 2,
            }
        ]
