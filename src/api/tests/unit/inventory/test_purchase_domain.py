"""Unit tests for purchase arithmetic and line item validation."""

from decimal import Decimal

import pytest

from inventory.domain.exceptions import (
    EmptyPurchaseError,
    InvalidPriceError,
    InvalidQuantityError,
)
from inventory.domain.purchase import (
    LineItem,
    compute_totals,
    payment_status_for,
    purchase_number,
    to_money,
    validate_items,
)
from inventory.domain.value_objects import PaymentStatus, ProductId


def item(quantity, price, product_id=None) -> LineItem:
    return LineItem(
        product_id=product_id or ProductId.generate(),
        quantity=quantity,
        purchase_price=Decimal(price),
    )


class TestComputeTotals:
    def test_subtotal_tax_and_total(self):
        totals = compute_totals(
            [item(10, "20.00"), item(5, "30.00")], tax=Decimal("35.00")
        )

        assert totals.subtotal == Decimal("350.00")
        assert totals.tax == Decimal("35.00")
        assert totals.total == Decimal("385.00")
        assert totals.due == Decimal("385.00")
        assert totals.payment_status is PaymentStatus.PENDING

    def test_partial_payment(self):
        totals = compute_totals([item(2, "50.00")], paid=Decimal("40"))

        assert totals.total == Decimal("100.00")
        assert totals.paid == Decimal("40.00")
        assert totals.due == Decimal("60.00")
        assert totals.payment_status is PaymentStatus.PARTIAL

    def test_full_payment(self):
        totals = compute_totals([item(1, "9.99")], paid=Decimal("9.99"))

        assert totals.due == Decimal("0.00")
        assert totals.payment_status is PaymentStatus.PAID

    def test_overpayment_is_paid_with_negative_due(self):
        totals = compute_totals([item(1, "10.00")], paid=Decimal("12.00"))

        assert totals.payment_status is PaymentStatus.PAID
        assert totals.due == Decimal("-2.00")

    def test_amounts_are_rounded_to_cents(self):
        totals = compute_totals([item(3, "0.333")], tax=Decimal("0.005"))

        assert totals.subtotal == Decimal("1.00")
        assert totals.tax == Decimal("0.01")
        assert totals.total == Decimal("1.01")

    @pytest.mark.parametrize("field", ["tax", "paid"])
    def test_negative_amounts_are_rejected(self, field):
        with pytest.raises(InvalidPriceError):
            compute_totals([item(1, "1.00")], **{field: Decimal("-0.01")})


class TestPaymentStatus:
    @pytest.mark.parametrize(
        ("paid", "total", "expected"),
        [
            ("0", "100", PaymentStatus.PENDING),
            ("0.01", "100", PaymentStatus.PARTIAL),
            ("100", "100", PaymentStatus.PAID),
            ("0", "0", PaymentStatus.PAID),
        ],
    )
    def test_status_follows_paid_amount(self, paid, total, expected):
        assert payment_status_for(Decimal(paid), Decimal(total)) is expected


class TestValidateItems:
    def test_empty_purchase_is_rejected(self):
        with pytest.raises(EmptyPurchaseError):
            validate_items([])

    @pytest.mark.parametrize("quantity", [0, -3, 1.5, True])
    def test_quantity_must_be_positive_integer(self, quantity):
        with pytest.raises(InvalidQuantityError):
            validate_items([item(quantity, "1.00")])

    def test_negative_price_is_rejected(self):
        with pytest.raises(InvalidPriceError):
            validate_items([item(1, "-1.00")])

    def test_zero_price_is_allowed(self):
        validate_items([item(1, "0.00")])


class TestLineItem:
    def test_line_total(self):
        assert item(4, "12.345").line_total == Decimal("49.38")

    def test_to_money_rounds_half_up(self):
        assert to_money(Decimal("2.675")) == Decimal("2.68")


class TestPurchaseNumber:
    def test_format(self):
        assert purchase_number(0, now_ms=1700000000000) == "PUR-1700000000000-0001"

    def test_sequence_follows_existing_count(self):
        assert purchase_number(41, now_ms=1).endswith("-0042")

    def test_uses_current_time_by_default(self):
        prefix, millis, sequence = purchase_number(0).split("-")

        assert prefix == "PUR"
        assert int(millis) > 1_600_000_000_000
        assert sequence == "0001"
