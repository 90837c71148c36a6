"""Purchase arithmetic and validation.

Pure functions over line items; no persistence. Money is ``Decimal``
rounded to two places, quantities are whole units.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from inventory.domain.exceptions import (
    EmptyPurchaseError,
    InvalidPriceError,
    InvalidQuantityError,
)
from inventory.domain.value_objects import PaymentStatus, ProductId

CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize an amount to cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineItem:
    """One product line on a purchase request."""

    product_id: ProductId
    quantity: int
    purchase_price: Decimal
    batch_number: str | None = None

    @property
    def line_total(self) -> Decimal:
        return to_money(self.purchase_price * self.quantity)

    def validate(self) -> None:
        """Raise if the quantity or price is out of range."""
        if (
            isinstance(self.quantity, bool)
            or not isinstance(self.quantity, int)
            or self.quantity <= 0
        ):
            raise InvalidQuantityError(
                f"Quantity for product {self.product_id} must be a positive "
                f"integer, got {self.quantity}"
            )
        if self.purchase_price < 0:
            raise InvalidPriceError(
                f"Purchase price for product {self.product_id} must not be "
                f"negative, got {self.purchase_price}"
            )


@dataclass(frozen=True)
class PurchaseTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid: Decimal
    due: Decimal
    payment_status: PaymentStatus


def payment_status_for(paid: Decimal, total: Decimal) -> PaymentStatus:
    """Derive the settlement state from the amount paid."""
    if paid >= total:
        return PaymentStatus.PAID
    if paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def validate_items(items: Sequence[LineItem]) -> None:
    """Validate every line item of a purchase.

    Raises:
        EmptyPurchaseError: If there are no items
        InvalidQuantityError: If a quantity is not a positive integer
        InvalidPriceError: If a price is negative
    """
    if not items:
        raise EmptyPurchaseError()
    for item in items:
        item.validate()


def compute_totals(
    items: Sequence[LineItem],
    tax: Decimal = Decimal("0"),
    paid: Decimal = Decimal("0"),
) -> PurchaseTotals:
    """Compute subtotal, total, due and payment status.

    Example: two lines of 10 x 20.00 and 5 x 30.00 with 35.00 tax give a
    subtotal of 350.00 and a total of 385.00.

    Raises:
        InvalidPriceError: If tax or paid is negative
    """
    if tax < 0:
        raise InvalidPriceError(f"Tax must not be negative, got {tax}")
    if paid < 0:
        raise InvalidPriceError(f"Paid amount must not be negative, got {paid}")

    subtotal = to_money(sum((item.line_total for item in items), Decimal("0")))
    tax = to_money(tax)
    paid = to_money(paid)
    total = subtotal + tax
    return PurchaseTotals(
        subtotal=subtotal,
        tax=tax,
        total=total,
        paid=paid,
        due=total - paid,
        payment_status=payment_status_for(paid, total),
    )


def purchase_number(existing_count: int, now_ms: int | None = None) -> str:
    """Format a purchase number as ``PUR-<epoch ms>-<sequence>``."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"PUR-{now_ms}-{existing_count + 1:04d}"
