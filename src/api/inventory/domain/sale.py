"""Sale arithmetic, vendor allocation and closing-stock counts.

Pure functions; no persistence. A sale takes stock out of the shop and
attributes every bottle to the vendor it came from, highest priority vendor
first.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from inventory.domain.exceptions import (
    EmptySaleError,
    InsufficientStockError,
    InvalidPriceError,
    InvalidQuantityError,
)
from inventory.domain.purchase import payment_status_for, to_money
from inventory.domain.value_objects import PaymentStatus, ProductId


def _require_positive_quantity(quantity: object, product_id: ProductId) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(
            f"Quantity for product {product_id} must be a positive integer, "
            f"got {quantity}"
        )


@dataclass(frozen=True)
class SaleLine:
    """One product line on a bill.

    ``discount`` is an absolute amount taken off the whole line.
    """

    product_id: ProductId
    quantity: int
    unit_price: Decimal
    discount: Decimal = Decimal("0")

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    @property
    def line_total(self) -> Decimal:
        return self.subtotal - to_money(self.discount)

    def validate(self) -> None:
        """Raise if the quantity, price or discount is out of range."""
        _require_positive_quantity(self.quantity, self.product_id)
        if self.unit_price < 0:
            raise InvalidPriceError(
                f"Unit price for product {self.product_id} must not be "
                f"negative, got {self.unit_price}"
            )
        if self.discount < 0 or to_money(self.discount) > self.subtotal:
            raise InvalidPriceError(
                f"Discount for product {self.product_id} must be between 0 and "
                f"{self.subtotal}, got {self.discount}"
            )


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    paid: Decimal
    due: Decimal
    payment_status: PaymentStatus


def validate_sale_lines(lines: Sequence[SaleLine]) -> None:
    """Validate every line of a bill.

    Raises:
        EmptySaleError: If there are no lines
        InvalidQuantityError: If a quantity is not a positive integer
        InvalidPriceError: If a price or discount is out of range
    """
    if not lines:
        raise EmptySaleError()
    for line in lines:
        line.validate()


def compute_sale_totals(
    lines: Sequence[SaleLine], paid: Decimal | None = None
) -> SaleTotals:
    """Compute bill totals. ``paid`` defaults to the full total.

    Raises:
        InvalidPriceError: If paid is negative
    """
    subtotal = to_money(sum((line.subtotal for line in lines), Decimal("0")))
    discount = to_money(sum((line.discount for line in lines), Decimal("0")))
    total = subtotal - discount
    if paid is None:
        paid = total
    if paid < 0:
        raise InvalidPriceError(f"Paid amount must not be negative, got {paid}")
    paid = to_money(paid)
    return SaleTotals(
        subtotal=subtotal,
        discount=discount,
        total=total,
        paid=paid,
        due=max(total - paid, Decimal("0.00")),
        payment_status=payment_status_for(paid, total),
    )


def bill_number(prefix: str, existing_count: int, issued_at: datetime) -> str:
    """Format a bill number as ``<prefix>-<YYYYMMDD-HHMMSS>-<sequence>``."""
    return f"{prefix}-{issued_at:%Y%m%d-%H%M%S}-{existing_count + 1:04d}"


@dataclass(frozen=True)
class Allocation:
    """Units of a sale line attributed to one vendor."""

    vendor_id: str
    quantity: int


def allocate_by_priority(
    available: Sequence[tuple[str, int]], quantity: int
) -> list[Allocation]:
    """Take ``quantity`` units from vendors in the order given.

    ``available`` holds ``(vendor_id, units on hand)`` pairs, highest
    priority first. Vendors are drained one after the other; a vendor with
    nothing left is skipped.

    Raises:
        InsufficientStockError: If the vendors hold fewer units in total
    """
    on_hand = sum(max(units, 0) for _, units in available)
    if on_hand < quantity:
        raise InsufficientStockError(
            f"Vendors hold {on_hand} units, {quantity} required"
        )

    allocations: list[Allocation] = []
    remaining = quantity
    for vendor_id, units in available:
        if remaining == 0:
            break
        take = min(remaining, units)
        if take <= 0:
            continue
        allocations.append(Allocation(vendor_id=vendor_id, quantity=take))
        remaining -= take
    return allocations


@dataclass(frozen=True)
class StockCount:
    """Bottles physically counted for a product at closing time."""

    product_id: ProductId
    counted: int

    def validate(self) -> None:
        if (
            isinstance(self.counted, bool)
            or not isinstance(self.counted, int)
            or self.counted < 0
        ):
            raise InvalidQuantityError(
                f"Counted stock for product {self.product_id} must be a "
                f"non-negative integer, got {self.counted}"
            )


def discrepancy_reason(discrepancy: int) -> str:
    """Ledger reason for a closing count that differs from the books."""
    kind = "Excess" if discrepancy > 0 else "Shortage"
    return f"Closing stock discrepancy - {kind}"
