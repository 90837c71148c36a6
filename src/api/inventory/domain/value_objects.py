"""Value objects for the inventory domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for identifiers and domain concepts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Self

from ulid import ULID


@dataclass(frozen=True)
class _EntityId:
    """ULID-backed identifier shared by the inventory entities."""

    value: str

    def __str__(self) -> str:
        return self.value

    @classmethod
    def generate(cls) -> Self:
        """Generate a new identifier using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Create an identifier from its string form.

        Raises:
            ValueError: If value is not a valid ULID
        """
        try:
            parsed = ULID.from_str(value.strip().upper())
        except (AttributeError, ValueError) as e:
            raise ValueError(f"Invalid {cls.__name__}: {value}") from e
        return cls(value=str(parsed))


@dataclass(frozen=True)
class ProductId(_EntityId):
    """Identifier for a product."""


@dataclass(frozen=True)
class VendorId(_EntityId):
    """Identifier for a vendor."""


@dataclass(frozen=True)
class PurchaseId(_EntityId):
    """Identifier for a purchase."""


@dataclass(frozen=True)
class SaleId(_EntityId):
    """Identifier for a sale (bill)."""


class PaymentStatus(StrEnum):
    """Settlement state of a purchase, derived from paid amount vs. total."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class SaleKind(StrEnum):
    """Why a bill exists: a counter sale, or bottles missing at closing."""

    SALE = "sale"
    DISCREPANCY = "discrepancy"


class StockMovement(StrEnum):
    """Kind of an inventory ledger entry."""

    SALE = "sale"
    ADJUSTMENT = "adjustment"
