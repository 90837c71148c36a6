"""SQLAlchemy ORM models for the tables inside every tenant database.

The classes are declared once on ``TenantBase``. Which tenant a row belongs
to is decided entirely by the engine the session is bound to; none of these
tables carries a tenant column.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from infrastructure.database.models import TenantBase, TimestampMixin, utc_now


class ProductModel(TenantBase, TimestampMixin):
    """ORM model for the products table."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        Index("ix_products_category", "category"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(255))
    category: Mapped[str | None] = mapped_column(String(100))
    volume_ml: Mapped[int | None] = mapped_column(Integer)
    sku: Mapped[str | None] = mapped_column(String(100), unique=True)
    barcode: Mapped[str | None] = mapped_column(String(100), unique=True)
    price_per_unit: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    price_history: Mapped[list[PriceHistoryModel]] = relationship(
        back_populates="product",
        order_by="PriceHistoryModel.effective_from",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<ProductModel(id={self.id}, name={self.name})>"


class PriceHistoryModel(TenantBase):
    """One purchase price observation for a product."""

    __tablename__ = "product_price_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    purchase_price: Mapped[Decimal] = mapped_column(nullable=False)
    batch_number: Mapped[str | None] = mapped_column(String(100))
    effective_from: Mapped[datetime] = mapped_column(
        nullable=False, insert_default=utc_now
    )

    product: Mapped[ProductModel] = relationship(back_populates="price_history")


class VendorModel(TenantBase, TimestampMixin):
    """ORM model for the vendors table."""

    __tablename__ = "vendors"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(Text)
    gstin: Mapped[str | None] = mapped_column(String(20))
    payment_terms: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<VendorModel(id={self.id}, name={self.name})>"


class VendorStockModel(TenantBase, TimestampMixin):
    """Quantity of a product held on behalf of one vendor."""

    __tablename__ = "vendor_stocks"
    __table_args__ = (
        UniqueConstraint("vendor_id", "product_id", name="uq_vendor_stocks_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_purchase_price: Mapped[Decimal | None] = mapped_column()
    last_purchase_date: Mapped[datetime | None] = mapped_column()


class PurchaseModel(TenantBase, TimestampMixin):
    """ORM model for the purchases table."""

    __tablename__ = "purchases"
    __table_args__ = (Index("ix_purchases_purchase_date", "purchase_date"),)

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    purchase_number: Mapped[str] = mapped_column(
        String(40), nullable=False, unique=True
    )
    vendor_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("vendors.id"), nullable=False, index=True
    )
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    purchase_date: Mapped[datetime] = mapped_column(
        nullable=False, insert_default=utc_now
    )
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(nullable=False)
    paid: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    due: Mapped[Decimal] = mapped_column(nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)

    items: Mapped[list[PurchaseItemModel]] = relationship(
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItemModel.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<PurchaseModel(id={self.id}, number={self.purchase_number})>"


class PurchaseItemModel(TenantBase):
    """One product line of a purchase."""

    __tablename__ = "purchase_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    purchase_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("purchases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("products.id"), nullable=False
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    purchase_price: Mapped[Decimal] = mapped_column(nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)
    batch_number: Mapped[str | None] = mapped_column(String(100))

    purchase: Mapped[PurchaseModel] = relationship(back_populates="items")


class SaleModel(TenantBase, TimestampMixin):
    """ORM model for the sales table (one row per bill)."""

    __tablename__ = "sales"
    __table_args__ = (Index("ix_sales_sale_date", "sale_date"),)

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    bill_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default="sale")
    customer_name: Mapped[str | None] = mapped_column(String(255))
    customer_phone: Mapped[str | None] = mapped_column(String(50))
    sale_date: Mapped[datetime] = mapped_column(nullable=False, insert_default=utc_now)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    discount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(nullable=False)
    paid: Mapped[Decimal] = mapped_column(nullable=False)
    due: Mapped[Decimal] = mapped_column(nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_mode: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    items: Mapped[list[SaleItemModel]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItemModel.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<SaleModel(id={self.id}, bill={self.bill_number})>"


class SaleItemModel(TenantBase):
    """One product line of a bill."""

    __tablename__ = "sale_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sale_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("products.id"), nullable=False, index=True
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100))
    volume_ml: Mapped[int | None] = mapped_column(Integer)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    discount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    sale: Mapped[SaleModel] = relationship(back_populates="items")
    allocations: Mapped[list[SaleAllocationModel]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="SaleAllocationModel.id",
        lazy="selectin",
    )


class SaleAllocationModel(TenantBase):
    """Units of a bill line taken from one vendor's stock."""

    __tablename__ = "sale_allocations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sale_item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sale_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    vendor_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("vendors.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    item: Mapped[SaleItemModel] = relationship(back_populates="allocations")


class InventoryTransactionModel(TenantBase):
    """Ledger of stock movements that are not purchases."""

    __tablename__ = "inventory_transactions"
    __table_args__ = (
        Index("ix_inventory_transactions_product", "product_id", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    reference: Mapped[str | None] = mapped_column(String(40))
    occurred_at: Mapped[datetime] = mapped_column(
        nullable=False, insert_default=utc_now
    )
