"""Tenant-bound entity accessors for the inventory tables.

An accessor is what the model registry hands out for one tenant handle and
one ``EntityKind``. Every method takes the session it runs in; the session
must come from the same handle (see ``TenantAccessor._guard``).

Stock changes are issued as single ``UPDATE ... SET current_stock =
current_stock + :delta`` statements so concurrent purchases never lose an
increment. Decrements carry their own guard in the ``WHERE`` clause, so
a unit that lost a race sees zero affected rows instead of negative stock.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import Select, and_, case, distinct, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.exceptions import ConflictRetryError
from infrastructure.database.model_registry import ModelRegistry, TenantAccessor
from infrastructure.database.models import utc_now
from inventory.domain.exceptions import InsufficientStockError
from inventory.infrastructure.models import (
    InventoryTransactionModel,
    PriceHistoryModel,
    ProductModel,
    PurchaseModel,
    SaleAllocationModel,
    SaleItemModel,
    SaleModel,
    VendorModel,
    VendorStockModel,
)

if TYPE_CHECKING:
    from infrastructure.database.tenant_connections import ConnectionHandle
    from infrastructure.observability.probes import ConnectionProbe


class EntityKind(StrEnum):
    """Closed set of entities that live in every tenant database."""

    PRODUCT = "product"
    VENDOR = "vendor"
    VENDOR_STOCK = "vendor_stock"
    PURCHASE = "purchase"
    SALE = "sale"
    INVENTORY_TRANSACTION = "inventory_transaction"


class ProductAccessor(TenantAccessor):
    """Products and their price history."""

    async def get(self, session: AsyncSession, product_id: str) -> ProductModel | None:
        return await self._guard(session).get(ProductModel, product_id)

    async def list(
        self,
        session: AsyncSession,
        search: str | None = None,
        category: str | None = None,
        active_only: bool = True,
    ) -> Sequence[ProductModel]:
        stmt = select(ProductModel)
        if active_only:
            stmt = stmt.where(ProductModel.is_active.is_(True))
        if category:
            stmt = stmt.where(ProductModel.category == category)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(ProductModel.name).like(pattern),
                    func.lower(ProductModel.brand).like(pattern),
                    ProductModel.sku == search,
                    ProductModel.barcode == search,
                )
            )
        result = await self._guard(session).execute(stmt.order_by(ProductModel.name))
        return result.scalars().all()

    async def add(self, session: AsyncSession, product: ProductModel) -> ProductModel:
        """Insert a product, flushing so unique violations surface here."""
        session = self._guard(session)
        session.add(product)
        await session.flush()
        return product

    async def adjust_stock(
        self, session: AsyncSession, product_id: str, delta: int
    ) -> None:
        """Atomically add ``delta`` (may be negative) to a product's stock.

        Raises:
            InsufficientStockError: If a decrement would go below zero
        """
        stmt = update(ProductModel).where(ProductModel.id == product_id)
        if delta < 0:
            stmt = stmt.where(ProductModel.current_stock >= -delta)
        result = await self._guard(session).execute(
            stmt.values(
                current_stock=ProductModel.current_stock + delta,
                updated_at=utc_now(),
            )
        )
        if result.rowcount == 0 and delta < 0:
            raise InsufficientStockError(
                f"Product {product_id} has fewer than {-delta} units in stock"
            )

    async def set_stock(
        self, session: AsyncSession, product_id: str, expected: int, counted: int
    ) -> None:
        """Replace the stock with a physical count, if it is still ``expected``.

        Raises:
            ConflictRetryError: If the stock changed since it was read
        """
        result = await self._guard(session).execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.current_stock == expected,
            )
            .values(current_stock=counted, updated_at=utc_now())
        )
        if result.rowcount == 0:
            raise ConflictRetryError(
                f"Stock of product {product_id} changed during the closing count"
            )

    async def record_price(
        self,
        session: AsyncSession,
        product_id: str,
        purchase_price: Decimal,
        batch_number: str | None = None,
        effective_from: datetime | None = None,
    ) -> None:
        """Append a price history row."""
        session = self._guard(session)
        session.add(
            PriceHistoryModel(
                product_id=product_id,
                purchase_price=purchase_price,
                batch_number=batch_number,
                effective_from=effective_from or utc_now(),
            )
        )
        await session.flush()


class VendorAccessor(TenantAccessor):
    """Vendors (suppliers)."""

    async def get(self, session: AsyncSession, vendor_id: str) -> VendorModel | None:
        return await self._guard(session).get(VendorModel, vendor_id)

    async def list(
        self, session: AsyncSession, active_only: bool = True
    ) -> Sequence[VendorModel]:
        stmt = select(VendorModel)
        if active_only:
            stmt = stmt.where(VendorModel.is_active.is_(True))
        result = await self._guard(session).execute(
            stmt.order_by(VendorModel.priority.desc(), VendorModel.name)
        )
        return result.scalars().all()

    async def add(self, session: AsyncSession, vendor: VendorModel) -> VendorModel:
        session = self._guard(session)
        session.add(vendor)
        await session.flush()
        return vendor

    async def has_stock(self, session: AsyncSession, vendor_id: str) -> bool:
        """Whether any product still has stock attributed to the vendor."""
        stmt = (
            select(func.count())
            .select_from(VendorStockModel)
            .where(
                VendorStockModel.vendor_id == vendor_id,
                VendorStockModel.current_stock > 0,
            )
        )
        count = (await self._guard(session).execute(stmt)).scalar_one()
        return count > 0


class VendorStockAccessor(TenantAccessor):
    """Per-vendor stock of each product."""

    async def receive(
        self,
        session: AsyncSession,
        vendor_id: str,
        product_id: str,
        quantity: int,
        purchase_price: Decimal,
        purchased_at: datetime,
    ) -> None:
        """Add received units to the vendor/product pair, creating it if new.

        Raises:
            ConflictRetryError: If a concurrent writer created the pair first
        """
        session = self._guard(session)
        result = await session.execute(
            update(VendorStockModel)
            .where(
                VendorStockModel.vendor_id == vendor_id,
                VendorStockModel.product_id == product_id,
            )
            .values(
                current_stock=VendorStockModel.current_stock + quantity,
                last_purchase_price=purchase_price,
                last_purchase_date=purchased_at,
                updated_at=utc_now(),
            )
        )
        if result.rowcount:
            return

        session.add(
            VendorStockModel(
                vendor_id=vendor_id,
                product_id=product_id,
                current_stock=quantity,
                last_purchase_price=purchase_price,
                last_purchase_date=purchased_at,
            )
        )
        try:
            await session.flush()
        except IntegrityError as e:
            raise ConflictRetryError(
                f"Vendor stock for {vendor_id}/{product_id} created concurrently"
            ) from e

    async def release(
        self, session: AsyncSession, vendor_id: str, product_id: str, quantity: int
    ) -> None:
        """Take units back out of the pair, never below zero."""
        await self._guard(session).execute(
            update(VendorStockModel)
            .where(
                VendorStockModel.vendor_id == vendor_id,
                VendorStockModel.product_id == product_id,
            )
            .values(
                current_stock=case(
                    (
                        VendorStockModel.current_stock > quantity,
                        VendorStockModel.current_stock - quantity,
                    ),
                    else_=0,
                ),
                updated_at=utc_now(),
            )
        )

    async def by_priority(
        self, session: AsyncSession, product_id: str
    ) -> Sequence[VendorStockModel]:
        """Vendor stock rows holding the product, highest vendor priority first.

        Ties are broken by vendor name.
        """
        stmt = (
            select(VendorStockModel)
            .join(VendorModel, VendorModel.id == VendorStockModel.vendor_id)
            .where(
                VendorStockModel.product_id == product_id,
                VendorStockModel.current_stock > 0,
            )
            .order_by(VendorModel.priority.desc(), VendorModel.name)
        )
        return (await self._guard(session).execute(stmt)).scalars().all()

    async def deduct(
        self, session: AsyncSession, vendor_id: str, product_id: str, quantity: int
    ) -> None:
        """Take sold units out of the pair.

        Raises:
            ConflictRetryError: If a concurrent sale already took them
        """
        result = await self._guard(session).execute(
            update(VendorStockModel)
            .where(
                VendorStockModel.vendor_id == vendor_id,
                VendorStockModel.product_id == product_id,
                VendorStockModel.current_stock >= quantity,
            )
            .values(
                current_stock=VendorStockModel.current_stock - quantity,
                updated_at=utc_now(),
            )
        )
        if result.rowcount == 0:
            raise ConflictRetryError(
                f"Vendor stock for {vendor_id}/{product_id} changed concurrently"
            )

    async def for_product(
        self, session: AsyncSession, product_id: str
    ) -> Sequence[Any]:
        """Vendors holding the product, largest quantity first.

        Returns rows of ``(VendorStockModel, vendor_name)``.
        """
        stmt = (
            select(VendorStockModel, VendorModel.name)
            .join(VendorModel, VendorModel.id == VendorStockModel.vendor_id)
            .where(
                VendorStockModel.product_id == product_id,
                VendorStockModel.current_stock > 0,
            )
            .order_by(VendorStockModel.current_stock.desc())
        )
        return (await self._guard(session).execute(stmt)).all()


class PurchaseAccessor(TenantAccessor):
    """Purchases and their line items."""

    async def get(
        self, session: AsyncSession, purchase_id: str
    ) -> PurchaseModel | None:
        return await self._guard(session).get(PurchaseModel, purchase_id)

    async def count(self, session: AsyncSession) -> int:
        stmt = select(func.count()).select_from(PurchaseModel)
        return (await self._guard(session).execute(stmt)).scalar_one()

    async def add(
        self, session: AsyncSession, purchase: PurchaseModel
    ) -> PurchaseModel:
        """Insert a purchase with its items.

        Raises:
            ConflictRetryError: If the purchase number was taken concurrently
        """
        session = self._guard(session)
        session.add(purchase)
        try:
            await session.flush()
        except IntegrityError as e:
            raise ConflictRetryError(
                f"Purchase number {purchase.purchase_number} already used"
            ) from e
        return purchase

    async def delete(self, session: AsyncSession, purchase: PurchaseModel) -> None:
        session = self._guard(session)
        await session.delete(purchase)
        await session.flush()

    def _filtered(
        self,
        stmt: Select[Any],
        vendor_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        payment_status: str | None = None,
    ) -> Select[Any]:
        conditions = []
        if vendor_id:
            conditions.append(PurchaseModel.vendor_id == vendor_id)
        if start is not None:
            conditions.append(PurchaseModel.purchase_date >= start)
        if end is not None:
            conditions.append(PurchaseModel.purchase_date <= end)
        if payment_status:
            conditions.append(PurchaseModel.payment_status == payment_status)
        return stmt.where(and_(*conditions)) if conditions else stmt

    async def list(
        self,
        session: AsyncSession,
        vendor_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        payment_status: str | None = None,
    ) -> Sequence[PurchaseModel]:
        stmt = self._filtered(
            select(PurchaseModel), vendor_id, start, end, payment_status
        ).order_by(PurchaseModel.purchase_date.desc(), PurchaseModel.id.desc())
        return (await self._guard(session).execute(stmt)).scalars().all()

    async def totals_by_vendor(
        self,
        session: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Sequence[Any]:
        """Aggregate purchase amounts per vendor within the window.

        Returns rows of ``(vendor_id, vendor_name, count, subtotal, tax,
        total, paid, due)``.
        """
        stmt = self._filtered(
            select(
                PurchaseModel.vendor_id,
                PurchaseModel.vendor_name,
                func.count(PurchaseModel.id),
                func.coalesce(func.sum(PurchaseModel.subtotal), 0),
                func.coalesce(func.sum(PurchaseModel.tax), 0),
                func.coalesce(func.sum(PurchaseModel.total), 0),
                func.coalesce(func.sum(PurchaseModel.paid), 0),
                func.coalesce(func.sum(PurchaseModel.due), 0),
            ),
            start=start,
            end=end,
        ).group_by(PurchaseModel.vendor_id, PurchaseModel.vendor_name)
        return (await self._guard(session).execute(stmt)).all()


class SaleAccessor(TenantAccessor):
    """Bills, their lines and the vendors each line was taken from."""

    async def get(self, session: AsyncSession, sale_id: str) -> SaleModel | None:
        return await self._guard(session).get(SaleModel, sale_id)

    async def count(self, session: AsyncSession) -> int:
        stmt = select(func.count()).select_from(SaleModel)
        return (await self._guard(session).execute(stmt)).scalar_one()

    async def add(self, session: AsyncSession, sale: SaleModel) -> SaleModel:
        """Insert a bill with its lines and allocations.

        Raises:
            ConflictRetryError: If the bill number was taken concurrently
        """
        session = self._guard(session)
        session.add(sale)
        try:
            await session.flush()
        except IntegrityError as e:
            raise ConflictRetryError(
                f"Bill number {sale.bill_number} already used"
            ) from e
        return sale

    @staticmethod
    def _in_window(
        stmt: Select[Any], start: datetime | None, end: datetime | None
    ) -> Select[Any]:
        if start is not None:
            stmt = stmt.where(SaleModel.sale_date >= start)
        if end is not None:
            stmt = stmt.where(SaleModel.sale_date <= end)
        return stmt

    async def list(
        self,
        session: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
        kind: str | None = None,
    ) -> Sequence[SaleModel]:
        stmt = self._in_window(select(SaleModel), start, end)
        if kind:
            stmt = stmt.where(SaleModel.kind == kind)
        stmt = stmt.order_by(SaleModel.sale_date.desc(), SaleModel.id.desc())
        return (await self._guard(session).execute(stmt)).scalars().all()

    async def totals_by_category(
        self,
        session: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Sequence[Any]:
        """Aggregate bill lines per product category.

        Returns rows of ``(category, quantity, volume_ml, amount,
        product_count, bill_count)``; ``category`` may be None.
        """
        stmt = self._in_window(
            select(
                SaleItemModel.category,
                func.coalesce(func.sum(SaleItemModel.quantity), 0),
                func.coalesce(
                    func.sum(
                        SaleItemModel.quantity
                        * func.coalesce(SaleItemModel.volume_ml, 0)
                    ),
                    0,
                ),
                func.coalesce(func.sum(SaleItemModel.line_total), 0),
                func.count(distinct(SaleItemModel.product_id)),
                func.count(distinct(SaleModel.id)),
            ).join(SaleModel, SaleModel.id == SaleItemModel.sale_id),
            start,
            end,
        ).group_by(SaleItemModel.category)
        return (await self._guard(session).execute(stmt)).all()

    async def vendor_allocations(
        self,
        session: AsyncSession,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Sequence[Any]:
        """Every vendor allocation of the bills in the window.

        Returns rows of ``(vendor_id, vendor_name, sale_id, product_id,
        product_name, category, volume_ml, allocated, line_quantity,
        line_total)``.
        """
        stmt = self._in_window(
            select(
                SaleAllocationModel.vendor_id,
                VendorModel.name,
                SaleModel.id,
                SaleItemModel.product_id,
                SaleItemModel.product_name,
                SaleItemModel.category,
                SaleItemModel.volume_ml,
                SaleAllocationModel.quantity,
                SaleItemModel.quantity,
                SaleItemModel.line_total,
            )
            .join(SaleItemModel, SaleItemModel.id == SaleAllocationModel.sale_item_id)
            .join(SaleModel, SaleModel.id == SaleItemModel.sale_id)
            .join(VendorModel, VendorModel.id == SaleAllocationModel.vendor_id),
            start,
            end,
        ).order_by(SaleAllocationModel.id)
        return (await self._guard(session).execute(stmt)).all()


class InventoryLedgerAccessor(TenantAccessor):
    """Stock movements recorded outside purchases."""

    async def record(
        self,
        session: AsyncSession,
        product_id: str,
        kind: str,
        quantity: int,
        previous_stock: int,
        new_stock: int,
        reason: str | None = None,
        reference: str | None = None,
        occurred_at: datetime | None = None,
    ) -> None:
        session = self._guard(session)
        session.add(
            InventoryTransactionModel(
                product_id=product_id,
                kind=kind,
                quantity=quantity,
                previous_stock=previous_stock,
                new_stock=new_stock,
                reason=reason,
                reference=reference,
                occurred_at=occurred_at or utc_now(),
            )
        )
        await session.flush()

    async def for_product(
        self, session: AsyncSession, product_id: str
    ) -> Sequence[InventoryTransactionModel]:
        """Ledger entries of one product, oldest first."""
        stmt = (
            select(InventoryTransactionModel)
            .where(InventoryTransactionModel.product_id == product_id)
            .order_by(
                InventoryTransactionModel.occurred_at, InventoryTransactionModel.id
            )
        )
        return (await self._guard(session).execute(stmt)).scalars().all()


def build_model_registry(
    probe: ConnectionProbe | None = None,
) -> ModelRegistry[EntityKind]:
    """Create the registry with every inventory entity registered."""
    registry: ModelRegistry[EntityKind] = ModelRegistry(EntityKind, probe=probe)
    registry.register(EntityKind.PRODUCT, ProductAccessor)
    registry.register(EntityKind.VENDOR, VendorAccessor)
    registry.register(EntityKind.VENDOR_STOCK, VendorStockAccessor)
    registry.register(EntityKind.PURCHASE, PurchaseAccessor)
    registry.register(EntityKind.SALE, SaleAccessor)
    registry.register(EntityKind.INVENTORY_TRANSACTION, InventoryLedgerAccessor)
    return registry


class InventoryModels:
    """Typed view over the registry for one tenant handle."""

    def __init__(self, registry: ModelRegistry[EntityKind], handle: ConnectionHandle):
        self._registry = registry
        self._handle = handle

    @property
    def tenant_id(self) -> str:
        return self._handle.tenant_id

    @property
    def products(self) -> ProductAccessor:
        return self._registry.get_model(self._handle, EntityKind.PRODUCT)

    @property
    def vendors(self) -> VendorAccessor:
        return self._registry.get_model(self._handle, EntityKind.VENDOR)

    @property
    def vendor_stocks(self) -> VendorStockAccessor:
        return self._registry.get_model(self._handle, EntityKind.VENDOR_STOCK)

    @property
    def purchases(self) -> PurchaseAccessor:
        return self._registry.get_model(self._handle, EntityKind.PURCHASE)

    @property
    def sales(self) -> SaleAccessor:
        return self._registry.get_model(self._handle, EntityKind.SALE)

    @property
    def ledger(self) -> InventoryLedgerAccessor:
        return self._registry.get_model(self._handle, EntityKind.INVENTORY_TRANSACTION)
