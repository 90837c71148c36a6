"""Purchase application service.

Recording a purchase touches four entities in the tenant database: the
product stock counters, the price history, the vendor stock ledger and the
purchase itself. All of it runs as one unit through the transactional
workflow, so a failure at any line leaves nothing behind.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import utc_now
from inventory.application.observability import (
    DefaultPurchaseServiceProbe,
    PurchaseServiceProbe,
)
from inventory.domain.exceptions import (
    ProductNotFoundError,
    PurchaseNotFoundError,
    ValidationError,
    VendorNotFoundError,
)
from inventory.domain.purchase import (
    LineItem,
    compute_totals,
    purchase_number,
    validate_items,
)
from inventory.domain.value_objects import PurchaseId
from inventory.infrastructure.accessors import EntityKind, InventoryModels
from inventory.infrastructure.models import (
    PurchaseItemModel,
    PurchaseModel,
    VendorModel,
)

if TYPE_CHECKING:
    from infrastructure.database.model_registry import ModelRegistry
    from infrastructure.database.tenant_connections import ConnectionManager
    from infrastructure.database.transactions import (
        TransactionalWorkflow,
        TransactionHandle,
    )
    from inventory.domain.purchase import PurchaseTotals


class PurchaseService:
    """Application service for purchases and the stock they bring in."""

    def __init__(
        self,
        manager: ConnectionManager,
        workflow: TransactionalWorkflow,
        registry: ModelRegistry[EntityKind],
        probe: PurchaseServiceProbe | None = None,
    ):
        """Initialize PurchaseService with dependencies.

        Args:
            manager: Per-tenant connection manager
            workflow: Transactional workflow used for every write
            registry: Model registry resolving tenant-bound accessors
            probe: Optional domain probe for observability
        """
        self._manager = manager
        self._workflow = workflow
        self._registry = registry
        self._probe = probe or DefaultPurchaseServiceProbe()

    async def record_purchase(
        self,
        tenant_id: str,
        vendor_id: str,
        items: Sequence[LineItem],
        tax: Decimal = Decimal("0"),
        paid: Decimal = Decimal("0"),
        notes: str | None = None,
        invoice_number: str | None = None,
        purchase_date: datetime | None = None,
    ) -> PurchaseModel:
        """Record a purchase and receive its stock.

        For every line the product stock is incremented, a price history row
        is appended and the vendor stock for the pair is created or topped
        up. The purchase row is written last with its totals and payment
        status. Either all of it commits or none of it does.

        Args:
            tenant_id: Tenant owning the data
            vendor_id: Vendor the goods came from
            items: Line items (product, quantity, unit purchase price)
            tax: Tax amount added to the subtotal
            paid: Amount paid up front
            notes: Optional free text
            invoice_number: Vendor's invoice reference
            purchase_date: Defaults to now

        Returns:
            The committed purchase with its items

        Raises:
            EmptyPurchaseError: If no items were given
            InvalidQuantityError: If a quantity is not a positive integer
            InvalidPriceError: If a price, tax or paid amount is negative
            VendorNotFoundError: If the vendor does not exist
            ProductNotFoundError: If any product does not exist
            ConflictRetryError: If concurrent writers kept winning
            DatabaseConnectionError: If the tenant database is unreachable
        """
        try:
            validate_items(items)
            totals = compute_totals(items, tax=tax, paid=paid)
        except ValidationError as e:
            self._probe.purchase_rejected(tenant_id, reason=str(e))
            raise

        purchased_at = purchase_date or utc_now()

        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def work(txn: TransactionHandle) -> PurchaseModel:
                vendor = await self._workflow.apply(
                    txn, lambda s: self._require_vendor(models, s, vendor_id)
                )
                lines = [
                    await self._workflow.apply(
                        txn,
                        lambda s, item=item: self._receive_item(
                            models, s, vendor.id, item, purchased_at
                        ),
                    )
                    for item in items
                ]

                async def insert(session: AsyncSession) -> PurchaseModel:
                    count = await models.purchases.count(session)
                    purchase = PurchaseModel(
                        id=PurchaseId.generate().value,
                        purchase_number=purchase_number(count),
                        vendor_id=vendor.id,
                        vendor_name=vendor.name,
                        purchase_date=purchased_at,
                        invoice_number=invoice_number,
                        notes=notes,
                        items=lines,
                    )
                    _apply_totals(purchase, totals)
                    return await models.purchases.add(session, purchase)

                return await self._workflow.apply(txn, insert)

            purchase = await self._workflow.run(handle, work)

        self._probe.purchase_recorded(
            tenant_id,
            purchase_id=purchase.id,
            purchase_number=purchase.purchase_number,
            item_count=len(purchase.items),
            total=purchase.total,
        )
        return purchase

    async def update_purchase(
        self,
        tenant_id: str,
        purchase_id: str,
        items: Sequence[LineItem],
        tax: Decimal = Decimal("0"),
        paid: Decimal = Decimal("0"),
        notes: str | None = None,
        invoice_number: str | None = None,
        vendor_id: str | None = None,
    ) -> PurchaseModel:
        """Replace a purchase's lines and amounts.

        Stock moves by the net difference per product between the old and
        the new lines, so an edit that keeps a quantity leaves its stock
        untouched even when some of it has already left the shelf.

        Raises:
            PurchaseNotFoundError: If the purchase does not exist
            ValidationError: If ``vendor_id`` differs from the purchase's vendor
            InsufficientStockError: If a reduced quantity was already consumed
            (plus everything ``record_purchase`` raises)
        """
        try:
            validate_items(items)
            totals = compute_totals(items, tax=tax, paid=paid)
        except ValidationError as e:
            self._probe.purchase_rejected(tenant_id, reason=str(e))
            raise

        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def work(txn: TransactionHandle) -> PurchaseModel:
                purchase = await self._workflow.apply(
                    txn, lambda s: self._require_purchase(models, s, purchase_id)
                )
                if vendor_id is not None and vendor_id != purchase.vendor_id:
                    raise ValidationError("The vendor of a purchase cannot change")
                lines = [
                    await self._workflow.apply(
                        txn,
                        lambda s, item=item: self._build_line(
                            models, s, item, purchase.purchase_date
                        ),
                    )
                    for item in items
                ]
                await self._workflow.apply(
                    txn, lambda s: self._rebalance_stock(models, s, purchase, items)
                )

                async def rewrite(session: AsyncSession) -> PurchaseModel:
                    purchase.items.clear()
                    await session.flush()
                    purchase.items.extend(lines)
                    purchase.notes = notes
                    purchase.invoice_number = invoice_number
                    _apply_totals(purchase, totals)
                    await session.flush()
                    return purchase

                return await self._workflow.apply(txn, rewrite)

            purchase = await self._workflow.run(handle, work)

        self._probe.purchase_updated(tenant_id, purchase_id, total=purchase.total)
        return purchase

    async def delete_purchase(self, tenant_id: str, purchase_id: str) -> None:
        """Delete a purchase and take its stock back out.

        Raises:
            PurchaseNotFoundError: If the purchase does not exist
            InsufficientStockError: If the stock was already consumed
        """
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def work(txn: TransactionHandle) -> None:
                purchase = await self._workflow.apply(
                    txn, lambda s: self._require_purchase(models, s, purchase_id)
                )
                await self._workflow.apply(
                    txn, lambda s: self._revert_items(models, s, purchase)
                )
                await self._workflow.apply(
                    txn, lambda s: models.purchases.delete(s, purchase)
                )

            await self._workflow.run(handle, work)

        self._probe.purchase_deleted(tenant_id, purchase_id)

    async def get_purchase(self, tenant_id: str, purchase_id: str) -> PurchaseModel:
        """Fetch one purchase with its items.

        Raises:
            PurchaseNotFoundError: If the purchase does not exist
        """
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                return await self._require_purchase(models, session, purchase_id)

    async def list_purchases(
        self,
        tenant_id: str,
        vendor_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        payment_status: str | None = None,
    ) -> list[PurchaseModel]:
        """List purchases newest first, optionally filtered."""
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                purchases = await models.purchases.list(
                    session,
                    vendor_id=vendor_id,
                    start=start,
                    end=end,
                    payment_status=payment_status,
                )
                return list(purchases)

    async def _require_vendor(
        self, models: InventoryModels, session: AsyncSession, vendor_id: str
    ) -> VendorModel:
        vendor = await models.vendors.get(session, vendor_id)
        if vendor is None:
            self._probe.purchase_rejected(
                models.tenant_id, reason=f"unknown vendor {vendor_id}"
            )
            raise VendorNotFoundError(vendor_id)
        return vendor

    async def _require_purchase(
        self, models: InventoryModels, session: AsyncSession, purchase_id: str
    ) -> PurchaseModel:
        purchase = await models.purchases.get(session, purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(purchase_id)
        return purchase

    async def _receive_item(
        self,
        models: InventoryModels,
        session: AsyncSession,
        vendor_id: str,
        item: LineItem,
        purchased_at: datetime,
    ) -> PurchaseItemModel:
        line = await self._build_line(models, session, item, purchased_at)
        await models.products.adjust_stock(session, line.product_id, item.quantity)
        await models.vendor_stocks.receive(
            session,
            vendor_id=vendor_id,
            product_id=line.product_id,
            quantity=item.quantity,
            purchase_price=item.purchase_price,
            purchased_at=purchased_at,
        )
        return line

    async def _build_line(
        self,
        models: InventoryModels,
        session: AsyncSession,
        item: LineItem,
        purchased_at: datetime,
    ) -> PurchaseItemModel:
        """Check the product exists and log its price; stock is not touched."""
        product_id = item.product_id.value
        product = await models.products.get(session, product_id)
        if product is None:
            self._probe.purchase_rejected(
                models.tenant_id, reason=f"unknown product {product_id}"
            )
            raise ProductNotFoundError(product_id)

        await models.products.record_price(
            session,
            product_id,
            purchase_price=item.purchase_price,
            batch_number=item.batch_number,
            effective_from=purchased_at,
        )
        return PurchaseItemModel(
            product_id=product_id,
            product_name=product.name,
            quantity=item.quantity,
            purchase_price=item.purchase_price,
            line_total=item.line_total,
            batch_number=item.batch_number,
        )

    async def _rebalance_stock(
        self,
        models: InventoryModels,
        session: AsyncSession,
        purchase: PurchaseModel,
        items: Sequence[LineItem],
    ) -> None:
        """Move product and vendor stock by new minus old quantity per product."""
        change: Counter[str] = Counter()
        for old in purchase.items:
            change[old.product_id] -= old.quantity
        latest: dict[str, LineItem] = {}
        for item in items:
            change[item.product_id.value] += item.quantity
            latest[item.product_id.value] = item

        for product_id, delta in change.items():
            if delta:
                await models.products.adjust_stock(session, product_id, delta)
            item = latest.get(product_id)
            if delta < 0:
                await models.vendor_stocks.release(
                    session, purchase.vendor_id, product_id, -delta
                )
            elif item is not None:
                # Zero delta still refreshes the last purchase price
                await models.vendor_stocks.receive(
                    session,
                    vendor_id=purchase.vendor_id,
                    product_id=product_id,
                    quantity=delta,
                    purchase_price=item.purchase_price,
                    purchased_at=purchase.purchase_date,
                )

    async def _revert_items(
        self, models: InventoryModels, session: AsyncSession, purchase: PurchaseModel
    ) -> None:
        for line in purchase.items:
            await models.products.adjust_stock(session, line.product_id, -line.quantity)
            await models.vendor_stocks.release(
                session, purchase.vendor_id, line.product_id, line.quantity
            )


def _apply_totals(purchase: PurchaseModel, totals: PurchaseTotals) -> None:
    purchase.subtotal = totals.subtotal
    purchase.tax = totals.tax
    purchase.total = totals.total
    purchase.paid = totals.paid
    purchase.due = totals.due
    purchase.payment_status = totals.payment_status.value
