"""Sale application service.

A sale is the mirror image of a purchase: every line takes units out of the
product stock and out of the vendor stocks they were bought from, highest
priority vendor first. The closing count replaces the book stock with what
is physically on the shelf, writes the difference to the stock ledger and
bills any shortage. Each runs as one unit through the transactional
workflow.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import utc_now
from inventory.application.observability import (
    DefaultSaleServiceProbe,
    SaleServiceProbe,
)
from inventory.domain.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    SaleNotFoundError,
    ValidationError,
)
from inventory.domain.purchase import to_money
from inventory.domain.sale import (
    SaleLine,
    StockCount,
    allocate_by_priority,
    bill_number,
    compute_sale_totals,
    discrepancy_reason,
    validate_sale_lines,
)
from inventory.domain.value_objects import (
    ProductId,
    SaleId,
    SaleKind,
    StockMovement,
)
from inventory.infrastructure.accessors import EntityKind, InventoryModels
from inventory.infrastructure.models import (
    InventoryTransactionModel,
    ProductModel,
    SaleAllocationModel,
    SaleItemModel,
    SaleModel,
)

if TYPE_CHECKING:
    from infrastructure.database.model_registry import ModelRegistry
    from infrastructure.database.tenant_connections import ConnectionManager
    from infrastructure.database.transactions import (
        TransactionalWorkflow,
        TransactionHandle,
    )
    from inventory.domain.sale import SaleTotals

BILL_PREFIX = "BILL"
DISCREPANCY_PREFIX = "DISC"


@dataclass(frozen=True)
class StockAdjustment:
    """Book stock replaced by a closing count."""

    product_id: str
    product_name: str
    previous_stock: int
    counted: int

    @property
    def discrepancy(self) -> int:
        return self.counted - self.previous_stock


@dataclass(frozen=True)
class ClosingStockResult:
    counted_at: datetime
    adjustments: list[StockAdjustment] = field(default_factory=list)
    discrepancy_bill: SaleModel | None = None

    @property
    def discrepancies(self) -> list[StockAdjustment]:
        return [a for a in self.adjustments if a.discrepancy != 0]


class SaleService:
    """Application service for bills and closing stock counts."""

    def __init__(
        self,
        manager: ConnectionManager,
        workflow: TransactionalWorkflow,
        registry: ModelRegistry[EntityKind],
        probe: SaleServiceProbe | None = None,
    ):
        self._manager = manager
        self._workflow = workflow
        self._registry = registry
        self._probe = probe or DefaultSaleServiceProbe()

    async def record_sale(
        self,
        tenant_id: str,
        items: Sequence[SaleLine],
        paid: Decimal | None = None,
        payment_mode: str = "cash",
        customer_name: str | None = None,
        customer_phone: str | None = None,
        notes: str | None = None,
        sale_date: datetime | None = None,
    ) -> SaleModel:
        """Record a bill and take its units out of stock.

        For every line the product must hold enough stock; the units are
        then taken from the vendor stocks in priority order, the product
        stock is decremented and a ledger row is written. The bill is
        inserted last. Either all of it commits or none of it does.

        Args:
            tenant_id: Tenant owning the data
            items: Bill lines (product, quantity, unit price, line discount)
            paid: Amount received; defaults to the bill total
            payment_mode: How the customer paid (cash, card, upi...)
            customer_name: Optional customer name
            customer_phone: Optional customer phone
            notes: Optional free text
            sale_date: Defaults to now

        Returns:
            The committed bill with its lines and vendor allocations

        Raises:
            EmptySaleError: If no items were given
            InvalidQuantityError: If a quantity is not a positive integer
            InvalidPriceError: If a price, discount or paid amount is invalid
            ProductNotFoundError: If any product does not exist
            InsufficientStockError: If a product or its vendors hold too little
            ConflictRetryError: If concurrent writers kept winning
            DatabaseConnectionError: If the tenant database is unreachable
        """
        try:
            validate_sale_lines(items)
            totals = compute_sale_totals(items, paid=paid)
        except ValidationError as e:
            self._probe.sale_rejected(tenant_id, reason=str(e))
            raise

        sold_at = sale_date or utc_now()

        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def work(txn: TransactionHandle) -> SaleModel:
                number = await self._workflow.apply(
                    txn, lambda s: self._next_bill_number(models, s, sold_at)
                )
                lines = [
                    await self._workflow.apply(
                        txn,
                        lambda s, item=item: self._sell_item(
                            models, s, item, number, sold_at
                        ),
                    )
                    for item in items
                ]
                sale = SaleModel(
                    id=SaleId.generate().value,
                    bill_number=number,
                    kind=SaleKind.SALE.value,
                    customer_name=customer_name,
                    customer_phone=customer_phone,
                    sale_date=sold_at,
                    payment_mode=payment_mode,
                    notes=notes,
                    items=lines,
                )
                _apply_totals(sale, totals)
                return await self._workflow.apply(
                    txn, lambda s: models.sales.add(s, sale)
                )

            sale = await self._workflow.run(handle, work)

        self._probe.sale_recorded(
            tenant_id,
            sale_id=sale.id,
            bill_number=sale.bill_number,
            item_count=len(sale.items),
            total=sale.total,
        )
        return sale

    async def closing_stock(
        self,
        tenant_id: str,
        counts: Sequence[StockCount],
        counted_at: datetime | None = None,
    ) -> ClosingStockResult:
        """Replace book stock with a physical count.

        Every product whose count differs from its book stock gets an
        ``adjustment`` ledger row. Shortages are billed on one discrepancy
        bill at the product's selling price; vendor stocks are left alone.

        Raises:
            ValidationError: If no counts were given or a product repeats
            InvalidQuantityError: If a count is negative
            ProductNotFoundError: If any product does not exist
            ConflictRetryError: If the stock kept changing during the count
        """
        try:
            if not counts:
                raise ValidationError("No stock counts provided")
            seen: set[str] = set()
            for count in counts:
                count.validate()
                if count.product_id.value in seen:
                    raise ValidationError(
                        f"Product {count.product_id} is counted more than once"
                    )
                seen.add(count.product_id.value)
        except ValidationError as e:
            self._probe.sale_rejected(tenant_id, reason=str(e))
            raise

        when = counted_at or utc_now()

        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def work(txn: TransactionHandle) -> ClosingStockResult:
                counted = [
                    await self._workflow.apply(
                        txn,
                        lambda s, count=count: self._apply_count(
                            models, s, count, when
                        ),
                    )
                    for count in counts
                ]
                adjustments = [adjustment for adjustment, _ in counted]
                shortages = [
                    (adjustment, product)
                    for adjustment, product in counted
                    if adjustment.discrepancy < 0
                ]
                bill = None
                if shortages:
                    bill = await self._workflow.apply(
                        txn,
                        lambda s: self._bill_shortages(models, s, shortages, when),
                    )
                return ClosingStockResult(
                    counted_at=when, adjustments=adjustments, discrepancy_bill=bill
                )

            result = await self._workflow.run(handle, work)

        bill = result.discrepancy_bill
        self._probe.closing_stock_recorded(
            tenant_id,
            product_count=len(result.adjustments),
            discrepancy_count=len(result.discrepancies),
            bill_number=bill.bill_number if bill is not None else None,
        )
        return result

    async def get_sale(self, tenant_id: str, sale_id: str) -> SaleModel:
        """Fetch one bill with its lines.

        Raises:
            SaleNotFoundError: If the bill does not exist
        """
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                sale = await models.sales.get(session, sale_id)
                if sale is None:
                    raise SaleNotFoundError(sale_id)
                return sale

    async def list_sales(
        self,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        kind: str | None = None,
    ) -> list[SaleModel]:
        """List bills newest first, optionally filtered."""
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                return list(
                    await models.sales.list(session, start=start, end=end, kind=kind)
                )

    async def ledger(
        self, tenant_id: str, product_id: str
    ) -> list[InventoryTransactionModel]:
        """Stock movements of one product, oldest first.

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                if await models.products.get(session, product_id) is None:
                    raise ProductNotFoundError(product_id)
                return list(await models.ledger.for_product(session, product_id))

    async def _next_bill_number(
        self,
        models: InventoryModels,
        session: AsyncSession,
        issued_at: datetime,
        prefix: str = BILL_PREFIX,
    ) -> str:
        count = await models.sales.count(session)
        return bill_number(prefix, count, issued_at)

    async def _require_product(
        self, models: InventoryModels, session: AsyncSession, product_id: str
    ) -> ProductModel:
        product = await models.products.get(session, product_id)
        if product is None:
            self._probe.sale_rejected(
                models.tenant_id, reason=f"unknown product {product_id}"
            )
            raise ProductNotFoundError(product_id)
        return product

    async def _sell_item(
        self,
        models: InventoryModels,
        session: AsyncSession,
        item: SaleLine,
        reference: str,
        sold_at: datetime,
    ) -> SaleItemModel:
        product = await self._require_product(models, session, item.product_id.value)
        available = product.current_stock
        if available < item.quantity:
            reason = (
                f"Insufficient stock for {product.name}. "
                f"Available: {available}, Required: {item.quantity}"
            )
            self._probe.sale_rejected(models.tenant_id, reason=reason)
            raise InsufficientStockError(reason)

        stocks = await models.vendor_stocks.by_priority(session, product.id)
        try:
            allocations = allocate_by_priority(
                [(stock.vendor_id, stock.current_stock) for stock in stocks],
                item.quantity,
            )
        except InsufficientStockError as e:
            self._probe.sale_rejected(
                models.tenant_id, reason=f"{product.name}: {e}"
            )
            raise
        for allocation in allocations:
            await models.vendor_stocks.deduct(
                session, allocation.vendor_id, product.id, allocation.quantity
            )
        await models.products.adjust_stock(session, product.id, -item.quantity)
        await models.ledger.record(
            session,
            product_id=product.id,
            kind=StockMovement.SALE.value,
            quantity=-item.quantity,
            previous_stock=available,
            new_stock=available - item.quantity,
            reference=reference,
            occurred_at=sold_at,
        )
        return SaleItemModel(
            product_id=product.id,
            product_name=product.name,
            category=product.category,
            volume_ml=product.volume_ml,
            quantity=item.quantity,
            unit_price=to_money(item.unit_price),
            discount=to_money(item.discount),
            line_total=item.line_total,
            allocations=[
                SaleAllocationModel(vendor_id=a.vendor_id, quantity=a.quantity)
                for a in allocations
            ],
        )

    async def _apply_count(
        self,
        models: InventoryModels,
        session: AsyncSession,
        count: StockCount,
        counted_at: datetime,
    ) -> tuple[StockAdjustment, ProductModel]:
        product = await self._require_product(models, session, count.product_id.value)
        adjustment = StockAdjustment(
            product_id=product.id,
            product_name=product.name,
            previous_stock=product.current_stock,
            counted=count.counted,
        )
        if adjustment.discrepancy == 0:
            return adjustment, product

        await models.products.set_stock(
            session,
            product.id,
            expected=adjustment.previous_stock,
            counted=adjustment.counted,
        )
        await models.ledger.record(
            session,
            product_id=product.id,
            kind=StockMovement.ADJUSTMENT.value,
            quantity=adjustment.discrepancy,
            previous_stock=adjustment.previous_stock,
            new_stock=adjustment.counted,
            reason=discrepancy_reason(adjustment.discrepancy),
            occurred_at=counted_at,
        )
        return adjustment, product

    async def _bill_shortages(
        self,
        models: InventoryModels,
        session: AsyncSession,
        shortages: Sequence[tuple[StockAdjustment, ProductModel]],
        counted_at: datetime,
    ) -> SaleModel:
        lines = [
            SaleLine(
                product_id=ProductId(value=product.id),
                quantity=-adjustment.discrepancy,
                unit_price=product.price_per_unit,
            )
            for adjustment, product in shortages
        ]
        totals = compute_sale_totals(lines)
        number = await self._next_bill_number(
            models, session, counted_at, prefix=DISCREPANCY_PREFIX
        )
        sale = SaleModel(
            id=SaleId.generate().value,
            bill_number=number,
            kind=SaleKind.DISCREPANCY.value,
            sale_date=counted_at,
            payment_mode="cash",
            notes="Closing stock shortage",
            items=[
                SaleItemModel(
                    product_id=product.id,
                    product_name=product.name,
                    category=product.category,
                    volume_ml=product.volume_ml,
                    quantity=line.quantity,
                    unit_price=to_money(line.unit_price),
                    discount=Decimal("0.00"),
                    line_total=line.line_total,
                )
                for line, (_, product) in zip(lines, shortages, strict=True)
            ],
        )
        _apply_totals(sale, totals)
        return await models.sales.add(session, sale)


def _apply_totals(sale: SaleModel, totals: SaleTotals) -> None:
    sale.subtotal = totals.subtotal
    sale.discount = totals.discount
    sale.total = totals.total
    sale.paid = totals.paid
    sale.due = totals.due
    sale.payment_status = totals.payment_status.value
