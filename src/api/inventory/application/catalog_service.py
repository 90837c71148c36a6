"""Catalog application service: products, vendors and vendor stock lookups."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inventory.application.observability import (
    CatalogServiceProbe,
    DefaultCatalogServiceProbe,
)
from inventory.domain.exceptions import (
    DuplicateProductError,
    InvalidPriceError,
    InvalidQuantityError,
    ProductNotFoundError,
    VendorNotFoundError,
)
from inventory.domain.value_objects import ProductId, VendorId
from inventory.infrastructure.accessors import EntityKind, InventoryModels
from inventory.infrastructure.models import ProductModel, VendorModel

if TYPE_CHECKING:
    from infrastructure.database.model_registry import ModelRegistry
    from infrastructure.database.tenant_connections import ConnectionManager
    from infrastructure.database.transactions import (
        TransactionalWorkflow,
        TransactionHandle,
    )

PRODUCT_FIELDS = frozenset(
    {
        "name",
        "brand",
        "category",
        "volume_ml",
        "sku",
        "barcode",
        "price_per_unit",
        "current_stock",
        "reorder_level",
        "is_active",
    }
)

VENDOR_FIELDS = frozenset(
    {
        "name",
        "phone",
        "email",
        "address",
        "gstin",
        "payment_terms",
        "notes",
        "priority",
        "is_active",
    }
)


@dataclass(frozen=True)
class VendorStockView:
    """A vendor's holding of one product."""

    vendor_id: str
    vendor_name: str
    product_id: str
    current_stock: int
    last_purchase_price: Decimal | None
    last_purchase_date: datetime | None


def _check_product_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - PRODUCT_FIELDS
    if unknown:
        raise ValueError(f"Unknown product fields: {sorted(unknown)}")
    price = fields.get("price_per_unit")
    if price is not None and price < 0:
        raise InvalidPriceError(f"Price must not be negative, got {price}")
    for name in ("current_stock", "reorder_level"):
        value = fields.get(name)
        if value is not None and value < 0:
            raise InvalidQuantityError(f"{name} must not be negative, got {value}")


def _check_vendor_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - VENDOR_FIELDS
    if unknown:
        raise ValueError(f"Unknown vendor fields: {sorted(unknown)}")


class CatalogService:
    """Application service for product and vendor maintenance."""

    def __init__(
        self,
        manager: ConnectionManager,
        workflow: TransactionalWorkflow,
        registry: ModelRegistry[EntityKind],
        probe: CatalogServiceProbe | None = None,
    ):
        self._manager = manager
        self._workflow = workflow
        self._registry = registry
        self._probe = probe or DefaultCatalogServiceProbe()

    # Products

    async def create_product(
        self, tenant_id: str, name: str, **fields: Any
    ) -> ProductModel:
        """Create a product.

        Raises:
            DuplicateProductError: If the SKU or barcode is already in use
            InvalidPriceError: If the price is negative
        """
        _check_product_fields(fields)

        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def work(txn: TransactionHandle) -> ProductModel:
                product = ProductModel(
                    id=ProductId.generate().value, name=name, **fields
                )
                return await self._workflow.apply(
                    txn, lambda s: _add_product(models, s, product)
                )

            product = await self._workflow.run(handle, work)

        self._probe.product_created(tenant_id, product.id, name=name)
        return product

    async def get_product(self, tenant_id: str, product_id: str) -> ProductModel:
        """Fetch one product.

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                return await _require_product(models, session, product_id)

    async def list_products(
        self,
        tenant_id: str,
        search: str | None = None,
        category: str | None = None,
        active_only: bool = True,
    ) -> list[ProductModel]:
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                products = await models.products.list(
                    session, search=search, category=category, active_only=active_only
                )
                return list(products)

    async def update_product(
        self, tenant_id: str, product_id: str, **fields: Any
    ) -> ProductModel:
        """Apply a partial update to a product.

        Raises:
            ProductNotFoundError: If the product does not exist
            DuplicateProductError: If the new SKU or barcode is taken
        """
        _check_product_fields(fields)

        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def change(session: AsyncSession) -> ProductModel:
                product = await _require_product(models, session, product_id)
                for key, value in fields.items():
                    setattr(product, key, value)
                try:
                    await session.flush()
                except IntegrityError as e:
                    raise DuplicateProductError(
                        "A product with this SKU or barcode already exists"
                    ) from e
                return product

            product = await self._workflow.run(
                handle, lambda txn: self._workflow.apply(txn, change)
            )

        self._probe.product_updated(tenant_id, product_id, fields=sorted(fields))
        return product

    async def deactivate_product(self, tenant_id: str, product_id: str) -> ProductModel:
        """Mark a product inactive. Its history is kept."""
        product = await self.update_product(tenant_id, product_id, is_active=False)
        self._probe.product_deactivated(tenant_id, product_id)
        return product

    async def vendor_stocks_for_product(
        self, tenant_id: str, product_id: str
    ) -> list[VendorStockView]:
        """Vendors currently holding the product, largest quantity first.

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                await _require_product(models, session, product_id)
                rows = await models.vendor_stocks.for_product(session, product_id)

        return [
            VendorStockView(
                vendor_id=stock.vendor_id,
                vendor_name=vendor_name,
                product_id=stock.product_id,
                current_stock=stock.current_stock,
                last_purchase_price=stock.last_purchase_price,
                last_purchase_date=stock.last_purchase_date,
            )
            for stock, vendor_name in rows
        ]

    # Vendors

    async def create_vendor(
        self, tenant_id: str, name: str, **fields: Any
    ) -> VendorModel:
        _check_vendor_fields(fields)

        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def work(txn: TransactionHandle) -> VendorModel:
                vendor = VendorModel(id=VendorId.generate().value, name=name, **fields)
                return await self._workflow.apply(
                    txn, lambda s: models.vendors.add(s, vendor)
                )

            vendor = await self._workflow.run(handle, work)

        self._probe.vendor_created(tenant_id, vendor.id, name=name)
        return vendor

    async def get_vendor(self, tenant_id: str, vendor_id: str) -> VendorModel:
        """Fetch one vendor.

        Raises:
            VendorNotFoundError: If the vendor does not exist
        """
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                return await _require_vendor(models, session, vendor_id)

    async def list_vendors(
        self, tenant_id: str, active_only: bool = True
    ) -> list[VendorModel]:
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                return list(await models.vendors.list(session, active_only=active_only))

    async def update_vendor(
        self, tenant_id: str, vendor_id: str, **fields: Any
    ) -> VendorModel:
        """Apply a partial update to a vendor.

        Raises:
            VendorNotFoundError: If the vendor does not exist
        """
        _check_vendor_fields(fields)

        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)

            async def change(session: AsyncSession) -> VendorModel:
                vendor = await _require_vendor(models, session, vendor_id)
                for key, value in fields.items():
                    setattr(vendor, key, value)
                await session.flush()
                return vendor

            vendor = await self._workflow.run(
                handle, lambda txn: self._workflow.apply(txn, change)
            )

        self._probe.vendor_updated(tenant_id, vendor_id, fields=sorted(fields))
        return vendor

    async def deactivate_vendor(self, tenant_id: str, vendor_id: str) -> VendorModel:
        vendor = await self.update_vendor(tenant_id, vendor_id, is_active=False)
        self._probe.vendor_deactivated(tenant_id, vendor_id)
        return vendor

    async def vendor_has_stock(self, tenant_id: str, vendor_id: str) -> bool:
        """Whether any product still holds stock from the vendor.

        Raises:
            VendorNotFoundError: If the vendor does not exist
        """
        async with self._manager.lease(tenant_id) as handle:
            models = InventoryModels(self._registry, handle)
            async with handle.new_session() as session:
                await _require_vendor(models, session, vendor_id)
                return await models.vendors.has_stock(session, vendor_id)


async def _add_product(
    models: InventoryModels, session: AsyncSession, product: ProductModel
) -> ProductModel:
    try:
        return await models.products.add(session, product)
    except IntegrityError as e:
        raise DuplicateProductError(
            "A product with this SKU or barcode already exists"
        ) from e


async def _require_product(
    models: InventoryModels, session: AsyncSession, product_id: str
) -> ProductModel:
    product = await models.products.get(session, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


async def _require_vendor(
    models: InventoryModels, session: AsyncSession, vendor_id: str
) -> VendorModel:
    vendor = await models.vendors.get(session, vendor_id)
    if vendor is None:
        raise VendorNotFoundError(vendor_id)
    return vendor
