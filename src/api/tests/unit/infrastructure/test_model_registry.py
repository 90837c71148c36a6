"""Unit tests for the model registry and tenant-bound accessors."""

from __future__ import annotations

from enum import StrEnum
from unittest.mock import MagicMock

import pytest

from infrastructure.database.exceptions import TransactionError, UnknownSchemaError
from infrastructure.database.model_registry import ModelRegistry, TenantAccessor
from infrastructure.observability.probes import ConnectionProbe
from inventory.infrastructure.accessors import (
    EntityKind,
    ProductAccessor,
    build_model_registry,
)
from shared_kernel.tenant_id import TenantId


class Kind(StrEnum):
    WIDGET = "widget"
    GADGET = "gadget"


class WidgetAccessor(TenantAccessor):
    pass


@pytest.fixture
def handle():
    handle = MagicMock()
    handle.tenant_id = TenantId.generate().value
    handle.models = {}
    return handle


class TestRegister:
    def test_reregistering_same_factory_is_noop(self):
        registry = ModelRegistry(Kind)

        registry.register(Kind.WIDGET, WidgetAccessor)
        registry.register("widget", WidgetAccessor)

        assert registry.kind_for("widget") is Kind.WIDGET

    def test_conflicting_factory_is_rejected(self):
        registry = ModelRegistry(Kind)
        registry.register(Kind.WIDGET, WidgetAccessor)

        with pytest.raises(ValueError):
            registry.register(Kind.WIDGET, TenantAccessor)

    def test_unknown_kind_cannot_be_registered(self):
        registry = ModelRegistry(Kind)

        with pytest.raises(UnknownSchemaError):
            registry.register("sprocket", WidgetAccessor)

    def test_is_complete_only_when_every_kind_registered(self):
        registry = ModelRegistry(Kind)
        registry.register(Kind.WIDGET, WidgetAccessor)

        assert registry.is_complete() is False

        registry.register(Kind.GADGET, WidgetAccessor)
        assert registry.is_complete() is True

    def test_inventory_registry_is_complete(self):
        assert build_model_registry().is_complete() is True


class TestGetModel:
    def test_binds_once_per_handle(self, handle):
        probe = MagicMock(spec=ConnectionProbe)
        registry = ModelRegistry(Kind, probe=probe)
        registry.register(Kind.WIDGET, WidgetAccessor)

        first = registry.get_model(handle, "widget")
        second = registry.get_model(handle, Kind.WIDGET)

        assert first is second
        assert first.handle is handle
        assert handle.models == {"widget": first}
        probe.model_bound.assert_called_once_with(handle.tenant_id, "widget")

    def test_unknown_entity_raises(self, handle):
        registry = build_model_registry()

        with pytest.raises(UnknownSchemaError) as exc_info:
            registry.get_model(handle, "customer")

        assert exc_info.value.name == "customer"

    def test_unregistered_member_raises(self, handle):
        registry = ModelRegistry(Kind)
        registry.register(Kind.WIDGET, WidgetAccessor)

        with pytest.raises(UnknownSchemaError):
            registry.get_model(handle, Kind.GADGET)

    @pytest.mark.asyncio
    async def test_each_tenant_gets_its_own_accessor(self, connection_manager):
        registry = build_model_registry()
        first = await connection_manager.acquire(TenantId.generate())
        second = await connection_manager.acquire(TenantId.generate())

        a = registry.get_model(first, EntityKind.PRODUCT)
        b = registry.get_model(second, EntityKind.PRODUCT)

        assert isinstance(a, ProductAccessor)
        assert a is not b
        assert a.tenant_id == first.tenant_id
        assert b.tenant_id == second.tenant_id


class TestTenantAccessorGuard:
    @pytest.mark.asyncio
    async def test_session_from_other_tenant_is_rejected(self, connection_manager):
        registry = build_model_registry()
        first = await connection_manager.acquire(TenantId.generate())
        second = await connection_manager.acquire(TenantId.generate())
        products = registry.get_model(first, EntityKind.PRODUCT)

        async with second.new_session() as session:
            with pytest.raises(TransactionError):
                await products.get(session, "01HZX3K6Q8J4W9N2B7C5D1E0FA")

    @pytest.mark.asyncio
    async def test_session_from_own_tenant_is_accepted(
        self, connection_manager, tenant_id
    ):
        registry = build_model_registry()
        handle = await connection_manager.acquire(tenant_id)
        products = registry.get_model(handle, EntityKind.PRODUCT)

        async with handle.new_session() as session:
            assert await products.get(session, "01HZX3K6Q8J4W9N2B7C5D1E0FA") is None
