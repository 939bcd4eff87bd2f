"""
Unit tests for RepositoryProxy.

Tests that writes go straight to the store while idle and are buffered
while a transaction is active, and that reads always hit the store.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import Order

from mdb_kit.exceptions import PartitionKeyError
from mdb_kit.repositories import OperationKind, Repository, RepositoryProxy


@pytest.fixture
def inner_repository():
    """Create a mock inner repository."""
    inner = MagicMock(spec=Repository)
    inner.get = AsyncMock(return_value=[])
    inner.any = AsyncMock(return_value=False)
    inner.get_by = AsyncMock(return_value=None)
    inner.add = AsyncMock(
        side_effect=lambda e: Order(id="stored", customer_id=e.customer_id, etag="e1")
    )
    inner.update = AsyncMock(side_effect=lambda e: e)
    inner.upsert = AsyncMock(side_effect=lambda e: e)
    inner.delete = AsyncMock(return_value=None)
    return inner


@pytest.fixture
def unit_of_work():
    """Create a mock unit of work."""
    uow = MagicMock()
    uow.is_in_transaction = False
    return uow


@pytest.fixture
def proxy(inner_repository, unit_of_work):
    return RepositoryProxy(inner_repository, unit_of_work)


class TestProxyIdle:
    """Test delegation while no transaction is active."""

    @pytest.mark.asyncio
    async def test_add_delegates(self, proxy, inner_repository, unit_of_work):
        order = Order(customer_id="A")
        result = await proxy.add(order)

        inner_repository.add.assert_awaited_once_with(order)
        unit_of_work.add_operation.assert_not_called()
        assert result.id == "stored"
        assert result.etag == "e1"

    @pytest.mark.asyncio
    async def test_update_delegates(self, proxy, inner_repository, unit_of_work):
        order = Order(id="1", customer_id="A")
        await proxy.update(order)

        inner_repository.update.assert_awaited_once_with(order)
        unit_of_work.add_operation.assert_not_called()

    @pytest.mark.asyncio
    async def test_upsert_delegates(self, proxy, inner_repository):
        order = Order(id="1", customer_id="A")
        await proxy.upsert(order)
        inner_repository.upsert.assert_awaited_once_with(order)

    @pytest.mark.asyncio
    async def test_delete_delegates(self, proxy, inner_repository):
        order = Order(id="1", customer_id="A")
        await proxy.delete(order)
        inner_repository.delete.assert_awaited_once_with(order)


class TestProxyInTransaction:
    """Test buffering while a transaction is active."""

    @pytest.fixture(autouse=True)
    def activate(self, unit_of_work):
        unit_of_work.is_in_transaction = True

    @pytest.mark.asyncio
    async def test_add_buffers_defaulted_entity(self, proxy, inner_repository, unit_of_work):
        order = Order(customer_id="A")
        result = await proxy.add(order)

        inner_repository.add.assert_not_called()
        unit_of_work.add_operation.assert_called_once_with(order, OperationKind.CREATE)
        assert result is order
        assert result.id
        assert result.created_at is not None
        assert result.modified_at is not None
        assert result.etag is None

    @pytest.mark.asyncio
    async def test_update_buffers_replace(self, proxy, inner_repository, unit_of_work):
        order = Order(id="1", customer_id="A")
        result = await proxy.update(order)

        inner_repository.update.assert_not_called()
        unit_of_work.add_operation.assert_called_once_with(order, OperationKind.REPLACE)
        assert result.id == "1"
        assert result.modified_at is not None

    @pytest.mark.asyncio
    async def test_upsert_buffers_upsert(self, proxy, unit_of_work):
        order = Order(customer_id="A")
        await proxy.upsert(order)
        unit_of_work.add_operation.assert_called_once_with(order, OperationKind.UPSERT)

    @pytest.mark.asyncio
    async def test_delete_buffers_without_defaults(self, proxy, inner_repository, unit_of_work):
        order = Order(id="1", customer_id="A")
        result = await proxy.delete(order)

        assert result is None
        inner_repository.delete.assert_not_called()
        unit_of_work.add_operation.assert_called_once_with(order, OperationKind.DELETE)
        assert order.modified_at is None

    @pytest.mark.asyncio
    async def test_enqueue_error_propagates(self, proxy, unit_of_work):
        unit_of_work.add_operation.side_effect = PartitionKeyError("missing")

        with pytest.raises(PartitionKeyError):
            await proxy.add(Order(customer_id=""))

    @pytest.mark.asyncio
    async def test_rejected_write_leaves_entity_untouched(self, proxy, unit_of_work):
        unit_of_work.resolve_group.side_effect = PartitionKeyError("missing")
        order = Order(customer_id="")

        with pytest.raises(PartitionKeyError):
            await proxy.add(order)

        unit_of_work.add_operation.assert_not_called()
        assert order.id == ""
        assert order.created_at is None
        assert order.modified_at is None

    @pytest.mark.asyncio
    async def test_reads_always_delegate(self, proxy, inner_repository):
        predicate = {"status": "pending"}
        order = Order(id="1", customer_id="A")

        await proxy.get(predicate)
        await proxy.any(predicate)
        await proxy.get_by(order)

        inner_repository.get.assert_awaited_once_with(predicate)
        inner_repository.any.assert_awaited_once_with(predicate)
        inner_repository.get_by.assert_awaited_once_with(order)

    def test_stream_delegates(self, proxy, inner_repository):
        sentinel = object()
        inner_repository.stream.return_value = sentinel

        assert proxy.stream({"status": "pending"}) is sentinel
        inner_repository.stream.assert_called_once_with({"status": "pending"})


class TestProxyWithStore:
    """Test the proxy end to end against the in-memory store."""

    @pytest.mark.asyncio
    async def test_idle_write_reaches_store(self, uow, store):
        result = await uow.get_repository(Order).add(Order(customer_id="A"))

        assert result.etag is not None
        assert store.get_container("orders").count() == 1

    @pytest.mark.asyncio
    async def test_missing_partition_key_same_on_both_paths(self, uow):
        orders = uow.get_repository(Order)
        immediate = Order(customer_id="")
        with pytest.raises(PartitionKeyError):
            await orders.add(immediate)

        await uow.begin_transaction()
        deferred = Order(customer_id="")
        with pytest.raises(PartitionKeyError):
            await orders.add(deferred)

        assert immediate.id == deferred.id == ""
        assert deferred.created_at is None
        assert uow.pending_operation_count == 0

    @pytest.mark.asyncio
    async def test_buffered_write_not_visible_to_reads(self, uow, store):
        orders = uow.get_repository(Order)
        await uow.begin_transaction()
        order = await orders.add(Order(customer_id="A"))

        assert order.etag is None
        assert await orders.get_by(order) is None
        assert await orders.any({"customer_id": "A"}) is False
        assert store.get_container("orders").count() == 0
