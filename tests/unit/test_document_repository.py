"""
Unit tests for DocumentRepository.

Tests queries, paging, point reads and writes against the in-memory store.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import Customer, Order, Unregistered

from mdb_kit.exceptions import ConfigurationError, ItemConflictError, PartitionKeyError
from mdb_kit.repositories import DocumentRepository


@pytest.fixture
def orders(store, registry) -> DocumentRepository:
    return DocumentRepository(store, registry, Order, query_page_size=2)


async def _seed(orders: DocumentRepository, count: int, customer_id: str = "A") -> list[Order]:
    return [await orders.add(Order(customer_id=customer_id, total=i)) for i in range(count)]


class TestConstruction:
    def test_resolves_container_once(self, registry):
        client = MagicMock()
        repo = DocumentRepository(client, registry, Customer)

        client.get_container.assert_called_once_with("customers")
        assert repo.container_name == "customers"
        assert repo.entity_type is Customer

    def test_unregistered_type_fails(self, store, registry):
        with pytest.raises(ConfigurationError):
            DocumentRepository(store, registry, Unregistered)


class TestQueries:
    """Test get / stream / any."""

    @pytest.mark.asyncio
    async def test_get_drains_all_pages(self, orders):
        await _seed(orders, 5)

        results = await orders.get({"customer_id": "A"})

        assert len(results) == 5
        assert all(isinstance(o, Order) for o in results)

    @pytest.mark.asyncio
    async def test_get_without_predicate(self, orders):
        await _seed(orders, 2, "A")
        await _seed(orders, 1, "B")

        assert len(await orders.get()) == 3

    @pytest.mark.asyncio
    async def test_get_no_matches(self, orders):
        assert await orders.get({"customer_id": "nobody"}) == []

    @pytest.mark.asyncio
    async def test_stream_yields_lazily(self, orders):
        iterator = MagicMock()
        pages = [
            [{"id": "1", "customer_id": "A"}, {"id": "2", "customer_id": "A"}],
            [{"id": "3", "customer_id": "A"}],
        ]
        iterator.has_more_results = True

        async def read_next():
            page = pages.pop(0)
            iterator.has_more_results = bool(pages)
            return page

        iterator.read_next = AsyncMock(side_effect=read_next)
        orders._container = MagicMock()
        orders._container.query_items.return_value = iterator

        stream = orders.stream({"customer_id": "A"})
        orders._container.query_items.assert_not_called()

        first = await stream.__anext__()
        assert first.id == "1"
        assert iterator.read_next.await_count == 1

        rest = [o.id async for o in stream]
        assert rest == ["2", "3"]
        assert iterator.read_next.await_count == 2

    @pytest.mark.asyncio
    async def test_stream_against_store(self, orders):
        await _seed(orders, 3)
        ids = [o.id async for o in orders.stream({"customer_id": "A"})]
        assert len(ids) == 3

    @pytest.mark.asyncio
    async def test_any_short_circuits(self, orders):
        iterator = MagicMock()
        iterator.has_more_results = True
        iterator.read_next = AsyncMock(return_value=[{"id": "1", "customer_id": "A"}])
        orders._container = MagicMock()
        orders._container.query_items.return_value = iterator

        assert await orders.any({"customer_id": "A"}) is True
        iterator.read_next.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_any_skips_empty_pages(self, orders):
        iterator = MagicMock()
        pages = [[], [], [{"id": "1", "customer_id": "A"}]]
        iterator.has_more_results = True
        iterator.read_next = AsyncMock(side_effect=lambda: pages.pop(0))
        orders._container = MagicMock()
        orders._container.query_items.return_value = iterator

        assert await orders.any() is True
        assert iterator.read_next.await_count == 3

    @pytest.mark.asyncio
    async def test_any_false_when_empty(self, orders):
        assert await orders.any({"customer_id": "A"}) is False


class TestPointOperations:
    """Test get_by / add / update / upsert / delete."""

    @pytest.mark.asyncio
    async def test_add_returns_stored_entity(self, orders):
        order = Order(customer_id="A", total=9.5)
        stored = await orders.add(order)

        assert stored.id == order.id
        assert stored.etag is not None
        assert stored.total == 9.5
        assert stored.created_at is not None

    @pytest.mark.asyncio
    async def test_add_existing_id_conflicts(self, orders):
        stored = await orders.add(Order(customer_id="A"))

        with pytest.raises(ItemConflictError):
            await orders.add(Order(id=stored.id, customer_id="A"))

    @pytest.mark.asyncio
    async def test_get_by_found(self, orders):
        stored = await orders.add(Order(customer_id="A", total=3.0))

        found = await orders.get_by(Order(id=stored.id, customer_id="A"))
        assert found == stored

    @pytest.mark.asyncio
    async def test_get_by_missing_returns_none(self, orders):
        assert await orders.get_by(Order(id="does-not-exist", customer_id="A")) is None

    @pytest.mark.asyncio
    async def test_get_by_wrong_partition_returns_none(self, orders):
        stored = await orders.add(Order(customer_id="A"))
        assert await orders.get_by(Order(id=stored.id, customer_id="B")) is None

    @pytest.mark.asyncio
    async def test_update_replaces(self, orders):
        stored = await orders.add(Order(customer_id="A", total=1.0))
        stored.total = 2.0

        updated = await orders.update(stored)

        assert updated.total == 2.0
        assert updated.etag != stored.etag
        assert updated.created_at == stored.created_at

    @pytest.mark.asyncio
    async def test_upsert_creates_then_replaces(self, orders):
        created = await orders.upsert(Order(customer_id="A", total=1.0))
        created.total = 5.0
        replaced = await orders.upsert(created)

        assert replaced.id == created.id
        assert len(await orders.get()) == 1
        assert (await orders.get())[0].total == 5.0

    @pytest.mark.asyncio
    async def test_delete(self, orders):
        stored = await orders.add(Order(customer_id="A"))
        await orders.delete(stored)
        assert await orders.get_by(stored) is None


class TestPartitionKeyValidation:
    """Test that missing partition keys fail before any store call."""

    @pytest.fixture
    def container(self):
        container = MagicMock()
        for name in ("read_item", "create_item", "replace_item", "upsert_item", "delete_item"):
            setattr(container, name, AsyncMock())
        return container

    @pytest.fixture
    def repo(self, registry, container):
        client = MagicMock()
        client.get_container.return_value = container
        return DocumentRepository(client, registry, Order)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["add", "update", "upsert", "delete", "get_by"])
    async def test_empty_partition_key(self, repo, container, method):
        with pytest.raises(PartitionKeyError):
            await getattr(repo, method)(Order(id="1", customer_id=""))

        for name in ("read_item", "create_item", "replace_item", "upsert_item", "delete_item"):
            getattr(container, name).assert_not_called()

    @pytest.mark.asyncio
    async def test_none_partition_key(self, repo, container):
        with pytest.raises(PartitionKeyError):
            await repo.add(Order(customer_id=None))
        container.create_item.assert_not_called()
