"""
Unit tests for the MongoDB store adapter.

Motor collections and sessions are mocked; no database is needed.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import DuplicateKeyError, OperationFailure

from mdb_kit.exceptions import ItemConflictError, ItemNotFoundError
from mdb_kit.store import MongoStoreClient
from mdb_kit.store.mongo import MongoContainer


def _async_context(mock: MagicMock) -> MagicMock:
    mock.__aenter__.return_value = mock
    mock.__aexit__.return_value = False
    return mock


@pytest.fixture
def session():
    session = _async_context(MagicMock())
    session.start_transaction.return_value = _async_context(MagicMock())
    return session


@pytest.fixture
def motor_client(session):
    client = MagicMock()
    client.start_session = AsyncMock(return_value=session)
    return client


@pytest.fixture
def collection():
    """Create a mock Motor collection."""
    collection = MagicMock()
    collection.name = "orders"
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="1"))
    collection.find_one = AsyncMock(return_value=None)
    collection.replace_one = AsyncMock(return_value=MagicMock(matched_count=1, upserted_id=None))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    return collection


@pytest.fixture
def container(motor_client, collection) -> MongoContainer:
    return MongoContainer(motor_client, collection)


class TestMongoStoreClient:
    def test_get_container_uses_collection(self, motor_client, collection):
        database = MagicMock()
        database.client = motor_client
        database.__getitem__.return_value = collection

        store = MongoStoreClient(database)
        container = store.get_container("orders")

        database.__getitem__.assert_called_once_with("orders")
        assert container.name == "orders"
        assert store.get_container("orders") is container


class TestMongoContainerWrites:
    @pytest.mark.asyncio
    async def test_create_maps_fields(self, container, collection):
        item = await container.create_item({"id": "1", "customer_id": "A"}, "A")

        doc = collection.insert_one.call_args.args[0]
        assert doc["_id"] == "1"
        assert doc["_pk"] == "A"
        assert doc["_etag"]
        assert "id" not in doc
        assert item["id"] == "1"
        assert item["_etag"] == doc["_etag"]
        assert "_pk" not in item

    @pytest.mark.asyncio
    async def test_create_duplicate(self, container, collection):
        collection.insert_one.side_effect = DuplicateKeyError("dup")
        with pytest.raises(ItemConflictError):
            await container.create_item({"id": "1"}, "A")

    @pytest.mark.asyncio
    async def test_replace_scoped_to_partition(self, container, collection):
        await container.replace_item("1", {"id": "1", "total": 2}, "A")

        query, doc = collection.replace_one.call_args.args
        assert query == {"_id": "1", "_pk": "A"}
        assert doc["total"] == 2

    @pytest.mark.asyncio
    async def test_replace_missing(self, container, collection):
        collection.replace_one.return_value = MagicMock(matched_count=0)
        with pytest.raises(ItemNotFoundError):
            await container.replace_item("1", {"id": "1"}, "A")

    @pytest.mark.asyncio
    async def test_upsert(self, container, collection):
        await container.upsert_item({"id": "1"}, "A")
        assert collection.replace_one.call_args.kwargs["upsert"] is True

    @pytest.mark.asyncio
    async def test_delete_missing(self, container, collection):
        collection.delete_one.return_value = MagicMock(deleted_count=0)
        with pytest.raises(ItemNotFoundError):
            await container.delete_item("1", "A")


class TestMongoContainerReads:
    @pytest.mark.asyncio
    async def test_read_item(self, container, collection):
        collection.find_one.return_value = {"_id": "1", "_pk": "A", "customer_id": "A"}

        item = await container.read_item("1", "A")

        collection.find_one.assert_awaited_once_with({"_id": "1", "_pk": "A"})
        assert item == {"id": "1", "customer_id": "A"}

    @pytest.mark.asyncio
    async def test_read_missing(self, container):
        with pytest.raises(ItemNotFoundError):
            await container.read_item("1", "A")

    @pytest.mark.asyncio
    async def test_query_pages(self, container, collection):
        cursor = MagicMock()
        cursor.to_list = AsyncMock(
            side_effect=[
                [{"_id": "1", "_pk": "A"}, {"_id": "2", "_pk": "A"}],
                [{"_id": "3", "_pk": "A"}],
            ]
        )
        collection.find.return_value = cursor

        iterator = container.query_items({"id": "1", "status": "open"}, page_size=2)
        collection.find.assert_called_once_with({"_id": "1", "status": "open"}, batch_size=2)

        first = await iterator.read_next()
        assert iterator.has_more_results is True
        second = await iterator.read_next()
        assert iterator.has_more_results is False
        assert [d["id"] for d in first + second] == ["1", "2", "3"]


class TestMongoAtomicBatch:
    @pytest.mark.asyncio
    async def test_runs_in_session_transaction(self, container, collection, session):
        batch = container.create_atomic_batch("A")
        batch.create_item({"id": "1"}).upsert_item({"id": "2"}).delete_item("3")

        response = await batch.execute()

        assert response.is_success is True
        assert [r.status_code for r in response.results] == [201, 200, 204]
        session.start_transaction.assert_called_once()
        assert collection.insert_one.call_args.kwargs["session"] is session
        assert collection.delete_one.call_args.kwargs["session"] is session

    @pytest.mark.asyncio
    async def test_missing_document_fails_batch(self, container, collection):
        collection.replace_one.return_value = MagicMock(matched_count=0)
        batch = container.create_atomic_batch("A")
        batch.create_item({"id": "1"}).replace_item("2", {"id": "2"})

        response = await batch.execute()

        assert response.is_success is False
        assert response.status_code == 404
        assert [r.status_code for r in response.results] == [424, 404]

    @pytest.mark.asyncio
    async def test_driver_error_fails_batch(self, container, collection):
        collection.insert_one.side_effect = OperationFailure("Transaction numbers are only allowed")
        batch = container.create_atomic_batch("A")
        batch.create_item({"id": "1"})

        response = await batch.execute()

        assert response.is_success is False
        assert response.status_code == 400
        assert "Transaction numbers" in response.error_message
