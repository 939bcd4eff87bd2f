"""
MongoDB Store Adapter

Implements the document store interface on top of Motor. Containers map to
collections; each document keeps its entity id as _id and its partition key
value under _pk so point operations are always scoped to one partition.
Atomic batches run inside a multi-document transaction, which requires a
replica set or sharded cluster.

Usage:
    client = AsyncIOMotorClient(config.mongo_uri)
    store = MongoStoreClient(client[config.db_name])
    uow = UnitOfWork(store, registry)
"""

import logging
import uuid
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..constants import (ETAG_FIELD, ID_FIELD, MONGO_ID_FIELD, MONGO_PARTITION_KEY_FIELD,
                         STATUS_BAD_REQUEST, STATUS_CREATED, STATUS_FAILED_DEPENDENCY,
                         STATUS_NO_CONTENT, STATUS_OK)
from ..exceptions import ItemConflictError, ItemNotFoundError, StoreError
from .base import BatchOperationResult, BatchResponse, Document

logger = logging.getLogger(__name__)


def _to_mongo(item: Document, partition_key: str) -> Document:
    """Convert a store item to the MongoDB document layout."""
    doc = {k: v for k, v in item.items() if k != ID_FIELD}
    doc[MONGO_ID_FIELD] = item.get(ID_FIELD)
    doc[MONGO_PARTITION_KEY_FIELD] = partition_key
    doc[ETAG_FIELD] = uuid.uuid4().hex
    return doc


def _from_mongo(doc: Document) -> Document:
    """Convert a MongoDB document back to a store item."""
    item = {k: v for k, v in doc.items() if k not in (MONGO_ID_FIELD, MONGO_PARTITION_KEY_FIELD)}
    item[ID_FIELD] = str(doc[MONGO_ID_FIELD])
    return item


def _to_mongo_filter(predicate: Document | None) -> Document:
    if not predicate:
        return {}
    mongo_filter = dict(predicate)
    if ID_FIELD in mongo_filter:
        mongo_filter[MONGO_ID_FIELD] = mongo_filter.pop(ID_FIELD)
    return mongo_filter


class MongoPageIterator:
    """Reads a Motor cursor one page at a time."""

    def __init__(self, cursor: Any, page_size: int):
        self._cursor = cursor
        self._page_size = page_size
        self._exhausted = False

    @property
    def has_more_results(self) -> bool:
        return not self._exhausted

    async def read_next(self) -> list[Document]:
        docs = await self._cursor.to_list(length=self._page_size)
        if len(docs) < self._page_size:
            self._exhausted = True
        return [_from_mongo(doc) for doc in docs]


class MongoAtomicBatch:
    """Atomic batch executed as one MongoDB transaction."""

    def __init__(self, container: "MongoContainer", partition_key: str):
        self._container = container
        self._partition_key = partition_key
        self._operations: list[tuple[str, str | None, Document | None]] = []

    def create_item(self, item: Document) -> "MongoAtomicBatch":
        self._operations.append(("create", None, item))
        return self

    def replace_item(self, item_id: str, item: Document) -> "MongoAtomicBatch":
        self._operations.append(("replace", item_id, item))
        return self

    def upsert_item(self, item: Document) -> "MongoAtomicBatch":
        self._operations.append(("upsert", None, item))
        return self

    def delete_item(self, item_id: str) -> "MongoAtomicBatch":
        self._operations.append(("delete", item_id, None))
        return self

    def __len__(self) -> int:
        return len(self._operations)

    async def execute(self) -> BatchResponse:
        results: list[BatchOperationResult] = []
        index = 0

        try:
            async with await self._container.client.start_session() as session:
                async with session.start_transaction():
                    for index, (kind, item_id, item) in enumerate(self._operations):
                        status, resource = await self._container._write(
                            kind, item_id, item, self._partition_key, session=session
                        )
                        results.append(BatchOperationResult(status, resource))
        except StoreError as e:
            return self._failure(index, e.status_code, e.message)
        except PyMongoError as e:
            logger.warning(
                f"Transaction on '{self._container.name}' "
                f"(partition '{self._partition_key}') aborted: {e}"
            )
            return self._failure(index, STATUS_BAD_REQUEST, str(e))

        return BatchResponse(is_success=True, status_code=STATUS_OK, results=results)

    def _failure(self, index: int, status_code: int, message: str) -> BatchResponse:
        results = [BatchOperationResult(STATUS_FAILED_DEPENDENCY) for _ in self._operations]
        if results:
            results[index] = BatchOperationResult(status_code)
        return BatchResponse(
            is_success=False,
            status_code=status_code,
            error_message=message,
            results=results,
        )


class MongoContainer:
    """Store container backed by one MongoDB collection."""

    def __init__(self, client: Any, collection: AsyncIOMotorCollection):
        self.client = client
        self._collection = collection
        self.name = collection.name

    async def _write(
        self,
        kind: str,
        item_id: str | None,
        item: Document | None,
        partition_key: str,
        session: Any = None,
    ) -> tuple[int, Document | None]:
        """Apply one write, optionally inside a session transaction."""
        if kind == "delete":
            result = await self._collection.delete_one(
                {MONGO_ID_FIELD: item_id, MONGO_PARTITION_KEY_FIELD: partition_key},
                session=session,
            )
            if result.deleted_count == 0:
                raise ItemNotFoundError(f"Document '{item_id}' not found in '{self.name}'")
            return STATUS_NO_CONTENT, None

        if not item or not item.get(ID_FIELD):
            raise StoreError("Document has no id", status_code=STATUS_BAD_REQUEST)
        doc = _to_mongo(item, partition_key)

        if kind == "create":
            try:
                await self._collection.insert_one(doc, session=session)
            except DuplicateKeyError as e:
                raise ItemConflictError(
                    f"Document '{doc[MONGO_ID_FIELD]}' already exists in '{self.name}'"
                ) from e
            return STATUS_CREATED, _from_mongo(doc)

        if kind == "replace":
            doc[MONGO_ID_FIELD] = item_id
            result = await self._collection.replace_one(
                {MONGO_ID_FIELD: item_id, MONGO_PARTITION_KEY_FIELD: partition_key},
                doc,
                session=session,
            )
            if result.matched_count == 0:
                raise ItemNotFoundError(f"Document '{item_id}' not found in '{self.name}'")
            return STATUS_OK, _from_mongo(doc)

        try:
            result = await self._collection.replace_one(
                {MONGO_ID_FIELD: doc[MONGO_ID_FIELD], MONGO_PARTITION_KEY_FIELD: partition_key},
                doc,
                upsert=True,
                session=session,
            )
        except DuplicateKeyError as e:
            # Same id already stored under another partition key
            raise ItemConflictError(
                f"Document '{doc[MONGO_ID_FIELD]}' already exists in '{self.name}'"
            ) from e
        status = STATUS_CREATED if result.upserted_id is not None else STATUS_OK
        return status, _from_mongo(doc)

    async def create_item(self, item: Document, partition_key: str) -> Document:
        _, doc = await self._write("create", None, item, partition_key)
        return doc

    async def read_item(self, item_id: str, partition_key: str) -> Document:
        doc = await self._collection.find_one(
            {MONGO_ID_FIELD: item_id, MONGO_PARTITION_KEY_FIELD: partition_key}
        )
        if doc is None:
            raise ItemNotFoundError(f"Document '{item_id}' not found in '{self.name}'")
        return _from_mongo(doc)

    async def replace_item(self, item_id: str, item: Document, partition_key: str) -> Document:
        _, doc = await self._write("replace", item_id, item, partition_key)
        return doc

    async def upsert_item(self, item: Document, partition_key: str) -> Document:
        _, doc = await self._write("upsert", None, item, partition_key)
        return doc

    async def delete_item(self, item_id: str, partition_key: str) -> None:
        await self._write("delete", item_id, None, partition_key)

    def query_items(self, predicate: Document | None, page_size: int) -> MongoPageIterator:
        cursor = self._collection.find(_to_mongo_filter(predicate), batch_size=page_size)
        return MongoPageIterator(cursor, page_size)

    def create_atomic_batch(self, partition_key: str) -> MongoAtomicBatch:
        return MongoAtomicBatch(self, partition_key)


class MongoStoreClient:
    """
    Store client over a Motor database.

    The database (and its client) are borrowed; closing them is left to the
    caller that created them.
    """

    def __init__(self, database: AsyncIOMotorDatabase):
        self._db = database
        self._containers: dict[str, MongoContainer] = {}

    def get_container(self, name: str) -> MongoContainer:
        if name not in self._containers:
            self._containers[name] = MongoContainer(self._db.client, self._db[name])
        return self._containers[name]
