"""
In-memory document store.

Implements the store interface with plain dictionaries, useful for unit
tests and local development without a database. Queries support simple
field-equality predicates.
"""

import copy
import logging
import uuid
from typing import Any, NamedTuple

from ..constants import (ETAG_FIELD, ID_FIELD, STATUS_BAD_REQUEST, STATUS_CREATED,
                         STATUS_FAILED_DEPENDENCY, STATUS_NO_CONTENT, STATUS_OK)
from ..exceptions import ItemConflictError, ItemNotFoundError, StoreError
from .base import BatchOperationResult, BatchResponse, Document

logger = logging.getLogger(__name__)

Partition = dict[str, Document]


class ExecutedBatch(NamedTuple):
    """Record of one atomic batch execution."""

    container_name: str
    partition_key: str
    operation_count: int
    is_success: bool


class InMemoryPageIterator:
    """Pages over a fixed result list."""

    def __init__(self, documents: list[Document], page_size: int):
        self._documents = documents
        self._page_size = page_size
        self._position = 0
        self._started = False

    @property
    def has_more_results(self) -> bool:
        return not self._started or self._position < len(self._documents)

    async def read_next(self) -> list[Document]:
        self._started = True
        page = self._documents[self._position : self._position + self._page_size]
        self._position += len(page)
        return page


class InMemoryAtomicBatch:
    """Atomic batch applied to a staged copy of one partition."""

    def __init__(self, container: "InMemoryContainer", partition_key: str):
        self._container = container
        self._partition_key = partition_key
        self._operations: list[tuple[str, str | None, Document | None]] = []

    def create_item(self, item: Document) -> "InMemoryAtomicBatch":
        self._operations.append(("create", None, item))
        return self

    def replace_item(self, item_id: str, item: Document) -> "InMemoryAtomicBatch":
        self._operations.append(("replace", item_id, item))
        return self

    def upsert_item(self, item: Document) -> "InMemoryAtomicBatch":
        self._operations.append(("upsert", None, item))
        return self

    def delete_item(self, item_id: str) -> "InMemoryAtomicBatch":
        self._operations.append(("delete", item_id, None))
        return self

    def __len__(self) -> int:
        return len(self._operations)

    async def execute(self) -> BatchResponse:
        staged = copy.deepcopy(self._container._partition(self._partition_key))
        results: list[BatchOperationResult] = []

        for index, (kind, item_id, item) in enumerate(self._operations):
            try:
                status, resource = self._container._apply(staged, kind, item_id, item)
            except StoreError as e:
                # Nothing was applied, so every other operation failed too
                results = [
                    BatchOperationResult(STATUS_FAILED_DEPENDENCY) for _ in self._operations
                ]
                results[index] = BatchOperationResult(e.status_code)
                self._container._record(self._partition_key, len(self._operations), False)
                return BatchResponse(
                    is_success=False,
                    status_code=e.status_code,
                    error_message=f"Operation {index} ({kind}) failed: {e.message}",
                    results=results,
                )
            results.append(BatchOperationResult(status, resource))

        self._container._partitions[self._partition_key] = staged
        self._container._record(self._partition_key, len(self._operations), True)
        return BatchResponse(is_success=True, status_code=STATUS_OK, results=results)


class InMemoryContainer:
    """Container holding documents grouped by partition key value."""

    def __init__(self, client: "InMemoryStoreClient", name: str):
        self._client = client
        self.name = name
        self._partitions: dict[str, Partition] = {}

    def _partition(self, partition_key: str) -> Partition:
        return self._partitions.setdefault(partition_key, {})

    def _record(self, partition_key: str, operation_count: int, is_success: bool) -> None:
        self._client.executed_batches.append(
            ExecutedBatch(self.name, partition_key, operation_count, is_success)
        )

    def _apply(
        self,
        partition: Partition,
        kind: str,
        item_id: str | None,
        item: Document | None,
    ) -> tuple[int, Document | None]:
        """Apply one write to a partition dictionary."""
        if kind == "delete":
            if item_id not in partition:
                raise ItemNotFoundError(f"Document '{item_id}' not found in '{self.name}'")
            del partition[item_id]
            return STATUS_NO_CONTENT, None

        doc_id = item.get(ID_FIELD) if item else None
        if not doc_id:
            raise StoreError("Document has no id", status_code=STATUS_BAD_REQUEST)

        if kind == "create":
            if doc_id in partition:
                raise ItemConflictError(f"Document '{doc_id}' already exists in '{self.name}'")
            status = STATUS_CREATED
        elif kind == "replace":
            if item_id not in partition:
                raise ItemNotFoundError(f"Document '{item_id}' not found in '{self.name}'")
            if doc_id != item_id:
                raise StoreError("Replaced document id does not match", STATUS_BAD_REQUEST)
            status = STATUS_OK
        else:
            status = STATUS_OK if doc_id in partition else STATUS_CREATED

        stored = copy.deepcopy(item)
        stored[ETAG_FIELD] = uuid.uuid4().hex
        partition[doc_id] = stored
        return status, copy.deepcopy(stored)

    async def create_item(self, item: Document, partition_key: str) -> Document:
        _, doc = self._apply(self._partition(partition_key), "create", None, item)
        return doc

    async def read_item(self, item_id: str, partition_key: str) -> Document:
        doc = self._partitions.get(partition_key, {}).get(item_id)
        if doc is None:
            raise ItemNotFoundError(f"Document '{item_id}' not found in '{self.name}'")
        return copy.deepcopy(doc)

    async def replace_item(self, item_id: str, item: Document, partition_key: str) -> Document:
        _, doc = self._apply(self._partition(partition_key), "replace", item_id, item)
        return doc

    async def upsert_item(self, item: Document, partition_key: str) -> Document:
        _, doc = self._apply(self._partition(partition_key), "upsert", None, item)
        return doc

    async def delete_item(self, item_id: str, partition_key: str) -> None:
        self._apply(self._partition(partition_key), "delete", item_id, None)

    def query_items(self, predicate: Document | None, page_size: int) -> InMemoryPageIterator:
        matches = [
            copy.deepcopy(doc)
            for partition in self._partitions.values()
            for doc in partition.values()
            if _matches(doc, predicate)
        ]
        return InMemoryPageIterator(matches, page_size)

    def create_atomic_batch(self, partition_key: str) -> InMemoryAtomicBatch:
        return InMemoryAtomicBatch(self, partition_key)

    def count(self) -> int:
        """Number of documents across all partitions."""
        return sum(len(partition) for partition in self._partitions.values())


class InMemoryStoreClient:
    """
    Dictionary-backed store client.

    executed_batches keeps every atomic batch execution in order, which lets
    tests check how a commit was split into batches.
    """

    def __init__(self) -> None:
        self._containers: dict[str, InMemoryContainer] = {}
        self.executed_batches: list[ExecutedBatch] = []

    def get_container(self, name: str) -> InMemoryContainer:
        if name not in self._containers:
            self._containers[name] = InMemoryContainer(self, name)
            logger.debug(f"Created in-memory container '{name}'")
        return self._containers[name]

    def clear(self) -> None:
        """Drop all containers and batch history (useful for test setup)."""
        self._containers.clear()
        self.executed_batches.clear()


def _matches(doc: Document, predicate: dict[str, Any] | None) -> bool:
    """Simple field-equality matching."""
    if not predicate:
        return True
    for key, value in predicate.items():
        if key not in doc or doc[key] != value:
            return False
    return True
