"""
Document Store Interface

The capability set the repositories and the unit of work consume from a
document store client. Implementations live in mdb_kit.store.mongo and
mdb_kit.store.memory; any client exposing the same methods can be used.

Partition keys are passed as their string value. Items are plain
dictionaries carrying an "id" field.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

Document = dict[str, Any]


@dataclass
class BatchOperationResult:
    """Outcome of one operation inside an atomic batch."""

    status_code: int
    resource: Document | None = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class BatchResponse:
    """
    Outcome of an atomic batch execution.

    Attributes:
        is_success: True only if every operation was applied
        status_code: Overall HTTP-style status
        error_message: Store diagnostic when the batch failed
        results: Per-operation outcomes in append order
    """

    is_success: bool
    status_code: int
    error_message: str | None = None
    results: list[BatchOperationResult] = field(default_factory=list)


@runtime_checkable
class PageIterator(Protocol):
    """Paging iterator returned by a query."""

    @property
    def has_more_results(self) -> bool: ...

    async def read_next(self) -> list[Document]:
        """Fetch the next page of documents."""
        ...


@runtime_checkable
class AtomicBatch(Protocol):
    """
    Atomic batch scoped to one container and partition key.

    Append methods return the batch so calls can be chained. Nothing reaches
    the store until execute() is awaited.
    """

    def create_item(self, item: Document) -> "AtomicBatch": ...

    def replace_item(self, item_id: str, item: Document) -> "AtomicBatch": ...

    def upsert_item(self, item: Document) -> "AtomicBatch": ...

    def delete_item(self, item_id: str) -> "AtomicBatch": ...

    async def execute(self) -> BatchResponse: ...


@runtime_checkable
class StoreContainer(Protocol):
    """One container of the document store."""

    async def create_item(self, item: Document, partition_key: str) -> Document:
        """Create a document. Raises ItemConflictError if the id exists."""
        ...

    async def read_item(self, item_id: str, partition_key: str) -> Document:
        """Read a document. Raises ItemNotFoundError if it does not exist."""
        ...

    async def replace_item(self, item_id: str, item: Document, partition_key: str) -> Document:
        """Replace a document. Raises ItemNotFoundError if it does not exist."""
        ...

    async def upsert_item(self, item: Document, partition_key: str) -> Document: ...

    async def delete_item(self, item_id: str, partition_key: str) -> None:
        """Delete a document. Raises ItemNotFoundError if it does not exist."""
        ...

    def query_items(self, predicate: Document | None, page_size: int) -> PageIterator: ...

    def create_atomic_batch(self, partition_key: str) -> AtomicBatch: ...


@runtime_checkable
class DocumentStoreClient(Protocol):
    """Long-lived, externally managed store client."""

    def get_container(self, name: str) -> StoreContainer: ...
