"""
Document Repository

Direct CRUD and query executor for one entity type against one store
container. Knows nothing about transactions; RepositoryProxy adds that.
"""

import logging
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

from ..constants import DEFAULT_QUERY_PAGE_SIZE
from ..exceptions import ItemNotFoundError
from ..observability import timed_operation
from ..registry import ContainerRegistry
from ..store.base import Document, DocumentStoreClient, PageIterator
from .base import Entity, Predicate, Repository
from .defaults import apply_entity_defaults

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


class DocumentRepository(Repository[T], Generic[T]):
    """
    Store-backed implementation of the Repository interface.

    The container is resolved once at construction. Every point operation
    resolves the partition key value before touching the store, so an
    entity without one fails with PartitionKeyError and no I/O.

    Example:
        orders = DocumentRepository(store, registry, Order)

        order = await orders.add(Order(customer_id="A", total=12.5))
        pending = await orders.get({"status": "pending"})

        async for order in orders.stream({"customer_id": "A"}):
            ...
    """

    def __init__(
        self,
        client: DocumentStoreClient,
        registry: ContainerRegistry,
        entity_type: type[T],
        query_page_size: int = DEFAULT_QUERY_PAGE_SIZE,
    ):
        """
        Initialize the repository.

        Args:
            client: Shared store client (borrowed, never closed here)
            registry: Container registry the entity type is registered in
            entity_type: Entity subclass handled by this repository
            query_page_size: Documents requested per query page

        Raises:
            ConfigurationError: If entity_type is not registered
        """
        self._registry = registry
        self._entity_type = entity_type
        self._container_name = registry.resolve_name(entity_type)
        self._container = client.get_container(self._container_name)
        self._query_page_size = query_page_size

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    @property
    def container_name(self) -> str:
        return self._container_name

    def _to_entity(self, doc: Document) -> T:
        return self._entity_type.from_dict(doc)

    def _query(self, predicate: Predicate | None) -> PageIterator:
        return self._container.query_items(predicate, self._query_page_size)

    async def get(self, predicate: Predicate | None = None) -> list[T]:
        """Run a query and drain every page."""
        iterator = self._query(predicate)
        results: list[T] = []

        while iterator.has_more_results:
            page = await iterator.read_next()
            results.extend(self._to_entity(doc) for doc in page)

        return results

    async def stream(self, predicate: Predicate | None = None) -> AsyncIterator[T]:
        """Yield matches lazily; the next page is fetched only when needed."""
        iterator = self._query(predicate)

        while iterator.has_more_results:
            page = await iterator.read_next()
            for doc in page:
                yield self._to_entity(doc)

    async def any(self, predicate: Predicate | None = None) -> bool:
        """Return True as soon as a page has a match."""
        iterator = self._query(predicate)

        while iterator.has_more_results:
            page = await iterator.read_next()
            if page:
                return True

        return False

    async def get_by(self, entity: T) -> T | None:
        """Point read; a missing document is None, not an error."""
        partition_key = self._registry.resolve_partition_key_value(entity)

        try:
            doc = await self._container.read_item(entity.id, partition_key)
        except ItemNotFoundError:
            logger.debug(
                f"{self._entity_type.__name__} id={entity.id} not found "
                f"in partition '{partition_key}'"
            )
            return None

        return self._to_entity(doc)

    @timed_operation("repository.add")
    async def add(self, entity: T) -> T:
        partition_key = self._registry.resolve_partition_key_value(entity)
        apply_entity_defaults(entity)

        doc = await self._container.create_item(entity.to_dict(), partition_key)

        logger.debug(f"Added {self._entity_type.__name__} with id={entity.id}")
        return self._to_entity(doc)

    @timed_operation("repository.update")
    async def update(self, entity: T) -> T:
        partition_key = self._registry.resolve_partition_key_value(entity)
        apply_entity_defaults(entity)

        doc = await self._container.replace_item(entity.id, entity.to_dict(), partition_key)

        logger.debug(f"Replaced {self._entity_type.__name__} with id={entity.id}")
        return self._to_entity(doc)

    @timed_operation("repository.upsert")
    async def upsert(self, entity: T) -> T:
        partition_key = self._registry.resolve_partition_key_value(entity)
        apply_entity_defaults(entity)

        doc = await self._container.upsert_item(entity.to_dict(), partition_key)

        logger.debug(f"Upserted {self._entity_type.__name__} with id={entity.id}")
        return self._to_entity(doc)

    @timed_operation("repository.delete")
    async def delete(self, entity: T) -> None:
        partition_key = self._registry.resolve_partition_key_value(entity)

        await self._container.delete_item(entity.id, partition_key)

        logger.debug(f"Deleted {self._entity_type.__name__} with id={entity.id}")
