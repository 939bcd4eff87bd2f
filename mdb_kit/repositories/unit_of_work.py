"""
Unit of Work Pattern

Owns the transaction state of one logical flow (typically one request),
hands out one transaction-aware repository per entity type and drains
buffered writes through the store's atomic batches on commit.

Atomic batches are scoped to a single (container, partition key) pair, so a
transaction spanning several partitions is committed as several independent
batches. A failure in one batch does not undo batches that already ran.
"""

import threading
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TypeVar

from ..constants import MAX_BATCH_OPERATIONS
from ..exceptions import (BatchCapacityExceededError, BatchExecutionError, ConfigurationError,
                          TransactionStateError)
from ..observability import (clear_transaction_context, get_logger, record_operation,
                             set_transaction_context)
from ..registry import ContainerRegistry
from ..store.base import DocumentStoreClient
from .base import Entity
from .document import DocumentRepository
from .operations import OperationKind, PendingOperation
from .proxy import RepositoryProxy

logger = get_logger(__name__)

T = TypeVar("T", bound=Entity)

GroupKey = tuple[str, str]


class UnitOfWork:
    """
    Unit of Work for repository access and batched transactions.

    Usage:
        uow = UnitOfWork(store, registry)
        orders = uow.get_repository(Order)

        # Immediate writes
        order = await orders.add(Order(customer_id="A"))

        # Buffered writes, one atomic batch per (container, partition key)
        await uow.begin_transaction()
        await orders.add(Order(customer_id="A"))
        await orders.add(Order(customer_id="A"))
        await uow.commit_transaction()

        # Same thing, rolled back if the block raises
        async with uow.transaction():
            await orders.upsert(order)

    The unit of work is meant for a single logical flow: one transaction at
    a time per instance. Its proxy cache and pending groups are
    lock-protected so operations from concurrently awaited calls can be
    collected into the same transaction.
    """

    def __init__(
        self,
        client: DocumentStoreClient,
        registry: ContainerRegistry,
        max_batch_operations: int = MAX_BATCH_OPERATIONS,
        query_page_size: int | None = None,
    ):
        """
        Initialize the Unit of Work.

        Args:
            client: Shared store client (borrowed, never closed here)
            registry: Container registry for every entity type used
            max_batch_operations: Commit fails when this many operations are pending
            query_page_size: Documents per query page for created repositories

        Raises:
            ConfigurationError: If max_batch_operations is outside 1..MAX_BATCH_OPERATIONS
        """
        if not 1 <= max_batch_operations <= MAX_BATCH_OPERATIONS:
            raise ConfigurationError(
                f"max_batch_operations must be between 1 and {MAX_BATCH_OPERATIONS}",
                config_key="max_batch_operations",
                config_value=max_batch_operations,
            )

        self._client = client
        self._registry = registry
        self._max_batch_operations = max_batch_operations
        self._query_page_size = query_page_size

        self._repositories: dict[type, RepositoryProxy] = {}
        self._repositories_lock = threading.Lock()

        self._pending_groups: dict[GroupKey, list[PendingOperation]] = {}
        self._pending_lock = threading.Lock()

        self._in_transaction = False
        self._committing = False
        self._transaction_id: str | None = None

    @property
    def is_in_transaction(self) -> bool:
        return self._in_transaction

    @property
    def pending_operation_count(self) -> int:
        """Total number of buffered operations across all groups."""
        with self._pending_lock:
            return sum(len(operations) for operations in self._pending_groups.values())

    @property
    def pending_groups(self) -> dict[GroupKey, list[PendingOperation]]:
        """Snapshot of buffered operations keyed by (container, partition key)."""
        with self._pending_lock:
            return {key: list(operations) for key, operations in self._pending_groups.items()}

    def get_repository(self, entity_type: type[T]) -> RepositoryProxy[T]:
        """
        Get the transaction-aware repository for an entity type.

        Created on first access and cached, so repeated calls return the
        same instance.

        Raises:
            ConfigurationError: If entity_type is not registered
        """
        with self._repositories_lock:
            proxy = self._repositories.get(entity_type)
            if proxy is None:
                kwargs = {}
                if self._query_page_size:
                    kwargs["query_page_size"] = self._query_page_size
                repository = DocumentRepository(
                    self._client, self._registry, entity_type, **kwargs
                )
                proxy = RepositoryProxy(repository, self)
                self._repositories[entity_type] = proxy
                logger.debug(f"Created repository for {entity_type.__name__}")
            return proxy

    async def begin_transaction(self) -> None:
        """
        Start buffering writes.

        Raises:
            TransactionStateError: If a transaction is already active
        """
        if self._in_transaction:
            raise TransactionStateError("Transaction already in progress")

        with self._pending_lock:
            self._pending_groups.clear()
        self._in_transaction = True
        self._transaction_id = set_transaction_context()

        logger.info("Transaction started")

    def resolve_group(self, entity: Entity) -> GroupKey:
        """
        Check that a write can be buffered and return its (container, partition key).

        RepositoryProxy calls this before touching the entity, so a rejected
        write leaves the caller's entity unchanged.

        Raises:
            TransactionStateError: If no transaction is active or a commit is running
            ConfigurationError: If the entity type is not registered
            PartitionKeyError: If the entity has no partition key value
        """
        if not self._in_transaction:
            raise TransactionStateError("No transaction in progress")
        if self._committing:
            raise TransactionStateError("Transaction is being committed")

        container_name = self._registry.resolve_name(type(entity))
        partition_key = self._registry.resolve_partition_key_value(entity)
        return container_name, partition_key

    def add_operation(self, entity: Entity, kind: OperationKind) -> None:
        """
        Buffer one write in the group of its container and partition key.

        Called by RepositoryProxy. Nothing is buffered when it raises.

        Raises:
            TransactionStateError: If no transaction is active or a commit is running
            ConfigurationError: If the entity type is not registered
            PartitionKeyError: If the entity has no partition key value
        """
        key = self.resolve_group(entity)

        with self._pending_lock:
            if self._committing:
                raise TransactionStateError("Transaction is being committed")
            self._pending_groups.setdefault(key, []).append(PendingOperation(kind, entity))

        logger.debug(
            f"Queued {kind.value} of {type(entity).__name__} id={entity.id} "
            f"for '{key[0]}' partition '{key[1]}'"
        )

    async def commit_transaction(self) -> None:
        """
        Execute every buffered group as one atomic batch each.

        The pending groups are taken out when the commit starts; writes that
        arrive while it runs are rejected. The transaction always ends here:
        whether the commit succeeds, fails or is cancelled, the unit of work
        is idle afterwards.

        Raises:
            TransactionStateError: If no transaction is active or a commit is
                already running
            BatchCapacityExceededError: If too many operations are pending; the
                transaction is rolled back and no batch runs
            BatchExecutionError: If the store rejects a batch; later groups are
                not executed, earlier groups stay committed
        """
        if not self._in_transaction:
            raise TransactionStateError("No transaction in progress")

        with self._pending_lock:
            if self._committing:
                raise TransactionStateError("Transaction is being committed")
            self._committing = True
            groups, self._pending_groups = self._pending_groups, {}
        operation_count = sum(len(operations) for operations in groups.values())

        if operation_count >= self._max_batch_operations:
            self._end_transaction()
            logger.info(f"Transaction rolled back: {operation_count} operation(s) discarded")
            raise BatchCapacityExceededError(
                f"Batch size limit ({self._max_batch_operations}) exceeded",
                operation_count=operation_count,
                limit=self._max_batch_operations,
            )

        start_time = time.perf_counter()
        success = False
        try:
            for (container_name, partition_key), operations in groups.items():
                await self._execute_group(container_name, partition_key, operations)
            success = True
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            record_operation("uow.commit", duration_ms, success)
            if success:
                logger.info(
                    f"Transaction committed: {operation_count} operation(s) "
                    f"in {len(groups)} batch(es)"
                )
            self._end_transaction()

    async def _execute_group(
        self,
        container_name: str,
        partition_key: str,
        operations: list[PendingOperation],
    ) -> None:
        container = self._client.get_container(container_name)
        batch = container.create_atomic_batch(partition_key)
        for operation in operations:
            batch = operation.apply(batch)

        start_time = time.perf_counter()
        response = await batch.execute()
        duration_ms = (time.perf_counter() - start_time) * 1000
        record_operation(
            "uow.batch_execute", duration_ms, response.is_success, container=container_name
        )

        if not response.is_success:
            logger.error(
                f"Batch on '{container_name}' partition '{partition_key}' failed "
                f"({response.status_code}): {response.error_message}"
            )
            raise BatchExecutionError(
                "Atomic batch execution failed",
                status_code=response.status_code,
                error_message=response.error_message,
                container_name=container_name,
                partition_key=partition_key,
                operation_results=response.results,
            )

    async def rollback_transaction(self) -> None:
        """
        Discard every buffered write without contacting the store.

        Raises:
            TransactionStateError: If no transaction is active or a commit is running
        """
        if not self._in_transaction:
            raise TransactionStateError("No transaction in progress")
        if self._committing:
            raise TransactionStateError("Transaction is being committed")

        discarded = self.pending_operation_count
        self._end_transaction()
        logger.info(f"Transaction rolled back: {discarded} operation(s) discarded")

    def _end_transaction(self) -> None:
        with self._pending_lock:
            self._pending_groups.clear()
            self._committing = False
        self._in_transaction = False
        self._transaction_id = None
        clear_transaction_context()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["UnitOfWork"]:
        """
        Run a block inside a transaction.

        Commits when the block exits normally and rolls back when it raises.
        """
        await self.begin_transaction()
        try:
            yield self
        except BaseException:
            if self._in_transaction:
                await self.rollback_transaction()
            raise
        await self.commit_transaction()

    def dispose(self) -> None:
        """
        Drop an unfinished transaction and the cached repositories.

        Called automatically at the end of a request scope.
        """
        if self._in_transaction:
            logger.warning(
                f"Disposing unit of work with an open transaction; "
                f"{self.pending_operation_count} operation(s) discarded"
            )
            self._end_transaction()
        with self._repositories_lock:
            self._repositories.clear()
        logger.debug("UnitOfWork disposed")
