"""
Transaction-aware repository proxy.
"""

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Generic, TypeVar

from .base import Entity, Predicate, Repository
from .defaults import apply_entity_defaults
from .operations import OperationKind

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


class RepositoryProxy(Repository[T], Generic[T]):
    """
    Decorates a repository with transaction awareness.

    While the owning UnitOfWork has no active transaction every call goes
    straight to the inner repository. While a transaction is active, writes
    are defaulted locally, queued on the unit of work and the entity is
    returned as-is: it has an id and timestamps but no store-assigned
    fields (etag) until the transaction commits.

    Reads always hit the store and never see queued writes.
    """

    def __init__(self, inner: Repository[T], unit_of_work: "UnitOfWork"):
        self._inner = inner
        self._unit_of_work = unit_of_work

    @property
    def inner(self) -> Repository[T]:
        return self._inner

    def _defer(self, entity: T, kind: OperationKind) -> T:
        self._unit_of_work.resolve_group(entity)
        if kind is not OperationKind.DELETE:
            apply_entity_defaults(entity)
        self._unit_of_work.add_operation(entity, kind)
        return entity

    async def get(self, predicate: Predicate | None = None) -> list[T]:
        return await self._inner.get(predicate)

    def stream(self, predicate: Predicate | None = None) -> AsyncIterator[T]:
        return self._inner.stream(predicate)

    async def any(self, predicate: Predicate | None = None) -> bool:
        return await self._inner.any(predicate)

    async def get_by(self, entity: T) -> T | None:
        return await self._inner.get_by(entity)

    async def add(self, entity: T) -> T:
        if self._unit_of_work.is_in_transaction:
            return self._defer(entity, OperationKind.CREATE)
        return await self._inner.add(entity)

    async def update(self, entity: T) -> T:
        if self._unit_of_work.is_in_transaction:
            return self._defer(entity, OperationKind.REPLACE)
        return await self._inner.update(entity)

    async def upsert(self, entity: T) -> T:
        if self._unit_of_work.is_in_transaction:
            return self._defer(entity, OperationKind.UPSERT)
        return await self._inner.upsert(entity)

    async def delete(self, entity: T) -> None:
        if self._unit_of_work.is_in_transaction:
            self._defer(entity, OperationKind.DELETE)
            return
        await self._inner.delete(entity)
