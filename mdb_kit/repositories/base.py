"""
Abstract Repository Pattern

Defines the entity base classes and the repository interface shared by the
direct store repository and its transaction-aware proxy.
"""

import dataclasses
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from ..constants import ETAG_FIELD


@dataclass(kw_only=True)
class Entity:
    """
    Base class for domain entities stored in a partitioned container.

    The identifier is assigned by the kit on first save and the etag is
    filled in by the store; callers never set either.

    Example:
        @dataclass
        class Order(Entity):
            customer_id: str
            total: float = 0.0
    """

    id: str = ""
    etag: str | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert entity to a store document."""
        data: dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if f.name == "etag":
                if value is not None:
                    data[ETAG_FIELD] = value
                continue
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        """Create entity from a store document, ignoring store-internal fields."""
        if data is None:
            return None

        data = dict(data)
        if ETAG_FIELD in data:
            data["etag"] = data.pop(ETAG_FIELD)

        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}

        return cls(**filtered_data)


@dataclass(kw_only=True)
class AuditableEntity(Entity):
    """Entity carrying creation and last-modification timestamps."""

    created_at: datetime | None = None
    modified_at: datetime | None = None


T = TypeVar("T", bound=Entity)

Predicate = dict[str, Any]


class Repository(ABC, Generic[T]):
    """
    Repository interface for one entity type.

    Predicates are MongoDB-style filter documents handed to the store
    client unchanged.
    """

    @abstractmethod
    async def get(self, predicate: Predicate | None = None) -> list[T]:
        """
        Get every entity matching a predicate.

        Args:
            predicate: Filter document (None matches everything)

        Returns:
            Fully materialized list of matches
        """
        pass

    @abstractmethod
    def stream(self, predicate: Predicate | None = None) -> AsyncIterator[T]:
        """
        Stream entities matching a predicate, one store page at a time.

        Args:
            predicate: Filter document (None matches everything)

        Returns:
            Lazy, forward-only async iterator
        """
        pass

    @abstractmethod
    async def any(self, predicate: Predicate | None = None) -> bool:
        """Check whether at least one entity matches a predicate."""
        pass

    @abstractmethod
    async def get_by(self, entity: T) -> T | None:
        """
        Point read by identifier and partition key.

        Args:
            entity: Entity whose id and partition key locate the document

        Returns:
            Stored entity, or None if it does not exist
        """
        pass

    @abstractmethod
    async def add(self, entity: T) -> T:
        """Create a new entity. The document must not exist yet."""
        pass

    @abstractmethod
    async def update(self, entity: T) -> T:
        """Replace an existing entity. The document must exist."""
        pass

    @abstractmethod
    async def upsert(self, entity: T) -> T:
        """Create or replace an entity."""
        pass

    @abstractmethod
    async def delete(self, entity: T) -> None:
        """Delete an entity by identifier and partition key."""
        pass
