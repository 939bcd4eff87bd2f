"""
Container Registry

Immutable mapping from entity type to its container name and partition key
accessor, built once at startup from registration triples.
"""

import dataclasses
import logging
import operator
from collections.abc import Callable, Iterable
from types import MappingProxyType
from typing import Any, NamedTuple

from .exceptions import ConfigurationError, PartitionKeyError

logger = logging.getLogger(__name__)

PartitionKeyAccessor = Callable[[Any], Any]


class EntityContainer(NamedTuple):
    """
    Registration of one entity type.

    Example:
        EntityContainer(Order, "orders", "customer_id")
    """

    entity_type: type
    container_name: str
    partition_key: str


class _Registration(NamedTuple):
    container_name: str
    partition_key: str
    accessor: PartitionKeyAccessor


class ContainerRegistry:
    """
    Resolves container names and partition keys per entity type.

    The mapping is fixed after construction, so concurrent reads need no
    locking.

    Usage:
        registry = ContainerRegistry([
            EntityContainer(Order, "orders", "customer_id"),
            EntityContainer(Customer, "customers", "region"),
        ])
        registry.resolve_name(Order)  # "orders"
    """

    def __init__(self, registrations: Iterable[EntityContainer]):
        """
        Build the registry.

        Args:
            registrations: (entity_type, container_name, partition_key) triples

        Raises:
            ConfigurationError: On a duplicate entity type, an empty container
                name, or a partition key the entity type does not declare
        """
        entries: dict[type, _Registration] = {}

        for registration in registrations:
            entity_type, container_name, partition_key = registration

            if entity_type in entries:
                raise ConfigurationError(
                    f"Entity type '{entity_type.__name__}' is registered more than once",
                    config_key="entity_type",
                    config_value=entity_type.__name__,
                )
            if not container_name:
                raise ConfigurationError(
                    f"Container name for '{entity_type.__name__}' must not be empty",
                    config_key="container_name",
                )
            if partition_key not in _declared_fields(entity_type):
                raise ConfigurationError(
                    f"'{entity_type.__name__}' has no field '{partition_key}' "
                    "to use as partition key",
                    config_key="partition_key",
                    config_value=partition_key,
                )

            entries[entity_type] = _Registration(
                container_name, partition_key, operator.attrgetter(partition_key)
            )
            logger.debug(
                f"Registered {entity_type.__name__} -> container '{container_name}' "
                f"(partition key '{partition_key}')"
            )

        self._entries = MappingProxyType(entries)

    def _lookup(self, entity_type: type) -> _Registration:
        try:
            return self._entries[entity_type]
        except KeyError:
            raise ConfigurationError(
                f"Entity type '{entity_type.__name__}' is not registered with a container",
                context={"entity_type": entity_type.__name__},
            ) from None

    def resolve_name(self, entity_type: type) -> str:
        """Return the container name registered for an entity type."""
        return self._lookup(entity_type).container_name

    def resolve_partition_key(self, entity_type: type) -> PartitionKeyAccessor:
        """Return the pre-bound partition key accessor for an entity type."""
        return self._lookup(entity_type).accessor

    def resolve_partition_key_path(self, entity_type: type) -> str:
        """Return the name of the partition key field for an entity type."""
        return self._lookup(entity_type).partition_key

    def resolve_partition_key_value(self, entity: Any) -> str:
        """
        Read the partition key value of an entity.

        Raises:
            ConfigurationError: If the entity type is not registered
            PartitionKeyError: If the value is missing or empty
        """
        entity_type = type(entity)
        registration = self._lookup(entity_type)
        value = registration.accessor(entity)

        if value is None or str(value) == "":
            raise PartitionKeyError(
                f"Partition key '{registration.partition_key}' of "
                f"'{entity_type.__name__}' is missing or empty",
                entity_type=entity_type.__name__,
                partition_key=registration.partition_key,
            )
        return str(value)

    def is_registered(self, entity_type: type) -> bool:
        """Check if an entity type is registered."""
        return entity_type in self._entries

    @property
    def registrations(self) -> list[EntityContainer]:
        """Registered triples in registration order."""
        return [
            EntityContainer(entity_type, entry.container_name, entry.partition_key)
            for entity_type, entry in self._entries.items()
        ]

    def __contains__(self, entity_type: type) -> bool:
        return self.is_registered(entity_type)

    def __len__(self) -> int:
        return len(self._entries)


def _declared_fields(entity_type: type) -> set[str]:
    if dataclasses.is_dataclass(entity_type):
        return {f.name for f in dataclasses.fields(entity_type)}
    return set(getattr(entity_type, "__annotations__", {}))
