"""
MDB_KIT - repositories and unit of work over a partitioned document store.

Typed CRUD and query repositories per entity type, with an optional
transactional mode that groups writes into per-partition atomic batches.
"""

# Configuration
from .config import KitConfig
# Errors
from .exceptions import (BatchCapacityExceededError, BatchExecutionError, ConfigurationError,
                         ItemConflictError, ItemNotFoundError, MdbKitError, PartitionKeyError,
                         StoreError, TransactionStateError)
# Container registration
from .registry import ContainerRegistry, EntityContainer
# Repositories and unit of work
from .repositories import (AuditableEntity, DocumentRepository, Entity, OperationKind,
                           Repository, RepositoryProxy, UnitOfWork, apply_entity_defaults)
# Store clients
from .store import InMemoryStoreClient, MongoStoreClient

__version__ = "0.1.0"

__all__ = [
    # Core
    "UnitOfWork",
    "Repository",
    "DocumentRepository",
    "RepositoryProxy",
    "OperationKind",
    "Entity",
    "AuditableEntity",
    "apply_entity_defaults",
    # Registration
    "ContainerRegistry",
    "EntityContainer",
    "KitConfig",
    # Stores
    "InMemoryStoreClient",
    "MongoStoreClient",
    # Errors
    "MdbKitError",
    "ConfigurationError",
    "PartitionKeyError",
    "TransactionStateError",
    "BatchCapacityExceededError",
    "BatchExecutionError",
    "StoreError",
    "ItemNotFoundError",
    "ItemConflictError",
]
