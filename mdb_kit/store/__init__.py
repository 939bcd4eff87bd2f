"""
Document store clients.

The kit only depends on the protocols in mdb_kit.store.base. Two
implementations ship with it:

    from mdb_kit.store import InMemoryStoreClient, MongoStoreClient

    store = MongoStoreClient(motor_client["app_db"])  # MongoDB via Motor
    store = InMemoryStoreClient()                      # tests, local runs
"""

from .base import (AtomicBatch, BatchOperationResult, BatchResponse, DocumentStoreClient,
                   PageIterator, StoreContainer)
from .memory import ExecutedBatch, InMemoryStoreClient
from .mongo import MongoStoreClient

__all__ = [
    "AtomicBatch",
    "BatchOperationResult",
    "BatchResponse",
    "DocumentStoreClient",
    "PageIterator",
    "StoreContainer",
    "ExecutedBatch",
    "InMemoryStoreClient",
    "MongoStoreClient",
]
