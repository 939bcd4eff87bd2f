"""
Pytest configuration and shared fixtures for MDB_KIT tests.

This module provides:
- Sample entity types
- A container registry for them
- In-memory store and unit of work fixtures
"""

from dataclasses import dataclass

import pytest

from mdb_kit.observability import clear_transaction_context, get_metrics_collector
from mdb_kit.registry import ContainerRegistry, EntityContainer
from mdb_kit.repositories import AuditableEntity, Entity, UnitOfWork
from mdb_kit.store import InMemoryStoreClient

# ============================================================================
# SAMPLE ENTITIES
# ============================================================================


@dataclass
class Order(AuditableEntity):
    customer_id: str = ""
    total: float = 0.0
    status: str = "pending"


@dataclass
class Customer(Entity):
    region: str = ""
    name: str = ""


@dataclass
class Unregistered(Entity):
    key: str = ""


# ============================================================================
# REGISTRY & STORE FIXTURES
# ============================================================================


@pytest.fixture
def registrations() -> list[EntityContainer]:
    return [
        EntityContainer(Order, "orders", "customer_id"),
        EntityContainer(Customer, "customers", "region"),
    ]


@pytest.fixture
def registry(registrations) -> ContainerRegistry:
    return ContainerRegistry(registrations)


@pytest.fixture
def store() -> InMemoryStoreClient:
    return InMemoryStoreClient()


@pytest.fixture
def uow(store, registry) -> UnitOfWork:
    unit_of_work = UnitOfWork(store, registry)
    yield unit_of_work
    unit_of_work.dispose()


@pytest.fixture(autouse=True)
def reset_observability():
    """Keep metrics and transaction context from leaking between tests."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()
    clear_transaction_context()
