"""
MDB Kit Repository Pattern

Typed repositories over a partitioned document store, and a unit of work
that groups writes into atomic batches.

Usage:
    from mdb_kit.repositories import AuditableEntity, UnitOfWork

    @dataclass
    class Order(AuditableEntity):
        customer_id: str
        total: float = 0.0

    uow = UnitOfWork(store, registry)
    orders = uow.get_repository(Order)

    async with uow.transaction():
        await orders.add(Order(customer_id="A", total=10))
        await orders.add(Order(customer_id="A", total=20))
"""

from .base import AuditableEntity, Entity, Repository
from .defaults import apply_entity_defaults
from .document import DocumentRepository
from .operations import OperationKind, PendingOperation
from .proxy import RepositoryProxy
from .unit_of_work import UnitOfWork

__all__ = [
    "Entity",
    "AuditableEntity",
    "Repository",
    "DocumentRepository",
    "RepositoryProxy",
    "UnitOfWork",
    "OperationKind",
    "PendingOperation",
    "apply_entity_defaults",
]
