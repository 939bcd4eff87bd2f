"""
Pending operations buffered by a unit of work.
"""

from dataclasses import dataclass
from enum import Enum

from ..store.base import AtomicBatch
from .base import Entity


class OperationKind(Enum):
    """Kind of mutation a pending operation replays."""

    CREATE = "create"
    REPLACE = "replace"
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class PendingOperation:
    """
    One buffered mutation.

    The entity is kept by reference and serialized when the operation is
    appended to a batch at commit time.
    """

    kind: OperationKind
    entity: Entity

    def apply(self, batch: AtomicBatch) -> AtomicBatch:
        """Append this operation to an atomic batch."""
        if self.kind is OperationKind.CREATE:
            return batch.create_item(self.entity.to_dict())
        if self.kind is OperationKind.REPLACE:
            return batch.replace_item(self.entity.id, self.entity.to_dict())
        if self.kind is OperationKind.UPSERT:
            return batch.upsert_item(self.entity.to_dict())
        return batch.delete_item(self.entity.id)
