"""
Entity defaulting shared by the immediate and the deferred write paths.
"""

import uuid
from datetime import datetime, timezone

from .base import AuditableEntity, Entity


def new_entity_id() -> str:
    """Generate a globally unique entity identifier."""
    return uuid.uuid4().hex


def apply_entity_defaults(entity: Entity, now: datetime | None = None) -> Entity:
    """
    Assign an identifier and audit timestamps to an entity before a write.

    An entity without an identifier is new: it gets a fresh identifier and,
    if auditable, its created_at. modified_at is refreshed on every call.
    An existing identifier is never overwritten.

    Args:
        entity: Entity about to be created, replaced or upserted
        now: Timestamp to use (defaults to the current UTC time)

    Returns:
        The same entity instance, mutated in place
    """
    now = now or datetime.now(timezone.utc)
    is_new = not entity.id

    if is_new:
        entity.id = new_entity_id()

    if isinstance(entity, AuditableEntity):
        if is_new:
            entity.created_at = now
        entity.modified_at = now

    return entity
