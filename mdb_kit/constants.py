"""
Constants for MDB_KIT.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# TRANSACTION CONSTANTS
# ============================================================================

MAX_BATCH_OPERATIONS: Final[int] = 100
"""Maximum number of operations the store accepts in one atomic batch."""

# ============================================================================
# QUERY CONSTANTS
# ============================================================================

DEFAULT_QUERY_PAGE_SIZE: Final[int] = 100
"""Number of documents fetched per page when draining a query."""

MAX_QUERY_PAGE_SIZE: Final[int] = 1000
"""Upper bound for a configured query page size."""

# ============================================================================
# DOCUMENT FIELD CONSTANTS
# ============================================================================

ID_FIELD: Final[str] = "id"
"""Identifier field of a serialized entity."""

ETAG_FIELD: Final[str] = "_etag"
"""Store-assigned concurrency token field."""

MONGO_ID_FIELD: Final[str] = "_id"
"""MongoDB primary key field the entity identifier is stored under."""

MONGO_PARTITION_KEY_FIELD: Final[str] = "_pk"
"""Field holding the partition key value of a MongoDB-backed document."""

# ============================================================================
# BATCH STATUS CONSTANTS
# ============================================================================

STATUS_OK: Final[int] = 200
STATUS_CREATED: Final[int] = 201
STATUS_NO_CONTENT: Final[int] = 204
STATUS_BAD_REQUEST: Final[int] = 400
STATUS_NOT_FOUND: Final[int] = 404
STATUS_CONFLICT: Final[int] = 409
STATUS_FAILED_DEPENDENCY: Final[int] = 424
"""Status of batch operations that did not run because an earlier one failed."""
