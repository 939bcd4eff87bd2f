"""
Custom exceptions for MDB_KIT.

All errors raised by the kit derive from MdbKitError, which keeps
compatibility with RuntimeError and carries an optional context dictionary
(container name, partition key, entity type, ...).
"""

from typing import Any, Dict, List, Optional


class MdbKitError(RuntimeError):
    """
    Base exception for MDB_KIT errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (entity_type,
                 container_name, partition_key, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(MdbKitError):
    """
    Raised when configuration is invalid or missing.

    Covers unregistered entity types, invalid container registrations and
    invalid KitConfig values. These are programming errors and are never
    recovered from at runtime.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class PartitionKeyError(MdbKitError, ValueError):
    """
    Raised when an entity has no usable partition key value.

    Always raised before any call reaches the store.
    """

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        partition_key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if entity_type:
            context["entity_type"] = entity_type
        if partition_key:
            context["partition_key"] = partition_key
        super().__init__(message, context=context)
        self.entity_type = entity_type
        self.partition_key = partition_key


class TransactionStateError(MdbKitError):
    """Raised on transaction API misuse (double begin, commit or rollback while idle)."""


class BatchCapacityExceededError(MdbKitError):
    """
    Raised when a commit holds too many pending operations.

    The transaction has already been rolled back when this is raised.

    Attributes:
        operation_count: Number of pending operations at commit time
        limit: Store batch limit
    """

    def __init__(
        self,
        message: str,
        operation_count: int,
        limit: int,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        context["operation_count"] = operation_count
        context["limit"] = limit
        super().__init__(message, context=context)
        self.operation_count = operation_count
        self.limit = limit


class BatchExecutionError(MdbKitError):
    """
    Raised when the store reports an atomic batch as unsuccessful.

    Groups committed before the failing one stay committed; groups after it
    never run.

    Attributes:
        status_code: Status reported by the store for the batch
        error_message: Diagnostic reported by the store
        container_name: Container of the failed group
        partition_key: Partition key of the failed group
        operation_results: Per-operation outcomes reported by the store
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        error_message: Optional[str] = None,
        container_name: Optional[str] = None,
        partition_key: Optional[str] = None,
        operation_results: Optional[List[Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        context["status_code"] = status_code
        if container_name:
            context["container_name"] = container_name
        if partition_key:
            context["partition_key"] = partition_key
        if error_message:
            context["error_message"] = error_message
        super().__init__(message, context=context)
        self.status_code = status_code
        self.error_message = error_message
        self.container_name = container_name
        self.partition_key = partition_key
        self.operation_results = operation_results or []


class StoreError(MdbKitError):
    """
    Base exception for failures reported by a document store client.

    Attributes:
        status_code: HTTP-style status of the failure
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        if status_code is not None:
            self.status_code = status_code


class ItemNotFoundError(StoreError):
    """Raised by a store client when a document does not exist."""

    status_code = 404


class ItemConflictError(StoreError):
    """Raised by a store client when a document with the same id already exists."""

    status_code = 409
