"""
Configuration management for MDB_KIT.

Values come from direct parameters first and fall back to environment
variables, then to the defaults in mdb_kit.constants.
"""

import os

from .constants import DEFAULT_QUERY_PAGE_SIZE, MAX_BATCH_OPERATIONS, MAX_QUERY_PAGE_SIZE
from .exceptions import ConfigurationError


class KitConfig:
    """
    MDB Kit configuration.

    Example:
        # Using environment variables
        config = KitConfig()
        client = AsyncIOMotorClient(config.mongo_uri)
        store = MongoStoreClient(client[config.db_name])

        # Or using direct parameters
        config = KitConfig(max_batch_operations=50, query_page_size=200)
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        db_name: str | None = None,
        max_batch_operations: int | None = None,
        query_page_size: int | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: MongoDB connection URI (defaults to MONGO_URI env var)
            db_name: Database name (defaults to DB_NAME env var)
            max_batch_operations: Atomic batch operation limit (defaults to 100 or
                MDB_KIT_MAX_BATCH_OPERATIONS)
            query_page_size: Documents per query page (defaults to 100 or
                MDB_KIT_QUERY_PAGE_SIZE)
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGO_URI", "")
        self.db_name = db_name or os.getenv("DB_NAME", "")
        if max_batch_operations is None:
            max_batch_operations = _env_int("MDB_KIT_MAX_BATCH_OPERATIONS", MAX_BATCH_OPERATIONS)
        self.max_batch_operations = max_batch_operations
        if query_page_size is None:
            query_page_size = _env_int("MDB_KIT_QUERY_PAGE_SIZE", DEFAULT_QUERY_PAGE_SIZE)
        self.query_page_size = query_page_size

    def validate(self) -> None:
        """
        Validate configuration values.

        mongo_uri and db_name are only needed when the caller builds the
        MongoDB client from this config, so they are not checked here.

        Raises:
            ConfigurationError: If a value is out of range
        """
        if not 1 <= self.max_batch_operations <= MAX_BATCH_OPERATIONS:
            raise ConfigurationError(
                f"max_batch_operations must be between 1 and {MAX_BATCH_OPERATIONS}",
                config_key="max_batch_operations",
                config_value=self.max_batch_operations,
            )

        if not 1 <= self.query_page_size <= MAX_QUERY_PAGE_SIZE:
            raise ConfigurationError(
                f"query_page_size must be between 1 and {MAX_QUERY_PAGE_SIZE}",
                config_key="query_page_size",
                config_value=self.query_page_size,
            )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer", config_key=name, config_value=raw
        ) from e
