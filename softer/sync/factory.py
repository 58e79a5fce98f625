"""RecordStore factory.

The Redis connection string comes from `storage.connection_url` or, when
unset, the REDIS_URL environment variable.
"""

import os

from redis.asyncio import Redis

from softer.config.models.storage import StorageConfig
from softer.observability.logging import get_logger
from softer.sync.records import RecordStore
from softer.sync.stores.inmemory import InMemoryRecordStore
from softer.sync.stores.redis import RedisRecordStore

logger = get_logger(__name__)


def create_record_store(config: StorageConfig) -> RecordStore:
    """Create the RecordStore selected by configuration.

    Raises:
        ValueError: If backend type is not supported
    """
    backend = config.backend

    if backend == "inmemory":
        logger.info("creating_record_store", backend="inmemory")
        return InMemoryRecordStore()

    elif backend == "redis":
        url = config.connection_url or os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        logger.info("creating_record_store", backend="redis", prefix=config.key_prefix)
        return RedisRecordStore(Redis.from_url(url), key_prefix=config.key_prefix)

    else:
        raise ValueError(f"Unsupported record store backend: {backend}")
