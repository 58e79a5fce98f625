"""Record store implementations."""

from softer.sync.stores.inmemory import InMemoryRecordStore
from softer.sync.stores.redis import RedisRecordStore

__all__ = ["InMemoryRecordStore", "RedisRecordStore"]
