"""In-memory implementation of RecordStore."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from softer.observability.logging import get_logger
from softer.sync.records import (
    ChangeNotification,
    ChangeType,
    RecordConflictError,
    RecordNotFoundError,
    RecordStore,
    VersionedRecord,
)

logger = get_logger(__name__)


class InMemoryRecordStore(RecordStore):
    """In-memory RecordStore for testing and development.

    Version tokens are a per-store counter. Conditional writes are serialised
    by a lock; every subscriber gets its own queue of notifications.
    """

    def __init__(self) -> None:
        self._records: dict[str, VersionedRecord] = {}
        self._counter = 0
        self._lock = asyncio.Lock()
        self._subscribers: list[asyncio.Queue[ChangeNotification]] = []

    async def read(self, key: str) -> VersionedRecord:
        record = self._records.get(key)
        if record is None:
            raise RecordNotFoundError(key)
        return record

    async def scan(self, prefix: str) -> list[VersionedRecord]:
        return [record for key, record in self._records.items() if key.startswith(prefix)]

    async def conditional_write(
        self,
        key: str,
        record_type: str,
        value: dict[str, Any],
        expected_version: str | None,
    ) -> str:
        async with self._lock:
            current = self._records.get(key)
            current_version = current.version if current else None
            if current_version != expected_version:
                logger.debug(
                    "conditional_write_conflict",
                    key=key,
                    expected_version=expected_version,
                    current_version=current_version,
                )
                raise RecordConflictError(key, expected_version)

            self._counter += 1
            version = str(self._counter)
            self._records[key] = VersionedRecord(
                key=key, record_type=record_type, value=value, version=version
            )

        self._publish(
            ChangeNotification(
                change=ChangeType.INSERTED if current is None else ChangeType.UPDATED,
                record_type=record_type,
                key=key,
                payload=value,
                version=version,
            )
        )
        return version

    async def delete(self, key: str) -> bool:
        async with self._lock:
            record = self._records.pop(key, None)
        if record is None:
            return False
        self._publish(
            ChangeNotification(
                change=ChangeType.DELETED, record_type=record.record_type, key=key
            )
        )
        return True

    async def subscribe(self) -> AsyncIterator[ChangeNotification]:
        queue: asyncio.Queue[ChangeNotification] = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.remove(queue)

    def _publish(self, notification: ChangeNotification) -> None:
        for queue in self._subscribers:
            queue.put_nowait(notification)
