"""Redis-backed RecordStore.

Each record is a hash ``{prefix}:record:{key}`` holding ``version``, ``type``
and ``payload`` (JSON). Conditional writes run as a Lua script so the
version check and the write are atomic. Changes are published on the
``{prefix}:changes`` channel.
"""

import json
from collections.abc import AsyncIterator
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from softer.observability.logging import get_logger
from softer.sync.records import (
    ChangeNotification,
    ChangeType,
    RecordConflictError,
    RecordNotFoundError,
    RecordStore,
    RecordStoreUnavailableError,
    VersionedRecord,
)

logger = get_logger(__name__)

TRANSIENT_ERRORS = (RedisConnectionError, RedisTimeoutError)

# KEYS[1] record hash, ARGV: expected version ("" = must not exist), type, payload
# Returns the new version, or false on conflict.
CONDITIONAL_WRITE_SCRIPT = """
local current = redis.call('HGET', KEYS[1], 'version')
if ARGV[1] == '' then
  if current then return false end
elseif current ~= ARGV[1] then
  return false
end
local version = redis.call('HINCRBY', KEYS[1], 'version', 1)
redis.call('HSET', KEYS[1], 'type', ARGV[2], 'payload', ARGV[3])
return tostring(version)
"""


def _decode(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


class RedisRecordStore(RecordStore):
    """RecordStore over a Redis instance shared by every device."""

    def __init__(self, redis: Redis, key_prefix: str = "softer"):
        """Initialize Redis record store.

        Args:
            redis: Redis client instance
            key_prefix: Prefix for record keys and the change channel
        """
        self._redis = redis
        self._key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:record:{key}"

    @property
    def channel(self) -> str:
        return f"{self._key_prefix}:changes"

    async def read(self, key: str) -> VersionedRecord:
        try:
            data = await self._redis.hgetall(self._key(key))
        except TRANSIENT_ERRORS as e:
            raise RecordStoreUnavailableError("read", key) from e
        if not data:
            raise RecordNotFoundError(key)
        return self._record(key, data)

    async def scan(self, prefix: str) -> list[VersionedRecord]:
        records = []
        try:
            async for redis_key in self._redis.scan_iter(match=f"{self._key(prefix)}*"):
                key = _decode(redis_key).removeprefix(self._key(""))
                data = await self._redis.hgetall(redis_key)
                if data:
                    records.append(self._record(key, data))
        except TRANSIENT_ERRORS as e:
            raise RecordStoreUnavailableError("scan", prefix) from e
        return records

    async def conditional_write(
        self,
        key: str,
        record_type: str,
        value: dict[str, Any],
        expected_version: str | None,
    ) -> str:
        payload = json.dumps(value)
        try:
            result = await self._redis.eval(
                CONDITIONAL_WRITE_SCRIPT,
                1,
                self._key(key),
                expected_version or "",
                record_type,
                payload,
            )
        except TRANSIENT_ERRORS as e:
            raise RecordStoreUnavailableError("conditional_write", key) from e
        if not result:
            logger.debug(
                "conditional_write_conflict",
                key=key,
                expected_version=expected_version,
            )
            raise RecordConflictError(key, expected_version)

        version = _decode(result)
        notification = ChangeNotification(
            change=ChangeType.INSERTED if expected_version is None else ChangeType.UPDATED,
            record_type=record_type,
            key=key,
            payload=value,
            version=version,
        )
        await self._publish(notification)
        return version

    async def delete(self, key: str) -> bool:
        try:
            record_type = await self._redis.hget(self._key(key), "type")
            deleted = await self._redis.delete(self._key(key)) > 0
        except TRANSIENT_ERRORS as e:
            raise RecordStoreUnavailableError("delete", key) from e
        if deleted:
            notification = ChangeNotification(
                change=ChangeType.DELETED,
                record_type=_decode(record_type) if record_type else "",
                key=key,
            )
            await self._publish(notification)
        return deleted

    async def _publish(self, notification: ChangeNotification) -> None:
        # The write already committed; subscribers catch up on their next refresh.
        try:
            await self._redis.publish(self.channel, notification.model_dump_json())
        except TRANSIENT_ERRORS as e:
            logger.warning(
                "change_publish_failed",
                key=notification.key,
                change=notification.change.value,
                error=str(e),
            )

    @staticmethod
    def _record(key: str, data: dict[Any, Any]) -> VersionedRecord:
        fields = {_decode(k): _decode(v) for k, v in data.items()}
        return VersionedRecord(
            key=key,
            record_type=fields["type"],
            value=json.loads(fields["payload"]),
            version=fields["version"],
        )

    async def subscribe(self) -> AsyncIterator[ChangeNotification]:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    yield ChangeNotification.model_validate_json(_decode(message["data"]))
                except ValueError:
                    logger.warning("change_notification_undecodable", channel=self.channel)
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
