"""Keeps this device's view of rooms in step with the replicated store.

Change notifications arrive at least once and in any order; each one is
merged into the local view, so duplicates and stale deliveries are harmless.
"""

from collections.abc import Awaitable, Callable

from softer.conversation.models import Message
from softer.conversation.store import MessageStore
from softer.observability.logging import get_logger
from softer.observability.metrics import SYNC_NOTIFICATIONS
from softer.rooms.lifecycle import RoomLifecycle
from softer.sync.codec import (
    MESSAGE_RECORD_TYPE,
    ROOM_RECORD_TYPE,
    decode_message,
    decode_room,
    room_key,
)
from softer.sync.merge import MergeStrategy, merge_messages, merge_room
from softer.sync.records import (
    ChangeNotification,
    ChangeType,
    RecordNotFoundError,
    RecordStore,
    RecordStoreUnavailableError,
)

logger = get_logger(__name__)

RoomListener = Callable[[RoomLifecycle], Awaitable[None]]
MessagesListener = Callable[[str, list[Message]], Awaitable[None]]


class RoomSyncer:
    """Local cache of room and message observations."""

    def __init__(
        self,
        store: RecordStore,
        *,
        message_store: MessageStore | None = None,
        strategy: MergeStrategy = MergeStrategy.HIGHER_TURN_WINS,
        on_room_change: RoomListener | None = None,
        on_messages: MessagesListener | None = None,
    ):
        self._store = store
        self._message_store = message_store
        self._strategy = strategy
        self._on_room_change = on_room_change
        self._on_messages = on_messages
        self._rooms: dict[str, RoomLifecycle] = {}
        self._messages: dict[str, list[Message]] = {}

    def room(self, room_id: str) -> RoomLifecycle | None:
        return self._rooms.get(room_id)

    def messages(self, room_id: str) -> list[Message]:
        return list(self._messages.get(room_id, []))

    def track(self, lifecycle: RoomLifecycle) -> None:
        """Seed the local view with a room this device already holds."""
        self._rooms[lifecycle.spec.id] = lifecycle

    async def refresh(self, room_id: str) -> RoomLifecycle | None:
        """Fetch the room record and merge it into the local view.

        Store failures propagate (see `refresh_in_background`); a missing or
        undecodable record leaves the local view as it was.
        """
        try:
            record = await self._store.read(room_key(room_id))
        except RecordNotFoundError:
            return self._rooms.get(room_id)

        remote = decode_room(record.value)
        if remote is None:
            return self._rooms.get(room_id)
        return await self._merge_room(remote)

    async def refresh_in_background(self, room_id: str) -> RoomLifecycle | None:
        """Refresh without surfacing an unreachable store.

        The cached view is kept and the next notification or user action
        tries again.
        """
        try:
            return await self.refresh(room_id)
        except RecordStoreUnavailableError as e:
            logger.warning("background_refresh_failed", room_id=room_id, error=str(e))
            return self._rooms.get(room_id)

    async def refresh_messages(self, room_id: str) -> list[Message]:
        if self._message_store is None:
            return self.messages(room_id)
        fetched = await self._message_store.fetch_messages(room_id)
        return await self._merge_messages(room_id, fetched)

    async def handle(self, notification: ChangeNotification) -> None:
        """Apply one change notification to the local view."""
        SYNC_NOTIFICATIONS.labels(
            record_type=notification.record_type, change=notification.change.value
        ).inc()

        if notification.record_type == ROOM_RECORD_TYPE:
            await self._handle_room(notification)
        elif notification.record_type == MESSAGE_RECORD_TYPE:
            await self._handle_message(notification)
        else:
            logger.debug(
                "change_notification_ignored",
                record_type=notification.record_type,
                key=notification.key,
            )

    async def run(self) -> None:
        """Consume the store's change feed until cancelled."""
        async for notification in self._store.subscribe():
            await self.handle(notification)

    async def _handle_room(self, notification: ChangeNotification) -> None:
        if notification.change == ChangeType.DELETED:
            room_id = notification.key.removeprefix(f"{ROOM_RECORD_TYPE}:")
            if self._rooms.pop(room_id, None) is not None:
                logger.info("room_removed", room_id=room_id)
            return

        remote = decode_room(notification.payload)
        if remote is not None:
            await self._merge_room(remote)

    async def _handle_message(self, notification: ChangeNotification) -> None:
        if notification.change == ChangeType.DELETED:
            logger.warning("message_deletion_ignored", key=notification.key)
            return

        message = decode_message(notification.payload)
        if message is not None:
            await self._merge_messages(message.room_id, [message])

    async def _merge_room(self, remote: RoomLifecycle) -> RoomLifecycle:
        room_id = remote.spec.id
        local = self._rooms.get(room_id)
        merged = merge_room(local, remote, self._strategy) if local else remote

        if local is not None and merged.state == local.state:
            return local

        self._rooms[room_id] = merged
        logger.debug(
            "room_view_updated",
            room_id=room_id,
            state=merged.state.kind,
        )
        if self._on_room_change is not None:
            await self._on_room_change(merged)
        return merged

    async def _merge_messages(self, room_id: str, incoming: list[Message]) -> list[Message]:
        current = self._messages.get(room_id, [])
        merged = merge_messages(current, incoming)
        if len(merged) == len(current):
            return list(current)

        self._messages[room_id] = merged
        if self._on_messages is not None:
            await self._on_messages(room_id, list(merged))
        return list(merged)
