"""MessageStore over the replicated record store.

Each message is its own record under ``message:{room_id}:{message_id}``, so
devices append concurrently without ever conflicting on a shared record.
Observers see a room's merged list; remote messages reach them through the
change feed (`handle`, or `run` to consume the feed directly).
"""

from collections import defaultdict
from uuid import uuid4

from softer.conversation.models import Message
from softer.conversation.store import MessageHandler, MessageStore, ObservationToken
from softer.observability.logging import get_logger
from softer.sync.codec import MESSAGE_RECORD_TYPE, decode_message, encode_message, message_key
from softer.sync.merge import merge_messages
from softer.sync.records import ChangeNotification, ChangeType, RecordConflictError, RecordStore

logger = get_logger(__name__)


class _Token(ObservationToken):
    def __init__(self, observers: dict[str, MessageHandler], token_id: str):
        self._observers = observers
        self._token_id = token_id

    def cancel(self) -> None:
        self._observers.pop(self._token_id, None)


class RecordMessageStore(MessageStore):
    """Messages replicated as one record each.

    Saving an id that already has a record is a no-op: messages are immutable,
    so the stored copy is the same message.
    """

    def __init__(self, store: RecordStore):
        self._store = store
        self._messages: dict[str, list[Message]] = {}
        self._observers: dict[str, dict[str, MessageHandler]] = defaultdict(dict)

    async def save(self, message: Message, room_id: str) -> None:
        try:
            await self._store.conditional_write(
                message_key(room_id, message.id),
                MESSAGE_RECORD_TYPE,
                encode_message(message),
                None,
            )
        except RecordConflictError:
            logger.debug("message_already_stored", room_id=room_id, message_id=message.id)
        else:
            logger.debug(
                "message_saved",
                room_id=room_id,
                message_id=message.id,
                is_lightward=message.is_lightward,
            )
        self._merge(room_id, [message])

    async def fetch_messages(self, room_id: str) -> list[Message]:
        records = await self._store.scan(message_key(room_id, ""))
        fetched = []
        for record in records:
            if record.record_type != MESSAGE_RECORD_TYPE:
                continue
            message = decode_message(record.value)
            if message is not None:
                fetched.append(message)
        return self._merge(room_id, fetched)

    async def observe(self, room_id: str, handler: MessageHandler) -> ObservationToken:
        messages = await self.fetch_messages(room_id)
        token_id = str(uuid4())
        self._observers[room_id][token_id] = handler
        handler(messages)
        return _Token(self._observers[room_id], token_id)

    async def handle(self, notification: ChangeNotification) -> None:
        """Merge a message delivered by the change feed; other records are ignored."""
        if notification.record_type != MESSAGE_RECORD_TYPE:
            return
        if notification.change == ChangeType.DELETED:
            logger.warning("message_deletion_ignored", key=notification.key)
            return

        message = decode_message(notification.payload)
        if message is not None:
            self._merge(message.room_id, [message])

    async def run(self) -> None:
        """Consume the store's change feed until cancelled."""
        async for notification in self._store.subscribe():
            await self.handle(notification)

    def _merge(self, room_id: str, incoming: list[Message]) -> list[Message]:
        current = self._messages.get(room_id, [])
        merged = merge_messages(current, incoming)
        if len(merged) == len(current):
            return list(current)

        self._messages[room_id] = merged
        for handler in list(self._observers[room_id].values()):
            handler(list(merged))
        return list(merged)
