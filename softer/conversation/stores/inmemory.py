"""In-memory implementation of MessageStore."""

from collections import defaultdict
from uuid import uuid4

from softer.conversation.models import Message
from softer.conversation.store import MessageHandler, MessageStore, ObservationToken
from softer.observability.logging import get_logger

logger = get_logger(__name__)


class _Token(ObservationToken):
    def __init__(self, store: "InMemoryMessageStore", room_id: str, token_id: str):
        self._store = store
        self._room_id = room_id
        self._token_id = token_id

    def cancel(self) -> None:
        self._store._observers[self._room_id].pop(self._token_id, None)


class InMemoryMessageStore(MessageStore):
    """In-memory MessageStore for testing and development.

    Messages are kept per room in creation order; saving a message id that is
    already stored is ignored.
    """

    def __init__(self) -> None:
        self._messages: dict[str, list[Message]] = defaultdict(list)
        self._observers: dict[str, dict[str, MessageHandler]] = defaultdict(dict)

    async def save(self, message: Message, room_id: str) -> None:
        messages = self._messages[room_id]
        if any(m.id == message.id for m in messages):
            return
        messages.append(message)
        messages.sort(key=lambda m: m.created_at)
        logger.debug(
            "message_saved",
            room_id=room_id,
            message_id=message.id,
            is_lightward=message.is_lightward,
            is_narration=message.is_narration,
        )
        self._notify(room_id)

    async def fetch_messages(self, room_id: str) -> list[Message]:
        return list(self._messages[room_id])

    async def observe(self, room_id: str, handler: MessageHandler) -> ObservationToken:
        token_id = str(uuid4())
        self._observers[room_id][token_id] = handler
        handler(list(self._messages[room_id]))
        return _Token(self, room_id, token_id)

    def _notify(self, room_id: str) -> None:
        snapshot = list(self._messages[room_id])
        for handler in list(self._observers[room_id].values()):
            handler(snapshot)
