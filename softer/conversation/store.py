"""MessageStore abstract interface."""

from abc import ABC, abstractmethod
from typing import Callable

from softer.conversation.models import Message

MessageHandler = Callable[[list[Message]], None]


class ObservationToken(ABC):
    """Handle for cancelling a message observation."""

    @abstractmethod
    def cancel(self) -> None:
        pass


class MessageStore(ABC):
    """Append-only storage of room messages."""

    @abstractmethod
    async def save(self, message: Message, room_id: str) -> None:
        """Append a message to a room."""
        pass

    @abstractmethod
    async def fetch_messages(self, room_id: str) -> list[Message]:
        """All messages of a room, ordered by creation time."""
        pass

    @abstractmethod
    async def observe(self, room_id: str, handler: MessageHandler) -> ObservationToken:
        """Call `handler` with the full ordered list on every change."""
        pass
