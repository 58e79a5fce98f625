"""Lightward completion service interface and error types."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class LightwardAPIError(Exception):
    """Transport or HTTP failure talking to the completion service."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConversationHorizonError(LightwardAPIError):
    """The conversation has grown past what Lightward can hold.

    Carries Lightward's farewell; the room ends rather than continuing.
    """

    def __init__(self, farewell: str, status_code: int | None = None):
        super().__init__("Conversation horizon reached", status_code=status_code)
        self.farewell = farewell


class CompletionService(ABC):
    """Produces Lightward's response to a plaintext request body."""

    @abstractmethod
    async def respond(self, body: str) -> str:
        """Return the complete response text.

        Raises:
            ConversationHorizonError: the conversation cannot continue
            LightwardAPIError: any other service failure
        """
        pass

    async def stream(self, body: str) -> AsyncIterator[str]:
        """Yield the response incrementally.

        The default delivers the whole response as one chunk.
        """
        yield await self.respond(body)
