"""Mock completion service for testing."""

from collections.abc import AsyncIterator

from softer.providers.lightward.base import CompletionService


class MockCompletionService(CompletionService):
    """Returns scripted responses without calling the network.

    Responses are consumed in order; once exhausted the default is returned.
    An exception in the script is raised instead of returned.
    """

    def __init__(
        self,
        responses: list[str | Exception] | None = None,
        default_response: str = "Mock response",
        stream_chunk_size: int = 8,
    ):
        self._responses = list(responses or [])
        self._default_response = default_response
        self._stream_chunk_size = stream_chunk_size
        self._call_history: list[str] = []

    @property
    def call_history(self) -> list[str]:
        """Request bodies received, for test assertions."""
        return self._call_history

    def queue(self, response: str | Exception) -> None:
        self._responses.append(response)

    async def respond(self, body: str) -> str:
        self._call_history.append(body)
        response = self._responses.pop(0) if self._responses else self._default_response
        if isinstance(response, Exception):
            raise response
        return response

    async def stream(self, body: str) -> AsyncIterator[str]:
        text = await self.respond(body)
        for i in range(0, len(text), self._stream_chunk_size):
            yield text[i : i + self._stream_chunk_size]
