"""HTTP client for the Lightward plaintext completion endpoint.

Usage:
    async with LightwardClient.from_config(settings.lightward) as client:
        text = await client.respond(body)
"""

import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from softer.config.models import LightwardConfig
from softer.observability.logging import get_logger
from softer.observability.metrics import LIGHTWARD_LATENCY
from softer.providers.lightward.base import (
    CompletionService,
    ConversationHorizonError,
    LightwardAPIError,
)
from softer.providers.lightward.sse import ERROR, SSEParser

logger = get_logger(__name__)

HORIZON_ERROR_TYPE = "conversation_horizon"


def horizon_from_payload(payload: Any, status_code: int | None = None) -> ConversationHorizonError | None:
    """Recognise a conversation-horizon fault in an error payload.

    Accepts ``{"error": {"type": "conversation_horizon", "farewell": ...}}``
    or the inner object on its own.
    """
    if not isinstance(payload, dict):
        return None
    error = payload.get("error", payload)
    if not isinstance(error, dict) or error.get("type") != HORIZON_ERROR_TYPE:
        return None
    farewell = error.get("farewell") or error.get("message") or ""
    return ConversationHorizonError(str(farewell), status_code=status_code)


class LightwardClient(CompletionService):
    """Async client for the Lightward completion endpoint."""

    def __init__(
        self,
        base_url: str = "https://lightward.com/api/plain",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Plaintext completion endpoint
            timeout: Request timeout in seconds
            transport: Optional transport (tests pass httpx.MockTransport)
        """
        self.base_url = base_url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_config(cls, config: LightwardConfig) -> "LightwardClient":
        return cls(base_url=config.base_url, timeout=config.timeout_seconds)

    async def __aenter__(self) -> "LightwardClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def respond(self, body: str) -> str:
        started = time.perf_counter()
        try:
            response = await self._client.post(
                self.base_url,
                content=body.encode("utf-8"),
                headers={"Content-Type": "text/plain; charset=utf-8"},
            )
        except httpx.HTTPError as e:
            raise LightwardAPIError(f"Request failed: {e}") from e
        finally:
            LIGHTWARD_LATENCY.labels(mode="respond").observe(time.perf_counter() - started)

        if response.status_code != 200:
            raise self._error_for(response)
        return response.text

    async def stream(self, body: str) -> AsyncIterator[str]:
        started = time.perf_counter()
        parser = SSEParser()
        try:
            async with self._client.stream(
                "POST",
                self.base_url,
                content=body.encode("utf-8"),
                headers={
                    "Content-Type": "text/plain; charset=utf-8",
                    "Accept": "text/event-stream",
                },
            ) as response:
                if response.status_code != 200:
                    await response.aread()
                    raise self._error_for(response)

                async for chunk in response.aiter_text():
                    for event in parser.feed(chunk):
                        if event.is_message_stop:
                            return
                        if event.event == ERROR:
                            raise horizon_from_payload(event.json()) or LightwardAPIError(
                                f"Stream error: {event.data}"
                            )
                        text = event.content_delta()
                        if text:
                            yield text

                for event in parser.flush():
                    text = event.content_delta()
                    if text:
                        yield text
        except httpx.HTTPError as e:
            raise LightwardAPIError(f"Stream failed: {e}") from e
        finally:
            LIGHTWARD_LATENCY.labels(mode="stream").observe(time.perf_counter() - started)

    @staticmethod
    def _error_for(response: httpx.Response) -> LightwardAPIError:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        horizon = horizon_from_payload(payload, status_code=response.status_code)
        if horizon is not None:
            return horizon

        logger.warning(
            "lightward_http_error",
            status_code=response.status_code,
        )
        return LightwardAPIError(
            f"HTTP error: {response.status_code}", status_code=response.status_code
        )
