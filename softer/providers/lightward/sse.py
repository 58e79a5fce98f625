"""Incremental Server-Sent Events parsing."""

import json
from dataclasses import dataclass
from typing import Any

CONTENT_BLOCK_DELTA = "content_block_delta"
MESSAGE_STOP = "message_stop"
ERROR = "error"


@dataclass(frozen=True)
class SSEEvent:
    event: str | None
    data: str

    @property
    def is_message_stop(self) -> bool:
        return self.event == MESSAGE_STOP

    def json(self) -> Any | None:
        try:
            return json.loads(self.data)
        except json.JSONDecodeError:
            return None

    def content_delta(self) -> str | None:
        """Text carried by a ``content_block_delta`` event, if any."""
        if self.event != CONTENT_BLOCK_DELTA:
            return None
        payload = self.json()
        if not isinstance(payload, dict):
            return None
        delta = payload.get("delta")
        if not isinstance(delta, dict):
            return None
        text = delta.get("text")
        return text if isinstance(text, str) else None


class SSEParser:
    """Buffers chunks of an event stream and emits complete events.

    Events are separated by a blank line; partial events are held until the
    rest arrives.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> list[SSEEvent]:
        self._buffer += chunk.replace("\r\n", "\n")
        events = []
        while "\n\n" in self._buffer:
            block, self._buffer = self._buffer.split("\n\n", 1)
            event = self._parse_block(block)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> list[SSEEvent]:
        """Parse whatever is left once the stream has ended."""
        if not self._buffer.strip():
            self._buffer = ""
            return []
        return self.feed("\n\n")

    def reset(self) -> None:
        self._buffer = ""

    @staticmethod
    def _parse_block(block: str) -> SSEEvent | None:
        event_type = None
        data_lines = []
        for line in block.split("\n"):
            if line.startswith(":"):
                continue
            if line.startswith("event:"):
                event_type = line[len("event:"):].strip()
            elif line.startswith("data:"):
                data_lines.append(line[len("data:"):].strip())

        if not data_lines:
            return None
        return SSEEvent(event=event_type, data="\n".join(data_lines))
