"""
SSE parser turning an httpx streaming response into parsed JSON events.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx

from ..exceptions import StreamingError

DONE_SENTINEL = "[DONE]"


class SSEEventParser:
    """Parses ``data:`` framed server-sent events into JSON objects.

    ``iter_events`` is a lazy, finite, non-restartable async generator: it
    ends when the server closes the stream or sends the ``[DONE]`` sentinel.
    """

    def __init__(self) -> None:
        self.stats = {
            'events': 0,
            'done_received': 0,
        }

    async def iter_events(
        self, response: httpx.Response
    ) -> AsyncGenerator[dict[str, Any]]:
        """Yield one decoded JSON object per SSE event."""
        data_lines: list[str] = []

        async for line in response.aiter_lines():
            if line == "":
                # Blank line terminates the current event
                if data_lines:
                    data = "\n".join(data_lines)
                    data_lines = []
                    if data.strip() == DONE_SENTINEL:
                        self.stats['done_received'] += 1
                        return
                    yield self._decode(data)
                continue

            if line.startswith(":"):
                continue

            field, _, value = line.partition(":")
            if field != "data":
                # event:, id: and retry: carry nothing we consume
                continue
            data_lines.append(value[1:] if value.startswith(" ") else value)

        # Stream closed without a trailing blank line
        if data_lines:
            data = "\n".join(data_lines)
            if data.strip() == DONE_SENTINEL:
                self.stats['done_received'] += 1
                return
            yield self._decode(data)

    def _decode(self, data: str) -> dict[str, Any]:
        try:
            event = json.loads(data)
        except json.JSONDecodeError as e:
            raise StreamingError(f"Invalid JSON in stream chunk: {e}") from e
        if not isinstance(event, dict):
            raise StreamingError(
                f"Expected JSON object in stream chunk, got {type(event).__name__}"
            )
        self.stats['events'] += 1
        return event

    def get_stats(self) -> dict[str, int]:
        """Get streaming statistics for monitoring."""
        return self.stats.copy()

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        self.stats = {
            'events': 0,
            'done_received': 0,
        }
