"""Server-sent event framing, heartbeats and disconnect handling."""

import asyncio
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from models.enums import GenerationEvent
from workflow.cancellation import CancellationToken

logger = logging.getLogger(__name__)

HEARTBEAT_FRAME = ": heartbeat\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_END = object()


def format_sse(event: str, payload: dict) -> str:
    """One frame: `event: <name>\\ndata: <json>\\n\\n`."""
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


class EventChannel:
    """Queue between a running generation and the HTTP response body.

    Acts as the run's GenerationCallback. Frames are queued as events arrive
    and written by `frames()`, interleaved with heartbeat comments from an
    independent timer. After the token is cancelled nothing more is queued
    or written.
    """

    def __init__(self, token: CancellationToken, heartbeat_interval: float = 25.0):
        self.token = token
        self.heartbeat_interval = heartbeat_interval
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def on_event(self, event: GenerationEvent, payload: dict) -> None:
        if self.token.cancelled or self._closed:
            return
        name = event.value if isinstance(event, GenerationEvent) else str(event)
        self._queue.put_nowait(format_sse(name, payload))

    def close(self) -> None:
        """Mark the run finished; frames() drains what is queued, then stops."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    async def _heartbeat(self) -> None:
        while not self.token.cancelled and not self._closed:
            await asyncio.sleep(self.heartbeat_interval)
            if not self.token.cancelled and not self._closed:
                self._queue.put_nowait(HEARTBEAT_FRAME)

    async def frames(
        self,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[str]:
        heartbeat = asyncio.create_task(self._heartbeat())
        try:
            while True:
                frame = await self._queue.get()
                if frame is _END or self.token.cancelled:
                    break
                if is_disconnected is not None and await is_disconnected():
                    self.token.cancel("client disconnected")
                    break
                yield frame
        finally:
            heartbeat.cancel()
            # The response ended before the run did: the peer is gone
            if not self._closed:
                self.token.cancel("stream closed")
