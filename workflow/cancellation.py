"""Cooperative cancellation for streaming runs."""

import asyncio
import logging

logger = logging.getLogger(__name__)


class CancellationToken:
    """Set once when the consumer goes away; checked at phase and event boundaries.

    Cancelling never interrupts a provider call already in flight. Work that
    completes after cancellation is still persisted; only its reporting is
    suppressed.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            logger.info("Run cancelled: %s", reason)
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
