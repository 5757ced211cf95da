import asyncio
from typing import Optional


class CancellationToken:
    """
    Explicit cancellation signal for a running stream.

    The processor checks the token between chunks and also races the pending
    read against it, so cancelling while the source is idle takes effect
    immediately.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None):
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self):
        await self._event.wait()
