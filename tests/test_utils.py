"""
Test utilities and helper functions for the chatstream test suite.
"""

import asyncio
from typing import Any, List, Optional, Tuple


class RecordingCallbacks:
    """Collects every callback invocation in order."""

    def __init__(self):
        self.updates: List[Tuple[str, bool]] = []
        self.errors: List[Exception] = []
        self.completions: List[str] = []
        self.events: List[str] = []

    def on_update(self, text: str, is_complete: bool):
        self.updates.append((text, is_complete))
        self.events.append("update")

    def on_error(self, error: Exception):
        self.errors.append(error)
        self.events.append("error")

    def on_complete(self, final_text: str):
        self.completions.append(final_text)
        self.events.append("complete")

    @property
    def terminal_outcomes(self) -> int:
        return len(self.errors) + len(self.completions)


class ChunkedSource:
    """
    Async source yielding predefined fragments.

    Optionally raises ``error`` after the fragments are exhausted, or hangs
    forever (``hang=True``) to exercise timeouts and cancellation.
    """

    def __init__(self, fragments: List[Any], error: Optional[BaseException] = None,
                 hang: bool = False, delay: float = 0.0):
        self.fragments = list(fragments)
        self.error = error
        self.hang = hang
        self.delay = delay
        self.close_count = 0
        self._index = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self._index < len(self.fragments):
            fragment = self.fragments[self._index]
            self._index += 1
            return fragment
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.sleep(3600)
        raise StopAsyncIteration

    async def aclose(self):
        self.close_count += 1


class SyncChunkedSource:
    """Plain iterable source with a close() hook."""

    def __init__(self, fragments: List[Any]):
        self.fragments = list(fragments)
        self.close_count = 0

    def __iter__(self):
        return iter(self.fragments)

    def close(self):
        self.close_count += 1


def split_bytes(data: bytes, size: int) -> List[bytes]:
    """Cut data into fixed-size pieces, ignoring character and line boundaries."""
    return [data[i:i + size] for i in range(0, len(data), size)]
