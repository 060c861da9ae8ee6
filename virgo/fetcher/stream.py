# virgo/fetcher/stream.py
"""
ResultStream: closeable async channel carrying Results from the workers to
the caller.
"""
from __future__ import annotations

import asyncio
from typing import AsyncIterator, List

from virgo.errors import StreamClosedError
from virgo.fetcher.models import Result

__all__ = ("ResultStream",)

# end-of-stream marker
_EOS = object()


class ResultStream:
    """
    Finite, non-restartable stream of Results.

    ``maxsize=0`` means unbounded. Once closed, iteration ends after the
    buffered Results have been read and every further read is end-of-stream.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize)
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, result: Result) -> None:
        if self._closed:
            raise StreamClosedError(f"stream closed, dropping result for {result.url}")
        await self._queue.put(result)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_EOS)

    def close_nowait(self) -> None:
        """Close without waiting. Raises asyncio.QueueFull if the buffer is full."""
        if self._closed:
            return
        self._queue.put_nowait(_EOS)
        self._closed = True

    def __aiter__(self) -> AsyncIterator[Result]:
        return self

    async def __anext__(self) -> Result:
        if self._drained:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _EOS:
            self._drained = True
            # wake any other reader blocked on get()
            self._queue.put_nowait(_EOS)
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    async def collect(self) -> List[Result]:
        """Read the stream to the end."""
        return [result async for result in self]
