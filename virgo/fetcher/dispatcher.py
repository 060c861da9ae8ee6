# === FILE: virgo/fetcher/dispatcher.py ===
from __future__ import annotations

import asyncio
import functools
import time
from typing import List, Optional, Sequence, Set

from virgo.config import FetchOptions
from virgo.errors import ConfigurationError
from virgo.fetcher.executor import RequestExecutor
from virgo.fetcher.models import RequestDescriptor, Result
from virgo.fetcher.stream import ResultStream
from virgo.fetcher.transport import AiohttpTransport, Transport
from virgo.logger import logger

__all__ = ("Dispatcher",)

# end-of-queue marker, one per worker
_CLOSED = object()


class Dispatcher:
    """
    Runs a batch of URLs through a fixed pool of workers.

    Each instance owns its options and transport; independent instances share
    nothing and can run side by side.
    """

    def __init__(
        self,
        options: Optional[FetchOptions] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self._options = options if options is not None else FetchOptions()
        self._owns_transport = transport is None
        if transport is None:
            transport = AiohttpTransport(
                timeout=self._options.timeout,
                follow_redirects=self._options.follow_redirects,
            )
        else:
            transport.configure(
                timeout=self._options.timeout,
                follow_redirects=self._options.follow_redirects,
            )
        self._transport: Transport = transport
        self._active_runs = 0
        self._tasks: Set[asyncio.Task[None]] = set()
        # owned transports replaced by set_transport, closed in close()
        self._retired: List[Transport] = []
        self.logger = logger

    async def __aenter__(self) -> Dispatcher:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def options(self) -> FetchOptions:
        return self._options

    @property
    def transport(self) -> Transport:
        return self._transport

    def set_options(self, options: FetchOptions) -> None:
        """Replace the options wholesale. The transport gets the new timeout and redirect policy."""
        self._ensure_idle("options")
        self._options = options
        self._transport.configure(timeout=options.timeout, follow_redirects=options.follow_redirects)

    def set_timeout(self, timeout_ms: int) -> None:
        """Replace only the timeout."""
        self._ensure_idle("timeout")
        self._options = self._options.with_timeout(timeout_ms)
        self._transport.set_timeout(self._options.timeout)

    def set_transport(self, transport: Transport) -> None:
        """Swap the transport, e.g. for one routed through a proxy."""
        self._ensure_idle("transport")
        transport.configure(
            timeout=self._options.timeout,
            follow_redirects=self._options.follow_redirects,
        )
        if self._owns_transport:
            self._retired.append(self._transport)
        self._transport = transport
        self._owns_transport = False

    async def close(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        while self._retired:
            await self._retired.pop().close()
        if self._owns_transport:
            await self._transport.close()

    async def dispatch(self, urls: Sequence[str], sink: ResultStream) -> None:
        """
        Fetch every URL and publish exactly one Result per URL to *sink*.

        *sink* is closed once all workers have finished. Raises
        ConfigurationError before any request when concurrency < 1.
        """
        options = self._options
        try:
            self._check_options(options)
        except ConfigurationError:
            await sink.close()
            raise
        self._active_runs += 1
        await self._run(urls, sink, options)

    def stream(self, urls: Sequence[str]) -> ResultStream:
        """
        Start a run in the background and return its ResultStream.

        The stream can hold every Result, so a consumer that stops reading
        early never blocks the workers. Must be called from a running loop.
        """
        options = self._options
        self._check_options(options)
        sink = ResultStream(maxsize=len(urls) + 1)
        task = asyncio.create_task(self._run(urls, sink, options))
        # counted now so the options cannot change before the task starts
        self._active_runs += 1
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._stream_done, sink))
        return sink

    async def fetch_all(self, urls: Sequence[str]) -> List[Result]:
        """Run the batch and return all Results (in completion order)."""
        return await self.stream(urls).collect()

    def _stream_done(self, sink: ResultStream, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not sink.closed:
            # cancelled before _run started, so its finally never ran
            self._active_runs -= 1
            sink.close_nowait()

    async def _run(self, urls: Sequence[str], sink: ResultStream, options: FetchOptions) -> None:
        start = time.monotonic()
        stats = {"ok": 0, "failed": 0}
        try:
            if not urls:
                self.logger.info("Nothing to fetch")
                return

            executor = RequestExecutor(self._transport)
            workers_count = options.concurrency
            self.logger.info("Fetching %d URLs with %d workers", len(urls), workers_count)

            queue: asyncio.Queue[object] = asyncio.Queue(len(urls) + workers_count)
            for descriptor in self._produce(urls, options):
                queue.put_nowait(descriptor)
            # close for writing: no descriptor is added after the markers
            for _ in range(workers_count):
                queue.put_nowait(_CLOSED)

            workers = [
                asyncio.create_task(self._worker(queue, executor, sink, stats))
                for _ in range(workers_count)
            ]
            try:
                await asyncio.gather(*workers)
            except BaseException:
                for w in workers:
                    w.cancel()
                await asyncio.gather(*workers, return_exceptions=True)
                raise

            self.logger.info(
                "Done: %d ok, %d failed in %.2f s",
                stats["ok"],
                stats["failed"],
                time.monotonic() - start,
            )
        finally:
            self._active_runs -= 1
            await sink.close()

    @staticmethod
    def _produce(urls: Sequence[str], options: FetchOptions) -> List[RequestDescriptor]:
        return [RequestDescriptor.from_options(url, options) for url in urls]

    async def _worker(
        self,
        queue: asyncio.Queue[object],
        executor: RequestExecutor,
        sink: ResultStream,
        stats: dict,
    ) -> None:
        while True:
            item = await queue.get()
            if item is _CLOSED:
                return
            result = await executor.execute(item)  # type: ignore[arg-type]
            stats["ok" if result.ok else "failed"] += 1
            await sink.put(result)

    @staticmethod
    def _check_options(options: FetchOptions) -> None:
        # model_copy(update=...) skips validation, so check again here
        if options.concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {options.concurrency}")

    def _ensure_idle(self, what: str) -> None:
        if self._active_runs:
            raise RuntimeError(f"cannot replace {what} while a dispatch is running")
