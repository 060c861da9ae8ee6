# File: tests/conftest.py
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Callable, List, Optional, Tuple

import pytest
import pytest_asyncio
from aiohttp import web
from multidict import CIMultiDict, CIMultiDictProxy

from virgo.config import FetchOptions
from virgo.fetcher.models import ResponseMeta, Result

#: seconds a "slow" handler sleeps in the concurrency tests
SLOW_SLEEP: float = 0.3


# --------------------------------------------------------------------------- #
#                               Stub transport                                #
# --------------------------------------------------------------------------- #


class StubResponse:
    """Minimal stand-in for an aiohttp ClientResponse."""

    def __init__(
        self,
        url: str,
        status: int = 200,
        body: bytes = b"",
        headers: Optional[dict] = None,
        reason: str = "OK",
        read_error: Optional[BaseException] = None,
    ) -> None:
        self.url = url
        self.status = status
        self.reason = reason
        self.headers = CIMultiDictProxy(CIMultiDict(headers or {}))
        self._body = body
        self._read_error = read_error

    async def read(self) -> bytes:
        if self._read_error is not None:
            raise self._read_error
        return self._body


class StubTransport:
    """
    Counting transport: records every call, tracks requests in flight.

    *responder* maps a URL to a StubResponse or raises; the default echoes
    the URL back as the body.
    """

    def __init__(
        self,
        delay: float = 0.0,
        responder: Optional[Callable[[str], StubResponse]] = None,
    ) -> None:
        self.delay = delay
        self.responder = responder or (lambda url: StubResponse(url, body=url.encode()))
        self.calls: List[Tuple[str, str, tuple, bytes]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.timeout: Optional[float] = None
        self.follow_redirects: Optional[bool] = None
        self.closed = False

    def configure(self, *, timeout: float, follow_redirects: bool) -> None:
        self.timeout = timeout
        self.follow_redirects = follow_redirects

    def set_timeout(self, timeout: float) -> None:
        self.timeout = timeout

    async def close(self) -> None:
        self.closed = True

    @asynccontextmanager
    async def execute(self, method, url, headers, body):
        self.calls.append((method, url, tuple(headers), body))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            resp = self.responder(url)
            yield resp
        finally:
            self.in_flight -= 1


@pytest.fixture()
def stub_transport() -> StubTransport:
    return StubTransport()


@pytest.fixture()
def options() -> FetchOptions:
    return FetchOptions(concurrency=4, timeout_ms=2000)


def make_result(url: str, status: int = 200, body: bytes = b"<html></html>") -> Result:
    meta = ResponseMeta(
        status=status,
        headers=CIMultiDictProxy(CIMultiDict({"Content-Type": "text/html"})),
        url=url,
        reason="OK",
    )
    return Result.success(url, meta, body)


# --------------------------------------------------------------------------- #
#                            Test-server fixtures                             #
# --------------------------------------------------------------------------- #


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def http_server(unused_tcp_port: int) -> AsyncIterator[str]:
    app = web.Application()

    async def handle_ok(_):
        return web.Response(text="<h1>OK</h1>", content_type="text/html")

    async def handle_slow(_):
        await asyncio.sleep(SLOW_SLEEP)
        return web.Response(text="slow", content_type="text/plain")

    async def handle_hang(_):
        await asyncio.sleep(2)
        return web.Response(text="late", content_type="text/plain")

    async def handle_redirect(_):
        raise web.HTTPMovedPermanently(location="/ok")

    async def handle_headers(request: web.Request):
        return web.json_response({k: v for k, v in request.headers.items()})

    async def handle_echo(request: web.Request):
        body = await request.read()
        return web.json_response({"method": request.method, "body": body.decode()})

    async def handle_missing(_):
        return web.Response(status=404, text="missing")

    async def handle_set_cookie(_):
        resp = web.Response(text="cookie set")
        resp.set_cookie("leaked", "yes")
        return resp

    app.router.add_get("/ok", handle_ok)
    app.router.add_get("/slow/{n}", handle_slow)
    app.router.add_get("/hang", handle_hang)
    app.router.add_get("/redirect", handle_redirect)
    app.router.add_get("/headers", handle_headers)
    app.router.add_route("*", "/echo", handle_echo)
    app.router.add_get("/missing", handle_missing)
    app.router.add_get("/set-cookie", handle_set_cookie)

    async for url in _serve_app(app, unused_tcp_port):
        yield url
