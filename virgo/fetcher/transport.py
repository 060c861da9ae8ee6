# virgo/fetcher/transport.py
"""
Transport: performs the network exchange for one request.

The transport owns the timeout and the redirect policy. A response is handed
out inside an async context manager; leaving the context releases the
connection back to the pool (or drops it if the body was not read).
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import (
    AsyncContextManager,
    AsyncIterator,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from aiohttp import (
    ClientError,
    ClientResponse,
    ClientSession,
    ClientTimeout,
    DummyCookieJar,
    InvalidURL,
    TCPConnector,
)

from virgo.errors import InvalidRequestError, TransportError

__all__ = ("Transport", "TransportResponse", "AiohttpTransport")

logger = logging.getLogger("virgo")


@runtime_checkable
class TransportResponse(Protocol):
    """What the executor needs from a received response."""

    status: int
    reason: Optional[str]

    @property
    def headers(self) -> Mapping[str, str]: ...

    @property
    def url(self) -> object: ...

    async def read(self) -> bytes: ...


@runtime_checkable
class Transport(Protocol):
    """Capability: execute a fully formed request, return response or raise."""

    def execute(
        self,
        method: str,
        url: str,
        headers: Sequence[Tuple[str, str]],
        body: bytes,
    ) -> AsyncContextManager[TransportResponse]: ...

    def configure(self, *, timeout: float, follow_redirects: bool) -> None: ...

    def set_timeout(self, timeout: float) -> None: ...

    async def close(self) -> None: ...


class AiohttpTransport:
    """Transport backed by a single aiohttp ClientSession."""

    def __init__(
        self,
        timeout: float = 60.0,
        follow_redirects: bool = False,
        proxy: Optional[str] = None,
        connector_limit: int = 0,
    ) -> None:
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self.proxy = proxy
        self._connector_limit = connector_limit
        self._session: Optional[ClientSession] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def __aenter__(self) -> AiohttpTransport:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def configure(self, *, timeout: float, follow_redirects: bool) -> None:
        self.timeout = timeout
        self.follow_redirects = follow_redirects

    def set_timeout(self, timeout: float) -> None:
        # applied per request, so an open session picks it up immediately
        self.timeout = timeout

    @property
    def closed(self) -> bool:
        """True when no session is open."""
        return self._session is None or self._session.closed

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._loop = None

    def _get_session(self) -> ClientSession:
        loop = asyncio.get_running_loop()
        if not self.closed:
            # aiohttp sessions are bound to the loop they were created in
            if self._loop is not loop:
                raise RuntimeError(
                    "transport has a session open on another event loop, close() it first"
                )
            return self._session  # type: ignore[return-value]
        self._loop = loop
        # no cookie jar: a request carries exactly the headers it was built with
        self._session = ClientSession(
            connector=TCPConnector(limit=self._connector_limit),
            cookie_jar=DummyCookieJar(),
            raise_for_status=False,
        )
        return self._session

    @asynccontextmanager
    async def execute(
        self,
        method: str,
        url: str,
        headers: Sequence[Tuple[str, str]],
        body: bytes,
    ) -> AsyncIterator[ClientResponse]:
        session = self._get_session()
        logger.debug("%s %s", method, url)
        try:
            resp = await session.request(
                method,
                url,
                headers=list(headers),
                data=body or None,
                allow_redirects=self.follow_redirects,
                timeout=ClientTimeout(total=self.timeout),
                proxy=self.proxy,
            )
        except InvalidURL as exc:
            raise InvalidRequestError("invalid URL", url=url, cause=exc) from exc
        except asyncio.TimeoutError as exc:
            raise TransportError(f"timed out after {self.timeout:g}s", url=url, cause=exc) from exc
        except (ClientError, OSError) as exc:
            raise TransportError("request failed", url=url, cause=exc) from exc

        try:
            yield resp
        except BaseException:
            # body not fully consumed, the connection cannot be reused
            resp.close()
            raise
        else:
            resp.release()
