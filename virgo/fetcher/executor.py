# virgo/fetcher/executor.py
"""
Executor module: turns one RequestDescriptor into a network exchange and a
buffered Result. Per-request failures come back as data, never raised.
"""
from __future__ import annotations

import logging
import time
from typing import Tuple

from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from virgo.config import METHOD_RE
from virgo.errors import BodyReadError, FetchError, InvalidRequestError, TransportError
from virgo.fetcher.models import RequestDescriptor, ResponseMeta, Result
from virgo.fetcher.transport import Transport

__all__ = ("RequestExecutor",)

_SCHEMES = ("http", "https")


class RequestExecutor:
    """Runs descriptors through a Transport and wraps the outcome."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self.logger = logging.getLogger("virgo")

    async def execute(self, descriptor: RequestDescriptor) -> Result:
        try:
            method, url = self._validate(descriptor)
        except InvalidRequestError as exc:
            return Result.failure(descriptor.url, exc)

        start = time.monotonic()
        try:
            async with self.transport.execute(method, url, descriptor.headers, descriptor.body) as resp:
                status = resp.status
                try:
                    body = await resp.read()
                except Exception as exc:
                    raise BodyReadError(
                        f"failed to read body (HTTP {status})",
                        url=descriptor.url,
                        cause=exc,
                        status=status,
                    ) from exc
                meta = ResponseMeta(
                    status=status,
                    headers=CIMultiDictProxy(CIMultiDict(resp.headers)),
                    url=str(resp.url),
                    reason=resp.reason,
                    elapsed=time.monotonic() - start,
                )
        except FetchError as exc:
            if not exc.url:
                exc.url = descriptor.url
            self.logger.debug("%s %s failed: %s", method, descriptor.url, exc)
            return Result.failure(descriptor.url, exc)
        except Exception as exc:
            # custom transports may raise anything, the batch must go on
            self.logger.exception("Unexpected transport error for %s", descriptor.url)
            return Result.failure(
                descriptor.url,
                TransportError("unexpected transport error", url=descriptor.url, cause=exc),
            )

        self.logger.debug("%s %s -> %d (%d bytes)", method, descriptor.url, meta.status, len(body))
        return Result.success(descriptor.url, meta, body)

    @staticmethod
    def _validate(descriptor: RequestDescriptor) -> Tuple[str, str]:
        # FetchOptions checks the method too, model_copy(update=...) does not
        if not METHOD_RE.match(descriptor.method):
            raise InvalidRequestError(f"invalid method {descriptor.method!r}", url=descriptor.url)
        try:
            url = URL(descriptor.url)
        except (ValueError, TypeError) as exc:
            raise InvalidRequestError("malformed URL", url=descriptor.url, cause=exc) from exc
        if not url.is_absolute() or url.scheme not in _SCHEMES or not url.host:
            raise InvalidRequestError(f"unsupported URL {descriptor.url!r}", url=descriptor.url)
        return descriptor.method, descriptor.url
