# virgo/fetcher/models.py
"""
Data models for the virgo fetcher.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from multidict import CIMultiDict, CIMultiDictProxy

from virgo.config import FetchOptions
from virgo.errors import BodyReadError, FetchError

__all__ = ("RequestDescriptor", "ResponseMeta", "Result")

Headers = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """One target URL plus the method, body and headers shared by the run."""

    url: str
    method: str
    body: bytes
    headers: Headers

    @classmethod
    def from_options(cls, url: str, options: FetchOptions) -> RequestDescriptor:
        """
        Snapshot *options* for *url*.

        User-Agent and Cookie go in first, configured headers afterwards so a
        same-named header (compared case-insensitively) replaces them.
        """
        merged: CIMultiDict[str] = CIMultiDict()
        if options.user_agent:
            merged["User-Agent"] = options.user_agent
        if options.cookie:
            merged["Cookie"] = options.cookie
        for name, value in options.headers.items():
            merged[name] = value
        return cls(
            url=url,
            method=options.method,
            body=options.body,
            headers=tuple(merged.items()),
        )


@dataclass(frozen=True, slots=True)
class ResponseMeta:
    """Status line and headers of a received response."""

    status: int
    headers: CIMultiDictProxy[str]
    url: str
    reason: Optional[str] = None
    elapsed: float = 0.0

    def headers_dict(self) -> Dict[str, str]:
        """Headers as a plain dict, repeated headers joined with ', '."""
        out: Dict[str, str] = {}
        for name, value in self.headers.items():
            out[name] = f"{out[name]}, {value}" if name in out else value
        return out


@dataclass(frozen=True, slots=True)
class Result:
    """
    Outcome of one submitted URL.

    Either ``response`` and ``body`` are set (success) or ``error`` is set
    (failure), never both and never neither.
    """

    url: str
    response: Optional[ResponseMeta] = None
    body: Optional[bytes] = None
    error: Optional[FetchError] = None

    def __post_init__(self) -> None:
        success = self.response is not None and self.body is not None
        failure = self.error is not None
        if success == failure or (failure and (self.response is not None or self.body is not None)):
            raise ValueError(
                "Result needs either response+body or an error, got "
                f"response={self.response is not None}, body={self.body is not None}, "
                f"error={self.error is not None}"
            )

    @classmethod
    def success(cls, url: str, response: ResponseMeta, body: bytes) -> Result:
        return cls(url=url, response=response, body=body)

    @classmethod
    def failure(cls, url: str, error: FetchError) -> Result:
        return cls(url=url, error=error)

    @property
    def ok(self) -> bool:
        """True when the exchange completed, whatever the HTTP status."""
        return self.error is None

    @property
    def status(self) -> Optional[int]:
        return self.response.status if self.response is not None else None

    def to_dict(self, include_body: bool = False) -> Dict[str, Any]:
        """JSON-friendly summary used by the reports and the CLI."""
        data: Dict[str, Any] = {"url": self.url, "ok": self.ok}
        if self.response is not None and self.body is not None:
            data.update(
                status=self.response.status,
                reason=self.response.reason,
                final_url=self.response.url,
                headers=self.response.headers_dict(),
                size=len(self.body),
                elapsed=round(self.response.elapsed, 4),
            )
            if include_body:
                data["body"] = self.body.decode("utf-8", errors="replace")
        else:
            data["error"] = str(self.error)
            data["error_type"] = type(self.error).__name__
            if isinstance(self.error, BodyReadError) and self.error.status is not None:
                data["status"] = self.error.status
        return data
