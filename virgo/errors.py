"""
Exception types for virgo.

Only ConfigurationError escapes a dispatch run. FetchError subclasses
describe what went wrong with one URL and travel inside its Result.
"""
from __future__ import annotations

from typing import Optional

__all__ = [
    "VirgoError",
    "ConfigurationError",
    "StreamClosedError",
    "FetchError",
    "InvalidRequestError",
    "TransportError",
    "BodyReadError",
]


class VirgoError(Exception):
    """Base exception for all virgo errors."""


class ConfigurationError(VirgoError, ValueError):
    """Options cannot be used to start a run (e.g. concurrency < 1)."""


class StreamClosedError(VirgoError, RuntimeError):
    """A result was published after the stream had been closed."""


class FetchError(VirgoError):
    """
    Failure of a single request.

    Attributes:
        url: URL as it was submitted
        cause: underlying exception, if this one wraps another
    """

    def __init__(self, message: str, url: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.url = url
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None and str(self.cause):
            return f"{self.message}: {self.cause}"
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, url={self.url!r})"


class InvalidRequestError(FetchError):
    """URL or method cannot form a valid HTTP request."""


class TransportError(FetchError):
    """DNS, connect, TLS or timeout failure before a response arrived."""


class BodyReadError(FetchError):
    """Headers were received but the body could not be read."""

    def __init__(
        self,
        message: str,
        url: str = "",
        cause: Optional[BaseException] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message, url=url, cause=cause)
        self.status = status
