# virgo/__init__.py
"""
Virgo package initializer.
Bulk HTTP fetching with a bounded pool of workers.
"""
__version__ = "0.1.0"

from virgo.config import FetchOptions, load_options
from virgo.errors import (
    BodyReadError,
    ConfigurationError,
    FetchError,
    InvalidRequestError,
    TransportError,
)
from virgo.fetcher import AiohttpTransport, Dispatcher, Result, ResultStream

__all__ = [
    "__version__",
    "FetchOptions",
    "load_options",
    "Dispatcher",
    "Result",
    "ResultStream",
    "AiohttpTransport",
    "FetchError",
    "ConfigurationError",
    "InvalidRequestError",
    "TransportError",
    "BodyReadError",
]
