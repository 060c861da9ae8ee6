"""virgo.fetcher: dispatcher, worker pool, executor and transport."""

from virgo.fetcher.dispatcher import Dispatcher
from virgo.fetcher.executor import RequestExecutor
from virgo.fetcher.models import RequestDescriptor, ResponseMeta, Result
from virgo.fetcher.stream import ResultStream
from virgo.fetcher.transport import AiohttpTransport, Transport, TransportResponse

__all__ = [
    "Dispatcher",
    "RequestExecutor",
    "RequestDescriptor",
    "ResponseMeta",
    "Result",
    "ResultStream",
    "AiohttpTransport",
    "Transport",
    "TransportResponse",
]
