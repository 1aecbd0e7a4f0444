"""
Connection Pipeline
===================

Host pool, task queue, per-host httpx transports and the request
scheduler that ties them together.
"""

from .hosts import HostPool, normalize_url
from .queue import Task, TaskQueue
from .scheduler import (
    DIRTY_READ_HEADER,
    LEADER_ENDPOINT_HEADER,
    TRANSACTION_HEADER,
    VERSION_HEADER,
    Connection,
    build_query_string,
    encode_body,
)
from .transport import HttpxTransport, RawResponse, RequestSpec, create_transport

__all__ = [
    "Connection",
    "DIRTY_READ_HEADER",
    "HostPool",
    "HttpxTransport",
    "LEADER_ENDPOINT_HEADER",
    "RawResponse",
    "RequestSpec",
    "TRANSACTION_HEADER",
    "Task",
    "TaskQueue",
    "VERSION_HEADER",
    "build_query_string",
    "create_transport",
    "encode_body",
    "normalize_url",
]
