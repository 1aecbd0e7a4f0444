"""
arangolink
==========

Asynchronous ArangoDB client core: a connection pool with load balancing,
failover, leader redirects, dirty reads and bounded request concurrency.
"""

from .config import (
    AgentOptions,
    BasicAuth,
    BearerAuth,
    ConnectionConfig,
    LoadBalancingStrategy,
    resolve_connection_config,
)
from .connection import Connection, RawResponse
from .database import Database, Route, Transaction
from .errors import (
    ArangoClientError,
    ArangoError,
    ArangoHttpError,
    HostConnectionRefusedError,
    RequestTimeoutError,
    ResponseDecodeError,
    TransportError,
)
from .logging import LogManager

__version__ = "0.1.0"

__all__ = [
    "AgentOptions",
    "ArangoClientError",
    "ArangoError",
    "ArangoHttpError",
    "BasicAuth",
    "BearerAuth",
    "Connection",
    "ConnectionConfig",
    "Database",
    "HostConnectionRefusedError",
    "LoadBalancingStrategy",
    "LogManager",
    "RawResponse",
    "RequestTimeoutError",
    "ResponseDecodeError",
    "Route",
    "Transaction",
    "TransportError",
    "resolve_connection_config",
]
