"""Database handle built on a shared ``Connection``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ..config import ConnectionConfig
from ..connection import Connection, RawResponse
from ..connection.scheduler import TransportFactory
from .route import Route
from .transaction import Transaction


def _transaction_collections(
    collections: str | Sequence[str] | Mapping[str, Any],
) -> dict[str, Any]:
    if isinstance(collections, str):
        return {"write": [collections]}
    if isinstance(collections, Mapping):
        return dict(collections)
    return {"write": list(collections)}


class Database:
    """Requests scoped to one ArangoDB database.

    Several ``Database`` objects may share one ``Connection``; they then
    share its hosts, queue and authorization header.
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        name: str | None = None,
        connection: Connection | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        if connection is None:
            connection = Connection(config, transport_factory=transport_factory)
        self._connection = connection
        self._name = name or connection.config.database_name

    def __repr__(self) -> str:
        return f"<Database {self._name}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def connection(self) -> Connection:
        return self._connection

    async def __aenter__(self) -> Database:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._connection.close()

    async def request(
        self,
        method: str = "GET",
        path: str = "",
        *,
        absolute_path: bool = False,
        base_path: str = "",
        **kwargs: Any,
    ) -> Any:
        """Perform a request below ``/_db/<name>`` (or the server root if ``absolute_path``)."""
        if not absolute_path:
            base_path = f"/_db/{self._name}{base_path}"
        return await self._connection.request(method, path, base_path=base_path, **kwargs)

    def database(self, name: str) -> Database:
        """Return a handle on another database sharing this connection."""
        return Database(name=name, connection=self._connection)

    def use_database(self, name: str) -> Database:
        self._name = name
        return self

    def route(self, path: str = "", headers: Mapping[str, str] | None = None) -> Route:
        return Route(self, path, headers)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def use_basic_auth(self, username: str = "root", password: str = "") -> Database:
        self._connection.set_basic_auth(username, password)
        return self

    def use_bearer_auth(self, token: str) -> Database:
        self._connection.set_bearer_auth(token)
        return self

    async def login(self, username: str = "root", password: str = "") -> str:
        """Exchange credentials for a JWT and use it for following requests."""

        def use_token(res: RawResponse) -> str:
            token = res.body["jwt"]
            self.use_bearer_auth(token)
            return token

        return await self.request(
            "POST",
            "/_open/auth",
            body={"username": username, "password": password},
            transform=use_token,
        )

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------
    async def version(self, details: bool = False) -> dict[str, Any]:
        return await self.request(
            "GET",
            "/_api/version",
            qs={"details": details},
            transform=lambda res: res.body,
        )

    async def acquire_host_list(self) -> list[int]:
        """Add every coordinator or follower endpoint of the cluster to the host pool.

        Long-running processes should call this periodically so that new
        servers are picked up for failover and load balancing.
        """
        urls = await self.request(
            "GET",
            "/_api/cluster/endpoints",
            transform=lambda res: [endpoint["endpoint"] for endpoint in res.body["endpoints"]],
        )
        return self._connection.add_hosts(urls)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def transaction(self, transaction_id: str) -> Transaction:
        return Transaction(self, transaction_id)

    async def begin_transaction(
        self,
        collections: str | Sequence[str] | Mapping[str, Any],
        **options: Any,
    ) -> Transaction:
        """Start a stream transaction over the given collections.

        Args:
            collections: Collection name(s) to write, or a mapping with
                ``read``/``write``/``exclusive`` keys
            **options: Passed through, e.g. ``waitForSync``, ``lockTimeout``
        """
        return await self.request(
            "POST",
            "/_api/transaction/begin",
            body={"collections": _transaction_collections(collections), **options},
            transform=lambda res: Transaction(self, res.body["result"]["id"]),
        )
