"""Request scheduler shared by one or more databases.

``Connection.request`` builds a task, queues it and returns once the task
has been resolved or rejected. Tasks are dispatched in FIFO order, at most
``agent_options.max_tasks`` at a time, to a host chosen by the load
balancing strategy:

- pinned tasks go to their host;
- dirty-read tasks rotate over all hosts with a cursor of their own;
- other tasks use the active host, which advances on every dispatch with
  ROUND_ROBIN and on failure otherwise.

Refused connections are retried within the retry budget. A 503 naming a
leader endpoint re-queues the task pinned to that endpoint. Scheduler state
is only mutated between awaits, so it needs no locking.
"""

from __future__ import annotations

import asyncio
import base64
import random
import re
import traceback
from collections.abc import Callable, Iterable, Mapping
from typing import Any
from urllib.parse import urlencode

import orjson

from ..config import AgentOptions, BasicAuth, BearerAuth, ConnectionConfig, LoadBalancingStrategy
from ..errors import (
    ArangoError,
    ArangoHttpError,
    HostConnectionRefusedError,
    ResponseDecodeError,
    is_arango_error_response,
)
from ..logging import LogManager
from .hosts import HostPool
from .queue import Task, TaskQueue
from .transport import RawResponse, RequestSpec, create_transport

MIME_JSON = re.compile(r"/(json|javascript)(\W|$)")
LEADER_ENDPOINT_HEADER = "x-arango-endpoint"
DIRTY_READ_HEADER = "x-arango-allow-dirty-read"
TRANSACTION_HEADER = "x-arango-trx-id"
VERSION_HEADER = "x-arango-version"

TransportFactory = Callable[[str, AgentOptions], Any]


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_string(qs: str | Mapping[str, Any] | None) -> str:
    """Render query parameters, dropping None values."""
    if not qs:
        return ""
    if isinstance(qs, str):
        return qs
    pairs = []
    for key, value in qs.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _query_value(item)) for item in value)
        else:
            pairs.append((key, _query_value(value)))
    return urlencode(pairs)


def encode_body(body: Any, is_binary: bool = False) -> tuple[bytes | None, str]:
    """Return the request payload and its content type."""
    if is_binary or isinstance(body, (bytes, bytearray, memoryview)):
        if body is None:
            return None, "application/octet-stream"
        if isinstance(body, str):
            return body.encode("utf-8"), "application/octet-stream"
        if not isinstance(body, (bytes, bytearray, memoryview)):
            raise TypeError(f"Binary body must be bytes-like or str, not {type(body).__name__}")
        return bytes(body), "application/octet-stream"
    if body is None:
        return None, "text/plain"
    if isinstance(body, str):
        return body.encode("utf-8"), "text/plain"
    return orjson.dumps(body), "application/json"


class Connection:
    """Connection pool with load balancing, failover and leader redirects."""

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        config = config or ConnectionConfig()
        config.validate_full()
        self._config = config
        self._agent_options = config.agent_options
        self._arango_version = config.arango_version
        self._strategy = LoadBalancingStrategy(config.load_balancing_strategy)
        self._use_failover = self._strategy is not LoadBalancingStrategy.ROUND_ROBIN
        self._should_retry = config.should_retry
        self._max_retries = 0 if config.max_retries is False else int(config.max_retries)
        self._precapture_stack_traces = config.precapture_stack_traces
        self._headers: dict[str, str] = {key.lower(): value for key, value in config.headers.items()}
        self._transaction_id: str | None = None
        self._log = LogManager.get_logger("connection")

        factory = transport_factory or create_transport
        self._hosts = HostPool(lambda url: factory(url, self._agent_options))
        self._queue = TaskQueue(max_active=self._agent_options.max_tasks)
        self._inflight: set[asyncio.Task] = set()

        self.add_hosts(config.urls)

        if isinstance(config.auth, BearerAuth):
            self.set_bearer_auth(config.auth.token)
        elif isinstance(config.auth, BasicAuth):
            self.set_basic_auth(config.auth.username, config.auth.password)

        if self._strategy is LoadBalancingStrategy.ONE_RANDOM:
            self._active_host = random.randrange(len(self._hosts))
            self._active_dirty_host = random.randrange(len(self._hosts))
        else:
            self._active_host = 0
            self._active_dirty_host = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def urls(self) -> tuple[str, ...]:
        return self._hosts.urls

    @property
    def active_host(self) -> int:
        return self._active_host

    @property
    def active_dirty_host(self) -> int:
        return self._active_dirty_host

    @property
    def active_tasks(self) -> int:
        return self._queue.active

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def transaction_id(self) -> str | None:
        return self._transaction_id

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------
    def add_hosts(self, urls: str | Iterable[str]) -> list[int]:
        """Add URLs to the host pool and return the index of each one."""
        return self._hosts.add(urls)

    def set_header(self, name: str, value: str | None) -> None:
        """Set a default header, or remove it when ``value`` is None."""
        name = name.lower()
        if value is None:
            self._headers.pop(name, None)
        else:
            self._headers[name] = value

    def set_basic_auth(self, username: str = "root", password: str = "") -> None:
        credentials = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        self.set_header("authorization", f"Basic {credentials}")

    def set_bearer_auth(self, token: str) -> None:
        self.set_header("authorization", f"Bearer {token}")

    def set_transaction_id(self, transaction_id: str) -> None:
        """Attach a stream transaction id to every following request."""
        self._transaction_id = transaction_id

    def clear_transaction_id(self) -> None:
        self._transaction_id = None

    async def close(self) -> None:
        """Close the HTTP connections of every known host."""
        await self._hosts.aclose()

    async def __aenter__(self) -> Connection:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    async def request(
        self,
        method: str = "GET",
        path: str = "",
        *,
        base_path: str = "",
        qs: str | Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        host: int | None = None,
        allow_dirty_read: bool = False,
        timeout: float | None = None,
        expect_binary: bool = False,
        is_binary: bool = False,
        transform: Callable[[RawResponse], Any] | None = None,
    ) -> Any:
        """Queue a request and wait for its outcome.

        Args:
            method: HTTP method
            path: Path relative to ``base_path``
            base_path: Prefix such as ``/_db/<name>``
            qs: Query string or mapping of query parameters
            body: JSON-serializable value, ``str`` or bytes
            headers: Headers overriding the connection defaults
            host: Index of the host that must serve the request
            allow_dirty_read: Allow any host, leader or follower, to answer
            timeout: Seconds before the socket is aborted (None/0 = no limit)
            expect_binary: Keep the response body as bytes
            is_binary: Send ``body`` as application/octet-stream
            transform: Applied to the response on success

        Returns:
            ``transform(response)`` or the ``RawResponse``

        Raises:
            TransportError: The request could not be delivered
            ArangoError: The server returned its error envelope
            ArangoHttpError: The server returned an error status
        """
        payload, content_type = encode_body(body, is_binary)
        request_headers = {
            **self._headers,
            "content-type": content_type,
            VERSION_HEADER: str(self._arango_version),
        }
        if self._transaction_id:
            request_headers[TRANSACTION_HEADER] = self._transaction_id
        if headers:
            request_headers.update((key.lower(), value) for key, value in headers.items())

        task = Task(
            spec=RequestSpec(
                method=method.upper(),
                path=f"{base_path or ''}{path or ''}",
                query=build_query_string(qs),
                headers=request_headers,
                body=payload,
                timeout=timeout,
                expect_binary=expect_binary,
            ),
            future=asyncio.get_running_loop().create_future(),
            host=host,
            allow_dirty_read=allow_dirty_read,
            transform=transform,
        )
        if self._precapture_stack_traces:
            task.stack = "".join(traceback.format_stack()[:-1])

        self._queue.push(task)
        self._run_queue()
        return await task.future

    def _run_queue(self) -> None:
        while self._queue.can_dispatch:
            task = self._queue.pop()
            host = self._active_host
            if task.host is not None:
                host = task.host
            elif task.allow_dirty_read:
                host = self._active_dirty_host
                self._active_dirty_host = (self._active_dirty_host + 1) % len(self._hosts)
                task.spec.headers[DIRTY_READ_HEADER] = "true"
            elif self._strategy is LoadBalancingStrategy.ROUND_ROBIN:
                self._active_host = (self._active_host + 1) % len(self._hosts)

            self._queue.started()
            dispatch = asyncio.ensure_future(self._dispatch(task, host))
            self._inflight.add(dispatch)
            dispatch.add_done_callback(self._inflight.discard)

    async def _dispatch(self, task: Task, host: int) -> None:
        try:
            try:
                response = await self._hosts.transport(host)(task.spec)
            except asyncio.CancelledError:
                self._queue.finished()
                task.future.cancel()
                raise
            except Exception as exc:
                self._queue.finished()
                self._handle_error(task, host, exc)
            else:
                self._queue.finished()
                self._handle_response(task, host, response)
        finally:
            self._run_queue()

    def _retry_budget(self) -> int:
        return self._max_retries or len(self._hosts) - 1

    def _handle_error(self, task: Task, host: int, error: Exception) -> None:
        if (
            not task.allow_dirty_read
            and len(self._hosts) > 1
            and self._active_host == host
            and self._use_failover
        ):
            self._active_host = (self._active_host + 1) % len(self._hosts)
            self._log.info("host_failover", failed_host=host, active_host=self._active_host)

        if (
            task.host is None
            and self._should_retry
            and task.retries < self._retry_budget()
            and isinstance(error, HostConnectionRefusedError)
        ):
            task.retries += 1
            self._log.debug("request_retry", host=host, attempt=task.retries, url=self._hosts.url(host))
            self._queue.push(task)
            return

        self._log.debug("request_failed", host=host, error=str(error), error_type=type(error).__name__)
        self._reject(task, error)

    def _reject(self, task: Task, error: Exception) -> None:
        if task.stack:
            error.add_note(f"Request issued at:\n{task.stack}")
        task.reject(error)

    def _handle_response(self, task: Task, host: int, response: RawResponse) -> None:
        leader = response.headers.get(LEADER_ENDPOINT_HEADER)
        if response.status_code == 503 and leader:
            try:
                [index] = self._hosts.add(leader)
            except Exception as exc:
                self._log.warning("leader_redirect_failed", host=host, leader=leader, error=str(exc))
                self._reject(task, exc)
                return
            task.host = index
            if self._active_host == host:
                self._active_host = index
            self._log.info("leader_redirect", host=host, leader=self._hosts.url(index), leader_host=index)
            self._queue.push(task)
            return

        response.host = host
        try:
            result = self._settle(task, response)
        except Exception as exc:
            self._reject(task, exc)
        else:
            task.resolve(result)

    def _settle(self, task: Task, response: RawResponse) -> Any:
        """Decode the body, raise on error responses, apply the transform."""
        expect_binary = task.spec.expect_binary
        raw: bytes = response.body or b""
        content_type = response.headers.get("content-type", "")

        if raw and content_type and MIME_JSON.search(content_type):
            try:
                parsed = orjson.loads(raw)
            except orjson.JSONDecodeError as exc:
                if not expect_binary:
                    response.body = raw.decode("utf-8", errors="replace")
                    raise ResponseDecodeError(f"Invalid JSON response body: {exc}", response) from exc
                parsed = raw
        elif not expect_binary:
            parsed = raw.decode("utf-8", errors="replace")
        else:
            parsed = raw

        if is_arango_error_response(parsed):
            response.body = parsed
            raise ArangoError(response)
        if response.status_code >= 400:
            response.body = parsed
            raise ArangoHttpError.from_response(response)

        if not expect_binary:
            response.body = parsed
        return task.transform(response) if task.transform else response
