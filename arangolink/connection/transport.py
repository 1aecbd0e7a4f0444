"""httpx transport bound to a single ArangoDB host.

A transport is an async callable taking a ``RequestSpec`` and returning
a ``RawResponse``. It raises a ``TransportError`` subclass when no HTTP
response could be obtained; HTTP error statuses are returned, not raised.

Protocol note: HTTP/2 is negotiated through TLS/ALPN. Cleartext and unix
socket hosts use HTTP/1.1.
"""

from __future__ import annotations

import base64
import errno
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote, urlsplit

import httpx

from ..config import AgentOptions
from ..errors import (
    HostConnectionRefusedError,
    RequestTimeoutError,
    TransportError,
)


@dataclass(slots=True)
class RequestSpec:
    """One fully built HTTP request, relative to a host's base URL."""

    method: str
    path: str
    query: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    timeout: float | None = None
    expect_binary: bool = False


@dataclass(slots=True)
class RawResponse:
    """An HTTP response as seen by the scheduler.

    ``body`` holds raw bytes when returned by a transport and the decoded
    value once the scheduler has parsed it. ``host`` is the index of the
    host that served the response.
    """

    status_code: int
    headers: httpx.Headers
    body: Any = b""
    request: httpx.Request | None = None
    host: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers)


def _join_path(base: str, path: str) -> str:
    if not base:
        return path
    if not path:
        return base
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def _leaf_errors(exc: BaseException, depth: int = 0) -> list[BaseException]:
    """Collect the innermost causes of ``exc``, expanding exception groups."""
    if depth > 8 or (isinstance(exc, OSError) and exc.errno is not None):
        return [exc]
    if isinstance(exc, BaseExceptionGroup):
        leaves = []
        for inner in exc.exceptions:
            leaves.extend(_leaf_errors(inner, depth + 1))
        return leaves
    cause = exc.__cause__ or exc.__context__
    if cause is None:
        return [exc]
    return _leaf_errors(cause, depth + 1)


def is_connection_refused(exc: BaseException) -> bool:
    """Return True when every underlying socket error is ECONNREFUSED."""
    leaves = _leaf_errors(exc)
    if all(
        isinstance(leaf, ConnectionRefusedError) or getattr(leaf, "errno", None) == errno.ECONNREFUSED
        for leaf in leaves
    ):
        return True
    return "Connection refused" in str(exc)


class HttpxTransport:
    """Performs requests against one host with a dedicated ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        agent_options: AgentOptions | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._options = agent_options or AgentOptions()

        parts = urlsplit(base_url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Invalid URL (no protocol): {base_url}")
        is_tls = parts.scheme == "https"

        userinfo, _, hostport = parts.netloc.rpartition("@")
        base_path = parts.path
        socket_path = None
        if hostport == "unix:" or base_url.startswith(f"{parts.scheme}://unix:"):
            if not base_path:
                raise ValueError(
                    "Unix socket URL must be in the format http://unix:/socket/path, "
                    f"http+unix:///socket/path or unix:///socket/path not {base_url}"
                )
            socket_path, _, base_path = base_path.partition(":")
            if not socket_path.replace("/", ""):
                raise ValueError(f"Invalid URL (empty unix socket path): {base_url}")
            hostport = "localhost"

        self._socket_path = socket_path
        self._base_path = base_path
        self._base_query = parts.query
        credentials = unquote(userinfo) if userinfo else "root:"
        self._default_authorization = "Basic " + base64.b64encode(credentials.encode()).decode("ascii")

        options = self._options
        if transport is None:
            limits = httpx.Limits(
                max_connections=options.max_sockets,
                max_keepalive_connections=options.max_sockets if options.keep_alive else 0,
                keepalive_expiry=options.keep_alive_seconds,
            )
            transport = httpx.AsyncHTTPTransport(
                uds=socket_path,
                retries=0,
                limits=limits,
                verify=options.verify,
                http2=options.http2 and is_tls,
            )

        # Timeouts are applied per request; None disables the client default.
        self._client = httpx.AsyncClient(
            base_url=f"{parts.scheme}://{hostport}",
            transport=transport,
            timeout=None,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def socket_path(self) -> str | None:
        return self._socket_path

    def _target(self, spec: RequestSpec) -> str:
        path = _join_path(self._base_path, spec.path) or "/"
        query = "&".join(part for part in (self._base_query, spec.query) if part)
        return f"{path}?{query}" if query else path

    async def __call__(self, spec: RequestSpec) -> RawResponse:
        headers = dict(spec.headers)
        if "authorization" not in headers:
            headers["authorization"] = self._default_authorization

        request = self._client.build_request(
            spec.method,
            self._target(spec),
            headers=headers,
            content=spec.body,
            timeout=spec.timeout if spec.timeout else None,
        )
        if self._options.before is not None:
            self._options.before(request)

        try:
            response = await self._client.send(request)
        except httpx.TransportError as exc:
            error = self._classify(exc)
            if self._options.after is not None:
                self._options.after(error, None)
            raise error from exc

        raw = RawResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=response.content,
            request=request,
        )
        if self._options.after is not None:
            self._options.after(None, raw)
        return raw

    def _classify(self, exc: httpx.TransportError) -> TransportError:
        if isinstance(exc, httpx.TimeoutException):
            return RequestTimeoutError(f"Request to {self._base_url} timed out: {exc}", url=self._base_url)
        if isinstance(exc, httpx.ConnectError):
            error_cls = HostConnectionRefusedError if is_connection_refused(exc) else TransportError
            return error_cls(f"Could not connect to {self._base_url}: {exc}", url=self._base_url)
        return TransportError(f"Request to {self._base_url} failed: {exc}", url=self._base_url)

    async def aclose(self) -> None:
        await self._client.aclose()


def create_transport(url: str, agent_options: AgentOptions | Mapping[str, Any] | None = None) -> HttpxTransport:
    """Default transport factory used by ``Connection``."""
    if isinstance(agent_options, Mapping):
        agent_options = AgentOptions(**agent_options)
    return HttpxTransport(url, agent_options)


__all__ = [
    "HttpxTransport",
    "RawResponse",
    "RequestSpec",
    "create_transport",
    "is_connection_refused",
]
