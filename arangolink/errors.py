"""Error types raised by the connection pipeline.

Three families reach callers of ``Connection.request``:

- ``TransportError`` and its subclasses: the request never produced an
  HTTP response (refused connection, DNS failure, timeout, reset socket).
- ``ArangoError``: the server answered with its structured error envelope
  ``{"error", "code", "errorMessage", "errorNum"}``.
- ``ArangoHttpError``: the server answered with a status >= 400 but
  without the envelope.

Each one is constructed where the failure is first detected.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from .connection.transport import RawResponse

HTTP_REASON_PHRASES: dict[int, str] = {
    0: "Network Error",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Timeout",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Payload Too Large",
    414: "Request-URI Too Long",
    415: "Unsupported Media Type",
    416: "Requested Range Not Satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",
    421: "Misdirected Request",
    422: "Unprocessable Entity",
    423: "Locked",
    424: "Failed Dependency",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    444: "Connection Closed Without Response",
    451: "Unavailable For Legal Reasons",
    499: "Client Closed Request",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    510: "Not Extended",
    511: "Network Authentication Required",
    599: "Network Connect Timeout Error",
}

_ERROR_ENVELOPE_KEYS = ("error", "code", "errorMessage", "errorNum")


def is_arango_error_response(body: Any) -> bool:
    """Return True when ``body`` has the server's error envelope shape."""
    return isinstance(body, dict) and all(key in body for key in _ERROR_ENVELOPE_KEYS)


class ArangoClientError(RuntimeError):
    """Base class for every error raised by arangolink."""


# ----------------------------------------------------------------------
# Transport layer
# ----------------------------------------------------------------------
class TransportError(ArangoClientError):
    """The request failed before an HTTP response was received."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class HostConnectionRefusedError(TransportError):
    """The host actively refused the TCP or unix socket connection.

    This is the only failure the scheduler retries on another attempt.
    """


class RequestTimeoutError(TransportError):
    """The request exceeded its timeout and the socket was aborted."""


# ----------------------------------------------------------------------
# HTTP / application layer
# ----------------------------------------------------------------------
class ArangoError(ArangoClientError):
    """Raised when ArangoDB answers with its structured error envelope."""

    def __init__(self, response: RawResponse) -> None:
        body = response.body
        self.response = response
        self.message: str = body.get("errorMessage", "")
        self.error_num: int = body.get("errorNum", 0)
        self.code: int = body.get("code", response.status_code)
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.response.status_code

    def __str__(self) -> str:
        return f"ArangoDB error {self.error_num} (HTTP {self.code}): {self.message}"


class ArangoHttpError(ArangoClientError):
    """Raised when the ArangoDB HTTP API reports an error without an envelope."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        response: RawResponse | None = None,
    ) -> None:
        if message is None:
            message = HTTP_REASON_PHRASES.get(status_code, HTTP_REASON_PHRASES[500])
        super().__init__(f"ArangoDB HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.details = details or {}
        self.response = response

    @classmethod
    def from_response(cls, response: RawResponse) -> ArangoHttpError:
        status_code = response.status_code or 500
        details = response.body if isinstance(response.body, dict) else {}
        return cls(status_code, details=details, response=response)


class ResponseDecodeError(ArangoClientError):
    """A response advertised JSON but its body could not be decoded."""

    def __init__(self, message: str, response: RawResponse) -> None:
        super().__init__(message)
        self.response = response


__all__ = [
    "ArangoClientError",
    "ArangoError",
    "ArangoHttpError",
    "HTTP_REASON_PHRASES",
    "HostConnectionRefusedError",
    "RequestTimeoutError",
    "ResponseDecodeError",
    "TransportError",
    "is_arango_error_response",
]
