"""Shared fixtures: an in-memory transport standing in for ArangoDB hosts."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any

import orjson
import pytest

from arangolink.config import AgentOptions, ConnectionConfig
from arangolink.connection import Connection, RawResponse, RequestSpec
from arangolink.errors import HostConnectionRefusedError, TransportError


def _json_response(status_code: int = 200, body: Any = None, headers: dict[str, str] | None = None) -> RawResponse:
    """Build a RawResponse carrying a JSON body."""
    return RawResponse(
        status_code=status_code,
        headers={"content-type": "application/json; charset=utf-8", **(headers or {})},
        body=orjson.dumps(body if body is not None else {"ok": True}),
    )


def _refused(url: str = "http://localhost:8529") -> HostConnectionRefusedError:
    return HostConnectionRefusedError(f"Could not connect to {url}: [Errno 111] Connection refused", url=url)


def _network_error(url: str = "http://localhost:8529") -> TransportError:
    return TransportError(f"Request to {url} failed: Connection reset by peer", url=url)


class FakeHost:
    """Transport double: records requests and replays scripted outcomes.

    An outcome is a RawResponse, an exception to raise, or a future whose
    result is one of those.
    """

    def __init__(self, url: str, journal: list[str]) -> None:
        self.url = url
        self.calls: list[RequestSpec] = []
        self.outcomes: deque[Any] = deque()
        self.closed = False
        self._journal = journal

    def script(self, *outcomes: Any) -> FakeHost:
        self.outcomes.extend(outcomes)
        return self

    async def __call__(self, spec: RequestSpec) -> RawResponse:
        self.calls.append(spec)
        self._journal.append(self.url)
        outcome = self.outcomes.popleft() if self.outcomes else _json_response(body={"host": self.url})
        if isinstance(outcome, asyncio.Future):
            outcome = await outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


class FakeTransportFactory:
    """Creates one FakeHost per URL; ``journal`` lists every host hit, in order."""

    def __init__(self) -> None:
        self.hosts: dict[str, FakeHost] = {}
        self.journal: list[str] = []
        self.created: list[str] = []

    def __call__(self, url: str, agent_options: AgentOptions) -> FakeHost:
        if "://" not in url:
            raise ValueError(f"Invalid URL (no protocol): {url}")
        self.created.append(url)
        host = FakeHost(url, self.journal)
        self.hosts[url] = host
        return host

    def __getitem__(self, url: str) -> FakeHost:
        return self.hosts[url]


@pytest.fixture
def fake_factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def make_connection(fake_factory: FakeTransportFactory):
    """Build a Connection wired to the fake transport factory."""

    def _make(**config: Any) -> Connection:
        return Connection(ConnectionConfig(**config), transport_factory=fake_factory)

    return _make


@pytest.fixture
def json_response():
    return _json_response


@pytest.fixture
def refused():
    return _refused


@pytest.fixture
def network_error():
    return _network_error
