"""Host pool: the append-only list of known server endpoints.

Every host is addressed by its integer index for the lifetime of the
pool. Hosts are never removed, so an index handed to a queued request
stays valid.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from ..logging import LogManager

_RAW_SCHEME = re.compile(r"^(tcp|ssl|tls)((?::|\+).+)")
_UNIX_SOCKET = re.compile(r"^(?:(https?)\+)?unix://(/.+)")


def normalize_url(url: str) -> str:
    """Return the canonical form of a server URL.

    ``tcp`` is an alias of ``http`` and ``ssl``/``tls`` of ``https``.
    Unix socket URLs (``unix:///sock``, ``http+unix:///sock``) are
    rewritten to ``http://unix:/sock``.
    """
    raw = _RAW_SCHEME.match(url)
    if raw:
        url = ("http" if raw.group(1) == "tcp" else "https") + raw.group(2)
    unix = _UNIX_SOCKET.match(url)
    if unix:
        url = f"{unix.group(1) or 'http'}://unix:{unix.group(2)}"
    return url


class HostPool:
    """Known hosts and the transport bound to each of them."""

    def __init__(self, transport_factory: Callable[[str], Any]) -> None:
        self._transport_factory = transport_factory
        self._urls: list[str] = []
        self._transports: list[Any] = []
        self._index: dict[str, int] = {}
        self._log = LogManager.get_logger("hosts")

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._transports)

    @property
    def urls(self) -> tuple[str, ...]:
        return tuple(self._urls)

    def url(self, index: int) -> str:
        return self._urls[index]

    def transport(self, index: int) -> Any:
        return self._transports[index]

    def add(self, urls: str | Iterable[str]) -> list[int]:
        """Register URLs and return the index of each one, in input order.

        URLs already known (after normalization) keep their index and do
        not get a second transport.
        """
        if isinstance(urls, str):
            urls = [urls]
        indices = []
        for url in (normalize_url(url) for url in urls):
            index = self._index.get(url)
            if index is None:
                # Build the transport first so an invalid URL leaves the pool untouched.
                transport = self._transport_factory(url)
                index = len(self._urls)
                self._urls.append(url)
                self._transports.append(transport)
                self._index[url] = index
                self._log.debug("host_added", url=url, index=index)
            indices.append(index)
        return indices

    async def aclose(self) -> None:
        """Release the resources held by every transport."""
        for transport in self._transports:
            close = getattr(transport, "aclose", None)
            if close is not None:
                await close()
