"""Path-prefixed helper for arbitrary requests against a database."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from ..connection import RawResponse
    from .database import Database


def _normalize(path: str | None) -> str:
    if not path:
        return ""
    return path if path.startswith("/") else f"/{path}"


class Route:
    """Requests relative to a fixed path below the database, e.g. a Foxx mount."""

    def __init__(self, db: Database, path: str = "", headers: Mapping[str, str] | None = None) -> None:
        self._db = db
        self._path = _normalize(path)
        self._headers = dict(headers or {})

    @property
    def path(self) -> str:
        return self._path

    def route(self, path: str = "", headers: Mapping[str, str] | None = None) -> Route:
        return Route(self._db, self._path + _normalize(path), {**self._headers, **(headers or {})})

    async def request(
        self,
        method: str = "GET",
        path: str = "",
        *,
        headers: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> RawResponse:
        return await self._db.request(
            method.upper(),
            "" if path == "/" else _normalize(path),
            base_path=self._path,
            headers={**self._headers, **(headers or {})},
            **kwargs,
        )

    async def get(self, path: str = "", qs=None, headers=None) -> RawResponse:
        return await self.request("GET", path, qs=qs, headers=headers)

    async def head(self, path: str = "", qs=None, headers=None) -> RawResponse:
        return await self.request("HEAD", path, qs=qs, headers=headers)

    async def delete(self, path: str = "", body: Any = None, qs=None, headers=None) -> RawResponse:
        return await self.request("DELETE", path, body=body, qs=qs, headers=headers)

    async def patch(self, path: str = "", body: Any = None, qs=None, headers=None) -> RawResponse:
        return await self.request("PATCH", path, body=body, qs=qs, headers=headers)

    async def post(self, path: str = "", body: Any = None, qs=None, headers=None) -> RawResponse:
        return await self.request("POST", path, body=body, qs=qs, headers=headers)

    async def put(self, path: str = "", body: Any = None, qs=None, headers=None) -> RawResponse:
        return await self.request("PUT", path, body=body, qs=qs, headers=headers)
