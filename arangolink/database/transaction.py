"""Stream transactions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:  # pragma: no cover
    from .database import Database

T = TypeVar("T")


class Transaction:
    """Handle on a server-side stream transaction."""

    def __init__(self, db: Database, transaction_id: str) -> None:
        self._db = db
        self._id = transaction_id

    @property
    def id(self) -> str:
        return self._id

    def __repr__(self) -> str:
        return f"<Transaction {self._id}>"

    async def get(self) -> dict[str, Any]:
        """Fetch the transaction status."""
        return await self._db.request(
            "GET",
            f"/_api/transaction/{self._id}",
            transform=lambda res: res.body["result"],
        )

    async def commit(self) -> dict[str, Any]:
        return await self._db.request(
            "PUT",
            f"/_api/transaction/{self._id}",
            transform=lambda res: res.body["result"],
        )

    async def abort(self) -> dict[str, Any]:
        return await self._db.request(
            "DELETE",
            f"/_api/transaction/{self._id}",
            transform=lambda res: res.body["result"],
        )

    async def step(self, callback: Callable[[], Awaitable[T]]) -> T:
        """Await ``callback()`` with every request carrying this transaction's id.

        The id is set on the shared connection, so requests issued by other
        coroutines while the step runs join the transaction as well.
        """
        connection = self._db.connection
        connection.set_transaction_id(self._id)
        try:
            return await callback()
        finally:
            connection.clear_transaction_id()
