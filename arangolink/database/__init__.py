"""Database-level API on top of the connection pipeline."""

from .database import Database
from .route import Route
from .transaction import Transaction

__all__ = ["Database", "Route", "Transaction"]
