"""Local row storage: the SQLite connection pool and the in-memory row store."""

from .connection_pool import ConnectionPool
from .row_store import RowStore

__all__ = ["ConnectionPool", "RowStore"]
