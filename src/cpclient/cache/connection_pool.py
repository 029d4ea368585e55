"""SQLite connection pool shared by every model bound to one connection name.

Models created from the same source share a connection name, and the pool
registry hands them the same :class:`ConnectionPool` instance so they reuse
open connections instead of reconnecting for every filter request.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, Iterator, List, Sequence, Tuple

from ..config import DEFAULT_POOL_SIZE

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Thread-safe pool of SQLite connections for one database file."""

    _pools: Dict[str, "ConnectionPool"] = {}
    _pools_lock = threading.Lock()

    @classmethod
    def get_pool(cls, connection_name: str | Path, pool_size: int = DEFAULT_POOL_SIZE) -> "ConnectionPool":
        """Return the pool registered for *connection_name*, creating it on demand."""
        key = str(connection_name)
        with cls._pools_lock:
            pool = cls._pools.get(key)
            if pool is None:
                pool = ConnectionPool(key, pool_size)
                cls._pools[key] = pool
            return pool

    @classmethod
    def close_all(cls) -> None:
        """Shut down and forget every registered pool."""
        with cls._pools_lock:
            pools = list(cls._pools.values())
            cls._pools.clear()
        for pool in pools:
            pool.shutdown()

    def __init__(self, db_path: str, pool_size: int = DEFAULT_POOL_SIZE) -> None:
        self._db_path = db_path
        self._pool_size = max(1, pool_size)
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=self._pool_size)
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def db_path(self) -> str:
        return self._db_path

    def _init_pool(self) -> None:
        with self._lock:
            if self._initialized:
                return
            for _ in range(self._pool_size):
                self._pool.put(self._create_connection())
            self._initialized = True
            logger.debug(
                "Initialized connection pool for %s with %d connections",
                self._db_path,
                self._pool_size,
            )

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False, timeout=10.0)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.row_factory = sqlite3.Row
        return conn

    def acquire(self, timeout: float = 5.0) -> sqlite3.Connection:
        """Take a connection out of the pool.

        Raises ``RuntimeError`` when every connection stays busy for *timeout*
        seconds.
        """
        if not self._initialized:
            self._init_pool()
        try:
            return self._pool.get(timeout=timeout)
        except Empty:
            logger.warning("Connection pool exhausted (timeout after %.1fs)", timeout)
            raise RuntimeError(f"Failed to acquire database connection for {self._db_path}") from None

    def release(self, conn: sqlite3.Connection) -> None:
        """Return *conn* to the pool, rolling back anything left uncommitted."""
        try:
            conn.rollback()
            self._pool.put(conn, block=False)
        except (sqlite3.Error, Full) as exc:
            logger.error("Error releasing connection: %s", exc)
            conn.close()

    @contextmanager
    def connection(self, timeout: float = 5.0) -> Iterator[sqlite3.Connection]:
        conn = self.acquire(timeout)
        try:
            yield conn
        finally:
            self.release(conn)

    def execute_query(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        """Run a ``SELECT`` and return every row."""
        with self.connection() as conn:
            return conn.execute(query, tuple(params)).fetchall()

    def execute_many(self, query: str, params_list: List[Tuple[Any, ...]]) -> None:
        """Run *query* once per parameter tuple inside a single transaction."""
        with self.connection() as conn:
            try:
                conn.executemany(query, params_list)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

    def shutdown(self) -> None:
        """Close all idle connections."""
        with self._lock:
            if not self._initialized:
                return
            closed = 0
            while not self._pool.empty():
                try:
                    conn = self._pool.get(block=False)
                except Empty:
                    break
                conn.close()
                closed += 1
            self._initialized = False
            logger.debug("Closed %d connections for %s", closed, self._db_path)
