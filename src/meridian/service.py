"""DatabaseService interface and the pooled base the backends share."""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from queue import Empty, Queue
from typing import Iterator

from meridian.types import Params, ParamsList, Row

logger = logging.getLogger(__name__)


class DatabaseService(ABC):
    """Database-agnostic interface used by the rate store and currency directory.

    - Each transaction() holds one pooled connection for the calling thread
    - Callers write SQL with `placeholder` so one query runs on every backend
    """

    placeholder: str = "?"

    @abstractmethod
    def connect(self) -> None:
        """Initialize the connection pool."""

    @abstractmethod
    def close(self) -> None:
        """Close all connections and release resources."""

    @abstractmethod
    def execute(self, sql: str, params: Params | None = None) -> list[Row]:
        """Execute a single SQL statement and return rows as dicts."""

    @abstractmethod
    def execute_many(self, sql: str, params_list: ParamsList) -> None:
        """Execute a SQL statement for each parameter set."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Context manager: acquires a connection, commits on success, rolls back on error."""

    @abstractmethod
    def execute_ddl(self, sql: str) -> None:
        """Execute DDL statements (CREATE TABLE, CREATE INDEX, etc.)."""

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder for _ in range(count))

    def upsert(
        self,
        table: str,
        columns: list[str],
        rows: list[tuple],
        conflict_columns: list[str],
    ) -> None:
        """Insert rows, updating the non-key columns on conflict."""
        if not rows:
            return
        cols = ", ".join(columns)
        conflict_cols = ", ".join(conflict_columns)
        update_cols = [c for c in columns if c not in conflict_columns]
        update_clause = ", ".join(f"{c} = excluded.{c}" for c in update_cols)

        sql = f"INSERT INTO {table} ({cols}) VALUES ({self.placeholders(len(columns))}) "
        if update_cols:
            sql += f"ON CONFLICT ({conflict_cols}) DO UPDATE SET {update_clause}"
        else:
            sql += f"ON CONFLICT ({conflict_cols}) DO NOTHING"
        self.execute_many(sql, rows)


class PooledDatabaseService(DatabaseService):
    """Queue-backed connection pool shared by the concrete backends.

    transaction() checks a connection out for the calling thread and pins it
    in thread-local storage; execute()/execute_many() run on that connection.
    Subclasses only open connections and run statements.
    """

    acquire_timeout: float = 30.0

    def __init__(self, pool_size: int = 4):
        self._pool_size = pool_size
        self._pool: Queue = Queue(maxsize=pool_size)
        self._local = threading.local()

    @abstractmethod
    def _open_connection(self):
        """Return a new DB-API connection with autocommit off."""

    def connect(self) -> None:
        for _ in range(self._pool_size):
            self._pool.put(self._open_connection())
        logger.debug("Opened %d %s connection(s)", self._pool_size, type(self).__name__)

    def close(self) -> None:
        while True:
            try:
                conn = self._pool.get_nowait()
            except Empty:
                break
            conn.close()

    def _acquire(self):
        try:
            return self._pool.get(timeout=self.acquire_timeout)
        except Empty:
            raise TimeoutError(
                f"No database connection free after {self.acquire_timeout:.0f}s "
                f"(pool size {self._pool_size}); was connect() called?"
            ) from None

    def _release(self, conn) -> None:
        self._pool.put(conn)

    def _current(self):
        conn = getattr(self._local, "conn", None)
        if conn is None:
            raise RuntimeError(
                "No active transaction. Wrap calls in a `with service.transaction():` block."
            )
        return conn

    @contextmanager
    def transaction(self) -> Iterator[None]:
        conn = self._acquire()
        self._local.conn = conn
        try:
            yield
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            self._release(conn)

    @contextmanager
    def _ddl_connection(self) -> Iterator:
        """Borrow a pooled connection outside any transaction() block."""
        conn = self._acquire()
        try:
            yield conn
            conn.commit()
        finally:
            self._release(conn)
