"""SQLite implementation of DatabaseService."""

import sqlite3
from decimal import Decimal

from meridian.service import PooledDatabaseService
from meridian.types import Params, ParamsList, Row

# sqlite3 has no native DECIMAL binding; store the exact text and let the
# column affinity decide.
sqlite3.register_adapter(Decimal, str)

MEMORY = ":memory:"


class SQLiteDatabaseService(PooledDatabaseService):
    """SQLite backend using stdlib sqlite3.

    Rates live in a file shared by every pooled connection (WAL mode). An
    in-memory database only exists per connection, so it gets a pool of one.
    """

    placeholder = "?"

    def __init__(self, db_path: str, pool_size: int = 4):
        super().__init__(1 if db_path == MEMORY else pool_size)
        self._db_path = db_path

    def _open_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        if self._db_path != MEMORY:
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def execute(self, sql: str, params: Params | None = None) -> list[Row]:
        cursor = self._current().execute(sql, params or ())
        if cursor.description is None:
            return []
        return [dict(row) for row in cursor.fetchall()]

    def execute_many(self, sql: str, params_list: ParamsList) -> None:
        self._current().executemany(sql, params_list)

    def execute_ddl(self, sql: str) -> None:
        with self._ddl_connection() as conn:
            conn.executescript(sql)
