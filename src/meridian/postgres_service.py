"""PostgreSQL implementation of DatabaseService."""

import psycopg2
import psycopg2.extras

from meridian.service import PooledDatabaseService
from meridian.types import Params, ParamsList, Row


def split_statements(sql: str) -> list[str]:
    # psycopg2 runs one statement per execute(); the DDL scripts hold no literals with ';'
    return [statement.strip() for statement in sql.split(";") if statement.strip()]


class PostgresDatabaseService(PooledDatabaseService):
    """PostgreSQL backend using psycopg2.

    Several resolver processes may share one database; the natural-key
    upsert keeps concurrent writers of the same rate consistent.
    """

    placeholder = "%s"

    def __init__(self, dsn: str, pool_size: int = 4):
        super().__init__(pool_size)
        self._dsn = dsn

    def _open_connection(self):
        conn = psycopg2.connect(self._dsn)
        conn.autocommit = False
        return conn

    def execute(self, sql: str, params: Params | None = None) -> list[Row]:
        with self._current().cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(sql, params or ())
            if cur.description is None:
                return []
            return [dict(row) for row in cur.fetchall()]

    def execute_many(self, sql: str, params_list: ParamsList) -> None:
        with self._current().cursor() as cur:
            psycopg2.extras.execute_batch(cur, sql, params_list)

    def execute_ddl(self, sql: str) -> None:
        with self._ddl_connection() as conn, conn.cursor() as cur:
            for statement in split_statements(sql):
                cur.execute(statement)
