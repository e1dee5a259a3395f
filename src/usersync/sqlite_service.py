"""SQLite implementation of DatabaseService."""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from queue import Empty, Queue
from typing import Iterator

from usersync.service import DatabaseService
from usersync.types import Params, QueryResult, Row

# Values are stored in their canonical text form so that the optimistic-lock
# comparison on upd_ts matches what was written.
sqlite3.register_adapter(Decimal, str)
sqlite3.register_adapter(date, date.isoformat)
sqlite3.register_adapter(datetime, datetime.isoformat)


class SQLiteDatabaseService(DatabaseService):
    """SQLite backend using stdlib sqlite3.

    Thread-safe via a connection pool (Queue). Each transaction() call
    acquires a dedicated connection and returns it on exit.
    """

    placeholder = "?"

    def __init__(self, db_path: str, pool_size: int = 4):
        self._db_path = db_path
        # Every connection to ":memory:" opens its own empty database.
        if db_path == ":memory:":
            pool_size = 1
        self._pool_size = pool_size
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._local = threading.local()

    def connect(self) -> None:
        for _ in range(self._pool_size):
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            self._pool.put(conn)

    def close(self) -> None:
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except Empty:
                break

    def _acquire(self) -> sqlite3.Connection:
        return self._pool.get(timeout=30)

    def _release(self, conn: sqlite3.Connection) -> None:
        self._pool.put(conn)

    def _get_conn(self) -> sqlite3.Connection:
        """Get the connection bound to the current transaction."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            return conn
        raise RuntimeError(
            "No active transaction. Wrap calls in a `with service.transaction():` block."
        )

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

    def execute(self, sql: str, params: Params | None = None) -> int:
        conn = self._get_conn()
        cursor = conn.execute(sql, params or ())
        return cursor.rowcount

    def query(self, sql: str, params: Params | None = None) -> QueryResult:
        conn = self._get_conn()
        cursor = conn.execute(sql, params or ())
        columns = [desc[0] for desc in cursor.description or ()]
        return QueryResult(columns, self._stream(cursor, columns))

    @staticmethod
    def _stream(cursor: sqlite3.Cursor, columns: list[str]) -> Iterator[Row]:
        try:
            for row in cursor:
                yield dict(zip(columns, row))
        finally:
            cursor.close()

    def execute_ddl(self, sql: str) -> None:
        conn = self._acquire()
        try:
            conn.executescript(sql)
            conn.commit()
        finally:
            self._release(conn)
