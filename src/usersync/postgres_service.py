"""PostgreSQL implementation of DatabaseService."""

import threading
import uuid
from contextlib import contextmanager
from queue import Empty, Queue
from typing import Iterator

import psycopg2

from usersync.service import DatabaseService
from usersync.types import Params, QueryResult, Row


class PostgresDatabaseService(DatabaseService):
    """PostgreSQL backend using psycopg2.

    Thread-safe via a connection pool (Queue). Each transaction() call
    acquires a dedicated connection and returns it on exit. Queries run on
    server-side cursors so exports never hold a whole table in memory.
    """

    placeholder = "%s"

    def __init__(self, dsn: str, pool_size: int = 4, fetch_size: int = 2000):
        self._dsn = dsn
        self._pool_size = pool_size
        self._fetch_size = fetch_size
        self._pool: Queue = Queue(maxsize=pool_size)
        self._local = threading.local()

    def connect(self) -> None:
        for _ in range(self._pool_size):
            conn = psycopg2.connect(self._dsn)
            conn.autocommit = False
            self._pool.put(conn)

    def close(self) -> None:
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except Empty:
                break

    def _acquire(self):
        return self._pool.get(timeout=30)

    def _release(self, conn) -> None:
        self._pool.put(conn)

    def _get_conn(self):
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
        with conn.cursor() as cur:
            cur.execute(sql, params or ())
            return cur.rowcount

    def query(self, sql: str, params: Params | None = None) -> QueryResult:
        conn = self._get_conn()
        cur = conn.cursor(name=f"usersync_{uuid.uuid4().hex}")
        cur.itersize = self._fetch_size
        try:
            cur.execute(sql, params or ())
            # Named cursors only expose a description after the first fetch.
            first = cur.fetchmany(self._fetch_size)
            columns = [desc[0] for desc in cur.description]
        except Exception:
            cur.close()
            raise
        return QueryResult(columns, self._stream(cur, columns, first))

    def _stream(self, cur, columns: list[str], batch: list[tuple]) -> Iterator[Row]:
        try:
            while batch:
                for row in batch:
                    yield dict(zip(columns, row))
                batch = cur.fetchmany(self._fetch_size)
        finally:
            cur.close()

    def execute_ddl(self, sql: str) -> None:
        conn = self._acquire()
        try:
            with conn.cursor() as cur:
                for statement in sql.split(";"):
                    statement = statement.strip()
                    if statement:
                        cur.execute(statement)
            conn.commit()
        finally:
            self._release(conn)
