"""Abstract DatabaseService interface.

This is the only surface the export, import and delete drivers depend on.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator

from usersync.types import Params, QueryResult


class DatabaseService(ABC):
    """Database-agnostic statement executor.

    Design principles:
    - Stateless: no mutable state beyond the connection pool
    - Thread-safe: each transaction() acquires its own connection
    - DB-agnostic: callers program against this ABC, never a concrete backend
    """

    #: Bind marker used by the backend's DB-API driver.
    placeholder: str = "?"

    @abstractmethod
    def connect(self) -> None:
        """Initialize the connection pool."""

    @abstractmethod
    def close(self) -> None:
        """Close all connections and release resources."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Context manager: acquires a connection, commits on success, rolls back on error."""

    @abstractmethod
    def execute(self, sql: str, params: Params | None = None) -> int:
        """Execute a data-modifying statement and return the affected row count."""

    @abstractmethod
    def query(self, sql: str, params: Params | None = None) -> QueryResult:
        """Execute a SELECT and return its column names and a row stream."""

    @abstractmethod
    def execute_ddl(self, sql: str) -> None:
        """Execute DDL statements (CREATE TABLE, CREATE INDEX, etc.)."""
