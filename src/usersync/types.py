"""Shared types for the usersync package."""

from dataclasses import dataclass, field
from typing import Any, Iterator

Row = dict[str, Any]
Params = tuple | list | dict


@dataclass
class QueryResult:
    """Column names of an executed query plus a stream of its rows.

    Rows are produced lazily and are only valid while the transaction that
    ran the query is open.
    """

    columns: list[str]
    rows: Iterator[Row] = field(default_factory=lambda: iter(()))

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)
