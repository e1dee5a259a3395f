"""Import a delimited file into a table, updating or inserting row by row."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from usersync import statements
from usersync.codec import read_records
from usersync.errors import ConfigurationError, DataIntegrityError, PathStateError
from usersync.schema import USER_SCHEMA, RecordSchema
from usersync.service import DatabaseService
from usersync.types import Row

logger = logging.getLogger(__name__)


class UpsertMode(str, Enum):
    # UPDATE, then INSERT when nothing matched. Two statements: a concurrent
    # writer can insert the same key in between, which makes the INSERT fail.
    UPDATE_THEN_INSERT = "update-insert"
    # One INSERT ... ON CONFLICT DO UPDATE statement.
    MERGE = "merge"


@dataclass
class ImportResult:
    path: Path
    rows: int = 0
    inserted: int = 0
    updated: int = 0
    merged: int = 0

    @property
    def no_data(self) -> bool:
        return self.rows == 0


def check_input_path(input_path: str | Path | None) -> Path:
    """Validate an import source before any row is processed."""
    if input_path is None or str(input_path).strip() == "":
        raise ConfigurationError("'input' is required.")
    path = Path(input_path)
    if not path.is_file():
        raise PathStateError(f"Input path not exists. input={path}")
    return path


class Upserter:
    """Applies one decoded row at a time, each in its own transaction."""

    def __init__(
        self,
        service: DatabaseService,
        schema: RecordSchema = USER_SCHEMA,
        mode: UpsertMode = UpsertMode.UPDATE_THEN_INSERT,
    ):
        self._service = service
        self._schema = schema
        self._mode = UpsertMode(mode)
        ph = service.placeholder
        self._update = statements.update_by_key(schema, ph)
        self._insert = statements.insert(schema, ph)
        self._merge = statements.merge(schema, ph)

    def apply(self, row: Row, result: ImportResult) -> None:
        with self._service.transaction():
            if self._mode is UpsertMode.MERGE:
                self._execute_one(self._merge, row)
                result.merged += 1
            elif self._execute_one(self._update, row) == 0:
                self._execute_one(self._insert, row)
                result.inserted += 1
            else:
                result.updated += 1
        result.rows += 1

    def _execute_one(self, stmt: statements.Statement, row: Row) -> int:
        count = self._service.execute(stmt.sql, stmt.bind(row))
        if count > 1:
            key = {k: row.get(k) for k in self._schema.primary_key}
            raise DataIntegrityError(
                f"Multiple records were affected. table={self._schema.table} key={key} "
                f"count={count}"
            )
        return count


def import_records(
    service: DatabaseService,
    input_path: str | Path,
    schema: RecordSchema = USER_SCHEMA,
    mode: UpsertMode = UpsertMode.UPDATE_THEN_INSERT,
) -> ImportResult:
    """Upsert every data line of a delimited file into ``schema.table``.

    Lines are applied strictly in file order, each as its own transaction.
    A failing line aborts the rest of the file; lines applied before it stay
    committed. Rerunning the same file is safe because rows are matched by
    primary key.
    """
    path = check_input_path(input_path)
    upserter = Upserter(service, schema, mode)
    result = ImportResult(path)

    try:
        for line_no, row in read_records(path, schema):
            upserter.apply(row, result)
            logger.debug("Line %d applied: %s", line_no, row)
    except Exception as e:
        logger.error("Import of %s aborted after %d committed rows: %s", path, result.rows, e)
        raise

    if result.no_data:
        logger.info("No data found to import. input=%s", path)
    else:
        logger.info(
            "Imported %d rows into %s (inserted=%d updated=%d merged=%d)",
            result.rows,
            schema.table,
            result.inserted,
            result.updated,
            result.merged,
        )
    return result
