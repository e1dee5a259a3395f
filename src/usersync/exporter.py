"""Stream a table to a delimited file in primary-key order."""

import logging
from dataclasses import dataclass
from pathlib import Path

from usersync import statements
from usersync.codec import ENCODING, DelimitedWriter
from usersync.errors import ConfigurationError, DataFileError, PathStateError
from usersync.schema import USER_SCHEMA, RecordSchema
from usersync.service import DatabaseService

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    path: Path
    rows: int

    @property
    def no_data(self) -> bool:
        return self.rows == 0


def check_output_path(output_path: str | Path | None) -> Path:
    """Validate an export target before anything is read or written."""
    if output_path is None or str(output_path).strip() == "":
        raise ConfigurationError("'output' is required.")
    path = Path(output_path)
    if path.exists():
        raise PathStateError(f"Output path already exists. output={path}")
    if not path.parent.is_dir():
        raise PathStateError(f"Output parent directory not exists. output={path}")
    return path


def export_records(
    service: DatabaseService,
    output_path: str | Path,
    schema: RecordSchema = USER_SCHEMA,
) -> ExportResult:
    """Export every row of ``schema.table`` to a new delimited file.

    Rows are read ordered by primary key, so unchanged data always produces
    an identical file. The header comes from the query's column names.
    Zero rows still produce a header-only file.
    """
    path = check_output_path(output_path)
    stmt = statements.select_all(schema)

    writer: DelimitedWriter | None = None
    with service.transaction():
        result = service.query(stmt.sql)
        if result.columns != schema.field_names:
            raise ConfigurationError(
                f"Query columns {result.columns} do not match {schema.table} "
                f"columns {schema.field_names}"
            )

        try:
            # "x" refuses to clobber a file created after the precondition check.
            with open(path, "x", newline="", encoding=ENCODING) as f:
                writer = DelimitedWriter(f)
                writer.write_header(result.columns)
                for row in result:
                    writer.write_row(schema.encode(row))
        except FileExistsError as e:
            raise PathStateError(f"Output path already exists. output={path}") from e
        except OSError as e:
            written = writer.rows_written if writer else 0
            logger.error("Export to %s failed after %d rows: %s", path, written, e)
            path.unlink(missing_ok=True)
            raise DataFileError(f"Cannot write {path}: {e}") from e
        except Exception:
            path.unlink(missing_ok=True)
            raise

    if writer.rows_written == 0:
        logger.info("No data found to export. output=%s", path)
    else:
        logger.info("Exported %d rows from %s to %s", writer.rows_written, schema.table, path)
    return ExportResult(path, writer.rows_written)
