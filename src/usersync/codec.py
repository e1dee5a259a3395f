"""Delimited-text codec: every field double-quoted, comma-separated, UTF-8, LF."""

import csv
from pathlib import Path
from typing import IO, Iterable, Iterator

from usersync.errors import DataFileError
from usersync.schema import RecordSchema
from usersync.types import Row

ENCODING = "utf-8"
LINE_TERMINATOR = "\n"


class DelimitedWriter:
    """Writes a header line and quoted data lines to an open text file."""

    def __init__(self, fh: IO[str]):
        self._writer = csv.writer(fh, quoting=csv.QUOTE_ALL, lineterminator=LINE_TERMINATOR)
        self.rows_written = 0

    def write_header(self, columns: Iterable[str]) -> None:
        self._writer.writerow(columns)

    def write_row(self, values: Iterable[str]) -> None:
        self._writer.writerow(values)
        self.rows_written += 1


def _guarded(reader, path: str | Path) -> Iterator[list[str]]:
    try:
        yield from reader
    except csv.Error as e:
        raise DataFileError(f"Cannot read {path}: {e}", reader.line_num) from e
    except (UnicodeDecodeError, OSError) as e:
        # Raised while fetching the next line, before line_num advances.
        raise DataFileError(f"Cannot read {path}: {e}", reader.line_num + 1) from e


def read_records(path: str | Path, schema: RecordSchema) -> Iterator[tuple[int, Row]]:
    """Yield (line number, decoded row) for every data line of a delimited file.

    The header must list the schema's fields in schema order. Blank lines are
    skipped. An empty file yields nothing.
    """
    try:
        f = open(path, newline="", encoding="utf-8-sig")
    except OSError as e:
        raise DataFileError(f"Cannot open {path}: {e}") from e

    with f:
        reader = csv.reader(f, strict=True)
        lines = _guarded(reader, path)

        header = next(lines, None)
        if header is None:
            return
        if header != schema.field_names:
            raise DataFileError(
                f"Header {header} does not match {schema.table} columns {schema.field_names}",
                reader.line_num,
            )

        width = len(schema.fields)
        for values in lines:
            if not values or all(cell.strip() == "" for cell in values):
                continue
            if len(values) != width:
                raise DataFileError(
                    f"Expected {width} fields, got {len(values)}", reader.line_num
                )
            yield reader.line_num, schema.decode(values, reader.line_num)
