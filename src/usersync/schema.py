"""Record schemas for the user and pet tables.

A schema fixes the column order used by the delimited files and by every
generated statement, and knows how to turn a text field into a typed value
and back.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from usersync.errors import RecordValidationError
from usersync.service import DatabaseService
from usersync.types import Row

_ALNUM = re.compile(r"^[A-Za-z0-9]+$")


class FieldKind(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class FieldSpec:
    """One column of a record schema."""

    name: str
    kind: FieldKind = FieldKind.STRING
    required: bool = False
    max_length: int | None = None
    precision: int | None = None  # total digits, DECIMAL/INTEGER only
    scale: int = 0  # fraction digits, DECIMAL only
    alphanumeric: bool = False

    def decode(self, text: str | None, line_no: int | None = None) -> Any:
        """Convert a text field into a typed value, validating it on the way."""
        if text is None or text.strip() == "":
            if self.required:
                raise RecordValidationError(self.name, "value is required", line_no)
            return None

        if self.kind is FieldKind.STRING:
            if self.max_length is not None and len(text) > self.max_length:
                raise RecordValidationError(
                    self.name, f"longer than {self.max_length} characters", line_no
                )
            if self.alphanumeric and not _ALNUM.match(text):
                raise RecordValidationError(self.name, "must be alphanumeric", line_no)
            return text

        text = text.strip()
        try:
            if self.kind is FieldKind.DATE:
                return date.fromisoformat(text)
            if self.kind is FieldKind.TIMESTAMP:
                return datetime.fromisoformat(text)
            value = Decimal(text)
        except (ValueError, InvalidOperation):
            raise RecordValidationError(
                self.name, f"invalid {self.kind.value} {text!r}", line_no
            ) from None

        if not value.is_finite():
            raise RecordValidationError(self.name, f"invalid number {text!r}", line_no)
        self._check_digits(value, line_no)
        if self.kind is FieldKind.INTEGER:
            return int(value)
        return value

    def _check_digits(self, value: Decimal, line_no: int | None) -> None:
        # normalize() drops trailing fraction zeros, so "5.0" fits NUMERIC(2).
        _, digits, exponent = value.normalize().as_tuple()
        fraction = max(0, -exponent)
        integer = max(0, len(digits) + exponent)
        scale = self.scale if self.kind is FieldKind.DECIMAL else 0
        if fraction > scale:
            raise RecordValidationError(
                self.name, f"at most {scale} fraction digits allowed", line_no
            )
        if self.precision is not None and integer > self.precision - scale:
            raise RecordValidationError(
                self.name, f"at most {self.precision - scale} integer digits allowed", line_no
            )

    @staticmethod
    def encode(value: Any) -> str:
        """Render a stored value in its canonical text form."""
        if value is None:
            return ""
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return str(value)


@dataclass(frozen=True)
class RecordSchema:
    """Ordered field list, primary key and version column of one table."""

    table: str
    fields: tuple[FieldSpec, ...]
    primary_key: tuple[str, ...]
    version_field: str | None = None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def non_key_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.name not in self.primary_key]

    def field(self, name: str) -> FieldSpec:
        for fs in self.fields:
            if fs.name == name:
                return fs
        raise KeyError(f"{self.table} has no field {name!r}")

    def decode(self, values: list[str], line_no: int | None = None) -> Row:
        """Decode one text record, in schema order, into a typed Row."""
        return {fs.name: fs.decode(text, line_no) for fs, text in zip(self.fields, values)}

    def encode(self, row: Row) -> list[str]:
        """Encode a Row into text fields in schema order."""
        return [FieldSpec.encode(row.get(name)) for name in self.field_names]


def _key(name: str, **kwargs) -> FieldSpec:
    return FieldSpec(name, required=True, **kwargs)


USER_TABLE = "t_user"
USER_SCHEMA = RecordSchema(
    table=USER_TABLE,
    fields=(
        _key("user_id", max_length=4, alphanumeric=True),
        FieldSpec("user_nm", required=True, max_length=20),
        FieldSpec("email", max_length=50),
        FieldSpec("country_cs", max_length=2),
        FieldSpec("gender_cs", max_length=1),
        FieldSpec("spouse_cs", max_length=1),
        FieldSpec("income_am", FieldKind.DECIMAL, precision=10),
        FieldSpec("birth_dt", FieldKind.DATE),
        FieldSpec("upd_ts", FieldKind.TIMESTAMP, required=True),
    ),
    primary_key=("user_id",),
    version_field="upd_ts",
)

PET_TABLE = "t_user_pet"
PET_SCHEMA = RecordSchema(
    table=PET_TABLE,
    fields=(
        _key("user_id", max_length=4, alphanumeric=True),
        _key("pet_no", kind=FieldKind.INTEGER, precision=2),
        FieldSpec("pet_nm", required=True, max_length=10),
        FieldSpec("type_cs", max_length=2),
        FieldSpec("gender_cs", max_length=1),
        FieldSpec("vaccine_cs", max_length=1),
        FieldSpec("weight_kg", FieldKind.DECIMAL, precision=3, scale=1),
        FieldSpec("birth_dt", FieldKind.DATE),
        FieldSpec("upd_ts", FieldKind.TIMESTAMP, required=True),
    ),
    primary_key=("user_id", "pet_no"),
)

SCHEMAS = {"user": USER_SCHEMA, "pet": PET_SCHEMA}

# No foreign key from t_user_pet: the delete removes the parent first.
SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS t_user (
    user_id     VARCHAR(4)   NOT NULL,
    user_nm     VARCHAR(20),
    email       VARCHAR(50),
    country_cs  VARCHAR(2),
    gender_cs   VARCHAR(1),
    spouse_cs   VARCHAR(1),
    income_am   NUMERIC(10),
    birth_dt    DATE,
    upd_ts      TIMESTAMP,
    PRIMARY KEY (user_id)
);
CREATE TABLE IF NOT EXISTS t_user_pet (
    user_id     VARCHAR(4)   NOT NULL,
    pet_no      NUMERIC(2)   NOT NULL,
    pet_nm      VARCHAR(10),
    type_cs     VARCHAR(2),
    gender_cs   VARCHAR(1),
    vaccine_cs  VARCHAR(1),
    weight_kg   NUMERIC(3,1),
    birth_dt    DATE,
    upd_ts      TIMESTAMP,
    PRIMARY KEY (user_id, pet_no)
);
"""


def ensure_schema(service: DatabaseService) -> None:
    """Create the user and pet tables if they don't exist."""
    service.execute_ddl(SCHEMA_DDL)
