"""Parameterized SQL derived from a RecordSchema."""

from dataclasses import dataclass

from usersync.schema import RecordSchema
from usersync.types import Row


@dataclass(frozen=True)
class Statement:
    """SQL text plus the row keys whose values fill its bind markers, in order."""

    sql: str
    binds: tuple[str, ...] = ()

    def bind(self, row: Row) -> tuple:
        return tuple(row.get(name) for name in self.binds)


def select_all(schema: RecordSchema) -> Statement:
    cols = ", ".join(schema.field_names)
    order = ", ".join(schema.primary_key)
    return Statement(f"SELECT {cols} FROM {schema.table} ORDER BY {order}")


def update_by_key(schema: RecordSchema, ph: str) -> Statement:
    set_clause = ", ".join(f"{c} = {ph}" for c in schema.non_key_fields)
    where = " AND ".join(f"{c} = {ph}" for c in schema.primary_key)
    return Statement(
        f"UPDATE {schema.table} SET {set_clause} WHERE {where}",
        (*schema.non_key_fields, *schema.primary_key),
    )


def insert(schema: RecordSchema, ph: str) -> Statement:
    cols = ", ".join(schema.field_names)
    placeholders = ", ".join(ph for _ in schema.fields)
    return Statement(
        f"INSERT INTO {schema.table} ({cols}) VALUES ({placeholders})",
        tuple(schema.field_names),
    )


def merge(schema: RecordSchema, ph: str) -> Statement:
    """Single-statement upsert; SQLite and PostgreSQL share the ON CONFLICT syntax."""
    base = insert(schema, ph)
    conflict_cols = ", ".join(schema.primary_key)
    update_cols = schema.non_key_fields
    if update_cols:
        update_clause = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
        sql = f"{base.sql} ON CONFLICT ({conflict_cols}) DO UPDATE SET {update_clause}"
    else:
        sql = f"{base.sql} ON CONFLICT ({conflict_cols}) DO NOTHING"
    return Statement(sql, base.binds)


def delete_versioned(schema: RecordSchema, ph: str) -> Statement:
    """Delete one row by key, guarded by its version column (optimistic lock)."""
    if schema.version_field is None:
        raise ValueError(f"{schema.table} has no version field")
    where_cols = (*schema.primary_key, schema.version_field)
    where = " AND ".join(f"{c} = {ph}" for c in where_cols)
    return Statement(f"DELETE FROM {schema.table} WHERE {where}", where_cols)


def delete_where(schema: RecordSchema, columns: tuple[str, ...], ph: str) -> Statement:
    where = " AND ".join(f"{c} = {ph}" for c in columns)
    return Statement(f"DELETE FROM {schema.table} WHERE {where}", columns)
