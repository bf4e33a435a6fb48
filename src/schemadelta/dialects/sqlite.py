"""
SQLite dialect implementation.
"""

from __future__ import annotations

from typing import Any, Final

from ..core.errors import UnsupportedOperation
from ..core.snapshot import ColumnDef, ColumnType
from .base import DialectCapabilities, quote_string, render_type

_TYPES: Final[dict[str, str]] = {
    "integer": "INTEGER",
    "bigint": "INTEGER",
    "smallint": "INTEGER",
    "string": "VARCHAR",
    "text": "TEXT",
    "boolean": "BOOLEAN",
    "decimal": "NUMERIC",
    "float": "REAL",
    "date": "DATE",
    "timestamp": "DATETIME",
    "json": "TEXT",
    "uuid": "TEXT",
    "binary": "BLOB",
}


class SQLiteDialect:
    """
    SQLite dialect using qmark param style and minimal capabilities.

    SQLite cannot alter a column or add and drop foreign keys on an existing
    table; the generator rebuilds the table instead, so the in-place hooks
    below are never reached through it.
    """

    name: Final[str] = "sqlite"
    param_style: Final[str] = "qmark"
    capabilities: Final[DialectCapabilities] = DialectCapabilities(
        supports_alter_column=False,
        supports_foreign_key_alter=False,
        supports_index_types=False,
    )

    def quote_identifier(self, identifier: str) -> str:
        escaped = identifier.replace('"', '""')
        return f'"{escaped}"'

    def format_table(self, table_name: str) -> str:
        return self.quote_identifier(table_name)

    def parameter_placeholder(self, position: int | None = None) -> str:
        return "?"

    def column_type(self, column_type: ColumnType) -> str:
        return render_type(_TYPES, column_type)

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str:
        null_clause = "" if nullable else " NOT NULL"
        return f"{self.quote_identifier(column)} {column_type}{null_clause}"

    def auto_increment(self, column_type: str) -> tuple[str, str | None]:
        # AUTOINCREMENT is only accepted on an INTEGER PRIMARY KEY
        return "INTEGER", "AUTOINCREMENT"

    def render_literal(self, value: Any) -> str:
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, str):
            return quote_string(value)
        return str(value)

    def alter_column_sql(self, table: str, old: ColumnDef, new: ColumnDef, definition: str) -> list[str]:
        raise UnsupportedOperation(f"SQLite cannot alter column '{table}.{new.name}' in place")

    def drop_primary_key_sql(self, table: str) -> str:
        raise UnsupportedOperation(f"SQLite cannot drop the primary key of '{table}' in place")

    def add_primary_key_sql(self, table: str, columns: list[str]) -> str:
        raise UnsupportedOperation(f"SQLite cannot add a primary key to '{table}' in place")

    def create_index_sql(
        self, table: str, name: str, columns: list[str], *, unique: bool, index_type: str | None
    ) -> str:
        column_list = ", ".join(self.quote_identifier(col) for col in columns)
        prefix = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
        return f"{prefix} {self.quote_identifier(name)} ON {self.format_table(table)} ({column_list})"

    def drop_index_sql(self, table: str, name: str) -> str:
        return f"DROP INDEX {self.quote_identifier(name)}"

    def drop_foreign_key_sql(self, table: str, name: str) -> str:
        raise UnsupportedOperation(f"SQLite cannot drop foreign key '{name}' from '{table}'")
