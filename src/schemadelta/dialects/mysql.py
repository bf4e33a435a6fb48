"""
MySQL dialect implementation.
"""

from __future__ import annotations

from typing import Any, Final

from ..core.snapshot import ColumnDef, ColumnType
from .base import DialectCapabilities, quote_string, render_type

_TYPES: Final[dict[str, str]] = {
    "integer": "INT",
    "bigint": "BIGINT",
    "smallint": "SMALLINT",
    "string": "VARCHAR",
    "text": "TEXT",
    "boolean": "TINYINT(1)",
    "decimal": "DECIMAL",
    "float": "DOUBLE",
    "date": "DATE",
    "timestamp": "DATETIME",
    "json": "JSON",
    "uuid": "CHAR(36)",
    "binary": "BLOB",
}


class MySQLDialect:
    """
    MySQL dialect using percent-style placeholders.

    Column changes are rendered as ``MODIFY COLUMN`` restating the new
    definition; unique indexes and the primary key are changed separately.
    """

    name: Final[str] = "mysql"
    param_style: Final[str] = "pyformat"
    capabilities: Final[DialectCapabilities] = DialectCapabilities(
        supports_alter_column=True,
        supports_foreign_key_alter=True,
        supports_index_types=True,
    )

    def quote_identifier(self, identifier: str) -> str:
        escaped = identifier.replace("`", "``")
        return f"`{escaped}`"

    def format_table(self, table_name: str) -> str:
        if "." in table_name:
            schema, table = table_name.split(".", 1)
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table_name)

    def parameter_placeholder(self, position: int | None = None) -> str:
        return "%s"

    def column_type(self, column_type: ColumnType) -> str:
        return render_type(_TYPES, column_type)

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str:
        null_clause = "" if nullable else " NOT NULL"
        return f"{self.quote_identifier(column)} {column_type}{null_clause}"

    def auto_increment(self, column_type: str) -> tuple[str, str | None]:
        return column_type, "AUTO_INCREMENT"

    def render_literal(self, value: Any) -> str:
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, str):
            return quote_string(value).replace("\\", "\\\\")
        return str(value)

    def alter_column_sql(self, table: str, old: ColumnDef, new: ColumnDef, definition: str) -> list[str]:
        table_sql = self.format_table(table)
        statements = [f"ALTER TABLE {table_sql} MODIFY COLUMN {definition}"]
        had_unique = old.unique and not old.primary_key
        has_unique = new.unique and not new.primary_key
        index = self.quote_identifier(new.name)
        # MySQL names a column-level unique index after the column
        if has_unique and not had_unique:
            statements.append(f"ALTER TABLE {table_sql} ADD UNIQUE INDEX {index} ({index})")
        elif had_unique and not has_unique:
            statements.append(f"ALTER TABLE {table_sql} DROP INDEX {index}")
        return statements

    def drop_primary_key_sql(self, table: str) -> str:
        return f"ALTER TABLE {self.format_table(table)} DROP PRIMARY KEY"

    def add_primary_key_sql(self, table: str, columns: list[str]) -> str:
        column_list = ", ".join(self.quote_identifier(col) for col in columns)
        return f"ALTER TABLE {self.format_table(table)} ADD PRIMARY KEY ({column_list})"

    def create_index_sql(
        self, table: str, name: str, columns: list[str], *, unique: bool, index_type: str | None
    ) -> str:
        column_list = ", ".join(self.quote_identifier(col) for col in columns)
        using = f" USING {index_type.upper()}" if index_type else ""
        prefix = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
        return f"{prefix} {self.quote_identifier(name)} ON {self.format_table(table)} ({column_list}){using}"

    def drop_index_sql(self, table: str, name: str) -> str:
        return f"DROP INDEX {self.quote_identifier(name)} ON {self.format_table(table)}"

    def drop_foreign_key_sql(self, table: str, name: str) -> str:
        return f"ALTER TABLE {self.format_table(table)} DROP FOREIGN KEY {self.quote_identifier(name)}"
