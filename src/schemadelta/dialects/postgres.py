"""
PostgreSQL dialect implementation.
"""

from __future__ import annotations

from typing import Any, Final

from ..core.snapshot import ColumnDef, ColumnType
from .base import DialectCapabilities, quote_string, render_type

_TYPES: Final[dict[str, str]] = {
    "integer": "INTEGER",
    "bigint": "BIGINT",
    "smallint": "SMALLINT",
    "string": "VARCHAR",
    "text": "TEXT",
    "boolean": "BOOLEAN",
    "decimal": "NUMERIC",
    "float": "DOUBLE PRECISION",
    "date": "DATE",
    "timestamp": "TIMESTAMP WITH TIME ZONE",
    "json": "JSONB",
    "uuid": "UUID",
    "binary": "BYTEA",
}


class PostgresDialect:
    """
    PostgreSQL dialect using percent positional parameters.
    """

    name: Final[str] = "postgresql"
    param_style: Final[str] = "pyformat"
    capabilities: Final[DialectCapabilities] = DialectCapabilities(
        supports_alter_column=True,
        supports_foreign_key_alter=True,
        supports_index_types=True,
    )

    def quote_identifier(self, identifier: str) -> str:
        escaped = identifier.replace('"', '""')
        return f'"{escaped}"'

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
        return column_type, "GENERATED BY DEFAULT AS IDENTITY"

    def render_literal(self, value: Any) -> str:
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, str):
            return quote_string(value)
        return str(value)

    def alter_column_sql(self, table: str, old: ColumnDef, new: ColumnDef, definition: str) -> list[str]:
        column = self.quote_identifier(new.name)
        clauses: list[str] = []
        if old.type != new.type:
            type_sql = self.column_type(new.type)
            clauses.append(f"ALTER COLUMN {column} TYPE {type_sql} USING {column}::{type_sql}")
        nullable = new.nullable and not new.primary_key
        if (old.nullable and not old.primary_key) != nullable:
            clauses.append(f"ALTER COLUMN {column} {'DROP' if nullable else 'SET'} NOT NULL")
        if _default_key(old) != _default_key(new):
            if new.db_default is not None:
                clauses.append(f"ALTER COLUMN {column} SET DEFAULT {new.db_default}")
            elif new.default is not None:
                clauses.append(f"ALTER COLUMN {column} SET DEFAULT {self.render_literal(new.default)}")
            else:
                clauses.append(f"ALTER COLUMN {column} DROP DEFAULT")
        if old.auto_increment != new.auto_increment:
            if new.auto_increment:
                clauses.append(f"ALTER COLUMN {column} ADD GENERATED BY DEFAULT AS IDENTITY")
            else:
                clauses.append(f"ALTER COLUMN {column} DROP IDENTITY IF EXISTS")
        table_sql = self.format_table(table)
        statements = []
        if clauses:
            statements.append(f"ALTER TABLE {table_sql} {', '.join(clauses)}")
        if _has_unique_constraint(old) != _has_unique_constraint(new):
            constraint = self.quote_identifier(f"{table.split('.')[-1]}_{new.name}_key")
            if _has_unique_constraint(new):
                statements.append(f"ALTER TABLE {table_sql} ADD CONSTRAINT {constraint} UNIQUE ({column})")
            else:
                statements.append(f"ALTER TABLE {table_sql} DROP CONSTRAINT {constraint}")
        return statements

    def drop_primary_key_sql(self, table: str) -> str:
        # the name PostgreSQL gives an unnamed primary key
        constraint = self.quote_identifier(f"{table.split('.')[-1]}_pkey")
        return f"ALTER TABLE {self.format_table(table)} DROP CONSTRAINT {constraint}"

    def add_primary_key_sql(self, table: str, columns: list[str]) -> str:
        column_list = ", ".join(self.quote_identifier(col) for col in columns)
        return f"ALTER TABLE {self.format_table(table)} ADD PRIMARY KEY ({column_list})"

    def create_index_sql(
        self, table: str, name: str, columns: list[str], *, unique: bool, index_type: str | None
    ) -> str:
        column_list = ", ".join(self.quote_identifier(col) for col in columns)
        using = f" USING {index_type}" if index_type else ""
        prefix = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
        return f"{prefix} {self.quote_identifier(name)} ON {self.format_table(table)}{using} ({column_list})"

    def drop_index_sql(self, table: str, name: str) -> str:
        return f"DROP INDEX {self.quote_identifier(name)}"

    def drop_foreign_key_sql(self, table: str, name: str) -> str:
        return f"ALTER TABLE {self.format_table(table)} DROP CONSTRAINT {self.quote_identifier(name)}"


def _has_unique_constraint(column: ColumnDef) -> bool:
    return column.unique and not column.primary_key


def _default_key(column: ColumnDef) -> tuple:
    return type(column.default), column.default, column.db_default
