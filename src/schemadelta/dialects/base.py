"""
Dialect strategy interfaces describing DDL rendering behaviors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from ..core.snapshot import ColumnDef, ColumnType


@dataclass(frozen=True)
class DialectCapabilities:
    """
    Feature flags describing backend capabilities.
    """

    supports_alter_column: bool = True
    supports_foreign_key_alter: bool = True
    supports_index_types: bool = False


class Dialect(Protocol):
    """
    Strategy interface consumed by the migration generator and the state store.
    """

    @property
    def name(self) -> str: ...

    @property
    def param_style(self) -> str: ...

    @property
    def capabilities(self) -> DialectCapabilities: ...

    def quote_identifier(self, identifier: str) -> str: ...

    def format_table(self, table_name: str) -> str: ...

    def parameter_placeholder(self, position: int | None = None) -> str: ...

    def column_type(self, column_type: ColumnType) -> str: ...

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str: ...

    def auto_increment(self, column_type: str) -> tuple[str, str | None]: ...

    def render_literal(self, value: Any) -> str: ...

    def alter_column_sql(self, table: str, old: ColumnDef, new: ColumnDef, definition: str) -> list[str]: ...

    def drop_primary_key_sql(self, table: str) -> str: ...

    def add_primary_key_sql(self, table: str, columns: list[str]) -> str: ...

    def create_index_sql(
        self, table: str, name: str, columns: list[str], *, unique: bool, index_type: str | None
    ) -> str: ...

    def drop_index_sql(self, table: str, name: str) -> str: ...

    def drop_foreign_key_sql(self, table: str, name: str) -> str: ...


def render_type(names: Mapping[str, str], column_type: ColumnType, *, default_length: int = 255) -> str:
    """
    Map a semantic type onto a dialect type name, appending size parameters.
    """
    try:
        base = names[column_type.name]
    except KeyError as exc:
        raise ValueError(f"Unknown column type '{column_type.name}'") from exc
    if column_type.name == "string":
        return f"{base}({column_type.length or default_length})"
    if column_type.name == "decimal" and column_type.precision is not None:
        if column_type.scale is not None:
            return f"{base}({column_type.precision}, {column_type.scale})"
        return f"{base}({column_type.precision})"
    return base


def quote_string(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"
