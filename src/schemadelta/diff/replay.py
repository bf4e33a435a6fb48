"""
Apply actions to a snapshot in memory, the way an executor would apply the
rendered statements to a database.
"""

from __future__ import annotations

from typing import Iterable

from ..core.actions import (
    Action,
    AddColumn,
    AddForeignKey,
    AddIndex,
    ChangeColumn,
    CreateTable,
    DropTable,
    RemoveColumn,
    RemoveForeignKey,
    RemoveIndex,
)
from ..core.errors import ReplayError, UnknownActionError
from ..core.snapshot import Snapshot, TableDef


def apply_action(snapshot: Snapshot, action: Action) -> Snapshot:
    if isinstance(action, CreateTable):
        if action.table in snapshot:
            raise ReplayError(f"Table '{action.table}' already exists")
        for fk in action.definition.foreign_keys.values():
            if fk.referenced_table != action.table:
                _require_columns(_require_table(snapshot, fk.referenced_table), fk.referenced_columns)
        return snapshot.with_table(action.definition)
    if isinstance(action, DropTable):
        _require_table(snapshot, action.table)
        for other in snapshot:
            if other.name == action.table:
                continue
            for fk in other.foreign_keys.values():
                if fk.referenced_table == action.table:
                    raise ReplayError(
                        f"Table '{action.table}' is still referenced by '{other.name}.{fk.name}'"
                    )
        return snapshot.without_table(action.table)

    table = _require_table(snapshot, action.table)
    if isinstance(action, AddColumn):
        if action.column.name in table.columns:
            raise ReplayError(f"Column '{action.table}.{action.column.name}' already exists")
        table = table.with_column(action.column)
    elif isinstance(action, RemoveColumn):
        _require_member(table.columns, action.table, action.column.name, "Column")
        _require_unused(snapshot, table, action.column.name)
        table = table.without_column(action.column.name)
    elif isinstance(action, ChangeColumn):
        current = _require_member(table.columns, action.table, action.old.name, "Column")
        if current != action.old:
            raise ReplayError(
                f"Column '{action.table}.{action.old.name}' does not match the expected definition"
            )
        table = table.with_column(action.new)
    elif isinstance(action, AddIndex):
        if action.index.name in table.indexes:
            raise ReplayError(f"Index '{action.index.name}' already exists on '{action.table}'")
        _require_columns(table, action.index.columns)
        table = table.with_index(action.index)
    elif isinstance(action, RemoveIndex):
        _require_member(table.indexes, action.table, action.index.name, "Index")
        table = table.without_index(action.index.name)
    elif isinstance(action, AddForeignKey):
        fk = action.foreign_key
        if fk.name in table.foreign_keys:
            raise ReplayError(f"Foreign key '{fk.name}' already exists on '{action.table}'")
        _require_columns(table, fk.columns)
        if fk.referenced_table == action.table:
            referenced = table
        else:
            referenced = _require_table(snapshot, fk.referenced_table)
        _require_columns(referenced, fk.referenced_columns)
        table = table.with_foreign_key(fk)
    elif isinstance(action, RemoveForeignKey):
        _require_member(table.foreign_keys, action.table, action.foreign_key.name, "Foreign key")
        table = table.without_foreign_keys([action.foreign_key.name])
    else:
        raise UnknownActionError(f"Cannot replay {type(action).__name__}")
    return snapshot.with_table(table)


def apply_actions(snapshot: Snapshot, actions: Iterable[Action]) -> Snapshot:
    for action in actions:
        snapshot = apply_action(snapshot, action)
    return snapshot


def apply_statements(snapshot: Snapshot, statements: Iterable) -> Snapshot:
    """
    Replay generated statements (anything exposing ``.action``) in order.
    """
    return apply_actions(snapshot, (statement.action for statement in statements))


def _require_table(snapshot: Snapshot, name: str) -> TableDef:
    table = snapshot.get(name)
    if table is None:
        raise ReplayError(f"Table '{name}' does not exist")
    return table


def _require_columns(table: TableDef, columns: Iterable[str]) -> None:
    missing = [column for column in columns if column not in table.columns]
    if missing:
        raise ReplayError(f"Columns {', '.join(missing)} do not exist on '{table.name}'")


def _require_unused(snapshot: Snapshot, table: TableDef, column: str) -> None:
    for index in table.indexes.values():
        if column in index.columns:
            raise ReplayError(f"Column '{table.name}.{column}' is still used by index '{index.name}'")
    for other in snapshot:
        for fk in other.foreign_keys.values():
            uses = other.name == table.name and column in fk.columns
            references = fk.referenced_table == table.name and column in fk.referenced_columns
            if uses or references:
                raise ReplayError(
                    f"Column '{table.name}.{column}' is still used by foreign key '{other.name}.{fk.name}'"
                )


def _require_member(members, table: str, name: str, label: str):
    try:
        return members[name]
    except KeyError:
        raise ReplayError(f"{label} '{name}' does not exist on '{table}'") from None
