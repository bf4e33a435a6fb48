"""
Schema change actions produced by the diff engine.

Each action kind is its own frozen dataclass carrying everything needed to
render it and its inverse, so consumers never consult a snapshot again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from .snapshot import ColumnDef, ForeignKeyDef, IndexDef, TableDef


class ActionKind(str, Enum):
    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    ADD_COLUMN = "add_column"
    REMOVE_COLUMN = "remove_column"
    CHANGE_COLUMN = "change_column"
    ADD_INDEX = "add_index"
    REMOVE_INDEX = "remove_index"
    ADD_FOREIGN_KEY = "add_foreign_key"
    REMOVE_FOREIGN_KEY = "remove_foreign_key"


@dataclass(frozen=True)
class CreateTable:
    kind: ClassVar[ActionKind] = ActionKind.CREATE_TABLE

    table: str
    definition: TableDef

    def invert(self) -> "DropTable":
        return DropTable(self.table, self.definition)

    def referenced_tables(self) -> frozenset[str]:
        return frozenset(
            fk.referenced_table
            for fk in self.definition.foreign_keys.values()
            if fk.referenced_table != self.table
        )

    def describe(self) -> str:
        deps = ", ".join(sorted(self.referenced_tables()))
        return f'createTable "{self.table}", deps: [{deps}]'


@dataclass(frozen=True)
class DropTable:
    kind: ClassVar[ActionKind] = ActionKind.DROP_TABLE

    table: str
    definition: TableDef

    def invert(self) -> CreateTable:
        return CreateTable(self.table, self.definition)

    def referenced_tables(self) -> frozenset[str]:
        return frozenset(
            fk.referenced_table
            for fk in self.definition.foreign_keys.values()
            if fk.referenced_table != self.table
        )

    def describe(self) -> str:
        return f'dropTable "{self.table}"'


@dataclass(frozen=True)
class AddColumn:
    kind: ClassVar[ActionKind] = ActionKind.ADD_COLUMN

    table: str
    column: ColumnDef

    def invert(self) -> "RemoveColumn":
        return RemoveColumn(self.table, self.column)

    def referenced_tables(self) -> frozenset[str]:
        return frozenset()

    def describe(self) -> str:
        return f'addColumn "{self.column.name}" to table "{self.table}"'


@dataclass(frozen=True)
class RemoveColumn:
    kind: ClassVar[ActionKind] = ActionKind.REMOVE_COLUMN

    table: str
    column: ColumnDef

    def invert(self) -> AddColumn:
        return AddColumn(self.table, self.column)

    def referenced_tables(self) -> frozenset[str]:
        return frozenset()

    def describe(self) -> str:
        return f'removeColumn "{self.column.name}" from table "{self.table}"'


@dataclass(frozen=True)
class ChangeColumn:
    kind: ClassVar[ActionKind] = ActionKind.CHANGE_COLUMN

    table: str
    old: ColumnDef
    new: ColumnDef

    @property
    def column(self) -> ColumnDef:
        return self.new

    def invert(self) -> "ChangeColumn":
        return ChangeColumn(self.table, old=self.new, new=self.old)

    def referenced_tables(self) -> frozenset[str]:
        return frozenset()

    def changed_attributes(self) -> tuple[str, ...]:
        names = ("type", "nullable", "default", "db_default", "primary_key", "unique", "auto_increment")
        return tuple(name for name in names if _differs(getattr(self.old, name), getattr(self.new, name)))

    def describe(self) -> str:
        changed = ", ".join(self.changed_attributes())
        return f'changeColumn "{self.new.name}" on table "{self.table}" ({changed})'


@dataclass(frozen=True)
class AddIndex:
    kind: ClassVar[ActionKind] = ActionKind.ADD_INDEX

    table: str
    index: IndexDef

    def invert(self) -> "RemoveIndex":
        return RemoveIndex(self.table, self.index)

    def referenced_tables(self) -> frozenset[str]:
        return frozenset()

    def describe(self) -> str:
        columns = ", ".join(self.index.columns)
        return f'addIndex "{self.index.name}" ({columns}) to table "{self.table}"'


@dataclass(frozen=True)
class RemoveIndex:
    kind: ClassVar[ActionKind] = ActionKind.REMOVE_INDEX

    table: str
    index: IndexDef

    def invert(self) -> AddIndex:
        return AddIndex(self.table, self.index)

    def referenced_tables(self) -> frozenset[str]:
        return frozenset()

    def describe(self) -> str:
        return f'removeIndex "{self.index.name}" from table "{self.table}"'


@dataclass(frozen=True)
class AddForeignKey:
    kind: ClassVar[ActionKind] = ActionKind.ADD_FOREIGN_KEY

    table: str
    foreign_key: ForeignKeyDef

    def invert(self) -> "RemoveForeignKey":
        return RemoveForeignKey(self.table, self.foreign_key)

    def referenced_tables(self) -> frozenset[str]:
        if self.foreign_key.referenced_table == self.table:
            return frozenset()
        return frozenset({self.foreign_key.referenced_table})

    def describe(self) -> str:
        fk = self.foreign_key
        return (
            f'addForeignKey "{fk.name}" on table "{self.table}" '
            f'referencing "{fk.referenced_table}"'
        )


@dataclass(frozen=True)
class RemoveForeignKey:
    kind: ClassVar[ActionKind] = ActionKind.REMOVE_FOREIGN_KEY

    table: str
    foreign_key: ForeignKeyDef

    def invert(self) -> AddForeignKey:
        return AddForeignKey(self.table, self.foreign_key)

    def referenced_tables(self) -> frozenset[str]:
        if self.foreign_key.referenced_table == self.table:
            return frozenset()
        return frozenset({self.foreign_key.referenced_table})

    def describe(self) -> str:
        return f'removeForeignKey "{self.foreign_key.name}" from table "{self.table}"'


Action = Union[
    CreateTable,
    DropTable,
    AddColumn,
    RemoveColumn,
    ChangeColumn,
    AddIndex,
    RemoveIndex,
    AddForeignKey,
    RemoveForeignKey,
]

ACTION_TYPES: tuple[type, ...] = (
    CreateTable,
    DropTable,
    AddColumn,
    RemoveColumn,
    ChangeColumn,
    AddIndex,
    RemoveIndex,
    AddForeignKey,
    RemoveForeignKey,
)


def is_action(value: object) -> bool:
    return isinstance(value, ACTION_TYPES)


def _differs(old: object, new: object) -> bool:
    # 1 == True, but they are different defaults
    return (type(old), old) != (type(new), new)
