"""
Migration generator converting ordered actions into dialect-specific DDL.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

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
from ..core.errors import UnknownActionError, UnsupportedOperation
from ..core.snapshot import ColumnDef, ForeignKeyDef, IndexDef, Snapshot, TableDef
from ..dialects.base import Dialect
from ..diff.replay import apply_action
from ..utils import get_logger

DESTRUCTIVE_ACTIONS = (DropTable, RemoveColumn)


@dataclass(frozen=True)
class Statement:
    """
    The rendered form of one action: one or more SQL commands executed in order.
    """

    action: Action
    sql: tuple[str, ...]
    destructive: bool = False

    @property
    def text(self) -> str:
        return ";\n".join(self.sql) + ";"


@dataclass(frozen=True)
class TableStates:
    """
    Definition of an action's table right before and right after it applies.
    """

    before: Optional[TableDef] = None
    after: Optional[TableDef] = None


@dataclass(frozen=True)
class GeneratedScript:
    statements: tuple[Statement, ...] = ()
    log: tuple[str, ...] = ()

    @property
    def commands(self) -> List[str]:
        return [sql for statement in self.statements for sql in statement.sql]

    @property
    def is_empty(self) -> bool:
        return not self.statements

    def __len__(self) -> int:
        return len(self.statements)


class MigrationGenerator:
    """
    Renders each action through a template; payloads are rendered verbatim.

    Dialects that cannot alter a column or a foreign key in place get the
    table rebuilt: a staging copy is created with the new definition, filled
    from the old table, and renamed over it. That needs the whole table, so
    :meth:`generate` tracks the schema when it is given the source snapshot.
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self.logger = get_logger("schema.generator")
        self._renderers: Dict[type, Callable[[Action, TableStates], List[str]]] = {
            CreateTable: self._create_table,
            DropTable: self._drop_table,
            AddColumn: self._add_column,
            RemoveColumn: self._remove_column,
            ChangeColumn: self._change_column,
            AddIndex: self._add_index,
            RemoveIndex: self._remove_index,
            AddForeignKey: self._add_foreign_key,
            RemoveForeignKey: self._remove_foreign_key,
        }

    def generate(self, actions: Iterable[Action], *, source: Optional[Snapshot] = None) -> GeneratedScript:
        statements: List[Statement] = []
        log: List[str] = []
        state = source
        for action in actions:
            tables = TableStates()
            if state is not None:
                before = state.get(action.table)
                state = apply_action(state, action)
                tables = TableStates(before=before, after=state.get(action.table))
            statements.append(self.render(action, tables))
            log.append(action.describe())
        return GeneratedScript(statements=tuple(statements), log=tuple(log))

    def render(self, action: Action, tables: Optional[TableStates] = None) -> Statement:
        renderer = self._renderers.get(type(action))
        if renderer is None:
            raise UnknownActionError(f"No statement template for {type(action).__name__}: {action!r}")
        sql = renderer(action, tables or TableStates())
        if not sql:
            raise UnsupportedOperation(f"{action.describe()} changes nothing {self.dialect.name} can render")
        destructive = isinstance(action, DESTRUCTIVE_ACTIONS)
        if destructive:
            self.logger.warning(
                "%s generated; confirm destructive migration before applying.", sql[0]
            )
        return Statement(action=action, sql=tuple(sql), destructive=destructive)

    # Tables --------------------------------------------------------------
    def _create_table(self, action: CreateTable, tables: TableStates) -> List[str]:
        definition = action.definition
        statements = [self._create_table_sql(definition, definition.name)]
        for index in definition.indexes.values():
            statements.append(self._create_index(definition.name, index))
        return statements

    def _drop_table(self, action: DropTable, tables: TableStates) -> List[str]:
        return [f"DROP TABLE {self.dialect.format_table(action.table)}"]

    def _create_table_sql(self, definition: TableDef, name: str) -> str:
        pieces = self._render_columns(definition)
        pk = definition.primary_key
        if len(pk) > 1:
            pieces.append(f"PRIMARY KEY ({self._column_list(pk)})")
        for fk in definition.foreign_keys.values():
            pieces.append(self._foreign_key_clause(fk))
        return f"CREATE TABLE {self.dialect.format_table(name)} ({', '.join(pieces)})"

    def _rebuild_table(self, action: Action, tables: TableStates) -> List[str]:
        before, after = tables.before, tables.after
        if before is None or after is None:
            raise UnsupportedOperation(
                f"{self.dialect.name} must rebuild '{action.table}' for {action.describe()}; "
                "generate from the source snapshot so the table definition is known"
            )
        staging = f"_new_{after.name}"
        staging_sql = self.dialect.format_table(staging)
        table_sql = self.dialect.format_table(after.name)
        copied = self._column_list([name for name in after.columns if name in before.columns])
        statements = [
            self._create_table_sql(after, staging),
            f"INSERT INTO {staging_sql} ({copied}) SELECT {copied} FROM {table_sql}",
            f"DROP TABLE {table_sql}",
            f"ALTER TABLE {staging_sql} RENAME TO {table_sql}",
        ]
        # indexes went away with the old table
        statements.extend(self._create_index(after.name, index) for index in after.indexes.values())
        self.logger.debug("Rebuilding %s for %s", after.name, action.describe())
        return statements

    # Columns -------------------------------------------------------------
    def _add_column(self, action: AddColumn, tables: TableStates) -> List[str]:
        table_name = self.dialect.format_table(action.table)
        column_sql = self._column_definition(action.column, inline_primary_key=action.column.primary_key)
        return [f"ALTER TABLE {table_name} ADD COLUMN {column_sql}"]

    def _remove_column(self, action: RemoveColumn, tables: TableStates) -> List[str]:
        table_name = self.dialect.format_table(action.table)
        return [f"ALTER TABLE {table_name} DROP COLUMN {self.dialect.quote_identifier(action.column.name)}"]

    def _change_column(self, action: ChangeColumn, tables: TableStates) -> List[str]:
        if not self.dialect.capabilities.supports_alter_column:
            return self._rebuild_table(action, tables)
        old, new = action.old, action.new
        # uniqueness is a separate constraint, added or dropped by the dialect
        definition = self._column_definition(new, inline_primary_key=False, inline_unique=False)
        statements: List[str] = []
        key_changed = old.primary_key != new.primary_key
        if key_changed and _key_before(tables, old):
            statements.append(self.dialect.drop_primary_key_sql(action.table))
        statements.extend(self.dialect.alter_column_sql(action.table, old, new, definition))
        if key_changed:
            key = _key_after(tables, new)
            if key:
                statements.append(self.dialect.add_primary_key_sql(action.table, list(key)))
        return statements

    # Indexes -------------------------------------------------------------
    def _add_index(self, action: AddIndex, tables: TableStates) -> List[str]:
        return [self._create_index(action.table, action.index)]

    def _remove_index(self, action: RemoveIndex, tables: TableStates) -> List[str]:
        return [self.dialect.drop_index_sql(action.table, action.index.name)]

    def _create_index(self, table: str, index: IndexDef) -> str:
        index_type = index.type
        if index_type and not self.dialect.capabilities.supports_index_types:
            self.logger.debug(
                "Dialect %s ignores index type %s on %s", self.dialect.name, index_type, index.name
            )
            index_type = None
        return self.dialect.create_index_sql(
            table, index.name, list(index.columns), unique=index.unique, index_type=index_type
        )

    # Foreign keys --------------------------------------------------------
    def _add_foreign_key(self, action: AddForeignKey, tables: TableStates) -> List[str]:
        if not self.dialect.capabilities.supports_foreign_key_alter:
            return self._rebuild_table(action, tables)
        table_name = self.dialect.format_table(action.table)
        return [f"ALTER TABLE {table_name} ADD {self._foreign_key_clause(action.foreign_key)}"]

    def _remove_foreign_key(self, action: RemoveForeignKey, tables: TableStates) -> List[str]:
        if not self.dialect.capabilities.supports_foreign_key_alter:
            return self._rebuild_table(action, tables)
        return [self.dialect.drop_foreign_key_sql(action.table, action.foreign_key.name)]

    def _foreign_key_clause(self, fk: ForeignKeyDef) -> str:
        clause = (
            f"CONSTRAINT {self.dialect.quote_identifier(fk.name)} "
            f"FOREIGN KEY ({self._column_list(fk.columns)}) "
            f"REFERENCES {self.dialect.format_table(fk.referenced_table)} "
            f"({self._column_list(fk.referenced_columns)})"
        )
        if fk.on_delete:
            clause += f" ON DELETE {fk.on_delete}"
        if fk.on_update:
            clause += f" ON UPDATE {fk.on_update}"
        return clause

    # Rendering helpers ---------------------------------------------------
    def _render_columns(self, definition: TableDef) -> List[str]:
        inline_pk = len(definition.primary_key) == 1
        return [
            self._column_definition(column, inline_primary_key=inline_pk and column.primary_key)
            for column in definition.columns.values()
        ]

    def _column_definition(
        self, column: ColumnDef, *, inline_primary_key: bool, inline_unique: bool = True
    ) -> str:
        column_type = self.dialect.column_type(column.type)
        auto_clause = None
        if column.auto_increment:
            column_type, auto_clause = self.dialect.auto_increment(column_type)
        column_def = self.dialect.render_column_definition(
            column.name,
            column_type,
            nullable=column.nullable if not column.primary_key else False,
        )
        extras: List[str] = []
        if inline_primary_key:
            extras.append("PRIMARY KEY")
        if auto_clause:
            extras.append(auto_clause)
        if inline_unique and column.unique and not column.primary_key:
            extras.append("UNIQUE")
        default_sql = self._default_clause(column)
        if default_sql:
            extras.append(default_sql)
        if extras:
            column_def = f"{column_def} {' '.join(extras)}"
        return column_def

    def _default_clause(self, column: ColumnDef) -> str | None:
        if column.db_default is not None:
            return f"DEFAULT {column.db_default}"
        if column.default is None:
            return None
        return f"DEFAULT {self.dialect.render_literal(column.default)}"

    def _column_list(self, columns: Sequence[str]) -> str:
        return ", ".join(self.dialect.quote_identifier(column) for column in columns)


def _key_before(tables: TableStates, old: ColumnDef) -> tuple[str, ...]:
    if tables.before is not None:
        return tables.before.primary_key
    return (old.name,) if old.primary_key else ()


def _key_after(tables: TableStates, new: ColumnDef) -> tuple[str, ...]:
    if tables.after is not None:
        return tables.after.primary_key
    return (new.name,) if new.primary_key else ()
