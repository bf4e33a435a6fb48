"""
Dependency-safe ordering of schema change actions.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Sequence, Set, Tuple

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
from ..core.errors import CyclicDependency
from ..utils import get_logger
from .graph import stable_topological_order

ColumnKey = Tuple[str, str]


class _ActionIndex:
    """
    Lookup tables from tables, columns and names to action positions.
    """

    def __init__(self, actions: Sequence[Action]) -> None:
        self.creates: Dict[str, int] = {}
        self.drops: Dict[str, int] = {}
        self.drop_references: Dict[str, frozenset[str]] = {}
        self.added_columns: Dict[ColumnKey, int] = {}
        self.added_unique_indexes: Dict[Tuple[str, Tuple[str, ...]], int] = {}
        self.primary_key_losses: Dict[str, List[int]] = defaultdict(list)
        self.removed_index_names: Dict[ColumnKey, int] = {}
        self.removed_fk_names: Dict[ColumnKey, int] = {}
        self.removals_on: Dict[str, List[int]] = defaultdict(list)
        self.fk_removals_referencing: Dict[str, List[int]] = defaultdict(list)
        self.removals_using_column: Dict[ColumnKey, List[int]] = defaultdict(list)
        self.fk_removals_referencing_column: Dict[ColumnKey, List[int]] = defaultdict(list)

        for position, action in enumerate(actions):
            table = action.table
            if isinstance(action, CreateTable):
                self.creates[table] = position
            elif isinstance(action, DropTable):
                self.drops[table] = position
                self.drop_references[table] = action.referenced_tables()
                for fk in action.definition.foreign_keys.values():
                    for column in fk.referenced_columns:
                        self.fk_removals_referencing_column[(fk.referenced_table, column)].append(position)
            elif isinstance(action, AddColumn):
                self.added_columns[(table, action.column.name)] = position
            elif isinstance(action, RemoveColumn):
                self.removals_on[table].append(position)
                if action.column.primary_key:
                    self.primary_key_losses[table].append(position)
            elif isinstance(action, ChangeColumn):
                if action.old.primary_key and not action.new.primary_key:
                    self.primary_key_losses[table].append(position)
            elif isinstance(action, AddIndex):
                if action.index.unique:
                    self.added_unique_indexes[(table, tuple(sorted(action.index.columns)))] = position
            elif isinstance(action, RemoveIndex):
                self.removals_on[table].append(position)
                self.removed_index_names[(table, action.index.name)] = position
                for column in action.index.columns:
                    self.removals_using_column[(table, column)].append(position)
            elif isinstance(action, RemoveForeignKey):
                fk = action.foreign_key
                self.removals_on[table].append(position)
                self.removed_fk_names[(table, fk.name)] = position
                self.fk_removals_referencing[fk.referenced_table].append(position)
                for column in fk.columns:
                    self.removals_using_column[(table, column)].append(position)
                for column in fk.referenced_columns:
                    self.fk_removals_referencing_column[(fk.referenced_table, column)].append(position)


class ActionSorter:
    """
    Reorders actions so prerequisites come first.

    The order is a stable topological sort: whenever several actions are
    ready, the one that came first in the input wins. Sorting an already
    ordered sequence returns it unchanged.
    """

    def __init__(self) -> None:
        self.logger = get_logger("diff.sorter")

    def sort(self, actions: Sequence[Action]) -> List[Action]:
        items = list(actions)
        dependencies = self.dependencies(items)
        order, unresolved = stable_topological_order(len(items), dependencies)
        if unresolved:
            tables = {items[position].table for position in unresolved}
            self.logger.error("Cannot order actions; cycle between tables %s", sorted(tables))
            raise CyclicDependency(tables)
        return [items[position] for position in order]

    def dependencies(self, actions: Sequence[Action]) -> List[Set[int]]:
        """
        For each action, the positions of the actions that must precede it.
        """
        index = _ActionIndex(actions)
        result: List[Set[int]] = []
        for position, action in enumerate(actions):
            deps = self._dependencies_of(action, index)
            deps.discard(position)
            result.append(deps)
        return result

    def _dependencies_of(self, action: Action, index: _ActionIndex) -> Set[int]:
        deps: Set[int] = set()
        table = action.table

        if isinstance(action, CreateTable):
            for fk in action.definition.foreign_keys.values():
                if fk.referenced_table != table:
                    self._require_table(deps, index, fk.referenced_table, fk.referenced_columns)
            return deps

        if isinstance(action, DropTable):
            deps.update(index.removals_on.get(table, ()))
            deps.update(index.fk_removals_referencing.get(table, ()))
            for other, referenced in index.drop_references.items():
                if other != table and table in referenced:
                    deps.add(index.drops[other])
            return deps

        if table in index.creates:
            deps.add(index.creates[table])

        if isinstance(action, AddForeignKey):
            fk = action.foreign_key
            self._require_columns(deps, index, table, fk.columns)
            if fk.referenced_table != table:
                self._require_table(deps, index, fk.referenced_table, fk.referenced_columns)
            else:
                self._require_columns(deps, index, table, fk.referenced_columns)
                self._require_unique(deps, index, table, fk.referenced_columns)
            if (table, fk.name) in index.removed_fk_names:
                deps.add(index.removed_fk_names[(table, fk.name)])
        elif isinstance(action, AddIndex):
            self._require_columns(deps, index, table, action.index.columns)
            if (table, action.index.name) in index.removed_index_names:
                deps.add(index.removed_index_names[(table, action.index.name)])
        elif isinstance(action, RemoveIndex):
            if action.index.unique:
                for column in action.index.columns:
                    deps.update(index.fk_removals_referencing_column.get((table, column), ()))
        elif isinstance(action, (AddColumn, ChangeColumn)):
            if _gains_primary_key(action):
                # a table holds one primary key; the old one goes first
                deps.update(index.primary_key_losses.get(table, ()))
            if isinstance(action, ChangeColumn) and _loses_key(action):
                deps.update(index.fk_removals_referencing_column.get((table, action.old.name), ()))
        elif isinstance(action, RemoveColumn):
            key = (table, action.column.name)
            deps.update(index.removals_using_column.get(key, ()))
            deps.update(index.fk_removals_referencing_column.get(key, ()))
        return deps

    @staticmethod
    def _require_table(deps: Set[int], index: _ActionIndex, table: str, columns) -> None:
        if table in index.creates:
            deps.add(index.creates[table])
        ActionSorter._require_columns(deps, index, table, columns)
        ActionSorter._require_unique(deps, index, table, columns)

    @staticmethod
    def _require_columns(deps: Set[int], index: _ActionIndex, table: str, columns) -> None:
        for column in columns:
            position = index.added_columns.get((table, column))
            if position is not None:
                deps.add(position)

    @staticmethod
    def _require_unique(deps: Set[int], index: _ActionIndex, table: str, columns) -> None:
        position = index.added_unique_indexes.get((table, tuple(sorted(columns))))
        if position is not None:
            deps.add(position)


def _gains_primary_key(action: Action) -> bool:
    if isinstance(action, AddColumn):
        return action.column.primary_key
    return action.new.primary_key and not action.old.primary_key


def _loses_key(action: ChangeColumn) -> bool:
    old, new = action.old, action.new
    return (old.primary_key and not new.primary_key) or (old.unique and not new.unique)


def sort_actions(actions: Sequence[Action]) -> List[Action]:
    return ActionSorter().sort(actions)
