"""
Snapshot comparison producing unordered schema change actions.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Set, TypeVar

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
from ..core.snapshot import ColumnDef, ForeignKeyDef, IndexDef, Snapshot, TableDef, validate_snapshot
from ..utils import get_logger
from .graph import strongly_connected_components

Definition = TypeVar("Definition", IndexDef, ForeignKeyDef)


class DiffEngine:
    """
    Compares two snapshots and emits the actions turning ``source`` into ``target``.

    Renames are not detected: a renamed column surfaces as a removal plus an
    addition.
    """

    def __init__(self) -> None:
        self.logger = get_logger("diff.engine")

    def diff(self, source: Snapshot, target: Snapshot) -> List[Action]:
        validate_snapshot(source)
        validate_snapshot(target)

        created = [name for name in target.tables if name not in source.tables]
        dropped = [name for name in source.tables if name not in target.tables]

        actions: List[Action] = []
        actions.extend(self._create_tables(target, created))
        actions.extend(self._drop_tables(source, dropped))
        for name, table in target.tables.items():
            previous = source.tables.get(name)
            if previous is not None:
                actions.extend(self._alter_table(previous, table))

        self.logger.debug(
            "Diff produced %s actions (%s created, %s dropped)",
            len(actions),
            len(created),
            len(dropped),
        )
        return actions

    # Whole tables --------------------------------------------------------
    def _create_tables(self, target: Snapshot, created: List[str]) -> List[Action]:
        deferred = cyclic_foreign_keys(target, created)
        creates: List[Action] = []
        additions: List[Action] = []
        for name in created:
            table = target.tables[name]
            postponed = deferred.get(name, [])
            creates.append(CreateTable(name, table.without_foreign_keys(fk.name for fk in postponed)))
            additions.extend(AddForeignKey(name, fk) for fk in postponed)
        if additions:
            self.logger.info(
                "Deferred %s foreign keys out of CREATE TABLE to break reference cycles",
                len(additions),
            )
        return creates + additions

    def _drop_tables(self, source: Snapshot, dropped: List[str]) -> List[Action]:
        detached = cyclic_foreign_keys(source, dropped)
        removals: List[Action] = []
        drops: List[Action] = []
        for name in dropped:
            table = source.tables[name]
            released = detached.get(name, [])
            removals.extend(RemoveForeignKey(name, fk) for fk in released)
            drops.append(DropTable(name, table.without_foreign_keys(fk.name for fk in released)))
        return removals + drops

    # Shared tables -------------------------------------------------------
    def _alter_table(self, source: TableDef, target: TableDef) -> List[Action]:
        name = target.name
        actions: List[Action] = []

        for column_name, column in target.columns.items():
            previous = source.columns.get(column_name)
            if previous is None:
                actions.append(AddColumn(name, column))
            elif _column_signature(previous) != _column_signature(column):
                actions.append(ChangeColumn(name, old=previous, new=column))
        for column_name, column in source.columns.items():
            if column_name not in target.columns:
                actions.append(RemoveColumn(name, column))

        removed_indexes, added_indexes = _match_by_identity(source.indexes, target.indexes)
        actions.extend(RemoveIndex(name, index) for index in removed_indexes)
        actions.extend(AddIndex(name, index) for index in added_indexes)

        removed_fks, added_fks = _match_by_identity(source.foreign_keys, target.foreign_keys)
        actions.extend(RemoveForeignKey(name, fk) for fk in removed_fks)
        actions.extend(AddForeignKey(name, fk) for fk in added_fks)
        return actions


def _column_signature(column: ColumnDef) -> tuple:
    """
    Comparison key for a column. Defaults compare by type as well as value
    (`1` and `True` render differently) and primary-key columns ignore the
    `nullable` and `unique` flags they imply.
    """
    if column.primary_key:
        column = replace(column, nullable=False, unique=False)
    return column, type(column.default), type(column.db_default)


def _match_by_identity(
    source: Mapping[str, Definition], target: Mapping[str, Definition]
) -> tuple[List[Definition], List[Definition]]:
    """
    Pair definitions by identity. Anything unpaired, or paired but not equal
    (renamed, retargeted, different options), is removed and re-added.
    """
    source_by_identity = {item.identity: item for item in source.values()}
    target_by_identity = {item.identity: item for item in target.values()}
    removed = [
        item
        for item in source.values()
        if target_by_identity.get(item.identity) != item
    ]
    added = [
        item
        for item in target.values()
        if source_by_identity.get(item.identity) != item
    ]
    return removed, added


def cyclic_foreign_keys(snapshot: Snapshot, tables: Iterable[str]) -> Dict[str, List[ForeignKeyDef]]:
    """
    Foreign keys that tie ``tables`` into reference cycles.

    Within every group of mutually reachable tables, each foreign key whose
    source and referenced table both belong to the group is returned, keyed by
    its source table. Self-references are never included.
    """
    members = list(tables)
    member_set = set(members)
    edges: Dict[str, Set[str]] = {}
    for name in members:
        edges[name] = {
            fk.referenced_table
            for fk in snapshot.tables[name].foreign_keys.values()
            if fk.referenced_table in member_set and fk.referenced_table != name
        }

    result: Dict[str, List[ForeignKeyDef]] = {}
    for component in strongly_connected_components(members, edges):
        if len(component) < 2:
            continue
        group = set(component)
        for name in component:
            keys = [
                fk
                for fk in snapshot.tables[name].foreign_keys.values()
                if fk.referenced_table in group and fk.referenced_table != name
            ]
            if keys:
                result[name] = keys
    return result


def diff(source: Snapshot, target: Snapshot) -> List[Action]:
    return DiffEngine().diff(source, target)
