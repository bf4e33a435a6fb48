"""
Immutable schema snapshot definitions and their serialized representation.
"""

from __future__ import annotations

import json
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import InvalidSnapshot

SNAPSHOT_FORMAT_VERSION = 1

COLUMN_TYPES = frozenset(
    {
        "integer",
        "bigint",
        "smallint",
        "string",
        "text",
        "boolean",
        "decimal",
        "float",
        "date",
        "timestamp",
        "json",
        "uuid",
        "binary",
    }
)
INTEGER_TYPES = frozenset({"integer", "bigint", "smallint"})
REFERENTIAL_ACTIONS = frozenset({"CASCADE", "SET NULL", "SET DEFAULT", "RESTRICT", "NO ACTION"})


@dataclass(frozen=True)
class ColumnType:
    """
    Semantic column type with optional size parameters.
    """

    name: str
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.length is not None:
            data["length"] = self.length
        if self.precision is not None:
            data["precision"] = self.precision
        if self.scale is not None:
            data["scale"] = self.scale
        return data

    def __str__(self) -> str:
        if self.length is not None:
            return f"{self.name}({self.length})"
        if self.precision is not None:
            if self.scale is not None:
                return f"{self.name}({self.precision}, {self.scale})"
            return f"{self.name}({self.precision})"
        return self.name


@dataclass(frozen=True)
class ColumnDef:
    name: str
    type: ColumnType
    nullable: bool = True
    default: Any = None
    db_default: Optional[str] = None
    primary_key: bool = False
    unique: bool = False
    auto_increment: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.to_dict(),
            "nullable": self.nullable,
            "default": self.default,
            "db_default": self.db_default,
            "primary_key": self.primary_key,
            "unique": self.unique,
            "auto_increment": self.auto_increment,
        }


@dataclass(frozen=True)
class IndexDef:
    name: str
    columns: tuple[str, ...]
    unique: bool = False
    type: Optional[str] = None

    @property
    def identity(self) -> tuple[tuple[str, ...], bool]:
        return tuple(sorted(self.columns)), self.unique

    def to_dict(self) -> dict[str, Any]:
        return {"columns": list(self.columns), "unique": self.unique, "type": self.type}


@dataclass(frozen=True)
class ForeignKeyDef:
    name: str
    columns: tuple[str, ...]
    referenced_table: str
    referenced_columns: tuple[str, ...]
    on_update: Optional[str] = None
    on_delete: Optional[str] = None

    @property
    def identity(self) -> tuple[tuple[str, ...], str]:
        return self.columns, self.referenced_table

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": list(self.columns),
            "referenced_table": self.referenced_table,
            "referenced_columns": list(self.referenced_columns),
            "on_update": self.on_update,
            "on_delete": self.on_delete,
        }


@dataclass(frozen=True)
class TableDef:
    """
    Table definition. Mappings preserve definition order and are never
    mutated after construction; use the ``with_*``/``without_*`` helpers.
    """

    name: str
    columns: Dict[str, ColumnDef] = field(default_factory=dict)
    indexes: Dict[str, IndexDef] = field(default_factory=dict)
    foreign_keys: Dict[str, ForeignKeyDef] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        name: str,
        columns: Iterable[ColumnDef] = (),
        indexes: Iterable[IndexDef] = (),
        foreign_keys: Iterable[ForeignKeyDef] = (),
    ) -> "TableDef":
        return cls(
            name=name,
            columns={column.name: column for column in columns},
            indexes={index.name: index for index in indexes},
            foreign_keys={fk.name: fk for fk in foreign_keys},
        )

    @property
    def primary_key(self) -> tuple[str, ...]:
        return tuple(name for name, column in self.columns.items() if column.primary_key)

    def with_column(self, column: ColumnDef) -> "TableDef":
        columns = dict(self.columns)
        columns[column.name] = column
        return replace(self, columns=columns)

    def without_column(self, name: str) -> "TableDef":
        return replace(self, columns={k: v for k, v in self.columns.items() if k != name})

    def with_index(self, index: IndexDef) -> "TableDef":
        indexes = dict(self.indexes)
        indexes[index.name] = index
        return replace(self, indexes=indexes)

    def without_index(self, name: str) -> "TableDef":
        return replace(self, indexes={k: v for k, v in self.indexes.items() if k != name})

    def with_foreign_key(self, foreign_key: ForeignKeyDef) -> "TableDef":
        foreign_keys = dict(self.foreign_keys)
        foreign_keys[foreign_key.name] = foreign_key
        return replace(self, foreign_keys=foreign_keys)

    def without_foreign_keys(self, names: Iterable[str]) -> "TableDef":
        excluded = set(names)
        return replace(
            self,
            foreign_keys={k: v for k, v in self.foreign_keys.items() if k not in excluded},
        )

    def __hash__(self) -> int:
        return hash(
            (
                self.name,
                frozenset(self.columns.items()),
                frozenset(self.indexes.items()),
                frozenset(self.foreign_keys.items()),
            )
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": {name: column.to_dict() for name, column in self.columns.items()},
            "indexes": {name: index.to_dict() for name, index in self.indexes.items()},
            "foreign_keys": {name: fk.to_dict() for name, fk in self.foreign_keys.items()},
        }


@dataclass(frozen=True)
class Snapshot:
    """
    The schema at one revision: table name to :class:`TableDef`.
    """

    tables: Dict[str, TableDef] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    @classmethod
    def of(cls, *tables: TableDef) -> "Snapshot":
        return cls(tables={table.name: table for table in tables})

    def __contains__(self, table_name: object) -> bool:
        return table_name in self.tables

    def __iter__(self) -> Iterator[TableDef]:
        return iter(self.tables.values())

    def __len__(self) -> int:
        return len(self.tables)

    def get(self, table_name: str) -> Optional[TableDef]:
        return self.tables.get(table_name)

    def with_table(self, table: TableDef) -> "Snapshot":
        tables = dict(self.tables)
        tables[table.name] = table
        return Snapshot(tables=tables)

    def without_table(self, table_name: str) -> "Snapshot":
        return Snapshot(tables={k: v for k, v in self.tables.items() if k != table_name})

    def __hash__(self) -> int:
        return hash(frozenset(self.tables.items()))

    # Serialization -------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "version": SNAPSHOT_FORMAT_VERSION,
            "tables": {name: table.to_dict() for name, table in self.tables.items()},
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Any) -> "Snapshot":
        reader = _SnapshotReader()
        snapshot = reader.read(data)
        if reader.errors:
            raise InvalidSnapshot(reader.errors)
        validate_snapshot(snapshot)
        return snapshot

    @classmethod
    def from_json(cls, text: str) -> "Snapshot":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidSnapshot({"": [f"not valid JSON: {exc.msg}"]}) from exc
        return cls.from_dict(data)


class _SnapshotReader:
    """
    Structural parser for the serialized form; collects every problem
    instead of stopping at the first one.
    """

    def __init__(self) -> None:
        self.errors: Dict[str, List[str]] = defaultdict(list)

    def read(self, data: Any) -> Snapshot:
        if not isinstance(data, Mapping):
            self.errors[""].append("expected a mapping with a 'tables' key")
            return Snapshot()
        version = data.get("version", SNAPSHOT_FORMAT_VERSION)
        if version != SNAPSHOT_FORMAT_VERSION:
            self.errors["version"].append(
                f"unsupported snapshot format version {version!r} (expected {SNAPSHOT_FORMAT_VERSION})"
            )
        tables = data.get("tables")
        if not isinstance(tables, Mapping):
            self.errors["tables"].append("missing or not a mapping")
            return Snapshot()
        result: Dict[str, TableDef] = {}
        for name, table in tables.items():
            path = f"tables.{name}"
            if not isinstance(table, Mapping):
                self.errors[path].append("table definition must be a mapping")
                continue
            result[name] = self._table(path, name, table)
        return Snapshot(tables=result)

    def _table(self, path: str, name: str, data: Mapping[str, Any]) -> TableDef:
        columns = data.get("columns")
        if not isinstance(columns, Mapping):
            self.errors[f"{path}.columns"].append("missing or not a mapping")
            columns = {}
        indexes = self._section(path, data, "indexes")
        foreign_keys = self._section(path, data, "foreign_keys")
        return TableDef(
            name=name,
            columns={
                col: self._column(f"{path}.columns.{col}", col, value)
                for col, value in columns.items()
                if self._is_mapping(f"{path}.columns.{col}", value)
            },
            indexes={
                idx: self._index(f"{path}.indexes.{idx}", idx, value)
                for idx, value in indexes.items()
                if self._is_mapping(f"{path}.indexes.{idx}", value)
            },
            foreign_keys={
                fk: self._foreign_key(f"{path}.foreign_keys.{fk}", fk, value)
                for fk, value in foreign_keys.items()
                if self._is_mapping(f"{path}.foreign_keys.{fk}", value)
            },
        )

    def _section(self, path: str, data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
        value = data.get(key, {})
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            self.errors[f"{path}.{key}"].append("must be a mapping")
            return {}
        return value

    def _is_mapping(self, path: str, value: Any) -> bool:
        if isinstance(value, Mapping):
            return True
        self.errors[path].append("definition must be a mapping")
        return False

    def _column(self, path: str, name: str, data: Mapping[str, Any]) -> ColumnDef:
        default = data.get("default")
        if default is not None and not isinstance(default, (str, int, float, bool)):
            self.errors[f"{path}.default"].append("default must be a string, number or boolean")
            default = None
        db_default = data.get("db_default")
        if db_default is not None and not isinstance(db_default, str):
            self.errors[f"{path}.db_default"].append("db_default must be a SQL expression string")
            db_default = None
        primary_key = self._flag(path, data, "primary_key", False)
        nullable = self._flag(path, data, "nullable", True)
        unique = self._flag(path, data, "unique", False)
        # a primary key is always NOT NULL and unique; keep a single spelling
        return ColumnDef(
            name=name,
            type=self._column_type(f"{path}.type", data.get("type")),
            nullable=nullable and not primary_key,
            default=default,
            db_default=db_default,
            primary_key=primary_key,
            unique=unique and not primary_key,
            auto_increment=self._flag(path, data, "auto_increment", False),
        )

    def _column_type(self, path: str, value: Any) -> ColumnType:
        if isinstance(value, str):
            return ColumnType(value)
        if isinstance(value, Mapping) and isinstance(value.get("name"), str):
            params: dict[str, Optional[int]] = {}
            for key in ("length", "precision", "scale"):
                param = value.get(key)
                if param is not None and (isinstance(param, bool) or not isinstance(param, int)):
                    self.errors[path].append(f"{key} must be an integer")
                    param = None
                params[key] = param
            return ColumnType(value["name"], **params)
        self.errors[path].append("missing or invalid column type")
        return ColumnType("text")

    def _flag(self, path: str, data: Mapping[str, Any], key: str, default: bool) -> bool:
        value = data.get(key, default)
        if not isinstance(value, bool):
            self.errors[f"{path}.{key}"].append("must be a boolean")
            return default
        return value

    def _names(self, path: str, value: Any) -> tuple[str, ...]:
        if isinstance(value, str):
            return (value,)
        if isinstance(value, (list, tuple)) and value and all(isinstance(v, str) for v in value):
            return tuple(value)
        self.errors[path].append("must be a non-empty list of column names")
        return ()

    def _index(self, path: str, name: str, data: Mapping[str, Any]) -> IndexDef:
        index_type = data.get("type")
        if index_type is not None and not isinstance(index_type, str):
            self.errors[f"{path}.type"].append("must be a string")
            index_type = None
        return IndexDef(
            name=name,
            columns=self._names(f"{path}.columns", data.get("columns")),
            unique=self._flag(path, data, "unique", False),
            type=index_type,
        )

    def _foreign_key(self, path: str, name: str, data: Mapping[str, Any]) -> ForeignKeyDef:
        referenced_table = data.get("referenced_table")
        if not isinstance(referenced_table, str) or not referenced_table:
            self.errors[f"{path}.referenced_table"].append("missing table name")
            referenced_table = ""
        return ForeignKeyDef(
            name=name,
            columns=self._names(f"{path}.columns", data.get("columns")),
            referenced_table=referenced_table,
            referenced_columns=self._names(
                f"{path}.referenced_columns", data.get("referenced_columns")
            ),
            on_update=self._referential_action(f"{path}.on_update", data.get("on_update")),
            on_delete=self._referential_action(f"{path}.on_delete", data.get("on_delete")),
        )

    def _referential_action(self, path: str, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            self.errors[path].append("must be a string")
            return None
        return value.upper()


def validate_snapshot(snapshot: Snapshot) -> None:
    """
    Check cross-references and naming rules; raise :class:`InvalidSnapshot`
    listing every problem found.
    """
    errors: Dict[str, List[str]] = defaultdict(list)
    if not isinstance(snapshot, Snapshot):
        raise InvalidSnapshot({"": [f"expected Snapshot, received {type(snapshot).__name__}"]})
    for key, table in snapshot.tables.items():
        path = f"tables.{key}"
        if not isinstance(table, TableDef):
            errors[path].append("table definition must be a TableDef")
            continue
        if table.name != key:
            errors[path].append(f"table name '{table.name}' does not match its key")
        if not table.columns:
            errors[f"{path}.columns"].append("table has no columns")
        _validate_columns(errors, path, table)
        _validate_indexes(errors, path, table)
        _validate_foreign_keys(errors, path, table, snapshot)
    if errors:
        raise InvalidSnapshot(errors)


def _validate_columns(errors: Dict[str, List[str]], path: str, table: TableDef) -> None:
    for key, column in table.columns.items():
        column_path = f"{path}.columns.{key}"
        if column.name != key:
            errors[column_path].append(f"column name '{column.name}' does not match its key")
        if column.type.name not in COLUMN_TYPES:
            errors[f"{column_path}.type"].append(f"unknown column type '{column.type.name}'")
        for param in (column.type.length, column.type.precision):
            if param is not None and param <= 0:
                errors[f"{column_path}.type"].append("size parameters must be positive")
        scale = column.type.scale
        if scale is not None:
            if scale < 0:
                errors[f"{column_path}.type"].append("scale must not be negative")
            elif column.type.precision is not None and scale > column.type.precision:
                errors[f"{column_path}.type"].append("scale must not exceed precision")
        if column.auto_increment and column.type.name not in INTEGER_TYPES:
            errors[column_path].append("auto_increment requires an integer column")


def _validate_indexes(errors: Dict[str, List[str]], path: str, table: TableDef) -> None:
    seen: Dict[tuple, str] = {}
    for key, index in table.indexes.items():
        index_path = f"{path}.indexes.{key}"
        if index.name != key:
            errors[index_path].append(f"index name '{index.name}' does not match its key")
        missing = [col for col in index.columns if col not in table.columns]
        if missing:
            errors[index_path].append(f"unknown columns {', '.join(missing)}")
        if index.identity in seen:
            errors[index_path].append(f"duplicates index '{seen[index.identity]}'")
        else:
            seen[index.identity] = key


def _validate_foreign_keys(
    errors: Dict[str, List[str]], path: str, table: TableDef, snapshot: Snapshot
) -> None:
    seen: Dict[tuple, str] = {}
    for key, fk in table.foreign_keys.items():
        fk_path = f"{path}.foreign_keys.{key}"
        if fk.name != key:
            errors[fk_path].append(f"foreign key name '{fk.name}' does not match its key")
        missing = [col for col in fk.columns if col not in table.columns]
        if missing:
            errors[fk_path].append(f"unknown columns {', '.join(missing)}")
        if len(fk.columns) != len(fk.referenced_columns):
            errors[fk_path].append("column count does not match referenced column count")
        for action in (fk.on_update, fk.on_delete):
            if action is not None and action not in REFERENTIAL_ACTIONS:
                errors[fk_path].append(f"unknown referential action '{action}'")
        target = snapshot.tables.get(fk.referenced_table)
        if target is None:
            errors[fk_path].append(f"references unknown table '{fk.referenced_table}'")
        else:
            missing_ref = [col for col in fk.referenced_columns if col not in target.columns]
            if missing_ref:
                errors[fk_path].append(
                    f"references unknown columns {', '.join(missing_ref)} on '{fk.referenced_table}'"
                )
        if fk.identity in seen:
            errors[fk_path].append(f"duplicates foreign key '{seen[fk.identity]}'")
        else:
            seen[fk.identity] = key
