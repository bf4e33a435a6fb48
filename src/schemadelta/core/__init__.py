"""
Core schema snapshot model, change actions and errors.
"""

from .actions import (
    ACTION_TYPES,
    Action,
    ActionKind,
    AddColumn,
    AddForeignKey,
    AddIndex,
    ChangeColumn,
    CreateTable,
    DropTable,
    RemoveColumn,
    RemoveForeignKey,
    RemoveIndex,
    is_action,
)
from .errors import (
    ArtifactError,
    CyclicDependency,
    InvalidSnapshot,
    ReplayError,
    SchemaDeltaError,
    StateStoreError,
    UnknownActionError,
    UnsupportedOperation,
)
from .snapshot import (
    COLUMN_TYPES,
    SNAPSHOT_FORMAT_VERSION,
    ColumnDef,
    ColumnType,
    ForeignKeyDef,
    IndexDef,
    Snapshot,
    TableDef,
    validate_snapshot,
)

__all__ = [
    "ACTION_TYPES",
    "Action",
    "ActionKind",
    "AddColumn",
    "AddForeignKey",
    "AddIndex",
    "ChangeColumn",
    "CreateTable",
    "DropTable",
    "RemoveColumn",
    "RemoveForeignKey",
    "RemoveIndex",
    "is_action",
    "ArtifactError",
    "CyclicDependency",
    "InvalidSnapshot",
    "ReplayError",
    "SchemaDeltaError",
    "StateStoreError",
    "UnknownActionError",
    "UnsupportedOperation",
    "COLUMN_TYPES",
    "SNAPSHOT_FORMAT_VERSION",
    "ColumnDef",
    "ColumnType",
    "ForeignKeyDef",
    "IndexDef",
    "Snapshot",
    "TableDef",
    "validate_snapshot",
]
