"""
schemadelta public package initialization.

Compares schema snapshots, orders the resulting change actions and renders
them into paired up/down migration scripts.
"""

from .core import (  # noqa: F401
    Action,
    ColumnDef,
    ColumnType,
    CyclicDependency,
    ForeignKeyDef,
    IndexDef,
    InvalidSnapshot,
    SchemaDeltaError,
    Snapshot,
    TableDef,
)
from .diff import ActionSorter, DiffEngine, apply_actions, apply_statements  # noqa: F401
from .migrations import (  # noqa: F401
    ArtifactWriter,
    MigrationArtifact,
    MigrationPlanner,
    RevisionStore,
    plan_migration,
    render_preview,
)
from .schema import GeneratedScript, MigrationGenerator, Statement  # noqa: F401

__all__ = [
    "Action",
    "ColumnDef",
    "ColumnType",
    "CyclicDependency",
    "ForeignKeyDef",
    "IndexDef",
    "InvalidSnapshot",
    "SchemaDeltaError",
    "Snapshot",
    "TableDef",
    "ActionSorter",
    "DiffEngine",
    "apply_actions",
    "apply_statements",
    "ArtifactWriter",
    "MigrationArtifact",
    "MigrationPlanner",
    "RevisionStore",
    "plan_migration",
    "render_preview",
    "GeneratedScript",
    "MigrationGenerator",
    "Statement",
]
