"""
Migration artifacts, their files, revision state and the planning pipeline.
"""

from .artifact import MigrationArtifact, build_script, new_revision, plan_migration, render_preview
from .planner import MigrationPlanner, PlanResult, ResetResult
from .store import RevisionRecord, RevisionStore
from .writer import ArtifactInfo, ArtifactWriter

__all__ = [
    "ArtifactInfo",
    "ArtifactWriter",
    "MigrationArtifact",
    "MigrationPlanner",
    "PlanResult",
    "ResetResult",
    "RevisionRecord",
    "RevisionStore",
    "build_script",
    "new_revision",
    "plan_migration",
    "render_preview",
]
