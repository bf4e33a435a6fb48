"""
End-to-end migration planning: load prior state, diff, write, persist.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..adapters.base import transaction
from ..core.errors import StateStoreError
from ..core.snapshot import Snapshot
from ..dialects.base import Dialect
from ..utils import get_logger, set_correlation_id
from .artifact import MigrationArtifact, next_revision, plan_migration, render_preview
from .store import RevisionRecord, RevisionStore
from .writer import ArtifactWriter


@dataclass
class PlanResult:
    artifact: MigrationArtifact
    base_revision: Optional[str] = None
    path: Optional[Path] = None
    preview: Optional[str] = None
    pruned: List[Path] = field(default_factory=list)
    executed: int = 0

    @property
    def has_changes(self) -> bool:
        return self.artifact.has_changes


@dataclass
class ResetResult:
    record: Optional[RevisionRecord] = None
    pruned: List[Path] = field(default_factory=list)


class MigrationPlanner:
    """
    Runs one ``makemigration`` pass. Each step either returns its value to the
    next one or raises; nothing is persisted before the artifact is written.
    """

    def __init__(
        self,
        store: RevisionStore,
        writer: ArtifactWriter,
        dialect: Dialect,
        *,
        keep_files: bool = False,
    ) -> None:
        self.store = store
        self.writer = writer
        self.dialect = dialect
        self.keep_files = keep_files
        self.logger = get_logger("migrations.planner")

    def load_base(self, base_revision: Optional[str] = None) -> Optional[RevisionRecord]:
        if base_revision is None:
            return self.store.latest()
        record = self.store.get(base_revision)
        if record is None:
            raise StateStoreError(f"No stored state for revision {base_revision}")
        return record

    def run(
        self,
        current: Snapshot,
        *,
        name: str = "noname",
        comment: str = "",
        preview: bool = False,
        base_revision: Optional[str] = None,
        execute: bool = False,
    ) -> PlanResult:
        set_correlation_id()
        base = self.load_base(base_revision)
        previous = base.snapshot if base else Snapshot.empty()
        base_id = base.revision if base else None
        self.logger.info("Planning migration from revision %s", base_id or "<empty>")

        artifact = plan_migration(
            previous,
            current,
            dialect=self.dialect,
            revision=next_revision(base_id),
            name=name,
            comment=comment,
        )
        result = PlanResult(artifact=artifact, base_revision=base_id)
        if not artifact.has_changes:
            self.logger.info("No changes found")
            return result
        if preview:
            result.preview = render_preview(artifact)
            return result

        if not self.keep_files:
            result.pruned = self.writer.prune(base_id)
        result.path = self.writer.write(artifact)
        self.store.save(
            RevisionRecord(revision=artifact.revision, name=name, snapshot=current),
            base_revision=base_id,
        )
        if execute:
            result.executed = self.execute(result.path)
        return result

    def execute(self, path: Path | str) -> int:
        """
        Apply the up commands of the artifact at ``path`` through the store's
        adapter in one transaction; returns how many commands ran.
        """
        info = self.writer.load(path)
        adapter = self.store.adapter
        with transaction(adapter):
            for sql in info.up:
                adapter.execute(sql)
        self.logger.info("Applied revision %s (%s commands)", info.revision, len(info.up))
        return len(info.up)

    def reset_state(self, current: Snapshot) -> ResetResult:
        """
        Store ``current`` as the state of the latest revision without writing
        a migration, for a database that was brought in line some other way.
        """
        set_correlation_id()
        base = self.store.latest()
        if base is None:
            self.logger.info("No stored revision to reset")
            return ResetResult()
        result = ResetResult(
            record=RevisionRecord(revision=base.revision, name=base.name, snapshot=current)
        )
        if not self.keep_files:
            result.pruned = self.writer.prune(base.revision)
        self.store.save(result.record, base_revision=base.revision, replace_base=True)
        self.logger.info("Reset state of revision %s (%s)", base.revision, base.name)
        return result
