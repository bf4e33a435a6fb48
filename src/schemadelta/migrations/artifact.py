"""
Migration artifacts: paired forward/reverse scripts for one revision.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..core.snapshot import Snapshot
from ..diff.engine import DiffEngine
from ..diff.sorter import ActionSorter
from ..dialects.base import Dialect
from ..schema.generator import GeneratedScript, MigrationGenerator
from ..utils import get_logger, time_call
from ..utils.logging import resolve_slow_ms

REVISION_FORMAT = "%Y%m%d%H%M%S"

logger = get_logger("migrations.artifact")


def new_revision(now: Optional[datetime] = None) -> str:
    """
    Timestamp revision identifier; lexical order equals creation order.
    """
    moment = now or datetime.now(timezone.utc)
    return moment.strftime(REVISION_FORMAT)


def next_revision(after: Optional[str], now: Optional[datetime] = None) -> str:
    candidate = new_revision(now)
    if after is not None and candidate <= after:
        width = len(after)
        candidate = str(int(after) + 1).zfill(width)
    return candidate


@dataclass(frozen=True)
class MigrationArtifact:
    revision: str
    name: str
    comment: str
    created: str
    up: GeneratedScript
    down: GeneratedScript
    snapshot: Snapshot

    @property
    def has_changes(self) -> bool:
        return not self.up.is_empty


def build_script(source: Snapshot, target: Snapshot, dialect: Dialect) -> GeneratedScript:
    """
    ``generate(sort(diff(source, target)))``, tracking the schema from ``source``.
    """
    threshold = resolve_slow_ms(default=250)
    with time_call("diff", logger, threshold_ms=threshold):
        actions = DiffEngine().diff(source, target)
    with time_call("sort", logger, threshold_ms=threshold):
        ordered = ActionSorter().sort(actions)
    with time_call("generate", logger, threshold_ms=threshold):
        return MigrationGenerator(dialect).generate(ordered, source=source)


def plan_migration(
    previous: Snapshot,
    current: Snapshot,
    *,
    dialect: Dialect,
    revision: Optional[str] = None,
    name: str = "noname",
    comment: str = "",
) -> MigrationArtifact:
    up = build_script(previous, current, dialect)
    down = build_script(current, previous, dialect)
    artifact = MigrationArtifact(
        revision=revision or new_revision(),
        name=name,
        comment=comment,
        created=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        up=up,
        down=down,
        snapshot=current,
    )
    logger.info(
        "Planned revision %s (%s up, %s down statements)",
        artifact.revision,
        len(up),
        len(down),
    )
    return artifact


def render_preview(artifact: MigrationArtifact) -> str:
    """
    Human-readable view of an artifact; nothing is written anywhere.
    """
    lines = [f"[Actions] {entry}" for entry in artifact.up.log]
    lines.append("Migration result:")
    lines.extend(_render_commands(artifact.up))
    lines.append("Undo commands:")
    lines.extend(_render_commands(artifact.down))
    return "\n".join(lines) + "\n"


def _render_commands(script: GeneratedScript) -> list[str]:
    if script.is_empty:
        return ["[]"]
    body = [f"  {command};" for command in script.commands]
    return ["[", *body, "]"]
