"""
Writing, reading and pruning migration artifact files.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..core.errors import ArtifactError
from ..utils import get_logger, migration_slug
from .artifact import MigrationArtifact

_TEMPLATE = '''"""
Migration {slug}

Revision: {revision}
Created: {created}
"""

from schemadelta.adapters import transaction

revision = {revision!r}
name = {name!r}
comment = {comment!r}
created = {created!r}

UP = [
{up}
]

DOWN = [
{down}
]


def upgrade(adapter):
    with transaction(adapter):
        for sql in UP:
            adapter.execute(sql)


def downgrade(adapter):
    with transaction(adapter):
        for sql in DOWN:
            adapter.execute(sql)
'''

_FIELDS = ("revision", "name", "comment", "created", "UP", "DOWN")


@dataclass(frozen=True)
class ArtifactInfo:
    path: Path
    revision: str
    name: str
    comment: str
    created: str
    up: List[str]
    down: List[str]


class ArtifactWriter:
    """
    Stores artifacts as ``<revision>_<slug>.py`` modules in one directory.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self.logger = get_logger("migrations.writer")

    def filename(self, artifact: MigrationArtifact) -> str:
        return f"{artifact.revision}_{migration_slug(artifact.name)}.py"

    def render(self, artifact: MigrationArtifact) -> str:
        return _TEMPLATE.format(
            slug=migration_slug(artifact.name),
            revision=artifact.revision,
            created=artifact.created,
            name=artifact.name,
            comment=artifact.comment,
            up=_render_list(artifact.up.commands),
            down=_render_list(artifact.down.commands),
        )

    def write(self, artifact: MigrationArtifact) -> Path:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self.directory / self.filename(artifact)
            path.write_text(self.render(artifact), encoding="utf-8")
        except OSError as exc:
            raise ArtifactError(f"Cannot write migration to {self.directory}: {exc}") from exc
        self.logger.info("New migration to revision %s saved to %s", artifact.revision, path)
        return path

    def artifacts(self) -> List[Path]:
        if not self.directory.is_dir():
            return []
        return sorted(
            path
            for path in self.directory.glob("*.py")
            if revision_of(path) is not None
        )

    def load(self, path: Path | str) -> ArtifactInfo:
        path = Path(path)
        try:
            tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        except (OSError, SyntaxError) as exc:
            raise ArtifactError(f"Cannot read migration {path}: {exc}") from exc
        values = {}
        for node in tree.body:
            if isinstance(node, ast.Assign) and len(node.targets) == 1:
                target = node.targets[0]
                if isinstance(target, ast.Name) and target.id in _FIELDS:
                    try:
                        values[target.id] = ast.literal_eval(node.value)
                    except ValueError as exc:
                        raise ArtifactError(f"{path}: '{target.id}' is not a literal") from exc
        missing = [name for name in _FIELDS if name not in values]
        if missing:
            raise ArtifactError(f"{path}: missing {', '.join(missing)}")
        return ArtifactInfo(
            path=path,
            revision=values["revision"],
            name=values["name"],
            comment=values["comment"],
            created=values["created"],
            up=list(values["UP"]),
            down=list(values["DOWN"]),
        )

    def prune(self, after_revision: Optional[str]) -> List[Path]:
        """
        Delete artifacts newer than ``after_revision`` (all of them when it is
        ``None``); they were generated from a state that is being replaced.
        """
        removed: List[Path] = []
        for path in self.artifacts():
            revision = revision_of(path)
            if after_revision is None or (revision is not None and revision > after_revision):
                try:
                    path.unlink()
                except OSError as exc:
                    raise ArtifactError(f"Cannot delete stale migration {path}: {exc}") from exc
                self.logger.info("Deleted stale migration %s", path.name)
                removed.append(path)
        return removed


def revision_of(path: Path) -> Optional[str]:
    prefix = path.stem.split("_", 1)[0]
    if prefix.isdigit():
        return prefix
    return None


def _render_list(commands: List[str]) -> str:
    return "\n".join(f"    {command!r}," for command in commands)
