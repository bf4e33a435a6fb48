import runpy

import pytest

from schemadelta.adapters import ConnectionConfig, connect
from schemadelta.core import ArtifactError
from schemadelta.dialects import SQLiteDialect
from schemadelta.migrations import ArtifactWriter, plan_migration


@pytest.fixture
def artifact(empty, blog):
    return plan_migration(
        empty,
        blog,
        dialect=SQLiteDialect(),
        revision="20240101000000",
        name="Add blog tables",
        comment="users and their posts",
    )


def test_write_and_load(tmp_path, artifact):
    writer = ArtifactWriter(tmp_path / "migrations")
    path = writer.write(artifact)
    assert path.name == "20240101000000_add_blog_tables.py"

    info = writer.load(path)
    assert info.revision == "20240101000000"
    assert info.name == "Add blog tables"
    assert info.comment == "users and their posts"
    assert info.up == artifact.up.commands
    assert info.down == artifact.down.commands


def test_written_artifact_runs_against_sqlite(tmp_path, artifact):
    path = ArtifactWriter(tmp_path).write(artifact)
    module = runpy.run_path(str(path))
    adapter = connect(ConnectionConfig(url=f"sqlite:///{tmp_path / 'app.db'}"))
    try:
        module["upgrade"](adapter)
        rows = adapter.execute("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
        assert [row[0] for row in rows.fetchall() if row[0] != "sqlite_sequence"] == ["Posts", "Users"]
        module["downgrade"](adapter)
        rows = adapter.execute("SELECT name FROM sqlite_master WHERE type = 'table' AND name IN ('Posts', 'Users')")
        assert rows.fetchall() == []
    finally:
        adapter.close()


def test_prune_removes_newer_artifacts(tmp_path):
    writer = ArtifactWriter(tmp_path)
    for stem in ("20240101000000_init", "20240201000000_posts", "20240301000000_tags"):
        (tmp_path / f"{stem}.py").write_text("revision = 'x'\n", encoding="utf-8")
    (tmp_path / "helpers.py").write_text("", encoding="utf-8")

    removed = writer.prune("20240101000000")
    assert [path.name for path in removed] == ["20240201000000_posts.py", "20240301000000_tags.py"]
    assert [path.name for path in writer.artifacts()] == ["20240101000000_init.py"]

    assert [path.name for path in writer.prune(None)] == ["20240101000000_init.py"]
    assert (tmp_path / "helpers.py").exists()


def test_load_rejects_incomplete_file(tmp_path):
    path = tmp_path / "20240101000000_broken.py"
    path.write_text("revision = '20240101000000'\n", encoding="utf-8")
    with pytest.raises(ArtifactError, match="missing"):
        ArtifactWriter(tmp_path).load(path)


def test_missing_directory_has_no_artifacts(tmp_path):
    assert ArtifactWriter(tmp_path / "absent").artifacts() == []
