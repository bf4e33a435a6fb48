import pytest

from schemadelta.adapters import ConnectionConfig, connect
from schemadelta.core import StateStoreError
from schemadelta.dialects import SQLiteDialect
from schemadelta.migrations import ArtifactWriter, MigrationPlanner, RevisionStore


@pytest.fixture
def planner(tmp_path):
    adapter = connect(ConnectionConfig(url=f"sqlite:///{tmp_path / 'state.db'}"))
    planner = MigrationPlanner(
        RevisionStore(adapter), ArtifactWriter(tmp_path / "migrations"), SQLiteDialect()
    )
    yield planner
    adapter.close()


def test_first_run_writes_artifact_and_state(planner, blog):
    result = planner.run(blog, name="init")
    assert result.has_changes
    assert result.base_revision is None
    assert result.path.exists()
    assert planner.store.latest().snapshot == blog
    assert planner.store.latest().revision == result.artifact.revision


def test_second_run_diffs_against_stored_state(planner, users_only, blog):
    first = planner.run(users_only, name="users")
    second = planner.run(blog, name="posts")
    assert second.base_revision == first.artifact.revision
    assert second.artifact.revision > first.artifact.revision
    assert second.artifact.up.log == ('createTable "Posts", deps: [Users]',)
    assert [path.name for path in planner.writer.artifacts()] == [first.path.name, second.path.name]


def test_no_changes_writes_nothing(planner, users_only):
    planner.run(users_only)
    result = planner.run(users_only)
    assert not result.has_changes
    assert result.path is None
    assert len(planner.store.history()) == 1


def test_preview_persists_nothing(planner, users_only):
    result = planner.run(users_only, preview=True)
    assert result.preview.startswith('[Actions] createTable "Users"')
    assert planner.store.latest() is None
    assert planner.writer.artifacts() == []


def test_rebasing_prunes_newer_artifacts(planner, empty, users_only, blog):
    first = planner.run(users_only, name="users")
    second = planner.run(blog, name="posts")
    third = planner.run(empty, name="reset", base_revision=first.artifact.revision)
    assert third.pruned == [second.path]
    assert not second.path.exists()
    assert [record.name for record in planner.store.history()] == ["users", "reset"]


def test_keep_files_skips_pruning(planner, empty, users_only, blog):
    first = planner.run(users_only, name="users")
    planner.keep_files = True
    second = planner.run(blog, name="posts", base_revision=first.artifact.revision)
    third = planner.run(empty, name="again", base_revision=first.artifact.revision)
    assert third.pruned == []
    assert second.path.exists()


def test_unknown_base_revision(planner, users_only):
    with pytest.raises(StateStoreError, match="No stored state for revision 19990101000000"):
        planner.run(users_only, base_revision="19990101000000")


def test_preview_leaves_no_state_table(planner, users_only):
    planner.run(users_only, preview=True)
    assert planner.store.adapter.table_exists("schemadelta_revisions") is False


def test_reset_state_overwrites_latest_revision(planner, users_only, blog):
    first = planner.run(users_only, name="users")
    result = planner.reset_state(blog)
    assert result.record.revision == first.artifact.revision
    assert result.record.name == "users"
    history = planner.store.history()
    assert [record.revision for record in history] == [first.artifact.revision]
    assert history[0].snapshot == blog
    assert [path.name for path in planner.writer.artifacts()] == [first.path.name]


def test_reset_state_without_revisions(planner, users_only):
    result = planner.reset_state(users_only)
    assert result.record is None
    assert planner.store.latest() is None


def test_execute_applies_new_migration(planner, blog):
    result = planner.run(blog, name="init", execute=True)
    adapter = planner.store.adapter
    assert result.executed == len(result.artifact.up.commands)
    assert adapter.table_exists("Users")
    assert adapter.table_exists("Posts")
