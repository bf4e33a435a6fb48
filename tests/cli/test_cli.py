import json
import sqlite3

import pytest
from click.testing import CliRunner

from schemadelta.cli import main


@pytest.fixture
def workspace(tmp_path, monkeypatch, empty, users_only, blog):
    monkeypatch.delenv("SCHEMADELTA_DSN", raising=False)
    monkeypatch.delenv("SCHEMADELTA_DIALECT", raising=False)
    monkeypatch.delenv("SCHEMADELTA_MIGRATIONS_DIR", raising=False)
    for name, snapshot in (("empty", empty), ("users", users_only), ("blog", blog)):
        (tmp_path / f"{name}.json").write_text(snapshot.to_json(), encoding="utf-8")
    return tmp_path


def _invoke(workspace, *args):
    dsn = f"sqlite:///{workspace / 'state.db'}"
    return CliRunner().invoke(main, ["--dsn", dsn, *args])


def test_makemigration_writes_file(workspace):
    result = _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "blog.json"),
        "--name", "init",
        "--migrations-path", str(workspace / "migrations"),
    )
    assert result.exit_code == 0, result.output
    assert '[Actions] createTable "Users", deps: []' in result.output
    assert "New migration to revision" in result.output
    files = list((workspace / "migrations").glob("*_init.py"))
    assert len(files) == 1

    again = _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "blog.json"),
        "--migrations-path", str(workspace / "migrations"),
    )
    assert again.exit_code == 0
    assert "No changes found" in again.output


def test_makemigration_preview(workspace):
    result = _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "users.json"),
        "--preview",
        "--migrations-path", str(workspace / "migrations"),
    )
    assert result.exit_code == 0, result.output
    assert "Migration result:" in result.output
    assert "Undo commands:" in result.output
    assert not (workspace / "migrations").exists()


def test_history_lists_revisions(workspace):
    empty_history = _invoke(workspace, "history")
    assert "No revisions stored" in empty_history.output

    _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "users.json"),
        "--name", "users",
        "--migrations-path", str(workspace / "migrations"),
    )
    result = _invoke(workspace, "history")
    assert result.exit_code == 0
    assert "users  (1 tables)" in result.output


def test_diff_prints_statements(workspace):
    result = _invoke(
        workspace, "--dialect", "postgresql", "diff",
        str(workspace / "users.json"), str(workspace / "blog.json"),
    )
    assert result.exit_code == 0, result.output
    assert '-- createTable "Posts", deps: [Users]' in result.output
    assert 'CREATE TABLE "Posts"' in result.output

    down = _invoke(
        workspace, "--dialect", "postgresql", "diff", "--down",
        str(workspace / "users.json"), str(workspace / "blog.json"),
    )
    assert 'DROP TABLE "Posts";' in down.output


def test_invalid_snapshot_reports_error(workspace):
    broken = workspace / "broken.json"
    broken.write_text(json.dumps({"tables": {"Users": {"columns": {}}}}), encoding="utf-8")
    result = _invoke(workspace, "diff", str(workspace / "empty.json"), str(broken))
    assert result.exit_code == 1
    assert "table has no columns" in result.output


def test_unknown_dialect_reports_error(workspace):
    result = _invoke(
        workspace, "--dialect", "oracle", "diff",
        str(workspace / "empty.json"), str(workspace / "users.json"),
    )
    assert result.exit_code == 1
    assert "Unknown dialect 'oracle'" in result.output


def _tables(workspace):
    connection = sqlite3.connect(workspace / "state.db")
    try:
        rows = connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    finally:
        connection.close()
    return {row[0] for row in rows}


def test_makemigration_execute_applies_revision(workspace):
    result = _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "users.json"),
        "--name", "users",
        "--execute",
        "--migrations-path", str(workspace / "migrations"),
    )
    assert result.exit_code == 0, result.output
    assert "Applied revision" in result.output
    assert "(1 commands)" in result.output
    assert "Users" in _tables(workspace)


def test_makemigration_reset_state(workspace):
    nothing = _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "blog.json"),
        "--reset-state",
        "--migrations-path", str(workspace / "migrations"),
    )
    assert nothing.exit_code == 0, nothing.output
    assert "No stored revision to reset" in nothing.output

    _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "users.json"),
        "--name", "users",
        "--migrations-path", str(workspace / "migrations"),
    )
    result = _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "blog.json"),
        "--reset-state",
        "--migrations-path", str(workspace / "migrations"),
    )
    assert result.exit_code == 0, result.output
    assert "Reset state to latest migration of 'users' has been successful" in result.output

    again = _invoke(
        workspace,
        "makemigration",
        "--schema", str(workspace / "blog.json"),
        "--migrations-path", str(workspace / "migrations"),
    )
    assert "No changes found" in again.output
    assert len(list((workspace / "migrations").glob("*.py"))) == 1
