"""Command line entry point for schemadelta."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from .adapters import AdapterError, ConnectionConfig, connect
from .config import Settings
from .core.errors import SchemaDeltaError
from .core.snapshot import Snapshot
from .migrations import ArtifactWriter, MigrationPlanner, ResetResult, RevisionStore, build_script
from .utils import configure_logging


def _read_snapshot(path: str) -> Snapshot:
    return Snapshot.from_json(Path(path).read_text(encoding="utf-8"))


def _fail(ctx: click.Context, exc: Exception) -> None:
    if ctx.obj.get("debug"):
        raise exc
    raise click.ClickException(str(exc)) from exc


@click.group()
@click.version_option(version="0.1.0", prog_name="schemadelta")
@click.option("--dsn", help="Database holding revision state (default: $SCHEMADELTA_DSN)")
@click.option("--dialect", help="SQL dialect to render (default: from the DSN)")
@click.option("--verbose", "-v", is_flag=True, help="Show details about the execution")
@click.option("--debug", "-d", is_flag=True, help="Show full tracebacks for errors")
@click.pass_context
def main(ctx: click.Context, dsn: str | None, dialect: str | None, verbose: bool, debug: bool) -> None:
    """Generate reversible migrations from schema snapshots."""
    ctx.ensure_object(dict)
    ctx.obj["settings"] = Settings.from_env().override(dsn=dsn, dialect_name=dialect)
    ctx.obj["debug"] = debug
    configure_logging()
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.getLogger("schemadelta").setLevel(level)


@main.command()
@click.option("--schema", "-s", "schema_path", required=True, type=click.Path(exists=True, dir_okay=False),
              help="JSON snapshot of the current model definitions")
@click.option("--name", "-n", default="noname", show_default=True, help="Migration name")
@click.option("--comment", "-c", default="", help="Migration comment")
@click.option("--preview", "-p", is_flag=True, help="Show migration preview (does not change any files)")
@click.option("--migrations-path", type=click.Path(file_okay=False), help="Migrations folder")
@click.option("--keep-files", "-k", is_flag=True,
              help="Don't delete stale migration files newer than the base revision")
@click.option("--from-revision", help="Diff against this stored revision instead of the latest")
@click.option("--execute", "-x", is_flag=True, help="Create the new migration and apply it")
@click.option("--reset-state", is_flag=True,
              help="Store SCHEMA as the state of the latest revision without writing a migration")
@click.pass_context
def makemigration(
    ctx: click.Context,
    schema_path: str,
    name: str,
    comment: str,
    preview: bool,
    migrations_path: str | None,
    keep_files: bool,
    from_revision: str | None,
    execute: bool,
    reset_state: bool,
) -> None:
    """Create a migration from the difference between stored state and SCHEMA."""
    settings: Settings = ctx.obj["settings"].override(migrations_dir=migrations_path)
    adapter = None
    try:
        current = _read_snapshot(schema_path)
        adapter = connect(ConnectionConfig.from_dsn(settings.dsn))
        planner = MigrationPlanner(
            RevisionStore(adapter),
            ArtifactWriter(settings.migrations_dir),
            settings.dialect(),
            keep_files=keep_files,
        )
        if reset_state:
            _report_reset(planner.reset_state(current))
            return
        result = planner.run(
            current,
            name=name,
            comment=comment,
            preview=preview,
            base_revision=from_revision,
            execute=execute,
        )
    except (SchemaDeltaError, AdapterError, ValueError, OSError) as exc:
        _fail(ctx, exc)
        return
    finally:
        if adapter is not None:
            adapter.close()

    if not result.has_changes:
        click.echo("No changes found")
        return
    if result.preview is not None:
        click.echo(result.preview, nl=False)
        return
    for entry in result.artifact.up.log:
        click.echo(f"[Actions] {entry}")
    for path in result.pruned:
        click.echo(f"Deleted stale migration '{path}'")
    click.echo(
        f"New migration to revision {result.artifact.revision} has been saved to file '{result.path}'"
    )
    if execute:
        click.echo(f"Applied revision {result.artifact.revision} ({result.executed} commands)")


def _report_reset(result: ResetResult) -> None:
    if result.record is None:
        click.echo("No stored revision to reset")
        return
    for path in result.pruned:
        click.echo(f"Deleted stale migration '{path}'")
    click.echo(f"Reset state to latest migration of '{result.record.name}' has been successful")


@main.command()
@click.argument("previous", type=click.Path(exists=True, dir_okay=False))
@click.argument("current", type=click.Path(exists=True, dir_okay=False))
@click.option("--down", is_flag=True, help="Print the reverse script instead")
@click.pass_context
def diff(ctx: click.Context, previous: str, current: str, down: bool) -> None:
    """Print the statements turning PREVIOUS into CURRENT without touching any state."""
    settings: Settings = ctx.obj["settings"]
    try:
        source, target = _read_snapshot(previous), _read_snapshot(current)
        if down:
            source, target = target, source
        script = build_script(source, target, settings.dialect())
    except (SchemaDeltaError, ValueError, OSError) as exc:
        _fail(ctx, exc)
        return
    if script.is_empty:
        click.echo("No changes found")
        return
    for statement in script.statements:
        click.echo(f"-- {statement.action.describe()}")
        click.echo(statement.text)


@main.command()
@click.pass_context
def history(ctx: click.Context) -> None:
    """List stored revisions, oldest first."""
    settings: Settings = ctx.obj["settings"]
    adapter = None
    try:
        adapter = connect(ConnectionConfig.from_dsn(settings.dsn))
        records = RevisionStore(adapter).history()
    except (SchemaDeltaError, AdapterError, ValueError) as exc:
        _fail(ctx, exc)
        return
    finally:
        if adapter is not None:
            adapter.close()
    if not records:
        click.echo("No revisions stored")
        return
    for record in records:
        click.echo(f"{record.revision}  {record.name}  ({len(record.snapshot)} tables)")


if __name__ == "__main__":
    main()
