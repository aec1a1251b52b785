"""
CLI: ``spine-auth schema`` diffs the auth schema against a database and
emits Alembic revisions plus SQLAlchemy entity modules.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from spine_auth.cli.utils import console, fail, make_engine, output_rows
from spine_auth.core.errors import AdapterError, ConfigError
from spine_auth.core.schema import SchemaRegistry
from spine_auth.core.settings import AdapterSettings, get_settings
from spine_auth.migrations.synchronize import SchemaChangelog, SchemaSynchronizer, plan_summary

app = typer.Typer(no_args_is_help=True)


def _settings(output_dir: str | None) -> AdapterSettings:
    settings = get_settings()
    if output_dir is None:
        return settings
    return settings.model_copy(update={"output_dir": output_dir})


def _load_registry(schema: Path) -> SchemaRegistry:
    try:
        return SchemaRegistry.from_json(schema)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Cannot read schema file {schema}: {exc}", cause=exc) from exc


async def _synchronize(
    settings: AdapterSettings,
    registry: SchemaRegistry,
    database: str | None,
    output: str | None,
    dry_run: bool,
) -> SchemaChangelog:
    engine = make_engine(settings, database)
    try:
        synchronizer = SchemaSynchronizer(engine, settings=settings)
        return await synchronizer.synchronize(registry, output, dry_run=dry_run)
    finally:
        await engine.dispose()


def _run(
    schema: Path,
    database: str | None,
    output: str | None,
    output_dir: str | None,
    *,
    dry_run: bool,
) -> SchemaChangelog:
    try:
        settings = _settings(output_dir)
        registry = _load_registry(schema)
        return asyncio.run(_synchronize(settings, registry, database, output, dry_run))
    except AdapterError as exc:
        fail(exc)
        raise


@app.command()
def sync(
    schema: Path = typer.Option(..., "--schema", "-s", help="Auth schema JSON file"),
    database: str | None = typer.Option(None, "--database", "-d", help="Async database URL"),
    output: str | None = typer.Option(None, "--output", "-o", help="Changelog path"),
    output_dir: str | None = typer.Option(None, "--output-dir", help="Artifact root directory"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Write migrations and entities for schema drift, then the changelog."""
    changelog = _run(schema, database, output, output_dir, dry_run=False)
    path = changelog.write()
    output_rows(
        plan_summary(changelog),
        as_json=json_out,
        title="Schema Sync",
        extra={"changelog": str(path), "entities": changelog.entities, "up_to_date": not changelog.has_changes},
    )
    if not json_out:
        if not changelog.has_changes:
            console.print("[green]Schema is up to date.[/green]")
        console.print(f"[dim]Changelog written to {path}[/dim]")


@app.command()
def diff(
    schema: Path = typer.Option(..., "--schema", "-s", help="Auth schema JSON file"),
    database: str | None = typer.Option(None, "--database", "-d", help="Async database URL"),
    output_dir: str | None = typer.Option(None, "--output-dir", help="Artifact root directory"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show the migrations a sync would write, without writing anything."""
    changelog = _run(schema, database, None, output_dir, dry_run=True)
    output_rows(
        plan_summary(changelog),
        as_json=json_out,
        title="Planned Changes",
        extra={"entities": changelog.entities, "up_to_date": not changelog.has_changes},
    )
    if not json_out and not changelog.has_changes:
        console.print("[green]Schema is up to date.[/green]")
