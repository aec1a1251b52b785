"""
Schema synchronization: live catalog diff to migration and entity files.

``SchemaSynchronizer.synchronize`` walks the registry in migration order,
diffs each model against the live catalog and, per model, writes at most one
Alembic revision plus the regenerated entity module.  The run is summarized
in a :class:`SchemaChangelog` that the caller can persist with ``write()``.

Manifesto:
    - **Additive and idempotent:** a second run on an unchanged database
      writes nothing and reports that the schema is up to date
    - **Chained revisions:** each new revision revises the current head of
      the migrations directory, then becomes the head itself
    - **Plan without side effects:** ``dry_run=True`` returns the same
      changelog without creating directories or files

Architecture:
    ::

        SchemaRegistry.migration_order()
              │
              ▼
        diff_model(schema, catalog) ──▶ TableDiff(create | alter | none)
              │
              ├── create/alter ──▶ render_migration ─▶ migrations/<ts>_<action>_<model>.py
              │                   render_entity    ─▶ entities/<model>.py
              └── none ─────────▶ entity rewritten only when missing or stale

Tags:
    spine-auth, migrations, alembic, synchronize, changelog

Doc-Types:
    api-reference
"""

from __future__ import annotations

import datetime
import re
from collections.abc import Callable, Iterable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from spine_auth.core.errors import ConfigError, MigrationError
from spine_auth.core.logging import get_logger
from spine_auth.core.schema import FieldDescriptor, ModelSchema, SchemaRegistry
from spine_auth.core.settings import AdapterSettings
from spine_auth.migrations.catalog import Catalog, open_catalog
from spine_auth.migrations.differ import TableDiff, diff_model
from spine_auth.migrations.render import (
    ENTITY_BASE_SOURCE,
    class_name,
    entity_filename,
    migration_filename,
    render_entity,
    render_migration,
    revision_id,
    snake_case,
)

logger = get_logger(__name__)

UP_TO_DATE = "Schema is up to date. No changes detected.\n"

CatalogFactory = Callable[[], AbstractAsyncContextManager[Catalog]]

_REVISION_RE = re.compile(r"^revision\s*=\s*[\"']([^\"']+)[\"']", re.MULTILINE)
_DOWN_REVISION_RE = re.compile(r"^down_revision\s*=\s*(?:[\"']([^\"']+)[\"']|None)", re.MULTILINE)


@dataclass(frozen=True)
class MigrationArtifact:
    """One emitted Alembic revision."""

    timestamp: int
    model: str
    table: str
    action: str
    revision: str
    down_revision: str | None
    filename: str
    code: str
    add_columns: tuple[FieldDescriptor, ...] = ()
    drop_columns: tuple[str, ...] = ()


@dataclass
class SchemaChangelog:
    """Human-readable summary of a synchronize run."""

    code: str
    path: str
    migrations: list[MigrationArtifact] = field(default_factory=list)
    entities: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.migrations or self.entities)

    def write(self) -> Path:
        target = Path(self.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.code, encoding="utf-8")
        return target


def discover_head(migrations_dir: Path) -> str | None:
    """Return the newest revision in *migrations_dir* that nothing revises."""
    if not migrations_dir.is_dir():
        return None

    revisions: list[str] = []
    referenced: set[str] = set()
    for path in sorted(migrations_dir.glob("*.py")):
        text = path.read_text(encoding="utf-8")
        match = _REVISION_RE.search(text)
        if match is None:
            continue
        revisions.append(match.group(1))
        down = _DOWN_REVISION_RE.search(text)
        if down is not None and down.group(1):
            referenced.add(down.group(1))

    heads = [rev for rev in revisions if rev not in referenced]
    return heads[-1] if heads else None


def _default_clock() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class SchemaSynchronizer:
    """Diff a registry against a live database and emit migration artifacts.

    Parameters:
        engine: Async engine whose catalog is inspected.  Optional when a
            ``catalog_factory`` is given.
        settings: Output directories come from here.
        catalog_factory: Zero-argument callable returning an async context
            manager that yields a :class:`Catalog`.
        clock: Returns the run's creation time (UTC).
    """

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        *,
        settings: AdapterSettings,
        catalog_factory: CatalogFactory | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        if engine is None and catalog_factory is None:
            raise ConfigError("SchemaSynchronizer needs an engine or a catalog_factory")
        self.settings = settings
        self._catalog_factory = catalog_factory or (lambda: open_catalog(engine))
        self._clock = clock or _default_clock

    async def synchronize(
        self,
        tables: SchemaRegistry | Iterable[ModelSchema],
        file: str | None = None,
        *,
        dry_run: bool = False,
    ) -> SchemaChangelog:
        try:
            return await self._synchronize(tables, file, dry_run)
        except MigrationError:
            raise
        except Exception as exc:
            raise MigrationError(f"Failed to create schema: {exc}", cause=exc) from exc

    async def _synchronize(
        self,
        tables: SchemaRegistry | Iterable[ModelSchema],
        file: str | None,
        dry_run: bool,
    ) -> SchemaChangelog:
        models = tables.migration_order() if isinstance(tables, SchemaRegistry) else list(tables)
        created_at = self._clock()
        timestamp = int(created_at.timestamp() * 1000)

        migrations_dir = self.settings.resolved_migrations_dir
        entities_dir = self.settings.resolved_entities_dir
        if not dry_run:
            self.settings.resolved_output_dir.mkdir(parents=True, exist_ok=True)
            migrations_dir.mkdir(parents=True, exist_ok=True)
            entities_dir.mkdir(parents=True, exist_ok=True)
            self._write_entity_package(entities_dir, models)

        changelog = SchemaChangelog(
            code=f"# Schema Changes - {created_at.isoformat()}\n\n",
            path=file or self.settings.changelog_path,
        )
        head = discover_head(migrations_dir)

        async with self._catalog_factory() as catalog:
            for schema in models:
                diff = await diff_model(schema, catalog)
                entity_code = render_entity(schema)
                entity_path = entities_dir / entity_filename(schema.model)
                entity_ref = f"entities/{entity_path.name}"

                if diff.has_changes:
                    artifact = self._artifact(diff, timestamp, head, created_at)
                    head = artifact.revision
                    changelog.migrations.append(artifact)
                    changelog.entities.append(entity_ref)
                    if not dry_run:
                        (migrations_dir / artifact.filename).write_text(artifact.code, encoding="utf-8")
                        entity_path.write_text(entity_code, encoding="utf-8")
                    logger.info(
                        "schema.migration_written",
                        model=schema.model,
                        action=artifact.action,
                        revision=artifact.revision,
                        dry_run=dry_run,
                    )
                    changelog.code += self._describe(artifact, entity_ref)
                    continue

                if entity_path.exists():
                    if entity_path.read_text(encoding="utf-8") == entity_code:
                        continue
                    line = f"- Updated entity: {entity_ref}\n\n"
                else:
                    line = f"- Generated missing entity: {entity_ref}\n\n"
                if not dry_run:
                    entity_path.write_text(entity_code, encoding="utf-8")
                changelog.entities.append(entity_ref)
                changelog.code += line

        if not changelog.has_changes:
            changelog.code += UP_TO_DATE
        logger.info(
            "schema.synchronized",
            migrations=len(changelog.migrations),
            entities=len(changelog.entities),
            dry_run=dry_run,
        )
        return changelog

    @staticmethod
    def _artifact(
        diff: TableDiff,
        timestamp: int,
        down_revision: str | None,
        created_at: datetime.datetime,
    ) -> MigrationArtifact:
        schema = diff.schema
        revision = revision_id(timestamp, diff.action, schema.model)
        code = render_migration(
            schema,
            action=diff.action,
            revision=revision,
            down_revision=down_revision,
            created_at=created_at,
            add_columns=diff.add_columns,
            drop_columns=diff.drop_columns,
        )
        return MigrationArtifact(
            timestamp=timestamp,
            model=schema.model,
            table=schema.table_name,
            action=diff.action,
            revision=revision,
            down_revision=down_revision,
            filename=migration_filename(timestamp, diff.action, schema.model),
            code=code,
            add_columns=diff.add_columns,
            drop_columns=diff.drop_columns,
        )

    @staticmethod
    def _describe(artifact: MigrationArtifact, entity_ref: str) -> str:
        if artifact.action == "create":
            return (
                f"- CREATE Migration: migrations/{artifact.filename}\n"
                f"- Entity: {entity_ref}\n\n"
            )
        text = (
            f"- ALTER Migration: migrations/{artifact.filename}\n"
            f"- Updated Entity: {entity_ref}\n"
        )
        if artifact.add_columns:
            added = ", ".join(d.physical_name for d in artifact.add_columns)
            text += f"  - Added columns: {added}\n"
        if artifact.drop_columns:
            text += f"  - Removed columns: {', '.join(artifact.drop_columns)}\n"
        return text + "\n"

    @staticmethod
    def _write_entity_package(entities_dir: Path, models: list[ModelSchema]) -> None:
        base = entities_dir / "base.py"
        if not base.exists():
            base.write_text(ENTITY_BASE_SOURCE, encoding="utf-8")

        lines = ['"""Generated auth entities."""', "", "from .base import AuthBase"]
        names = ["AuthBase"]
        for schema in models:
            lines.append(f"from .{snake_case(schema.model)} import {class_name(schema.model)}")
            names.append(class_name(schema.model))
        lines += ["", f"__all__ = {names!r}".replace("'", '"')]
        (entities_dir / "__init__.py").write_text("\n".join(lines) + "\n", encoding="utf-8")


def plan_summary(changelog: SchemaChangelog) -> list[dict[str, Any]]:
    """Flatten a changelog's migrations into rows for tabular output."""
    return [
        {
            "model": artifact.model,
            "table": artifact.table,
            "action": artifact.action,
            "added": ", ".join(d.physical_name for d in artifact.add_columns),
            "removed": ", ".join(artifact.drop_columns),
            "revision": artifact.revision,
        }
        for artifact in changelog.migrations
    ]


__all__ = [
    "CatalogFactory",
    "MigrationArtifact",
    "SchemaChangelog",
    "SchemaSynchronizer",
    "UP_TO_DATE",
    "discover_head",
    "plan_summary",
]
