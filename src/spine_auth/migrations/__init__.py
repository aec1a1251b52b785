"""Schema diffing and artifact generation (Alembic revisions, SQLAlchemy entities)."""

from spine_auth.migrations.catalog import Catalog, LiveCatalog, open_catalog
from spine_auth.migrations.differ import TableDiff, diff_columns, diff_model
from spine_auth.migrations.render import render_entity, render_migration
from spine_auth.migrations.synchronize import (
    MigrationArtifact,
    SchemaChangelog,
    SchemaSynchronizer,
    discover_head,
    plan_summary,
)

__all__ = [
    "Catalog",
    "LiveCatalog",
    "MigrationArtifact",
    "SchemaChangelog",
    "SchemaSynchronizer",
    "TableDiff",
    "diff_columns",
    "diff_model",
    "discover_head",
    "open_catalog",
    "plan_summary",
    "render_entity",
    "render_migration",
]
