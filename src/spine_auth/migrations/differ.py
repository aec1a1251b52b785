"""Expected-vs-live schema diffing.

For each logical model the differ decides one of three outcomes:

* ``create``: the table is missing from the catalog
* ``alter``: the table exists but declared columns are missing or live
  columns (other than ``id``) are no longer declared
* ``none``: the table already matches

Only additions and drops are detected.  A column whose type or
constraints changed, or that was renamed, is not reported.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from spine_auth.core.schema import ID_FIELD, FieldDescriptor, ModelSchema
from spine_auth.migrations.catalog import Catalog

DiffAction = Literal["create", "alter", "none"]


@dataclass(frozen=True)
class TableDiff:
    """Outcome of comparing one model against the live catalog."""

    schema: ModelSchema
    action: DiffAction
    add_columns: tuple[FieldDescriptor, ...] = ()
    drop_columns: tuple[str, ...] = ()

    @property
    def table_name(self) -> str:
        return self.schema.table_name

    @property
    def has_changes(self) -> bool:
        return self.action != "none"


def diff_columns(
    schema: ModelSchema,
    existing_columns: Iterable[str],
) -> tuple[tuple[FieldDescriptor, ...], tuple[str, ...]]:
    """Return ``(add_columns, drop_columns)`` for a table that already exists."""
    existing = list(existing_columns)
    declared = {descriptor.physical_name for descriptor in schema.data_fields()}

    add = tuple(d for d in schema.data_fields() if d.physical_name not in existing)
    drop = tuple(c for c in existing if c != ID_FIELD and c not in declared)
    return add, drop


async def diff_model(schema: ModelSchema, catalog: Catalog) -> TableDiff:
    if not await catalog.has_table(schema.table_name):
        return TableDiff(schema=schema, action="create")

    add, drop = diff_columns(schema, await catalog.get_columns(schema.table_name))
    if add or drop:
        return TableDiff(schema=schema, action="alter", add_columns=add, drop_columns=drop)
    return TableDiff(schema=schema, action="none")


__all__ = ["DiffAction", "TableDiff", "diff_columns", "diff_model"]
