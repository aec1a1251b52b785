"""SQLAlchemy ``Table`` objects built from the schema registry.

The adapter never relies on declarative classes written by hand: each
logical model is rendered into a Core ``Table`` whose columns follow the
registry.  The same type map drives the generated migration and entity
files, so the runtime tables and the artifacts cannot drift apart.

* ``string``  → ``Text``
* ``number``  → ``Integer``
* ``boolean`` → ``Boolean``
* ``date``    → ``DateTime``
* ``id``      → ``Text`` primary key
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, MetaData, Table, Text
from sqlalchemy.types import TypeEngine

from spine_auth.core.schema import ID_FIELD, ModelSchema, SchemaRegistry

COLUMN_TYPES: dict[str, type[TypeEngine]] = {
    "string": Text,
    "number": Integer,
    "boolean": Boolean,
    "date": DateTime,
}


def column_type(type_tag: str) -> type[TypeEngine]:
    return COLUMN_TYPES.get(type_tag, Text)


def build_table(schema: ModelSchema, metadata: MetaData) -> Table:
    """Add the ``Table`` for *schema* to *metadata* and return it."""
    columns = [Column(ID_FIELD, Text, primary_key=True)]
    for descriptor in schema.data_fields():
        columns.append(
            Column(
                descriptor.physical_name,
                column_type(descriptor.type_tag),
                nullable=not descriptor.required,
                unique=descriptor.unique,
            )
        )
    return Table(schema.table_name, metadata, *columns)


def build_metadata(registry: SchemaRegistry, metadata: MetaData | None = None) -> MetaData:
    """Return a ``MetaData`` holding one ``Table`` per registry model."""
    metadata = metadata if metadata is not None else MetaData()
    for schema in registry.values():
        if schema.table_name not in metadata.tables:
            build_table(schema, metadata)
    return metadata


__all__ = ["COLUMN_TYPES", "build_metadata", "build_table", "column_type"]
