"""
Source renderers for generated artifacts.

Two kinds of files are produced from a :class:`ModelSchema`:

* **Migration scripts**: Alembic revision modules (``upgrade`` /
  ``downgrade``).  ``create`` migrations build the whole table and its
  unique indexes; ``alter`` migrations use ``op.batch_alter_table`` so they
  also run on SQLite.
* **Entity modules**: SQLAlchemy 2.0 declarative classes mirroring the
  table, importing a shared ``AuthBase`` from ``entities/base.py``.

Rendering is deterministic: the same schema (and, for migrations, the same
revision metadata) always yields byte-identical text, which is what lets
the synchronizer detect stale entity files by comparing strings.

Known limitation:
    A dropped column is re-added by ``downgrade`` as a nullable ``Text``
    column.  Its original type and constraints are not recorded anywhere,
    so reverting a drop loses them.

Tags:
    spine-auth, migrations, alembic, codegen, entities

Doc-Types:
    api-reference
"""

from __future__ import annotations

import datetime
import re
from collections.abc import Iterable

from spine_auth.core.schema import ID_FIELD, FieldDescriptor, ModelSchema

# Columns that always get a unique index in create migrations.
UNIQUE_INDEX_COLUMNS = frozenset({"email"})
# Columns that are always declared unique on entities.
UNIQUE_ENTITY_COLUMNS = frozenset({"email", "token"})

_SA_TYPES = {
    "string": "sa.Text()",
    "number": "sa.Integer()",
    "boolean": "sa.Boolean()",
    "date": "sa.DateTime()",
}

_ENTITY_TYPES = {
    "string": ("Text", "str"),
    "number": ("Integer", "int"),
    "boolean": ("Boolean", "bool"),
    "date": ("DateTime", "datetime.datetime"),
}

ENTITY_BASE_SOURCE = '''"""Declarative base shared by generated auth entities."""

from sqlalchemy.orm import DeclarativeBase


class AuthBase(DeclarativeBase):
    pass
'''


def _q(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def class_name(model: str) -> str:
    return model[:1].upper() + model[1:]


def snake_case(model: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", model).lower()


def entity_filename(model: str) -> str:
    return f"{snake_case(model)}.py"


def migration_filename(timestamp: int, action: str, model: str) -> str:
    return f"{timestamp}_{action}_{snake_case(model)}.py"


def revision_id(timestamp: int, action: str, model: str) -> str:
    return f"{timestamp}_{action}_{snake_case(model)}"


def _sa_column(descriptor: FieldDescriptor, *, nullable: bool, unique: bool = False) -> str:
    parts = [_q(descriptor.physical_name), _SA_TYPES.get(descriptor.type_tag, "sa.Text()")]
    parts.append(f"nullable={nullable}")
    if unique:
        parts.append("unique=True")
    return f"sa.Column({', '.join(parts)})"


# =============================================================================
# Migrations
# =============================================================================


def _create_upgrade(schema: ModelSchema) -> list[str]:
    table = schema.table_name
    lines = ["    op.create_table(", f"        {_q(table)},"]
    lines.append(f"        sa.Column({_q(ID_FIELD)}, sa.Text(), primary_key=True),")
    indexes: list[str] = []
    for descriptor in schema.data_fields():
        lines.append(f"        {_sa_column(descriptor, nullable=not descriptor.required)},")
        column = descriptor.physical_name
        if descriptor.unique or column in UNIQUE_INDEX_COLUMNS:
            indexes.append(
                f"    op.create_index({_q(f'IDX_{table}_{column}')}, {_q(table)}, "
                f"[{_q(column)}], unique=True)"
            )
    lines.append("    )")
    return lines + indexes


def _alter_upgrade(
    schema: ModelSchema,
    add_columns: Iterable[FieldDescriptor],
    drop_columns: Iterable[str],
) -> list[str]:
    lines = [f"    with op.batch_alter_table({_q(schema.table_name)}) as batch_op:"]
    for descriptor in add_columns:
        column = _sa_column(descriptor, nullable=not descriptor.required, unique=descriptor.unique)
        lines.append(f"        batch_op.add_column({column})")
    for column_name in drop_columns:
        lines.append(f"        batch_op.drop_column({_q(column_name)})")
    return lines


def _alter_downgrade(
    schema: ModelSchema,
    add_columns: Iterable[FieldDescriptor],
    drop_columns: Iterable[str],
) -> list[str]:
    lines = [f"    with op.batch_alter_table({_q(schema.table_name)}) as batch_op:"]
    body = [f"        batch_op.drop_column({_q(d.physical_name)})" for d in add_columns]
    body += [
        f"        batch_op.add_column(sa.Column({_q(name)}, sa.Text(), nullable=True))"
        for name in drop_columns
    ]
    return lines + body if body else ["    pass"]


def render_migration(
    schema: ModelSchema,
    *,
    action: str,
    revision: str,
    down_revision: str | None,
    created_at: datetime.datetime,
    add_columns: Iterable[FieldDescriptor] = (),
    drop_columns: Iterable[str] = (),
) -> str:
    """Render an Alembic revision module for a ``create`` or ``alter`` migration."""
    add_columns = tuple(add_columns)
    drop_columns = tuple(drop_columns)

    if action == "create":
        upgrade = _create_upgrade(schema)
        downgrade = [f"    op.drop_table({_q(schema.table_name)})"]
    elif action == "alter":
        upgrade = _alter_upgrade(schema, add_columns, drop_columns)
        downgrade = _alter_downgrade(schema, add_columns, drop_columns)
    else:
        raise ValueError(f"Unknown migration action: {action!r}")

    header = [
        f'"""{action} {schema.table_name}',
        "",
        f"Revision ID: {revision}",
        f"Revises: {down_revision or ''}",
        f"Create Date: {created_at.isoformat()}",
        "",
        '"""',
        "",
        "from __future__ import annotations",
        "",
        "import sqlalchemy as sa",
        "from alembic import op",
        "",
        f"revision = {_q(revision)}",
        f"down_revision = {_q(down_revision) if down_revision else 'None'}",
        "branch_labels = None",
        "depends_on = None",
        "",
        "",
        "def upgrade() -> None:",
    ]
    return "\n".join(header + upgrade + ["", "", "def downgrade() -> None:"] + downgrade) + "\n"


# =============================================================================
# Entities
# =============================================================================


def render_entity(schema: ModelSchema) -> str:
    """Render a SQLAlchemy declarative module for *schema*."""
    sa_types = {"Text"}
    needs_datetime = False
    body: list[str] = [
        f"class {class_name(schema.model)}(AuthBase):",
        f"    __tablename__ = {_q(schema.table_name)}",
        "",
        f"    {ID_FIELD}: Mapped[str] = mapped_column(Text, primary_key=True)",
    ]

    for descriptor in schema.data_fields():
        sa_type, py_type = _ENTITY_TYPES.get(descriptor.type_tag, ("Text", "str"))
        sa_types.add(sa_type)
        needs_datetime = needs_datetime or py_type == "datetime.datetime"

        column = descriptor.physical_name
        options = [_q(column), sa_type, f"nullable={not descriptor.required}"]
        if descriptor.unique or column in UNIQUE_ENTITY_COLUMNS:
            options.append("unique=True")
        annotation = py_type if descriptor.required else f"{py_type} | None"
        body.append(
            f"    {descriptor.name}: Mapped[{annotation}] = mapped_column({', '.join(options)})"
        )

    imports = ["from __future__ import annotations", ""]
    if needs_datetime:
        imports += ["import datetime", ""]
    imports += [
        f"from sqlalchemy import {', '.join(sorted(sa_types))}",
        "from sqlalchemy.orm import Mapped, mapped_column",
        "",
        "from .base import AuthBase",
        "",
        "",
    ]
    return "\n".join(imports + body) + "\n"


__all__ = [
    "ENTITY_BASE_SOURCE",
    "UNIQUE_ENTITY_COLUMNS",
    "UNIQUE_INDEX_COLUMNS",
    "class_name",
    "entity_filename",
    "migration_filename",
    "render_entity",
    "render_migration",
    "revision_id",
    "snake_case",
]
