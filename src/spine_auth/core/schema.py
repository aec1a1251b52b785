"""
Schema registry types: logical models, their fields, and physical names.

The auth framework owns the schema.  It hands the adapter one mapping of
logical model name to table name and ordered field descriptors (the shape
returned by the framework's ``getTables()``); this module turns that
mapping into typed, read-only objects.

Manifesto:
    The registry is the single source of truth for every name translation
    and every column the adapter reads or writes.  Keys that are not
    declared here never reach the database and never come back out.

Features:
    - **FieldDescriptor:** logical name, physical override, required/unique,
      type tag and default value (literal or zero-argument callable)
    - **ModelSchema:** table name + ordered descriptors + migration flags
    - **SchemaRegistry:** lookup by logical name, ``from_dict`` / ``from_json``

Examples:
    >>> registry = SchemaRegistry.from_dict({
    ...     "user": {
    ...         "modelName": "user",
    ...         "fields": {
    ...             "email": {"type": "string", "required": True, "unique": True},
    ...             "name": {"type": "string", "required": True},
    ...         },
    ...     },
    ... })
    >>> registry["user"].fields["email"].physical_name
    'email'

Tags:
    spine-auth, schema, registry, data-model

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

FIELD_TYPES = ("string", "number", "boolean", "date")

ID_FIELD = "id"


def normalize_type(type_: str | list[str] | tuple[str, ...] | None) -> str:
    """Reduce a framework type declaration to one of :data:`FIELD_TYPES`.

    List types (``["string"]`` or ``"string[]"``) use their element type;
    anything unrecognised is treated as ``string``.
    """
    if isinstance(type_, (list, tuple)):
        type_ = type_[0] if type_ else "string"
    if not type_:
        return "string"
    type_ = type_.removesuffix("[]")
    return type_ if type_ in FIELD_TYPES else "string"


@dataclass(frozen=True)
class FieldDescriptor:
    """One declared field of a logical model."""

    name: str
    type: str = "string"
    required: bool = False
    unique: bool = False
    field_name: str | None = None
    default_value: Any = None

    @property
    def physical_name(self) -> str:
        return self.field_name or self.name

    @property
    def type_tag(self) -> str:
        return normalize_type(self.type)

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    def resolve_default(self) -> Any:
        """Return the default value, calling it when it is a producer."""
        if callable(self.default_value):
            return self.default_value()
        return self.default_value

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> FieldDescriptor:
        return cls(
            name=name,
            type=data.get("type", "string"),
            required=bool(data.get("required", False)),
            unique=bool(data.get("unique", False)),
            field_name=data.get("fieldName", data.get("field_name")),
            default_value=data.get("defaultValue", data.get("default_value")),
        )


@dataclass(frozen=True)
class ModelSchema:
    """A logical model: its table name and ordered field descriptors."""

    model: str
    table_name: str
    fields: dict[str, FieldDescriptor] = field(default_factory=dict)
    disable_migrations: bool = False
    order: int | None = None

    def data_fields(self) -> Iterator[FieldDescriptor]:
        """Declared fields except the identifier, in declaration order."""
        for descriptor in self.fields.values():
            if descriptor.name == ID_FIELD or descriptor.physical_name == ID_FIELD:
                continue
            yield descriptor

    def column_names(self) -> list[str]:
        return [ID_FIELD] + [f.physical_name for f in self.data_fields()]

    def field_for_column(self, column: str) -> FieldDescriptor | None:
        for descriptor in self.data_fields():
            if descriptor.physical_name == column:
                return descriptor
        return None

    @classmethod
    def from_dict(cls, model: str, data: Mapping[str, Any]) -> ModelSchema:
        fields = {
            name: FieldDescriptor.from_dict(name, attrs)
            for name, attrs in (data.get("fields") or {}).items()
        }
        return cls(
            model=model,
            table_name=data.get("modelName", data.get("table_name")) or model,
            fields=fields,
            disable_migrations=bool(
                data.get("disableMigrations", data.get("disable_migrations", False))
            ),
            order=data.get("order"),
        )


class SchemaRegistry(Mapping[str, ModelSchema]):
    """Read-only mapping of logical model name to :class:`ModelSchema`."""

    def __init__(self, models: Mapping[str, ModelSchema] | None = None) -> None:
        self._models: dict[str, ModelSchema] = dict(models or {})

    def __getitem__(self, model: str) -> ModelSchema:
        return self._models[model]

    def __iter__(self) -> Iterator[str]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)

    def __repr__(self) -> str:
        return f"SchemaRegistry({list(self._models)})"

    def by_table(self, table_name: str) -> ModelSchema | None:
        for schema in self._models.values():
            if schema.table_name == table_name:
                return schema
        return None

    def migration_order(self) -> list[ModelSchema]:
        """Models that take part in migrations, ``order`` first then declaration order."""
        eligible = [s for s in self._models.values() if not s.disable_migrations]
        positions = {s.model: i for i, s in enumerate(eligible)}
        return sorted(
            eligible,
            key=lambda s: (s.order is None, s.order or 0, positions[s.model]),
        )

    @classmethod
    def from_dict(cls, tables: Mapping[str, Any]) -> SchemaRegistry:
        models: dict[str, ModelSchema] = {}
        for model, data in tables.items():
            models[model] = data if isinstance(data, ModelSchema) else ModelSchema.from_dict(model, data)
        return cls(models)

    @classmethod
    def from_json(cls, path: str | Path) -> SchemaRegistry:
        """Load a registry exported by the auth framework as JSON."""
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))


__all__ = [
    "FIELD_TYPES",
    "ID_FIELD",
    "FieldDescriptor",
    "ModelSchema",
    "SchemaRegistry",
    "normalize_type",
]
