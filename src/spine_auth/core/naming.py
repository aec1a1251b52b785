"""Logical → physical name resolution.

``NameResolver`` answers two questions for the dispatcher and the
predicate compiler: which table holds a logical model, and which column
holds a logical field.  Both are pure lookups against the registry.
"""

from __future__ import annotations

from spine_auth.core.errors import SchemaError
from spine_auth.core.schema import ID_FIELD, ModelSchema, SchemaRegistry


class NameResolver:
    """Resolve logical model and field names against a :class:`SchemaRegistry`.

    Parameters:
        registry: The auth framework's schema.
        use_plural: Accept plural model names (``users``) for singular
            models (``user``), as the framework does when tables are plural.
    """

    def __init__(self, registry: SchemaRegistry, *, use_plural: bool = False) -> None:
        self.registry = registry
        self.use_plural = use_plural

    def resolve_model(self, model: str) -> str:
        """Return the canonical logical model name for *model*.

        *model* may be the logical name, the physical table name, or (with
        ``use_plural``) the plural of the logical name.
        """
        if model in self.registry:
            return model
        by_table = self.registry.by_table(model)
        if by_table is not None:
            return by_table.model
        if self.use_plural and model.endswith("s") and model[:-1] in self.registry:
            return model[:-1]
        raise SchemaError.unknown_model(model)

    def schema_for(self, model: str) -> ModelSchema:
        return self.registry[self.resolve_model(model)]

    def resolve_table(self, model: str) -> str:
        return self.schema_for(model).table_name

    def resolve_column(self, model: str, field: str) -> str:
        schema = self.schema_for(model)
        if field == ID_FIELD:
            return field
        descriptor = schema.fields.get(field)
        if descriptor is None:
            return field
        return descriptor.physical_name


__all__ = ["NameResolver"]
