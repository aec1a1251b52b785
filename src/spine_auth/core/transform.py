"""Logical ↔ physical record conversion.

``to_physical`` prepares a write: it keys values by column name and, on
create, fills defaults and seeds the identifier.  ``to_logical`` turns a
fetched row back into the shape the auth framework expects.  Both walk
the registry's field list, so undeclared keys are dropped in both
directions.
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Literal

from spine_auth.core.naming import NameResolver
from spine_auth.core.schema import ID_FIELD

Action = Literal["create", "update"]

_ID_ALPHABET = string.ascii_letters + string.digits


def generate_id(size: int = 32) -> str:
    """Random alphanumeric identifier, the framework's default id format."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(size))


class RecordTransformer:
    """Schema-driven conversion between logical and physical records.

    Parameters:
        resolver: Name resolver bound to the registry.
        id_generator: Producer for new identifiers.
        keep_supplied_ids: Keep an ``id`` present in a create payload
            instead of replacing it with a generated one.
    """

    def __init__(
        self,
        resolver: NameResolver,
        *,
        id_generator: Callable[[], str] = generate_id,
        keep_supplied_ids: bool = False,
    ) -> None:
        self.resolver = resolver
        self.id_generator = id_generator
        self.keep_supplied_ids = keep_supplied_ids

    def to_physical(
        self,
        record: Mapping[str, Any],
        model: str,
        action: Action,
        *,
        force_allow_id: bool = False,
    ) -> dict[str, Any]:
        schema = self.resolver.schema_for(model)
        physical: dict[str, Any] = {}

        if action == "create":
            supplied = record.get(ID_FIELD)
            if supplied is not None and (force_allow_id or self.keep_supplied_ids):
                physical[ID_FIELD] = supplied
            else:
                physical[ID_FIELD] = self.id_generator()

        for descriptor in schema.data_fields():
            present = descriptor.name in record
            if not present and (not descriptor.has_default or action == "update"):
                continue
            value = record.get(descriptor.name)
            if action == "create" and value is None and descriptor.has_default:
                value = descriptor.resolve_default()
            physical[descriptor.physical_name] = value

        return physical

    def to_logical(
        self,
        row: Mapping[str, Any] | None,
        model: str,
        select: Iterable[str] | None = None,
    ) -> dict[str, Any] | None:
        if row is None:
            return None
        schema = self.resolver.schema_for(model)
        wanted = set(select or ())

        logical: dict[str, Any] = {}
        if not wanted or ID_FIELD in wanted:
            logical[ID_FIELD] = row.get(ID_FIELD)
        for descriptor in schema.data_fields():
            if wanted and descriptor.name not in wanted:
                continue
            logical[descriptor.name] = row.get(descriptor.physical_name)
        return logical


__all__ = ["Action", "RecordTransformer", "generate_id"]
