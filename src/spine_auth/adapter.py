"""
Adapter factory: wires the registry, resolver, compiler and transformer
around an async engine.

Example:
    >>> engine = create_auth_engine("sqlite+aiosqlite:///auth.db")
    >>> adapter = create_adapter(engine, tables, soft_delete_models=["session"])
    >>> user = await adapter.create("user", {"email": "a@b.c", "name": "A"})
    >>> await adapter.find_one("user", [{"field": "email", "value": "a@b.c"}])

Tags:
    spine-auth, adapter, factory, sqlalchemy

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncEngine

from spine_auth.core.dispatcher import AdapterContext, OperationDispatcher
from spine_auth.core.errors import ConfigError
from spine_auth.core.logging import get_logger
from spine_auth.core.naming import NameResolver
from spine_auth.core.predicates import PredicateCompiler
from spine_auth.core.schema import SchemaRegistry
from spine_auth.core.session import auth_session_factory
from spine_auth.core.settings import AdapterSettings, get_settings
from spine_auth.core.tables import build_metadata
from spine_auth.core.transform import RecordTransformer
from spine_auth.migrations.synchronize import SchemaChangelog, SchemaSynchronizer

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdapterConfig:
    """Capabilities the adapter advertises to the auth framework."""

    adapter_id: str = "sqlalchemy"
    adapter_name: str = "SQLAlchemy"
    use_plural: bool = False
    debug_logs: bool = False
    supports_json: bool = False
    supports_dates: bool = True
    supports_booleans: bool = True
    supports_numeric_ids: bool = False


class AuthAdapter(OperationDispatcher):
    """The adapter handed to the auth framework."""

    def __init__(
        self,
        engine: AsyncEngine,
        context: AdapterContext,
        *,
        config: AdapterConfig | None = None,
    ) -> None:
        super().__init__(context, auth_session_factory(engine))
        self.engine = engine
        self.config = config or AdapterConfig(
            use_plural=context.settings.use_plural,
            debug_logs=context.settings.debug_logs,
        )

    @property
    def registry(self) -> SchemaRegistry:
        return self.context.registry

    async def create_schema(
        self,
        tables: SchemaRegistry | Mapping[str, Any] | None = None,
        file: str | None = None,
        *,
        dry_run: bool = False,
    ) -> SchemaChangelog:
        """Diff *tables* (default: the adapter's registry) against the database."""
        if tables is None:
            registry = self.context.registry
        elif isinstance(tables, SchemaRegistry):
            registry = tables
        else:
            registry = SchemaRegistry.from_dict(tables)
        synchronizer = SchemaSynchronizer(self.engine, settings=self.context.settings)
        return await synchronizer.synchronize(registry, file, dry_run=dry_run)


def _merge_settings(settings: AdapterSettings | None, options: Mapping[str, Any]) -> AdapterSettings:
    base = settings or get_settings()
    unknown = set(options) - set(AdapterSettings.model_fields)
    if unknown:
        raise ConfigError(f"Unknown adapter option(s): {', '.join(sorted(unknown))}")
    if not options:
        return base
    try:
        return AdapterSettings(**{**base.model_dump(), **options})
    except ValidationError as exc:
        raise ConfigError(f"Invalid adapter options: {exc}", cause=exc) from exc


def create_adapter(
    engine: AsyncEngine,
    tables: SchemaRegistry | Mapping[str, Any],
    settings: AdapterSettings | None = None,
    **options: Any,
) -> AuthAdapter:
    """Build an :class:`AuthAdapter` for *tables* over *engine*.

    Keyword *options* override fields of *settings* (or of the cached
    environment settings when *settings* is omitted).
    """
    resolved = _merge_settings(settings, options)
    registry = tables if isinstance(tables, SchemaRegistry) else SchemaRegistry.from_dict(tables)
    resolver = NameResolver(registry, use_plural=resolved.use_plural)
    context = AdapterContext(
        registry=registry,
        metadata=build_metadata(registry),
        resolver=resolver,
        compiler=PredicateCompiler(resolver),
        transformer=RecordTransformer(
            resolver,
            keep_supplied_ids=not resolved.generate_ids,
        ),
        settings=resolved,
    )
    logger.debug("adapter.created", models=list(registry), soft_delete=resolved.soft_delete_models)
    return AuthAdapter(engine, context)


__all__ = ["AdapterConfig", "AuthAdapter", "create_adapter"]
