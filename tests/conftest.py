"""
Shared pytest fixtures and configuration for spine-auth tests.

This module provides:
- A small auth schema (user / session / account) as framework dicts
- A temp-file SQLite async engine with the schema's tables created
- Adapter fixtures (plain and soft-delete) bound to that engine
- Settings isolation so ``SPINE_AUTH_*`` variables never leak into tests

Usage:
    Fixtures are auto-discovered by pytest::

        async def test_something(adapter):
            user = await adapter.create("user", {"email": "a@x.io", "name": "A"})
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from spine_auth.adapter import AuthAdapter, create_adapter
from spine_auth.core.schema import SchemaRegistry
from spine_auth.core.session import create_auth_engine
from spine_auth.core.settings import AdapterSettings, clear_settings_cache
from spine_auth.core.tables import build_metadata


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests that touch a database file as integration, the rest as unit."""
    for item in items:
        fixtures = set(getattr(item, "fixturenames", ()))
        if fixtures & {"engine", "adapter", "soft_adapter"}:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Drop cached settings and any SPINE_AUTH_* environment overrides."""
    import os

    for key in list(os.environ):
        if key.startswith("SPINE_AUTH_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Schema
# =============================================================================


def auth_tables() -> dict[str, Any]:
    """The framework's ``getTables()`` shape for a minimal auth schema."""
    return {
        "user": {
            "modelName": "user",
            "fields": {
                "email": {"type": "string", "required": True, "unique": True},
                "name": {"type": "string", "required": True},
                "emailVerified": {
                    "type": "boolean",
                    "required": True,
                    "defaultValue": False,
                    "fieldName": "email_verified",
                },
                "age": {"type": "number"},
                "createdAt": {"type": "date", "fieldName": "created_at"},
            },
            "order": 1,
        },
        "session": {
            "modelName": "session",
            "fields": {
                "userId": {"type": "string", "required": True, "fieldName": "user_id"},
                "token": {"type": "string", "required": True, "unique": True},
                "deletedAt": {"type": "date", "fieldName": "deleted_at"},
            },
            "order": 2,
        },
        "account": {
            "modelName": "account",
            "fields": {
                "userId": {"type": "string", "required": True, "fieldName": "user_id"},
                "providerId": {"type": "string", "required": True, "fieldName": "provider_id"},
            },
            "order": 3,
        },
    }


@pytest.fixture
def tables() -> dict[str, Any]:
    return auth_tables()


@pytest.fixture
def registry(tables) -> SchemaRegistry:
    return SchemaRegistry.from_dict(tables)


@pytest.fixture
def settings(tmp_path: Path) -> AdapterSettings:
    return AdapterSettings(output_dir=str(tmp_path / "generated"))


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}"


@pytest.fixture
async def engine(database_url):
    engine = create_auth_engine(database_url)
    yield engine
    await engine.dispose()


@pytest.fixture
async def schema_engine(engine, registry):
    """Engine whose database already holds the registry's tables."""
    metadata = build_metadata(registry)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    return engine


@pytest.fixture
async def adapter(schema_engine, tables, settings) -> AuthAdapter:
    return create_adapter(schema_engine, tables, settings)


@pytest.fixture
async def soft_adapter(schema_engine, tables, settings) -> AuthAdapter:
    return create_adapter(schema_engine, tables, settings, soft_delete_models=["session"])
