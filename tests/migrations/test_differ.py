"""Tests for spine_auth.migrations.differ and the live catalog."""

from __future__ import annotations

import pytest

from spine_auth.core.schema import SchemaRegistry
from spine_auth.migrations.catalog import open_catalog
from spine_auth.migrations.differ import diff_columns, diff_model


class FakeCatalog:
    """In-memory catalog: table name -> column names."""

    def __init__(self, tables: dict[str, list[str]]):
        self.tables = tables

    async def has_table(self, table_name: str) -> bool:
        return table_name in self.tables

    async def get_columns(self, table_name: str) -> list[str]:
        return list(self.tables[table_name])


class TestDiffColumns:
    def test_additions_and_drops(self, registry):
        add, drop = diff_columns(registry["session"], ["id", "user_id", "legacy"])
        assert [d.name for d in add] == ["token", "deletedAt"]
        assert drop == ("legacy",)

    def test_id_is_never_dropped(self, registry):
        _, drop = diff_columns(registry["account"], ["id", "user_id", "provider_id"])
        assert drop == ()


class TestDiffModel:
    @pytest.mark.asyncio
    async def test_missing_table_is_create(self, registry):
        diff = await diff_model(registry["user"], FakeCatalog({}))
        assert diff.action == "create"
        assert diff.has_changes
        assert diff.table_name == "user"

    @pytest.mark.asyncio
    async def test_drift_is_alter(self, registry):
        catalog = FakeCatalog({"account": ["id", "user_id"]})
        diff = await diff_model(registry["account"], catalog)
        assert diff.action == "alter"
        assert [d.physical_name for d in diff.add_columns] == ["provider_id"]
        assert diff.drop_columns == ()

    @pytest.mark.asyncio
    async def test_matching_table_is_none(self, registry):
        catalog = FakeCatalog({"account": ["id", "provider_id", "user_id"]})
        diff = await diff_model(registry["account"], catalog)
        assert diff.action == "none"
        assert not diff.has_changes


class TestLiveCatalog:
    @pytest.mark.asyncio
    async def test_reads_sqlite_catalog(self, schema_engine):
        async with open_catalog(schema_engine) as catalog:
            assert await catalog.has_table("session")
            assert not await catalog.has_table("verification")
            assert await catalog.get_columns("session") == ["id", "user_id", "token", "deleted_at"]

    @pytest.mark.asyncio
    async def test_diff_against_live_table(self, schema_engine):
        changed = SchemaRegistry.from_dict(
            {"account": {"fields": {"userId": {"fieldName": "user_id"}, "scope": {}}}}
        )
        async with open_catalog(schema_engine) as catalog:
            diff = await diff_model(changed["account"], catalog)
        assert [d.name for d in diff.add_columns] == ["scope"]
        assert diff.drop_columns == ("provider_id",)
