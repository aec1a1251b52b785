"""Tests for spine_auth.cli - schema sync/diff and --version."""

from __future__ import annotations

import json

import pytest
import structlog
from sqlalchemy import create_engine
from typer.testing import CliRunner

from spine_auth.cli.app import app
from spine_auth.core.tables import build_metadata

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def schema_file(tmp_path, tables):
    path = tmp_path / "auth_schema.json"
    path.write_text(json.dumps(tables))
    return path


@pytest.fixture
def cli_args(schema_file, database_url, tmp_path):
    return [
        "--schema", str(schema_file),
        "--database", database_url,
        "--output-dir", str(tmp_path / "out"),
    ]


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("spine-auth ")


class TestSync:
    def test_sync_writes_artifacts_and_changelog(self, cli_args, tmp_path):
        changelog = tmp_path / "changelog.txt"
        result = runner.invoke(app, ["schema", "sync", *cli_args, "--output", str(changelog), "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [item["model"] for item in payload["items"]] == ["user", "session", "account"]
        assert payload["changelog"] == str(changelog)
        assert payload["up_to_date"] is False
        assert changelog.read_text().startswith("# Schema Changes - ")
        assert len(list((tmp_path / "out" / "migrations").glob("*.py"))) == 3

    def test_sync_table_output(self, cli_args, tmp_path):
        result = runner.invoke(
            app, ["schema", "sync", *cli_args, "--output", str(tmp_path / "c.txt")]
        )
        assert result.exit_code == 0, result.output
        assert "Schema Sync" in result.output
        assert "Changelog written to" in result.output

    def test_default_changelog_lands_in_output_dir(self, cli_args, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["schema", "sync", *cli_args, "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["changelog"] == str(tmp_path / "out" / "changelog.txt")
        assert (tmp_path / "out" / "changelog.txt").exists()
        assert not (tmp_path / "typeorm").exists()

    def test_missing_schema_file(self, database_url, tmp_path):
        result = runner.invoke(
            app,
            ["schema", "sync", "--schema", str(tmp_path / "nope.json"), "--database", database_url],
        )
        assert result.exit_code == 1
        assert "Cannot read schema file" in result.output


class TestDiff:
    def test_diff_is_dry_run(self, cli_args, tmp_path):
        result = runner.invoke(app, ["schema", "diff", *cli_args, "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [item["action"] for item in payload["items"]] == ["create", "create", "create"]
        assert not (tmp_path / "out").exists()

    def test_diff_after_sync_is_up_to_date(self, cli_args, tmp_path, registry):
        engine = create_engine(f"sqlite:///{tmp_path / 'auth.db'}")
        build_metadata(registry).create_all(engine)
        engine.dispose()

        runner.invoke(app, ["schema", "sync", *cli_args, "--output", str(tmp_path / "c.txt")])
        result = runner.invoke(app, ["schema", "diff", *cli_args])
        assert result.exit_code == 0, result.output
        assert "Schema is up to date." in result.output
