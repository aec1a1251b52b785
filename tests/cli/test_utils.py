"""
Tests for CLI utilities.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest
import typer

from spine_auth.cli.utils import _to_dict, fail, make_engine, output_rows
from spine_auth.core.errors import ConfigError
from spine_auth.core.settings import AdapterSettings


@dataclass
class _Sample:
    name: str = "test"
    count: int = 0


class TestToDict:
    def test_dataclass(self):
        d = _to_dict(_Sample(name="x", count=5))
        assert d == {"name": "x", "count": 5}

    def test_dict_passthrough(self):
        d = _to_dict({"a": 1})
        assert d == {"a": 1}

    def test_pydantic(self):
        from pydantic import BaseModel

        class M(BaseModel):
            x: int = 1

        d = _to_dict(M())
        assert d == {"x": 1}

    def test_other(self):
        d = _to_dict("hello")
        assert d == {"value": "hello"}


class TestOutput:
    def test_json_rows(self, capsys):
        output_rows([{"model": "user"}], as_json=True, extra={"up_to_date": False})
        out = capsys.readouterr().out
        assert '"model": "user"' in out
        assert '"up_to_date": false' in out

    def test_empty_rows(self, capsys):
        output_rows([])
        assert "No changes." in capsys.readouterr().out

    def test_fail_exits_with_one(self):
        with pytest.raises(typer.Exit) as exc_info:
            fail(ConfigError("bad option"))
        assert exc_info.value.exit_code == 1


class TestMakeEngine:
    @pytest.mark.asyncio
    async def test_uses_settings_url_by_default(self, tmp_path):
        settings = AdapterSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'a.db'}")
        engine = make_engine(settings)
        assert str(engine.url).endswith("a.db")
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_explicit_database_wins(self, tmp_path):
        engine = make_engine(AdapterSettings(), f"sqlite+aiosqlite:///{tmp_path / 'b.db'}")
        assert str(engine.url).endswith("b.db")
        await engine.dispose()
