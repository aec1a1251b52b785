"""
CLI utility helpers - output formatting and engine management.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from spine_auth.core.errors import AdapterError
from spine_auth.core.session import create_auth_engine
from spine_auth.core.settings import AdapterSettings

console = Console()
err_console = Console(stderr=True)


# ── Engine helper ────────────────────────────────────────────────────────


def make_engine(settings: AdapterSettings, database: str | None = None) -> Any:
    """Create an async engine for *database*, defaulting to ``settings.database_url``."""
    return create_auth_engine(database or settings.database_url, echo=settings.database_echo)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def fail(error: AdapterError) -> None:
    """Print *error* to stderr and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    raise typer.Exit(code=1)


def output_rows(
    rows: list[dict[str, Any]],
    *,
    as_json: bool = False,
    title: str = "",
    extra: dict[str, Any] | None = None,
) -> None:
    """Render *rows* as a Rich table, or as JSON with *extra* keys merged in."""
    if as_json:
        payload = {"items": [_to_dict(r) for r in rows], **(extra or {})}
        console.print_json(json.dumps(payload, default=str))
        return

    if not rows:
        console.print("[dim]No changes.[/dim]")
        return
    _print_table(rows, title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)
