"""
Root Typer application for the spine-auth CLI.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

from spine_auth import __version__
from spine_auth.core.logging import configure_logging
from spine_auth.core.settings import get_settings

app = Typer(
    name="spine-auth",
    help="spine-auth - SQLAlchemy storage for auth framework schemas.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("spine-auth-sqlalchemy")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"spine-auth {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """spine-auth CLI - synchronize auth tables, migrations and entities."""
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        stream=sys.stderr,
    )


# ── Sub-command registration ─────────────────────────────────────────────

from spine_auth.cli.schema import app as schema_app  # noqa: E402

app.add_typer(schema_app, name="schema", help="Schema synchronization.")
