"""Async SQLAlchemy engine factory and session factory.

This module provides:

* ``create_auth_engine``   -- Create an ``AsyncEngine`` from a URL.
* ``AuthSession``          -- ``AsyncSession`` with ``expire_on_commit=False``.
* ``auth_session_factory`` -- ``async_sessionmaker`` producing ``AuthSession``.

Tags:
    spine-auth, sqlalchemy, asyncio, session, engine

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_auth_engine(
    url: str = "sqlite+aiosqlite:///auth.db",
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **kwargs: Any,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Async database URL (``sqlite+aiosqlite:///…``, ``postgresql+asyncpg://…``).
    echo:
        If ``True``, log all SQL to stdout.
    pool_size, max_overflow:
        Connection pool parameters (ignored for SQLite).
    **kwargs:
        Extra arguments forwarded to ``create_async_engine``.
    """

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow

    return create_async_engine(url, echo=echo, **pool_kwargs, **kwargs)


class AuthSession(AsyncSession):
    """Pre-configured async session with ``expire_on_commit=False``."""

    def __init__(self, bind: AsyncEngine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def auth_session_factory(engine: AsyncEngine) -> async_sessionmaker[AuthSession]:
    """Return an ``async_sessionmaker`` bound to *engine* that produces ``AuthSession`` instances."""
    return async_sessionmaker(bind=engine, class_=AuthSession)


__all__ = ["AuthSession", "auth_session_factory", "create_auth_engine"]
