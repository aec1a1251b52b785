"""Live catalog introspection.

The differ only needs two answers from the database: does a table exist,
and which columns does it have.  ``LiveCatalog`` gets both from
SQLAlchemy's ``Inspector`` over one async connection held for the whole
synchronize run.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine


class Catalog(Protocol):
    """What the schema differ reads from the live database."""

    async def has_table(self, table_name: str) -> bool: ...

    async def get_columns(self, table_name: str) -> list[str]: ...


class LiveCatalog:
    """``Catalog`` backed by ``sqlalchemy.inspect`` on an async connection."""

    def __init__(self, connection: AsyncConnection) -> None:
        self._connection = connection

    async def has_table(self, table_name: str) -> bool:
        return await self._connection.run_sync(
            lambda sync_conn: inspect(sync_conn).has_table(table_name)
        )

    async def get_columns(self, table_name: str) -> list[str]:
        columns = await self._connection.run_sync(
            lambda sync_conn: inspect(sync_conn).get_columns(table_name)
        )
        return [column["name"] for column in columns]


@asynccontextmanager
async def open_catalog(engine: AsyncEngine) -> AsyncIterator[LiveCatalog]:
    """Hold one connection for the duration of a synchronize run."""
    async with engine.connect() as connection:
        yield LiveCatalog(connection)


__all__ = ["Catalog", "LiveCatalog", "open_catalog"]
