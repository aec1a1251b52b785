"""Table repository over an async SQLAlchemy session.

Provides :class:`TableRepository`, the primitive read/write surface the
dispatcher drives for one physical table.  It takes already-rendered SQL
predicates and physical column names; it knows nothing about logical
names or the auth framework.

Architecture::

    ┌───────────────────────────────────────────────────────────────┐
    │                       TableRepository                          │
    │                                                                │
    │   session: AsyncSession     ← transaction owner (caller's)     │
    │   table:   Table            ← built from the schema registry   │
    │                                                                │
    │   insert(values)                    → primary key              │
    │   find_one(where, columns)          → RowMapping | None        │
    │   find_many(where, limit, offset,   → list[RowMapping]         │
    │             order_by, columns)                                 │
    │   count(where)                      → int                      │
    │   update(where, values)             → affected rows            │
    │   delete(where)                     → affected rows            │
    └───────────────────────────────────────────────────────────────┘

Tags:
    repository, database, sqlalchemy, asyncio
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import Column, Table, delete, func, insert, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from spine_auth.core.errors import SchemaError


class TableRepository:
    """Primitive CRUD over one table inside the caller's session.

    Parameters:
        session: Session whose transaction the statements join.
        table: Target table.
        model: Logical model name, used in error context only.
    """

    def __init__(self, session: AsyncSession, table: Table, *, model: str | None = None) -> None:
        self.session = session
        self.table = table
        self.model = model or table.name

    def column(self, name: str) -> Column[Any]:
        if name not in self.table.c:
            raise SchemaError.unknown_field(self.model, name).with_context(table=self.table.name)
        return self.table.c[name]

    def _columns(self, names: Iterable[str] | None) -> list[Column[Any]]:
        if not names:
            return list(self.table.c)
        return [self.column(name) for name in names]

    async def insert(self, values: Mapping[str, Any]) -> Any:
        """Insert one row and return its primary key value."""
        result = await self.session.execute(insert(self.table).values(dict(values)))
        if "id" in values:
            return values["id"]
        return result.inserted_primary_key[0]

    async def find_one(
        self,
        where: ColumnElement[bool],
        columns: Iterable[str] | None = None,
    ) -> RowMapping | None:
        stmt = select(*self._columns(columns)).where(where).limit(1)
        result = await self.session.execute(stmt)
        return result.mappings().first()

    async def find_many(
        self,
        where: ColumnElement[bool],
        *,
        limit: int,
        offset: int = 0,
        order_by: tuple[str, str] | None = None,
        columns: Iterable[str] | None = None,
    ) -> list[RowMapping]:
        stmt = select(*self._columns(columns)).where(where)
        if order_by is not None:
            name, direction = order_by
            column = self.column(name)
            stmt = stmt.order_by(column.desc() if direction == "desc" else column.asc())
        stmt = stmt.limit(limit).offset(offset)
        result = await self.session.execute(stmt)
        return list(result.mappings().all())

    async def count(self, where: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.table).where(where)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def update(self, where: ColumnElement[bool], values: Mapping[str, Any]) -> int:
        if not values:
            return 0
        for name in values:
            self.column(name)
        result = await self.session.execute(update(self.table).where(where).values(dict(values)))
        return result.rowcount or 0

    async def delete(self, where: ColumnElement[bool]) -> int:
        result = await self.session.execute(delete(self.table).where(where))
        return result.rowcount or 0


__all__ = ["TableRepository"]
