"""
Operation dispatcher: the auth framework's CRUD surface over SQLAlchemy.

Each operation follows the same protocol: resolve the model, compile the
where clauses, transform the input, run the repository primitive inside a
session, transform the output.  Database failures surface as
``PersistenceError("Failed to <operation> <model>: …")``; schema and
soft-delete configuration errors surface unwrapped.

Manifesto:
    - **One protocol per operation:** no hidden reads, except the
      single-clause ``update`` read-back that returns the new row
    - **Explicit scope:** ``OperationDispatcher`` opens a short session per
      call; ``ScopedDispatcher`` reuses the transaction it was bound to
    - **Schema-driven:** only declared fields are written or returned

Architecture:
    ::

        OperationDispatcher ──_session()──▶ session_factory.begin()   (commit per call)
              │
              └── run_in_transaction(cb) ──▶ TransactionCoordinator
                                                  │
                                                  ▼
        ScopedDispatcher   ──_session()──▶ bound session         (no commit)
              └── run_in_transaction(cb) ──▶ cb(self)

    ======================  =============================================
    operation               returns
    ======================  =============================================
    create                  logical record
    find_one                logical record | None
    find_many               list of logical records
    update                  logical record (single clause, row found) | None
    update_many             affected row count
    delete                  None
    delete_many             affected row count
    count                   row count
    ======================  =============================================

Tags:
    spine-auth, dispatcher, adapter, crud, sqlalchemy, asyncio

Doc-Types:
    api-reference
"""

from __future__ import annotations

import datetime
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy import MetaData, Table, and_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from spine_auth.core.errors import AdapterError, PersistenceError, SoftDeleteConfigError
from spine_auth.core.logging import get_logger
from spine_auth.core.naming import NameResolver
from spine_auth.core.predicates import PredicateCompiler, WhereClause, to_sql
from spine_auth.core.repository import TableRepository
from spine_auth.core.schema import ID_FIELD, ModelSchema, SchemaRegistry
from spine_auth.core.settings import AdapterSettings
from spine_auth.core.transaction import TransactionCallback, TransactionCoordinator, maybe_await
from spine_auth.core.transform import RecordTransformer

logger = get_logger(__name__)

T = TypeVar("T")

SOFT_DELETE_FIELD = "deletedAt"

Where = Iterable[WhereClause | Mapping[str, Any]]


@dataclass(frozen=True)
class AdapterContext:
    """Everything an operation needs besides the session."""

    registry: SchemaRegistry
    metadata: MetaData
    resolver: NameResolver
    compiler: PredicateCompiler
    transformer: RecordTransformer
    settings: AdapterSettings

    def table_for(self, schema: ModelSchema) -> Table:
        return self.metadata.tables[schema.table_name]


class OperationDispatcher:
    """The eight adapter operations, one short-lived session per call."""

    def __init__(self, context: AdapterContext, session_factory: async_sessionmaker[Any]) -> None:
        self.context = context
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Session scope
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory.begin() as session:
            yield session

    async def run_in_transaction(self, callback: TransactionCallback[T]) -> T:
        """Run *callback* with a dispatcher bound to one transaction."""
        coordinator = TransactionCoordinator(
            self._session_factory,
            lambda session: ScopedDispatcher(self.context, self._session_factory, session),
        )
        return await coordinator.run(callback)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _log_call(self, operation: str, model: str, **details: Any) -> None:
        if self.context.settings.debug_logs:
            logger.info(f"adapter.{operation}", model=model, **details)
        else:
            logger.debug(f"adapter.{operation}", model=model)

    def _resolve(self, model: str) -> tuple[ModelSchema, Table]:
        schema = self.context.resolver.schema_for(model)
        return schema, self.context.table_for(schema)

    def _where(self, model: str, table: Table, where: Where | None) -> ColumnElement[bool]:
        predicate = self.context.compiler.compile(model, where)
        return to_sql(predicate, table, model=model)

    def _is_soft_delete(self, schema: ModelSchema) -> bool:
        soft = self.context.settings.soft_delete_models
        return schema.model in soft or schema.table_name in soft

    def _soft_delete_column(self, schema: ModelSchema) -> str | None:
        if not self._is_soft_delete(schema):
            return None
        descriptor = schema.fields.get(SOFT_DELETE_FIELD)
        return descriptor.physical_name if descriptor is not None else None

    def _visible(self, schema: ModelSchema, table: Table, where: ColumnElement[bool]) -> ColumnElement[bool]:
        """Hide soft-deleted rows from reads."""
        marker = self._soft_delete_column(schema)
        if marker is None or marker not in table.c:
            return where
        return and_(where, table.c[marker].is_(None))

    def _select_columns(self, model: str, select: Iterable[str] | None) -> list[str] | None:
        if not select:
            return None
        columns = [self.context.resolver.resolve_column(model, name) for name in select]
        if ID_FIELD not in columns:
            columns.insert(0, ID_FIELD)
        return columns

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create(
        self,
        model: str,
        data: Mapping[str, Any],
        *,
        select: Iterable[str] | None = None,
        force_allow_id: bool = False,
    ) -> dict[str, Any] | None:
        self._log_call("create", model, data=dict(data))
        schema, table = self._resolve(model)
        values = self.context.transformer.to_physical(
            data, schema.model, "create", force_allow_id=force_allow_id
        )
        columns = self._select_columns(schema.model, select)
        try:
            async with self._session() as session:
                repo = TableRepository(session, table, model=schema.model)
                pk = await repo.insert(values)
                row = await repo.find_one(table.c[ID_FIELD] == pk, columns)
        except AdapterError:
            raise
        except Exception as exc:
            raise PersistenceError.wrap("create", model, exc) from exc
        return self.context.transformer.to_logical(row, schema.model, select)

    async def find_one(
        self,
        model: str,
        where: Where,
        *,
        select: Iterable[str] | None = None,
    ) -> dict[str, Any] | None:
        self._log_call("find_one", model, where=where, select=select)
        schema, table = self._resolve(model)
        clause = self._visible(schema, table, self._where(schema.model, table, where))
        columns = self._select_columns(schema.model, select)
        try:
            async with self._session() as session:
                row = await TableRepository(session, table, model=schema.model).find_one(clause, columns)
        except AdapterError:
            raise
        except Exception as exc:
            raise PersistenceError.wrap("find", model, exc) from exc
        return self.context.transformer.to_logical(row, schema.model, select)

    async def find_many(
        self,
        model: str,
        where: Where | None = None,
        *,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: Mapping[str, str] | None = None,
        select: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        self._log_call("find_many", model, where=where, limit=limit, offset=offset, sort_by=sort_by)
        schema, table = self._resolve(model)
        clause = self._visible(schema, table, self._where(schema.model, table, where))
        order_by = None
        if sort_by and sort_by.get("field"):
            column = self.context.resolver.resolve_column(schema.model, sort_by["field"])
            order_by = (column, "desc" if sort_by.get("direction") == "desc" else "asc")
        columns = self._select_columns(schema.model, select)
        try:
            async with self._session() as session:
                rows = await TableRepository(session, table, model=schema.model).find_many(
                    clause,
                    limit=limit or self.context.settings.default_find_limit,
                    offset=offset or 0,
                    order_by=order_by,
                    columns=columns,
                )
        except AdapterError:
            raise
        except Exception as exc:
            raise PersistenceError.wrap("find many", model, exc) from exc
        transformer = self.context.transformer
        return [transformer.to_logical(row, schema.model, select) for row in rows]

    async def count(self, model: str, where: Where | None = None) -> int:
        self._log_call("count", model, where=where)
        schema, table = self._resolve(model)
        clause = self._visible(schema, table, self._where(schema.model, table, where))
        try:
            async with self._session() as session:
                return await TableRepository(session, table, model=schema.model).count(clause)
        except AdapterError:
            raise
        except Exception as exc:
            raise PersistenceError.wrap("count", model, exc) from exc

    async def update(
        self,
        model: str,
        where: Where,
        update: Mapping[str, Any],
    ) -> dict[str, Any] | None:
        """Update matching rows.

        With exactly one where clause the target is assumed to be a single
        row: it is read first and, when it exists, re-read after the update
        so the caller gets its new state.  Otherwise ``None`` is returned.
        """
        where = list(where or ())
        self._log_call("update", model, where=where, update=dict(update))
        schema, table = self._resolve(model)
        clause = self._where(schema.model, table, where)
        values = self.context.transformer.to_physical(update, schema.model, "update")
        try:
            async with self._session() as session:
                repo = TableRepository(session, table, model=schema.model)
                if len(where) == 1:
                    existing = await repo.find_one(clause)
                    if existing is not None:
                        await repo.update(clause, values)
                        row = await repo.find_one(clause)
                        if row is not None:
                            return self.context.transformer.to_logical(row, schema.model)
                        return None
                await repo.update(clause, values)
                return None
        except AdapterError:
            raise
        except Exception as exc:
            raise PersistenceError.wrap("update", model, exc) from exc

    async def update_many(self, model: str, where: Where | None, update: Mapping[str, Any]) -> int:
        self._log_call("update_many", model, where=where, update=dict(update))
        schema, table = self._resolve(model)
        clause = self._where(schema.model, table, where)
        values = self.context.transformer.to_physical(update, schema.model, "update")
        try:
            async with self._session() as session:
                return await TableRepository(session, table, model=schema.model).update(clause, values)
        except AdapterError:
            raise
        except Exception as exc:
            raise PersistenceError.wrap("update many", model, exc) from exc

    async def delete(self, model: str, where: Where) -> None:
        self._log_call("delete", model, where=where)
        await self._delete("delete", model, where)

    async def delete_many(self, model: str, where: Where | None = None) -> int:
        self._log_call("delete_many", model, where=where)
        return await self._delete("delete many", model, where)

    async def _delete(self, operation: str, model: str, where: Where | None) -> int:
        schema, table = self._resolve(model)
        soft = self._is_soft_delete(schema)
        marker = self._soft_delete_column(schema)
        if soft and (marker is None or marker not in table.c):
            raise SoftDeleteConfigError(schema.model, SOFT_DELETE_FIELD)

        clause = self._where(schema.model, table, where)
        try:
            async with self._session() as session:
                repo = TableRepository(session, table, model=schema.model)
                if soft:
                    now = datetime.datetime.now(datetime.timezone.utc)
                    return await repo.update(self._visible(schema, table, clause), {marker: now})
                return await repo.delete(clause)
        except AdapterError:
            raise
        except Exception as exc:
            raise PersistenceError.wrap(operation, model, exc) from exc


class ScopedDispatcher(OperationDispatcher):
    """Dispatcher bound to an open transaction.

    Operations join the bound session's transaction instead of opening
    their own; ``run_in_transaction`` re-invokes the callback against this
    same scope rather than starting a second transaction.
    """

    def __init__(
        self,
        context: AdapterContext,
        session_factory: async_sessionmaker[Any],
        session: AsyncSession,
    ) -> None:
        super().__init__(context, session_factory)
        self.session = session

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        yield self.session

    async def run_in_transaction(self, callback: TransactionCallback[T]) -> T:
        return await maybe_await(callback(self))


__all__ = [
    "AdapterContext",
    "OperationDispatcher",
    "SOFT_DELETE_FIELD",
    "ScopedDispatcher",
]
