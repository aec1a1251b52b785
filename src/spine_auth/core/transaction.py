"""Transaction coordination for adapter callbacks.

``TransactionCoordinator.run`` owns exactly one ``AsyncSession`` for the
duration of a callback: it begins a transaction, hands the callback a
dispatcher bound to that session, then commits or rolls back.
Log events inside the scope carry a ``transaction_id``.

Failure policy:
    * callback raised → roll back, close, re-raise the callback's exception
      unchanged
    * begin / commit failed → roll back, close, raise ``TransactionError``

Tags:
    spine-auth, transaction, session, unit-of-work

Doc-Types:
    api-reference
"""

from __future__ import annotations

import inspect
import uuid
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spine_auth.core.errors import TransactionError
from spine_auth.core.logging import LogContext, get_logger

if TYPE_CHECKING:
    from spine_auth.core.dispatcher import ScopedDispatcher

logger = get_logger(__name__)

T = TypeVar("T")

TransactionCallback = Callable[["ScopedDispatcher"], "Awaitable[T] | T"]


async def maybe_await(value: Any) -> Any:
    """Await *value* when the callback returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


class TransactionCoordinator:
    """Run callbacks inside a single database transaction.

    Parameters:
        session_factory: Produces the session that owns the transaction.
        bind_dispatcher: Builds the scoped dispatcher for an open session.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[Any],
        bind_dispatcher: Callable[[AsyncSession], ScopedDispatcher],
    ) -> None:
        self._session_factory = session_factory
        self._bind_dispatcher = bind_dispatcher

    async def run(self, callback: TransactionCallback[T]) -> T:
        async with LogContext(transaction_id=uuid.uuid4().hex[:12]):
            return await self._run(callback)

    async def _run(self, callback: TransactionCallback[T]) -> T:
        session = self._session_factory()
        try:
            try:
                await session.begin()
                await session.connection()
            except SQLAlchemyError as exc:
                await self._rollback(session)
                raise TransactionError(f"Failed to begin transaction: {exc}", cause=exc) from exc

            scoped = self._bind_dispatcher(session)
            logger.debug("transaction.begin")
            try:
                result = await maybe_await(callback(scoped))
            except BaseException as exc:
                await self._rollback(session)
                logger.debug("transaction.rolled_back", error=str(exc))
                raise

            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await self._rollback(session)
                raise TransactionError(f"Failed to commit transaction: {exc}", cause=exc) from exc

            logger.debug("transaction.committed")
            return result
        finally:
            await session.close()

    async def _rollback(self, session: AsyncSession) -> None:
        """Roll back, logging a failure so the triggering error propagates."""
        try:
            await session.rollback()
        except SQLAlchemyError as exc:
            logger.warning("transaction.rollback_failed", error=str(exc))


__all__ = ["TransactionCallback", "TransactionCoordinator", "maybe_await"]
