"""Tests for spine_auth.core.transaction (run_in_transaction)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog
from sqlalchemy.exc import OperationalError

from spine_auth.core.dispatcher import ScopedDispatcher
from spine_auth.core.errors import TransactionError
from spine_auth.core.transaction import TransactionCoordinator, maybe_await


class CallbackFailed(Exception):
    pass


class TestRunInTransaction:
    @pytest.mark.asyncio
    async def test_commit_on_success(self, adapter):
        async def work(tx):
            assert isinstance(tx, ScopedDispatcher)
            user = await tx.create("user", {"email": "t@x.com", "name": "T"})
            await tx.create("session", {"userId": user["id"], "token": "tok"})
            return user["id"]

        user_id = await adapter.run_in_transaction(work)

        assert await adapter.count("user", [{"field": "id", "value": user_id}]) == 1
        assert await adapter.count("session") == 1

    @pytest.mark.asyncio
    async def test_rollback_reraises_original_error(self, adapter):
        async def work(tx):
            await tx.create("user", {"email": "t@x.com", "name": "T"})
            raise CallbackFailed("stop")

        with pytest.raises(CallbackFailed, match="stop"):
            await adapter.run_in_transaction(work)

        assert await adapter.count("user") == 0

    @pytest.mark.asyncio
    async def test_reads_see_uncommitted_writes(self, adapter):
        async def work(tx):
            await tx.create("user", {"email": "t@x.com", "name": "T"})
            found = await tx.find_one("user", [{"field": "email", "value": "t@x.com"}])
            await tx.update_many("user", [], {"name": "U"})
            return found, await tx.count("user", [{"field": "name", "value": "U"}])

        found, renamed = await adapter.run_in_transaction(work)
        assert found["name"] == "T"
        assert renamed == 1

    @pytest.mark.asyncio
    async def test_nested_call_reuses_scope(self, adapter):
        scopes = []

        async def inner(tx):
            scopes.append(tx)
            await tx.create("user", {"email": "n@x.com", "name": "N"})

        async def outer(tx):
            scopes.append(tx)
            await tx.run_in_transaction(inner)
            raise CallbackFailed("undo everything")

        with pytest.raises(CallbackFailed):
            await adapter.run_in_transaction(outer)

        assert scopes[0] is scopes[1]
        assert await adapter.count("user") == 0

    @pytest.mark.asyncio
    async def test_sync_callback(self, adapter):
        assert await adapter.run_in_transaction(lambda tx: "plain") == "plain"


class TestTransactionCoordinator:
    def _session(self):
        session = MagicMock()
        session.begin = AsyncMock()
        session.connection = AsyncMock()
        session.commit = AsyncMock()
        session.rollback = AsyncMock()
        session.close = AsyncMock()
        return session

    @pytest.mark.asyncio
    async def test_commit_failure_raises_transaction_error(self):
        session = self._session()
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk I/O error"))
        coordinator = TransactionCoordinator(lambda: session, lambda s: MagicMock())

        with pytest.raises(TransactionError, match="Failed to commit transaction"):
            await coordinator.run(lambda tx: None)

        session.rollback.assert_awaited_once()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_begin_failure_raises_transaction_error(self):
        session = self._session()
        session.connection.side_effect = OperationalError("BEGIN", {}, Exception("locked"))
        callback = MagicMock()
        coordinator = TransactionCoordinator(lambda: session, lambda s: MagicMock())

        with pytest.raises(TransactionError, match="Failed to begin transaction"):
            await coordinator.run(callback)

        callback.assert_not_called()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_callback_error_is_not_converted(self):
        session = self._session()
        coordinator = TransactionCoordinator(lambda: session, lambda s: MagicMock())

        def fail(tx):
            raise KeyError("missing")

        with pytest.raises(KeyError):
            await coordinator.run(fail)

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_rollback_keeps_callback_error(self):
        session = self._session()
        session.rollback.side_effect = OperationalError("ROLLBACK", {}, Exception("connection lost"))
        coordinator = TransactionCoordinator(lambda: session, lambda s: MagicMock())

        def fail(tx):
            raise CallbackFailed("original")

        with pytest.raises(CallbackFailed, match="original"):
            await coordinator.run(fail)

        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_transaction_id_bound_during_callback(self):
        session = self._session()
        coordinator = TransactionCoordinator(lambda: session, lambda s: MagicMock())

        seen = await coordinator.run(lambda tx: dict(structlog.contextvars.get_contextvars()))

        assert len(seen["transaction_id"]) == 12
        assert "transaction_id" not in structlog.contextvars.get_contextvars()


@pytest.mark.asyncio
async def test_maybe_await():
    async def coro():
        return 1

    assert await maybe_await(coro()) == 1
    assert await maybe_await(2) == 2
