"""
Tests for the logging module.

Tests verify:
- Bound context is merged into events
- DEBUG logs are suppressed at INFO level
- JSON output uses ECS-style field names
"""

import json
import logging

import pytest
import structlog

from spine_auth.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def _reset():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


def _json_lines(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.getMessage().startswith("{")]


class TestConfigureLogging:
    def test_json_fields(self, caplog):
        configure_logging(level="INFO", json_format=True, service="auth-test")
        with caplog.at_level(logging.INFO):
            get_logger("spine_auth.test").info("adapter.create", model="user")
        event = _json_lines(caplog)[-1]
        assert event["event"] == "adapter.create"
        assert event["model"] == "user"
        assert event["log.level"] == "info"
        assert event["service.name"] == "auth-test"
        assert "@timestamp" in event

    def test_debug_suppressed_at_info(self, caplog):
        configure_logging(level="INFO", json_format=True)
        with caplog.at_level(logging.DEBUG):
            get_logger("spine_auth.test").debug("adapter.count", model="user")
        assert _json_lines(caplog) == []


class TestContext:
    def test_bind_context(self, caplog):
        configure_logging(level="INFO", json_format=True)
        bind_context(request_id="r-1")
        with caplog.at_level(logging.INFO):
            get_logger("spine_auth.test").info("adapter.find_one")
        assert _json_lines(caplog)[-1]["request_id"] == "r-1"

    @pytest.mark.asyncio
    async def test_log_context_unbinds(self, caplog):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("spine_auth.test")
        async with LogContext(transaction="tx-1"):
            with caplog.at_level(logging.INFO):
                logger.info("transaction.begin")
        with caplog.at_level(logging.INFO):
            logger.info("transaction.committed")
        first, second = _json_lines(caplog)[-2:]
        assert first["transaction"] == "tx-1"
        assert "transaction" not in second
