"""Tests for structured logging."""

import asyncio
import json
import logging
import sys

import pytest

from moodring.infrastructure.observability import (
    configure_logging,
    get_correlation_id,
    log_operation,
    log_worker_health,
    set_correlation_id,
)
from moodring.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
)


def _record(msg: str = "activity_poller.tick_skipped", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="moodring.application.workers.activity_poller",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self):
        """Test setting and getting correlation ID."""
        test_id = "test-123-abc"
        result = set_correlation_id(test_id)
        assert result == test_id
        assert get_correlation_id() == test_id

    def test_set_correlation_id_generates_uuid_when_none(self):
        """Test that setting None generates a UUID."""
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    async def test_tasks_inherit_correlation_id(self):
        """Concurrent fetches inside one tick share the tick's id."""
        tick_id = set_correlation_id()

        async def read() -> str:
            return get_correlation_id()

        assert await asyncio.gather(read(), read()) == [tick_id, tick_id]


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self):
        """Test configuring logging with DEBUG level."""
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        logger = logging.getLogger("test")
        assert logger.getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_info_level(self):
        """Test configuring logging with INFO level."""
        configure_logging(log_level="INFO", json_format=False, app_name="test-app")
        logger = logging.getLogger("test")
        assert logger.getEffectiveLevel() == logging.INFO

    def test_configure_logging_json_format(self):
        """Test configuring logging with JSON format."""
        configure_logging(log_level="INFO", json_format=True, app_name="test-app")
        root_logger = logging.getLogger()
        assert any(
            isinstance(handler.formatter, CustomJsonFormatter)
            for handler in root_logger.handlers
        )

    def test_configure_logging_twice_does_not_stack_handlers(self):
        """Repeated configuration replaces the handler."""
        configure_logging(log_level="INFO", json_format=False)
        configure_logging(log_level="INFO", json_format=False)
        stdout_handlers = [
            handler
            for handler in logging.getLogger().handlers
            if getattr(handler, "stream", None) is sys.stdout
        ]
        assert len(stdout_handlers) == 1

    def test_httpx_is_quieted(self):
        """Per-request httpx lines would drown the poller's logs."""
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING


class TestFormatters:
    """Test the JSON and compact formatters."""

    def test_json_formatter_includes_correlation_id(self):
        set_correlation_id("tick-1")
        record = _record()
        CorrelationIdFilter().filter(record)
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "activity_poller.tick_skipped"
        assert payload["level"] == "INFO"
        assert payload["correlation_id"] == "tick-1"
        assert payload["logger"] == "moodring.application.workers.activity_poller"

    def test_compact_formatter_prints_root_cause_first(self):
        try:
            try:
                raise ConnectionError("connection refused")
            except ConnectionError as e:
                raise RuntimeError("refresh failed") from e
        except RuntimeError:
            exc_info = sys.exc_info()

        text = CompactExceptionFormatter().formatException(exc_info)
        lines = [line for line in text.splitlines() if line.startswith("╰─►")]

        assert lines == [
            "╰─► ConnectionError: connection refused",
            "╰─► RuntimeError: refresh failed",
        ]


class TestLoggerTemplate:
    """Test log_operation and log_worker_health."""

    async def test_log_operation_success(self, caplog: pytest.LogCaptureFixture):
        logger = logging.getLogger("moodring.test")
        with caplog.at_level(logging.DEBUG, logger="moodring.test"):
            async with log_operation(logger, "session.login", user_id=1):
                pass

        messages = [record.getMessage() for record in caplog.records]
        assert messages == ["session.login.started", "session.login.completed"]
        assert caplog.records[-1].user_id == 1
        assert caplog.records[-1].duration_ms >= 0

    async def test_log_operation_failure_reraises(self, caplog: pytest.LogCaptureFixture):
        logger = logging.getLogger("moodring.test")
        with caplog.at_level(logging.DEBUG, logger="moodring.test"):
            with pytest.raises(ValueError):
                async with log_operation(logger, "session.login"):
                    raise ValueError("boom")

        failed = caplog.records[-1]
        assert failed.getMessage() == "session.login.failed"
        assert failed.levelno == logging.ERROR
        assert failed.error_type == "ValueError"

    def test_log_worker_health(self, caplog: pytest.LogCaptureFixture):
        logger = logging.getLogger("moodring.test")
        with caplog.at_level(logging.INFO, logger="moodring.test"):
            log_worker_health(
                logger,
                "activity_poller",
                cycles_completed=10,
                errors_total=1,
                uptime_seconds=300.7,
                extra_stats={"ticks_skipped": 2},
            )

        record = caplog.records[-1]
        assert record.getMessage() == "worker.health"
        assert record.worker == "activity_poller"
        assert record.uptime_seconds == 300
        assert record.ticks_skipped == 2
