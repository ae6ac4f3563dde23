"""Tests for structured logging."""

import json
import logging
import sys

from dwdedupe.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self):
        assert set_correlation_id("test-123-abc") == "test-123-abc"
        assert get_correlation_id() == "test-123-abc"

    def test_set_correlation_id_generates_uuid_when_none(self):
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    def test_filter_attaches_id_to_record(self):
        set_correlation_id("req-1")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "req-1"


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_sets_level(self):
        configure_logging(log_level="DEBUG", json_format=False)
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_replaces_handlers(self):
        configure_logging(log_level="INFO")
        configure_logging(log_level="INFO")
        assert len(logging.getLogger().handlers) == 1

    def test_json_format_uses_json_formatter(self):
        configure_logging(log_level="INFO", json_format=True)
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, CustomJsonFormatter)

    def test_text_format_uses_compact_formatter(self):
        configure_logging(log_level="INFO", json_format=False)
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, CompactExceptionFormatter)

    def test_http_client_loggers_quieted(self):
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING


class TestFormatters:
    def test_json_output_contains_extras_and_correlation_id(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            "dwdedupe.test", logging.INFO, __file__, 10, "dedupe_sync.reconciled", None, None
        )
        record.correlation_id = "batch-alice"
        record.user_id = "alice"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "dedupe_sync.reconciled"
        assert payload["level"] == "INFO"
        assert payload["correlation_id"] == "batch-alice"
        assert payload["user_id"] == "alice"

    def test_compact_exception_shows_chain_root_first(self):
        try:
            try:
                raise ValueError("root cause")
            except ValueError as e:
                raise RuntimeError("wrapper") from e
        except RuntimeError:
            text = CompactExceptionFormatter().formatException(sys.exc_info())

        lines = [line for line in text.splitlines() if line.startswith("╰─►")]
        assert lines == ["╰─► ValueError: root cause", "╰─► RuntimeError: wrapper"]
