"""Unit tests for structured logging utilities."""

import contextvars
import json
import logging

import pytest

from overcommit_webhook.observability.logging import (
    CorrelationIDFilter,
    HealthCheckFilter,
    StructuredFormatter,
    set_correlation_id,
    setup_structured_logging,
)


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="overcommit_webhook.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestStructuredFormatter:
    def test_formats_json_with_extra_fields(self):
        record = make_record(
            "Answered admission review",
            correlation_id="abc",
            admission_uid="uid-1",
            outcome="patched",
            patch_operations=2,
        )

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Answered admission review"
        assert data["level"] == "INFO"
        assert data["correlation_id"] == "abc"
        assert data["admission_uid"] == "uid-1"
        assert data["outcome"] == "patched"
        assert data["patch_operations"] == 2

    def test_unknown_attributes_are_not_emitted(self):
        data = json.loads(StructuredFormatter().format(make_record("x", secret="s")))
        assert "secret" not in data


class TestFilters:
    def test_health_check_lines_are_suppressed(self):
        check_filter = HealthCheckFilter()
        assert not check_filter.filter(make_record('"GET /healthz HTTP/1.1" 200'))
        assert not check_filter.filter(make_record('"GET /metrics HTTP/1.1" 200'))
        assert check_filter.filter(make_record('"POST /mutate HTTP/1.1" 200'))

    def test_health_check_lines_kept_when_disabled(self):
        check_filter = HealthCheckFilter(suppress_health_logs=False)
        assert check_filter.filter(make_record('"GET /ready HTTP/1.1" 200'))

    def test_correlation_id_is_attached(self):
        set_correlation_id("req-42")
        record = make_record("hello")

        assert CorrelationIDFilter().filter(record)
        assert record.correlation_id == "req-42"

    def test_correlation_id_is_generated_when_unset(self):
        record = make_record("hello")

        contextvars.Context().run(CorrelationIDFilter().filter, record)

        assert len(record.correlation_id) == 8


class TestSetup:
    def test_installs_single_handler(self, restore_root_logger):
        setup_structured_logging(log_level="DEBUG")
        setup_structured_logging(log_level="WARNING")

        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.level == logging.WARNING
        assert isinstance(
            restore_root_logger.handlers[0].formatter, StructuredFormatter
        )

    def test_plain_text_formatting(self, restore_root_logger):
        setup_structured_logging(enable_json_formatting=False)

        formatter = restore_root_logger.handlers[0].formatter
        assert not isinstance(formatter, StructuredFormatter)
        assert "%(correlation_id)s" in formatter._fmt
