"""Tests for library logging helpers."""

import json
import logging

import pytest

from sqlmapper.utils.logging import (
    ContextFilter,
    StructuredFormatter,
    configure_logging,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    statement_context,
    statement_id_var,
)


@pytest.fixture(autouse=True)
def _reset_correlation_id() -> None:
    set_correlation_id(None)


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("sqlmapper.test", logging.INFO, __file__, 1, message, None, None)


def test_get_logger_namespacing() -> None:
    assert get_logger().name == "sqlmapper"
    assert get_logger("executor").name == "sqlmapper.executor"
    assert get_logger("sqlmapper.session").name == "sqlmapper.session"
    assert get_logger("sqlmapperish").name == "sqlmapper.sqlmapperish"


def test_get_logger_adds_single_filter() -> None:
    logger = get_logger("test.filters")
    get_logger("test.filters")

    assert sum(isinstance(f, ContextFilter) for f in logger.filters) == 1


def test_statement_context_resets() -> None:
    with statement_context("app.UserMapper.find"):
        assert statement_id_var.get() == "app.UserMapper.find"
    assert statement_id_var.get() is None


def test_structured_formatter_includes_context() -> None:
    set_correlation_id("req-1")
    record = _record()
    with statement_context("app.UserMapper.find"):
        ContextFilter().filter(record)

    entry = json.loads(StructuredFormatter().format(record))

    assert entry["message"] == "hello"
    assert entry["level"] == "INFO"
    assert entry["correlation_id"] == "req-1"
    assert entry["statement_id"] == "app.UserMapper.find"
    assert get_correlation_id() == "req-1"


def test_structured_formatter_extra_fields() -> None:
    record = _record()
    record.extra_fields = {"rows": 3}

    entry = json.loads(StructuredFormatter().format(record))

    assert entry["rows"] == 3
    assert "statement_id" not in entry


def test_configure_logging_replaces_handlers() -> None:
    extra = logging.NullHandler()
    logger = configure_logging("debug", format_style="simple", extra_handlers=[extra])
    try:
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert extra in logger.handlers
        assert logger.propagate is False
    finally:
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
