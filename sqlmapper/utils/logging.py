"""Logging for sqlmapper.

Library loggers live under the ``sqlmapper`` namespace. Records emitted while a
mapped statement runs carry its id, and records carry the correlation id of the
current context when one is set.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from logging import LogRecord

__all__ = (
    "ContextFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
    "statement_context",
    "statement_id_var",
)

ROOT_LOGGER_NAME = "sqlmapper"
SIMPLE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("sqlmapper_correlation_id", default=None)
statement_id_var: ContextVar[str | None] = ContextVar("sqlmapper_statement_id", default=None)

_CONTEXT_FIELDS = {"correlation_id": correlation_id_var, "statement_id": statement_id_var}


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: The correlation ID to set, or None to clear
    """
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@contextmanager
def statement_context(statement_id: str) -> Iterator[None]:
    """Tag records logged inside the block with ``statement_id``."""
    token = statement_id_var.set(statement_id)
    try:
        yield
    finally:
        statement_id_var.reset(token)


class ContextFilter(logging.Filter):
    """Copies the correlation and statement ids onto each record."""

    def filter(self, record: LogRecord) -> bool:
        for field, var in _CONTEXT_FIELDS.items():
            setattr(record, field, var.get())
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field, var in _CONTEXT_FIELDS.items():
            value = getattr(record, field, None) or var.get()
            if value:
                entry[field] = value
        entry.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``sqlmapper`` namespace.

    Args:
        name: Dotted suffix such as ``"executor"``; ``None`` gives the root library logger.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if not any(isinstance(f, ContextFilter) for f in logger.filters):
        logger.addFilter(ContextFilter())
    return logger


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    extra_handlers: list[logging.Handler] | None = None,
) -> logging.Logger:
    """Attach a stdout handler to the library root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_style: ``"structured"`` for JSON lines, anything else for plain text
        extra_handlers: Additional handlers to add

    Returns:
        The configured root library logger.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    formatter = StructuredFormatter() if format_style == "structured" else logging.Formatter(SIMPLE_FORMAT)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    for handler in extra_handlers or ():
        root_logger.addHandler(handler)
    root_logger.propagate = False

    root_logger.debug(
        "sqlmapper logging configured",
        extra={"extra_fields": {"level": level, "format_style": format_style}},
    )
    return root_logger
