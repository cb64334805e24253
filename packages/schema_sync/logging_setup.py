"""Centralized logging configuration for the ``schema_sync`` package.

This module provides the public helpers:

- ``configure_logging(...)``: attach a single ``StreamHandler`` to the package
  root logger (``"schema_sync"``). Intended to be called once by entrypoints
  (e.g., the CLI) at process startup.
- ``get_logger(name)``: acquire a logger by name, ensuring that the package
  root logger has at least a ``NullHandler`` attached when not configured to
  avoid "No handler" warnings in library contexts.
- ``log_event(...)``: emit one structured entry carrying an operation
  category (``database``/``migration``/``migration_group``), the operation
  name, and a severity. ``SUCCESS`` sits between ``INFO`` and ``WARNING``.

Library modules must never attach their own handlers. They should only call
``get_logger("schema_sync.<module>")`` and rely on the centralized
configuration performed by the CLI or host application.
"""

from __future__ import annotations

import logging
import os
import sys
from enum import StrEnum
from typing import IO, Any

_PKG_LOGGER_NAME = "schema_sync"
_CONFIGURED = False

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s [%(category)s/%(operation)s] %(message)s"


class LogCategory(StrEnum):
    DATABASE = "database"
    MIGRATION = "migration"
    MIGRATION_GROUP = "migration_group"


class _EventDefaults(logging.Filter):
    """Fill ``category``/``operation`` for records not emitted via ``log_event``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "category"):
            record.category = "-"
        if not hasattr(record, "operation"):
            record.operation = "-"
        return True


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        # Accept numeric strings or level names, including the custom SUCCESS.
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        if level == "SUCCESS":
            return SUCCESS
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv("SCHEMA_SYNC_LOG_LEVEL")
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        Logging level as ``int`` or level-name string (e.g., ``"DEBUG"``). If
        ``None``, defaults to the ``SCHEMA_SYNC_LOG_LEVEL`` environment
        variable when set, otherwise ``logging.INFO``.
    fmt:
        Optional logging format string. Defaults to ``DEFAULT_FORMAT``, which
        renders the event category and operation.
    stream:
        The output stream for the single ``StreamHandler`` (defaults to
        ``sys.stderr``).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    # Remove any existing NullHandlers to avoid swallowing logs after config.
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(_parse_level(level))
    handler.addFilter(_EventDefaults())
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))

    logger.setLevel(_parse_level(level))
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name, ensuring safe defaults for library use."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


def log_event(
    logger: logging.Logger,
    level: int,
    category: LogCategory,
    operation: str,
    message: str,
    **fields: Any,
) -> None:
    """Emit one structured log entry.

    ``fields`` are appended to the message as ``key=value`` pairs and are also
    available on the record as ``record.fields`` for handlers that ship
    structured output elsewhere.
    """

    if fields:
        message = message + " " + " ".join(f"{k}={v}" for k, v in fields.items())
    logger.log(
        level,
        message,
        extra={"category": str(category), "operation": str(operation), "fields": fields},
    )


__all__ = [
    "DEFAULT_FORMAT",
    "SUCCESS",
    "LogCategory",
    "configure_logging",
    "get_logger",
    "log_event",
]
