"""Pytest configuration for test isolation.

The CLI calls ``configure_logging()``, which attaches a stream handler to the
``schema_sync`` logger and stops propagation to the root logger. Left in
place, that would hide records from ``caplog`` in every later test, so an
autouse fixture restores the package logger after each test.

Ledger/executor tests share a file-backed SQLite database per test.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import schema_sync.logging_setup as logging_setup

from tests.helpers.db import bootstrap_ledger_db


@pytest.fixture(autouse=True)
def _isolate_package_logger(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("SCHEMA_SYNC_LOG_LEVEL", raising=False)
    yield
    pkg = logging.getLogger("schema_sync")
    for h in list(pkg.handlers):
        pkg.removeHandler(h)
    pkg.propagate = True
    pkg.setLevel(logging.NOTSET)
    logging_setup._CONFIGURED = False


@pytest.fixture()
def ledger_db(tmp_path: Path):
    engine, sessions = bootstrap_ledger_db(tmp_path / "ledger.db")
    yield engine, sessions
    engine.dispose()
