import logging

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from db.models.ledger import MigrationGroup
from schema_sync.executor import MigrationExecutor
from schema_sync.ledger import MigrationLedger

from tests.helpers.db import count_statements

UP = ["CREATE TABLE alpha (id INTEGER)", "CREATE TABLE beta (id INTEGER)"]
DOWN = ["DROP TABLE beta", "DROP TABLE alpha"]


# ---- Helpers -----------------------------------------------------------------


def _tables(engine) -> set[str]:
    return set(inspect(engine).get_table_names()) - {"migration", "migration_group"}


def _group(sessions, up=UP, down=DOWN) -> int:
    group_id = MigrationLedger(sessions).create_migration_group(up, down)
    assert group_id is not None
    return group_id


def _errors(caplog) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]


# ---- Tests -------------------------------------------------------------------


def test_apply_then_rollback(ledger_db, caplog):
    caplog.set_level(logging.DEBUG, logger="schema_sync")
    engine, sessions = ledger_db
    group_id = _group(sessions)
    executor = MigrationExecutor(sessions)

    executor.execute_migration_group(group_id, "apply")
    assert _tables(engine) == {"alpha", "beta"}

    executor.execute_migration_group(group_id, "rollback")
    assert _tables(engine) == set()

    assert _errors(caplog) == []
    assert f"executing migration group action=apply group={group_id} steps=2" in caplog.text
    assert caplog.text.count("migration group executed") == 2


def test_operation_is_case_insensitive(ledger_db):
    engine, sessions = ledger_db
    group_id = _group(sessions)

    MigrationExecutor(sessions).execute_migration_group(group_id, "  APPLY ")
    assert _tables(engine) == {"alpha", "beta"}


def test_failing_statement_rolls_back_the_whole_batch(ledger_db, caplog):
    engine, sessions = ledger_db
    group_id = _group(sessions, up=[*UP, "CREATE TABLE alpha (id INTEGER)"])

    MigrationExecutor(sessions).execute_migration_group(group_id, "apply")

    # Re-introspect: neither earlier statement survived.
    assert _tables(engine) == set()
    (message,) = _errors(caplog)
    assert "migration group failed; rolled back" in message
    assert f"group={group_id}" in message


@pytest.mark.parametrize("operation", ["archive", "", "up"])
def test_invalid_operation_touches_nothing(ledger_db, caplog, operation):
    engine, sessions = ledger_db
    group_id = _group(sessions)
    seen = count_statements(engine)

    MigrationExecutor(sessions).execute_migration_group(group_id, operation)

    assert seen == []
    assert _tables(engine) == set()
    (message,) = _errors(caplog)
    assert "invalid migration operation" in message


def test_missing_group_is_logged_not_raised(ledger_db, caplog):
    _, sessions = ledger_db

    MigrationExecutor(sessions).execute_migration_group(999, "apply")

    (message,) = _errors(caplog)
    assert message == "migration group not found group=999"


def test_malformed_payload_is_logged_not_raised(ledger_db, caplog):
    engine, sessions = ledger_db
    with sessions.begin() as s:
        row = MigrationGroup(name="broken", up={"statements": ["CREATE TABLE alpha (id INTEGER)"]}, down={"queries": []})
        s.add(row)
        s.flush()
        group_id = row.id

    MigrationExecutor(sessions).execute_migration_group(group_id, "apply")

    assert _tables(engine) == set()
    (message,) = _errors(caplog)
    assert message.startswith("malformed up payload")

    # The other direction is well-formed (and empty).
    caplog.clear()
    MigrationExecutor(sessions).execute_migration_group(group_id, "rollback")
    assert _errors(caplog) == []


class _DroppedConnectionSession:
    """Session whose connection is gone: statements and rollback both fail."""

    def get(self, model, ident):
        return MigrationGroup(name="lost", up={"queries": ["SELECT 1"]}, down={"queries": []})

    def connection(self):
        raise OperationalError("SELECT 1", {}, Exception("server has gone away"))

    def rollback(self):
        raise OperationalError("ROLLBACK", {}, Exception("server has gone away"))

    def close(self):
        raise OperationalError("CLOSE", {}, Exception("server has gone away"))


def test_failed_rollback_on_a_dropped_connection_is_logged_not_raised(caplog):
    MigrationExecutor(_DroppedConnectionSession).execute_migration_group(1, "apply")

    errors = _errors(caplog)
    assert len(errors) == 3
    assert errors[0].startswith("rollback failed group=1")
    assert errors[1].startswith("migration group failed; rolled back")
    assert errors[2].startswith("session close failed group=1")
