import logging
from datetime import UTC, datetime

import pytest
from sqlalchemy import select

from db.models.ledger import Migration, MigrationGroup
from schema_sync.ledger import MigrationLedger, group_name, migration_name
from schema_sync.models import Operation

from tests.helpers.db import sqlite_engine

AT = datetime(2025, 1, 2, 3, 4, 5, 6000, tzinfo=UTC)


def _clock():
    return AT


def test_migration_names_are_deterministic():
    assert migration_name("account", "observation", "create", AT) == (
        "account--creation-observation-2025-01-02-03:04:05"
    )
    assert migration_name("account", "observation", Operation.DELETE, AT) == (
        "account--deletion--observation--2025-01-02-03:04:05"
    )
    with pytest.raises(ValueError):
        migration_name("account", "observation", Operation.UPDATE, AT)


def test_group_name_includes_milliseconds():
    assert group_name(AT) == "group-20250102030405006"


def test_save_migration_stores_single_statement_payloads(ledger_db):
    _, sessions = ledger_db
    ledger = MigrationLedger(sessions, clock=_clock)

    name = ledger.save_migration(
        "account",
        "observation",
        Operation.CREATE,
        "ALTER TABLE account ADD COLUMN observation TEXT DEFAULT NULL",
        "ALTER TABLE account DROP COLUMN observation",
    )

    assert name == "account--creation-observation-2025-01-02-03:04:05"
    with sessions() as s:
        row = s.scalars(select(Migration)).one()
        assert row.table_name == "account"
        assert row.operation == "create"
        assert row.up == {"query": "ALTER TABLE account ADD COLUMN observation TEXT DEFAULT NULL"}
        assert row.down == {"query": "ALTER TABLE account DROP COLUMN observation"}
        assert row.migration_group_id is None
        assert row.created_at is not None


def test_same_second_changes_share_a_name(ledger_db):
    _, sessions = ledger_db
    ledger = MigrationLedger(sessions, clock=_clock)

    a = ledger.save_migration("tag", "name", "create", "ALTER TABLE tag ADD COLUMN name TEXT", "x")
    b = ledger.save_migration("tag", "name", "create", "ALTER TABLE tag ADD COLUMN name TEXT", "x")

    assert a == b
    assert [m.name for m in ledger.list_migrations("tag")] == [a, b]
    assert ledger.list_migrations("account") == []


def test_invalid_input_raises_before_database_work(ledger_db):
    _, sessions = ledger_db
    ledger = MigrationLedger(sessions, clock=_clock)

    with pytest.raises(ValueError):
        ledger.save_migration("tag", "name", "archive", "a", "b")
    with pytest.raises(ValueError):
        ledger.save_migration("tag", "name", "create", "   ", "b")
    assert ledger.list_migrations() == []


def test_write_failure_is_logged_and_swallowed(tmp_path, caplog):
    from sqlalchemy.orm import sessionmaker

    # No ledger tables exist in this database.
    engine = sqlite_engine(tmp_path / "empty.db")
    ledger = MigrationLedger(sessionmaker(bind=engine), clock=_clock)

    assert ledger.save_migration("tag", "name", "create", "a", "b") is None
    assert ledger.create_migration_group(["a"], ["b"]) is None
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 2
    assert errors[0].category == "migration"
    assert errors[1].category == "migration_group"


def test_create_migration_group_round_trips_ordered_statements(ledger_db):
    _, sessions = ledger_db
    ledger = MigrationLedger(sessions, clock=_clock)
    up = ["CREATE TABLE a (id INTEGER)", "CREATE TABLE b (id INTEGER)"]
    down = ["DROP TABLE b", "DROP TABLE a"]

    group_id = ledger.create_migration_group(up, down)

    assert isinstance(group_id, int)
    entry = ledger.get_group(group_id)
    assert entry.name == "group-20250102030405006"
    assert entry.up == tuple(up)
    assert entry.down == tuple(down)
    with sessions() as s:
        assert s.get(MigrationGroup, group_id).up == {"queries": up}
    assert [g.id for g in ledger.list_groups()] == [group_id]
    assert ledger.get_group(group_id + 1) is None


def test_duplicate_group_name_is_rejected(ledger_db, caplog):
    _, sessions = ledger_db
    ledger = MigrationLedger(sessions, clock=_clock)

    assert ledger.create_migration_group(["SELECT 1"], ["SELECT 1"], name="seed") is not None
    assert ledger.create_migration_group(["SELECT 2"], ["SELECT 2"], name="seed") is None
    assert "error creating migration group 'seed'" in caplog.text
    assert len(ledger.list_groups()) == 1


def test_group_payloads_reject_blank_statements(ledger_db):
    _, sessions = ledger_db
    with pytest.raises(ValueError):
        MigrationLedger(sessions).create_migration_group(["SELECT 1", ""], [])
