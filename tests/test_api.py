import pytest

import schema_sync.api as api_mod
from schema_sync.api import SyncReport, run_sync
from schema_sync.models import ColumnSpec, RelationshipKind, RelationshipSpec, TableSyncResult
from schema_sync.registry import EntityRegistry
from schema_sync.relationships import RelationshipError, RelationshipIssue

from tests.helpers.db import sqlite_engine


class _Recorder:
    def __init__(self) -> None:
        self.events: list[str] = []
        self.connections: list[object] = []


@pytest.fixture()
def recorder(monkeypatch: pytest.MonkeyPatch):
    rec = _Recorder()
    issues: list[RelationshipIssue] = []

    class FakeTables:
        def __init__(self, connection, *, ledger=None):
            rec.connections.append(connection)

        def sync(self, descriptor):
            rec.events.append(f"table:{descriptor.table_name}")
            return TableSyncResult(table=descriptor.table_name, created=True)

    class FakeRelationships:
        def __init__(self, registry, *, connection=None):
            rec.connections.append(connection)

        def sync(self, descriptors):
            rec.events.append("relationships")
            return list(issues)

    monkeypatch.setattr(api_mod, "TableSynchronizer", FakeTables)
    monkeypatch.setattr(api_mod, "RelationshipSynchronizer", FakeRelationships)
    rec.issues = issues
    return rec


def _registry() -> EntityRegistry:
    reg = EntityRegistry()
    reg.declare("User", "user", [ColumnSpec("email")])
    reg.declare(
        "Account",
        "account",
        [ColumnSpec("name")],
        [RelationshipSpec(RelationshipKind.MANY_TO_ONE, "user", "User", inverse="accounts")],
    )
    return reg


def test_relationships_run_after_every_table(recorder, tmp_path):
    engine = sqlite_engine(tmp_path / "sync.db")

    report = run_sync(engine, _registry())

    assert recorder.events == ["table:user", "table:account", "relationships"]
    assert isinstance(report, SyncReport)
    assert report.changed_tables == ["user", "account"]
    # Both passes share the same autocommit connection.
    first, second = recorder.connections
    assert first is second
    assert first.get_execution_options()["isolation_level"] == "AUTOCOMMIT"


def test_strict_mode_raises_on_relationship_issues(recorder, tmp_path):
    engine = sqlite_engine(tmp_path / "sync.db")
    recorder.issues.append(RelationshipIssue("account", "user", "User", "inverse field name is empty"))

    report = run_sync(engine, _registry())
    assert len(report.relationship_issues) == 1

    with pytest.raises(RelationshipError) as excinfo:
        run_sync(engine, _registry(), strict=True)
    assert excinfo.value.issues == recorder.issues


def test_default_registry_holds_the_finance_entities(recorder, tmp_path):
    engine = sqlite_engine(tmp_path / "sync.db")

    run_sync(engine)

    assert recorder.events[0] == "table:user"
    assert recorder.events[-1] == "relationships"
    assert "table:transaction" in recorder.events
