"""Public API and orchestration for the ``schema_sync`` package.

``run_sync`` is the "sync" path: every registered entity goes through the
table synchronizer, one at a time, and only after that full pass does the
relationship synchronizer run. ``execute_migration_group`` and
``create_migration_group`` are the independent ledger path used to replay a
recorded batch in another environment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .executor import MigrationExecutor
from .ledger import MigrationLedger
from .logging_setup import SUCCESS, LogCategory, get_logger, log_event
from .models import Operation, TableSyncResult
from .registry import EntityRegistry, default_registry
from .relationships import RelationshipError, RelationshipIssue, RelationshipSynchronizer
from .tables import TableSynchronizer

logger = get_logger("schema_sync.api")


@dataclass(slots=True)
class SyncReport:
    tables: list[TableSyncResult] = field(default_factory=list)
    relationship_issues: list[RelationshipIssue] = field(default_factory=list)

    @property
    def changed_tables(self) -> list[str]:
        return [t.table for t in self.tables if t.changed]


def run_sync(
    engine: Engine,
    registry: EntityRegistry | None = None,
    *,
    ledger: MigrationLedger | None = None,
    strict: bool = False,
) -> SyncReport:
    """Synchronize every registered entity, then validate relationships.

    DDL runs on an autocommit connection, one statement at a time. Errors
    from introspection or DDL propagate and abort the run. With ``strict``,
    relationship issues raise ``RelationshipError`` once the pass completes.
    """

    if registry is None:
        from . import entities  # noqa: F401  (populates default_registry)

        registry = default_registry

    descriptors = registry.all_entities()
    report = SyncReport()
    log_event(
        logger,
        logging.DEBUG,
        LogCategory.DATABASE,
        Operation.UPDATE,
        "starting database synchronization",
        entities=len(descriptors),
    )

    with engine.connect() as raw:
        conn = raw.execution_options(isolation_level="AUTOCOMMIT")
        tables = TableSynchronizer(conn, ledger=ledger)
        for descriptor in descriptors:
            report.tables.append(tables.sync(descriptor))

        relationships = RelationshipSynchronizer(registry, connection=conn)
        report.relationship_issues = relationships.sync(descriptors)

    log_event(
        logger,
        SUCCESS,
        LogCategory.DATABASE,
        Operation.UPDATE,
        "database synchronization completed",
        changed=",".join(report.changed_tables) or "-",
        relationship_issues=len(report.relationship_issues),
    )
    if strict and report.relationship_issues:
        raise RelationshipError(report.relationship_issues)
    return report


def drop_column(
    engine: Engine, table: str, column: str, *, ledger: MigrationLedger | None = None
) -> str:
    """Explicitly drop one column and record the DELETE migration."""

    with engine.connect() as raw:
        conn = raw.execution_options(isolation_level="AUTOCOMMIT")
        return TableSynchronizer(conn, ledger=ledger).drop_column(table, column)


def create_migration_group(
    session_factory: sessionmaker[Session],
    up: list[str],
    down: list[str],
    name: str | None = None,
) -> int | None:
    return MigrationLedger(session_factory).create_migration_group(up, down, name)


def execute_migration_group(
    session_factory: sessionmaker[Session],
    group_id: int,
    operation: Operation | str,
) -> None:
    MigrationExecutor(session_factory).execute_migration_group(group_id, operation)


__all__ = [
    "SyncReport",
    "create_migration_group",
    "drop_column",
    "execute_migration_group",
    "run_sync",
]
