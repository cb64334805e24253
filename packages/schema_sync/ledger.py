"""Persistence for the schema-change ledger.

Functions here write audit rows to the ``migration`` and ``migration_group``
tables owned by ``libs/db``. They rely on the ORM models defined in
``db.models.ledger`` and on a session maker provided by the caller (or
``db.client`` in the CLI).

Scope:
- One ``migration`` row per column added or dropped, with a deterministic
  name and single-statement ``up``/``down`` payloads.
- One ``migration_group`` row per explicitly assembled batch, with ordered
  ``up``/``down`` statement lists.

Ledger writes are not atomic with the DDL that motivated them. A failed write
is logged and swallowed so the schema change that already ran is kept.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeAlias

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.client import session_scope
from db.models.ledger import Migration, MigrationGroup

from .logging_setup import SUCCESS, LogCategory, get_logger, log_event
from .models import Operation, QueryBatchPayload, QueryPayload

logger = get_logger("schema_sync.ledger")

Clock: TypeAlias = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def migration_name(table: str, column: str, operation: Operation | str, at: datetime) -> str:
    """Deterministic record name for a column-level change captured at ``at``."""

    op = Operation(operation)
    ts = at.strftime("%Y-%m-%d-%H:%M:%S")
    if op is Operation.CREATE:
        return f"{table}--creation-{column}-{ts}"
    if op is Operation.DELETE:
        return f"{table}--deletion--{column}--{ts}"
    raise ValueError(f"migration records only support create/delete, got {op!r}")


def group_name(at: datetime) -> str:
    return "group-" + at.strftime("%Y%m%d%H%M%S") + f"{at.microsecond // 1000:03d}"


@dataclass(frozen=True, slots=True)
class GroupEntry:
    id: int
    name: str
    up: tuple[str, ...]
    down: tuple[str, ...]
    created_at: datetime | None


@dataclass(frozen=True, slots=True)
class MigrationEntry:
    id: int
    name: str
    table_name: str
    column_name: str
    operation: str
    up: str
    down: str
    migration_group_id: int | None
    created_at: datetime | None


class MigrationLedger:
    def __init__(
        self, session_factory: sessionmaker[Session], *, clock: Clock | None = None
    ) -> None:
        self._factory = session_factory
        self._clock = clock or _utcnow

    def save_migration(
        self,
        table_name: str,
        column_name: str,
        operation: Operation | str,
        up: str,
        down: str,
        migration_group_id: int | None = None,
    ) -> str | None:
        """Insert one ``migration`` row; return its name, or ``None`` on failure.

        Invalid operations and blank statements raise ``ValueError`` before
        any database work. Database errors are logged and swallowed.
        """

        op = Operation(operation)
        name = migration_name(table_name, column_name, op, self._clock())
        up_payload = QueryPayload(query=up).model_dump(mode="json")
        down_payload = QueryPayload(query=down).model_dump(mode="json")

        try:
            with session_scope(factory=self._factory) as session:
                session.add(
                    Migration(
                        name=name,
                        table_name=table_name,
                        column_name=column_name,
                        operation=op.value,
                        up=up_payload,
                        down=down_payload,
                        migration_group_id=migration_group_id,
                    )
                )
        except SQLAlchemyError as exc:
            log_event(
                logger,
                logging.ERROR,
                LogCategory.MIGRATION,
                op,
                f"error saving migration for {table_name}.{column_name}: {exc}",
            )
            return None

        log_event(logger, SUCCESS, LogCategory.MIGRATION, op, "migration saved", migration=name)
        return name

    def create_migration_group(
        self,
        up: Sequence[str],
        down: Sequence[str],
        name: str | None = None,
    ) -> int | None:
        """Insert one ``migration_group`` row and return its id (``None`` on failure)."""

        group = name or group_name(self._clock())
        up_payload = QueryBatchPayload(queries=tuple(up)).model_dump(mode="json")
        down_payload = QueryBatchPayload(queries=tuple(down)).model_dump(mode="json")

        try:
            with session_scope(factory=self._factory) as session:
                row = MigrationGroup(name=group, up=up_payload, down=down_payload)
                session.add(row)
                session.flush()
                group_id = row.id
        except SQLAlchemyError as exc:
            log_event(
                logger,
                logging.ERROR,
                LogCategory.MIGRATION_GROUP,
                Operation.CREATE,
                f"error creating migration group {group!r}: {exc}",
            )
            return None

        log_event(
            logger,
            SUCCESS,
            LogCategory.MIGRATION_GROUP,
            Operation.CREATE,
            "migration group created",
            group=group_id,
            name=group,
            steps=len(up_payload["queries"]),
        )
        return group_id

    # ---- Read helpers ---------------------------------------------------------

    def get_group(self, group_id: int) -> GroupEntry | None:
        with session_scope(factory=self._factory) as session:
            row = session.get(MigrationGroup, group_id)
            return _group_entry(row) if row is not None else None

    def list_groups(self) -> list[GroupEntry]:
        with session_scope(factory=self._factory) as session:
            rows = session.scalars(select(MigrationGroup).order_by(MigrationGroup.id))
            return [_group_entry(r) for r in rows]

    def list_migrations(self, table_name: str | None = None) -> list[MigrationEntry]:
        stmt = select(Migration).order_by(Migration.id)
        if table_name is not None:
            stmt = stmt.where(Migration.table_name == table_name)
        with session_scope(factory=self._factory) as session:
            return [_migration_entry(r) for r in session.scalars(stmt)]


def _queries(payload: Any) -> tuple[str, ...]:
    return QueryBatchPayload.model_validate(payload).queries


def _group_entry(row: MigrationGroup) -> GroupEntry:
    return GroupEntry(
        id=row.id,
        name=row.name,
        up=_queries(row.up),
        down=_queries(row.down),
        created_at=row.created_at,
    )


def _migration_entry(row: Migration) -> MigrationEntry:
    return MigrationEntry(
        id=row.id,
        name=row.name,
        table_name=row.table_name,
        column_name=row.column_name,
        operation=row.operation,
        up=QueryPayload.model_validate(row.up).query,
        down=QueryPayload.model_validate(row.down).query,
        migration_group_id=row.migration_group_id,
        created_at=row.created_at,
    )


__all__ = [
    "Clock",
    "GroupEntry",
    "MigrationEntry",
    "MigrationLedger",
    "group_name",
    "migration_name",
]
