"""Apply or roll back a recorded migration group inside one transaction.

``execute_migration_group`` is the only all-or-nothing operation in the
package: the group's ``up`` (apply) or ``down`` (rollback) statements run in
list order on a single session; the batch commits only if every statement
succeeds and is rolled back otherwise.

The executor never raises to its caller. Every outcome (invalid operation,
unknown group, malformed payload, success, failure) is reported through the
log, which callers must inspect.

Note: MySQL commits DDL implicitly, so a rollback only undoes statements the
server can roll back. Batches of DML, or engines with transactional DDL, get
the full guarantee.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from db.models.ledger import MigrationGroup

from .logging_setup import SUCCESS, LogCategory, get_logger, log_event
from .models import Operation, QueryBatchPayload

logger = get_logger("schema_sync.executor")

_FIELDS = {Operation.APPLY: "up", Operation.ROLLBACK: "down"}


def _coerce_operation(operation: Operation | str) -> Operation | None:
    try:
        op = Operation(str(operation).strip().lower())
    except ValueError:
        return None
    return op if op in _FIELDS else None


class MigrationExecutor:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._factory = session_factory

    def execute_migration_group(self, group_id: int, operation: Operation | str) -> None:
        op = _coerce_operation(operation)
        if op is None:
            log_event(
                logger,
                logging.ERROR,
                LogCategory.MIGRATION,
                Operation.SEARCH,
                f"invalid migration operation: {operation!r}",
                group=group_id,
            )
            return

        field = _FIELDS[op]
        session = self._factory()
        try:
            self._run(session, group_id, op, field)
        finally:
            self._close(session, group_id, op)

    def _run(self, session: Session, group_id: int, op: Operation, field: str) -> None:
        try:
            group = session.get(MigrationGroup, group_id)
            if group is None:
                log_event(
                    logger,
                    logging.ERROR,
                    LogCategory.MIGRATION,
                    Operation.SEARCH,
                    "migration group not found",
                    group=group_id,
                )
                self._rollback(session, group_id, Operation.SEARCH)
                return

            try:
                queries = QueryBatchPayload.model_validate(getattr(group, field)).queries
            except ValidationError as exc:
                log_event(
                    logger,
                    logging.ERROR,
                    LogCategory.MIGRATION,
                    Operation.SEARCH,
                    f"malformed {field} payload: {exc.error_count()} error(s)",
                    group=group_id,
                )
                self._rollback(session, group_id, Operation.SEARCH)
                return

            log_event(
                logger,
                logging.DEBUG,
                LogCategory.MIGRATION,
                Operation.SEARCH,
                "executing migration group",
                action=op.value,
                group=group_id,
                steps=len(queries),
            )

            conn = session.connection()
            for query in queries:
                conn.exec_driver_sql(query)
            session.commit()
        except Exception as exc:
            self._rollback(session, group_id, op)
            log_event(
                logger,
                logging.ERROR,
                LogCategory.MIGRATION_GROUP,
                op,
                "migration group failed; rolled back",
                action=op.value,
                group=group_id,
                error=exc,
            )
            return

        log_event(
            logger,
            SUCCESS,
            LogCategory.MIGRATION_GROUP,
            op,
            "migration group executed",
            action=op.value,
            group=group_id,
        )

    def _rollback(self, session: Session, group_id: int, op: Operation) -> None:
        # Fails when the connection is already gone.
        try:
            session.rollback()
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                LogCategory.MIGRATION_GROUP,
                op,
                "rollback failed",
                group=group_id,
                error=exc,
            )

    def _close(self, session: Session, group_id: int, op: Operation) -> None:
        try:
            session.close()
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                LogCategory.MIGRATION_GROUP,
                op,
                "session close failed",
                group=group_id,
                error=exc,
            )


__all__ = ["MigrationExecutor"]
