"""Public interface for the ``schema_sync`` package.

Declarative MySQL schema synchronization for the finance backend: entity
descriptors are registered in memory, reconciled against the live catalog,
and every column-level change lands in an auditable migration ledger that
also stores replayable, transactional migration groups.
"""

from .api import (
    SyncReport,
    create_migration_group,
    drop_column,
    execute_migration_group,
    run_sync,
)
from .executor import MigrationExecutor
from .ledger import MigrationLedger
from .models import (
    CURRENT_TIMESTAMP,
    ColumnSpec,
    ColumnType,
    EntityDescriptor,
    Operation,
    RelationshipKind,
    RelationshipSpec,
)
from .registry import EntityRegistry, default_registry
from .relationships import RelationshipError, RelationshipIssue, RelationshipSynchronizer
from .tables import TableSynchronizer

__all__ = [
    # API
    "run_sync",
    "drop_column",
    "create_migration_group",
    "execute_migration_group",
    "SyncReport",
    # Components
    "EntityRegistry",
    "default_registry",
    "TableSynchronizer",
    "RelationshipSynchronizer",
    "RelationshipError",
    "RelationshipIssue",
    "MigrationLedger",
    "MigrationExecutor",
    # Models / types
    "CURRENT_TIMESTAMP",
    "ColumnSpec",
    "ColumnType",
    "EntityDescriptor",
    "Operation",
    "RelationshipKind",
    "RelationshipSpec",
]
