"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the schema-change ledger used by ``schema_sync``.
"""

from .ledger import Base, Migration, MigrationGroup

__all__ = [
    "Base",
    "Migration",
    "MigrationGroup",
]
