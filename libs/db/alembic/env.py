# ruff: noqa: I001
"""
Alembic environment for the ledger tables.

Only `migration` and `migration_group` are versioned here; entity tables are
reconciled by `schema-sync sync`. `DATABASE_URL` takes precedence over the
`sqlalchemy.url` entry in alembic.ini, in both offline and online runs.
"""

from __future__ import annotations

import os
import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from dotenv import load_dotenv, find_dotenv


config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Searched upward from the working directory; an already exported value wins.
dotenv_path = find_dotenv(usecwd=True)
if dotenv_path:
    load_dotenv(dotenv_path=dotenv_path, override=False)

db_url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url") or ""
if not db_url:
    raise RuntimeError("ledger migrations need DATABASE_URL or sqlalchemy.url in alembic.ini")

config.set_main_option("sqlalchemy.url", db_url)
config.set_section_option(config.config_ini_section, "sqlalchemy.url", db_url)

logger = logging.getLogger("alembic.env")

import db as _db_pkg  # noqa: E402

target_metadata = _db_pkg.metadata
logger.debug("ledger metadata tables: %s", sorted(target_metadata.tables))


def run_migrations_offline() -> None:
    """Emit the ledger DDL as SQL text."""
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the ledger revisions over a live connection."""
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = db_url
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
