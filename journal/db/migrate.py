"""Idempotent SQLite upgrades for journal databases created by older builds."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Older databases were created without uniqueness on users.username/email and
# without an index on entries.user_id. We only ADD indexes here, never drop.
INDEXES: tuple[tuple[str, str, tuple[str, ...], bool], ...] = (
    ("users", "ux_users_username", ("username",), True),
    ("users", "ux_users_email", ("email",), True),
    ("entries", "ix_entries_user_id", ("user_id",), False),
)


def _table_names(engine: Engine) -> set[str]:
    with engine.connect() as conn:
        rows = conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'table'")).all()
    return {row[0] for row in rows}


def _index_names(engine: Engine, table: str) -> set[str]:
    """Return the names of every index SQLite knows for ``table``."""

    with engine.connect() as conn:
        rows = conn.execute(text(f"PRAGMA index_list({table})")).mappings().all()
    return {row["name"] for row in rows}


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    """Build an index only if it hasn't already been defined."""

    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def run_migrations(engine: Engine) -> list[str]:
    """Apply missing indexes and return the names of the ones created."""

    if engine.dialect.name != "sqlite":
        return []
    created: list[str] = []
    tables = _table_names(engine)
    for table, name, cols, unique in INDEXES:
        if table not in tables or name in _index_names(engine, table):
            continue
        _create_index_if_not_exists(engine, table, name, cols, unique=unique)
        created.append(name)
    if created:
        logger.info("db.migrated", extra={"extra_data": {"indexes": created}})
    return created
