"""Tiny home-grown migrations for databases created by older releases."""

from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Additive only: new columns are created and back-filled from their legacy
# counterparts; legacy columns are left in place.
LEGACY_COLUMNS: dict[str, dict[str, str]] = {
    "expected": {"name": "isim", "phone": "telefon"},
    "received": {"added_at": "received_at"},
}


def _column_names(engine: Engine, table: str) -> set[str]:
    inspector = inspect(engine)
    if not inspector.has_table(table):
        return set()
    return {column["name"] for column in inspector.get_columns(table)}


def _add_column(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def run_migrations(engine: Engine) -> None:
    """Bring tables written with the old column names up to date."""

    for table, renames in LEGACY_COLUMNS.items():
        cols = _column_names(engine, table)
        if not cols:
            continue
        for column, legacy in renames.items():
            if column in cols or legacy not in cols:
                continue
            logger.info("Migrating %s.%s -> %s.%s", table, legacy, table, column)
            _add_column(engine, table, f"{column} TEXT")
            with engine.begin() as conn:
                conn.execute(text(f"UPDATE {table} SET {column} = {legacy}"))
