from __future__ import annotations

from ..core.config import AppSettings
from .base import TABLES, ReturnsStore, Table
from .rest import RestReturnsStore
from .sql import SqlReturnsStore

__all__ = [
    "TABLES",
    "ReturnsStore",
    "RestReturnsStore",
    "SqlReturnsStore",
    "Table",
    "build_store",
]


def build_store(settings: AppSettings) -> ReturnsStore | None:
    """Construct the configured store, or ``None`` when credentials are absent."""

    if settings.missing_credentials():
        return None
    if settings.RETURNS_BACKEND == "sql":
        return SqlReturnsStore.from_url(settings.DB_URL)
    return RestReturnsStore(
        settings.SUPABASE_URL,
        settings.SUPABASE_KEY,
        table_names={"expected": settings.EXPECTED_TABLE, "received": settings.RECEIVED_TABLE},
        timeout=settings.STORE_TIMEOUT_SECONDS,
    )
