"""The record store contract shared by every backend.

Two logical tables hold the data: ``expected`` and ``received``. Both are keyed
by the canonical barcode and support the same four operations, so the tracker
never needs to know whether it is talking to a hosted REST endpoint or a SQL
database.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Literal

Table = Literal["expected", "received"]
TABLES: tuple[Table, ...] = ("expected", "received")


class ReturnsStore(ABC):
    """Select-all / upsert / delete / delete-all over the two return tables.

    Rows are plain dicts using the wire column names (``barcode``, ``name``,
    ``phone``, ``added_at``). Implementations raise ``StoreError`` on failure.
    """

    backend = "unknown"

    @abstractmethod
    def select_all(self, table: Table) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def upsert(self, table: Table, rows: list[dict[str, Any]]) -> None:
        """Insert rows, overwriting existing rows with the same barcode."""

    @abstractmethod
    def delete(self, table: Table, barcodes: Iterable[str]) -> None:
        ...

    @abstractmethod
    def delete_all(self, table: Table) -> None:
        ...

    def close(self) -> None:
        """Release network or database resources."""
