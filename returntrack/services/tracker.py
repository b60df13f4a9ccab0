"""The operator session: both return collections plus every mutation.

One ``ReturnsTracker`` is built per application and handed to the routes and
the scan session. It keeps the last copy of both tables in memory and reloads
them wholesale from the store after every write; reconciliation is computed
from that copy on demand.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable

from ..core.barcodes import normalize_barcode
from ..core.errors import ImportEmpty, ReturnsError, StoreNotConfigured
from ..schemas.returns import (
    ExpectedItem,
    ImportReport,
    MissingItem,
    ReceivedItem,
    ReturnsSummary,
)
from ..stores import ReturnsStore, Table
from .importer import UploadedSheet, build_expected_rows
from .reconciliation import find_missing, summarize

logger = logging.getLogger(__name__)

READY = "Ready"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReturnsTracker:
    def __init__(
        self,
        store: ReturnsStore | None,
        *,
        missing_settings: Iterable[str] = (),
        fallback_scan: bool = True,
        min_token_length: int = 6,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.fallback_scan = fallback_scan
        self.min_token_length = min_token_length
        self.clock = clock
        self.expected: list[ExpectedItem] = []
        self.received: list[ReceivedItem] = []
        self.last_code = ""
        self._lock = threading.RLock()
        if store is None:
            names = ", ".join(missing_settings) or "backend credentials"
            self.status = f"Not configured: set {names}"
        else:
            self.status = READY

    # ---- state

    @property
    def configured(self) -> bool:
        return self.store is not None

    @property
    def backend(self) -> str:
        return self.store.backend if self.store is not None else "none"

    def _require_store(self) -> ReturnsStore:
        if self.store is None:
            raise StoreNotConfigured(self.status)
        return self.store

    def _fail(self, exc: ReturnsError, prefix: str = "Error") -> None:
        self.status = f"{prefix}: {exc.message}"

    def refresh(self) -> None:
        """Reload both tables from the store."""

        store = self._require_store()
        with self._lock:
            try:
                expected_rows = store.select_all("expected")
                received_rows = store.select_all("received")
            except ReturnsError as exc:
                self._fail(exc)
                raise
            self.expected = [ExpectedItem.model_validate(row) for row in expected_rows]
            self.received = [ReceivedItem.model_validate(row) for row in received_rows]
            self.status = READY

    def missing(self) -> list[MissingItem]:
        with self._lock:
            return find_missing(self.expected, self.received, now=self.clock())

    def summary(self) -> ReturnsSummary:
        with self._lock:
            return summarize(self.expected, self.received, now=self.clock())

    # ---- mutations

    def import_sheets(self, sheets: Iterable[UploadedSheet]) -> ImportReport:
        """Upsert every row with a usable barcode into ``expected``."""

        store = self._require_store()
        with self._lock:
            try:
                rows, report = build_expected_rows(
                    sheets,
                    now=self.clock(),
                    fallback_scan=self.fallback_scan,
                    min_token_length=self.min_token_length,
                )
                if not rows:
                    raise ImportEmpty(
                        "No rows with a usable barcode were found",
                        details=report.model_dump(),
                    )
                store.upsert("expected", rows)
            except ReturnsError as exc:
                self._fail(exc, "Import failed")
                raise
            logger.info("import.completed", extra={"extra_data": report.model_dump()})
            self.refresh()
            self.status = f"Imported {report.written} rows ({report.skipped} skipped)"
            return report

    def record_scan(self, raw: str) -> ReceivedItem | None:
        """Mark a parcel received; values without digits are ignored silently."""

        code = normalize_barcode(raw)
        if not code:
            return None
        store = self._require_store()
        with self._lock:
            item = ReceivedItem(barcode=code, added_at=self.clock())
            try:
                store.upsert("received", [{"barcode": code, "added_at": item.added_at.isoformat()}])
            except ReturnsError as exc:
                self._fail(exc)
                raise
            self.last_code = code
            logger.info("scan.recorded", extra={"extra_data": {"barcode": code}})
            self.refresh()
            return item

    def delete(self, table: Table, barcodes: Iterable[str]) -> int:
        """Delete rows by barcode; both the given and canonical spellings match."""

        requested = [raw for raw in barcodes if str(raw).strip()]
        codes: list[str] = []
        for raw in requested:
            for candidate in (str(raw).strip(), normalize_barcode(raw)):
                if candidate and candidate not in codes:
                    codes.append(candidate)
        store = self._require_store()
        with self._lock:
            try:
                store.delete(table, codes)
            except ReturnsError as exc:
                self._fail(exc)
                raise
            logger.info("records.deleted", extra={"extra_data": {"table": table, "barcodes": codes}})
            self.refresh()
            return len(requested)

    def clear(self, tables: Iterable[Table]) -> None:
        store = self._require_store()
        with self._lock:
            for table in tables:
                try:
                    store.delete_all(table)
                except ReturnsError as exc:
                    self._fail(exc)
                    raise
                logger.info("records.cleared", extra={"extra_data": {"table": table}})
            self.refresh()

    def close(self) -> None:
        if self.store is not None:
            self.store.close()
