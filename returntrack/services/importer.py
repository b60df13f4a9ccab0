"""Spreadsheet ingestion: file bytes -> mapped rows -> upsert payload."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import PurePath
from typing import Any, Iterable

import pandas as pd

from ..core.errors import SpreadsheetError
from ..core.headers import (
    BARCODE_ALIASES,
    NAME_ALIASES,
    PHONE_ALIASES,
    map_row,
    normalize_header,
)
from ..schemas.returns import ImportReport

logger = logging.getLogger(__name__)

HEADER_TOKENS = set(BARCODE_ALIASES) | set(NAME_ALIASES) | set(PHONE_ALIASES)
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_ENCODINGS = ("utf-8-sig", "cp1254", "latin-1")


@dataclass
class UploadedSheet:
    filename: str
    content: bytes


def _read_frame(sheet: UploadedSheet) -> pd.DataFrame:
    """Read the first sheet without a header; every cell comes back as text."""

    suffix = PurePath(sheet.filename or "").suffix.lower()
    buffer = BytesIO(sheet.content)
    try:
        if suffix in EXCEL_SUFFIXES or not suffix:
            return pd.read_excel(buffer, sheet_name=0, header=None, dtype=str, keep_default_na=False)
        if suffix in {".csv", ".txt"}:
            last_error: Exception | None = None
            for encoding in CSV_ENCODINGS:
                buffer.seek(0)
                try:
                    return pd.read_csv(
                        buffer,
                        header=None,
                        dtype=str,
                        keep_default_na=False,
                        sep=None,
                        engine="python",
                        encoding=encoding,
                    )
                except UnicodeDecodeError as exc:
                    last_error = exc
            raise SpreadsheetError(f"{sheet.filename}: unsupported text encoding") from last_error
    except SpreadsheetError:
        raise
    except Exception as exc:
        logger.warning("Could not parse %s: %s", sheet.filename, exc)
        raise SpreadsheetError(f"{sheet.filename}: could not read spreadsheet ({exc})") from exc
    raise SpreadsheetError(f"{sheet.filename}: unsupported file type {suffix!r}")


def _detect_header_row(frame: pd.DataFrame, max_scan: int = 20) -> int:
    """Index of the first row that holds a known header; title rows are skipped."""

    for idx in range(min(max_scan, len(frame))):
        tokens = {normalize_header(value) for value in frame.iloc[idx].tolist() if str(value).strip()}
        if tokens & HEADER_TOKENS:
            return idx
    return 0


def _header_names(values: Iterable[Any]) -> list[str]:
    names: list[str] = []
    seen: dict[str, int] = {}
    for position, value in enumerate(values):
        name = str(value).strip() or f"column_{position + 1}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        names.append(name)
    return names


def read_sheet_rows(sheet: UploadedSheet) -> list[dict[str, Any]]:
    """Return the data rows of ``sheet`` as header -> cell dicts."""

    frame = _read_frame(sheet)
    if frame.empty:
        return []
    header_idx = _detect_header_row(frame)
    columns = _header_names(frame.iloc[header_idx].tolist())
    body = frame.iloc[header_idx + 1 :]
    rows: list[dict[str, Any]] = []
    for values in body.itertuples(index=False, name=None):
        if not any(str(value).strip() for value in values):
            continue
        rows.append(dict(zip(columns, values)))
    return rows


def build_expected_rows(
    sheets: Iterable[UploadedSheet],
    *,
    now: datetime,
    fallback_scan: bool = True,
    min_token_length: int = 6,
) -> tuple[list[dict[str, Any]], ImportReport]:
    """Map every row of every sheet; return the upsert payload and a report.

    Later rows win when one batch repeats a barcode, mirroring what a second
    import of the same parcel does.
    """

    added_at = now.isoformat()
    payload: dict[str, dict[str, Any]] = {}
    files = rows = skipped = 0
    for sheet in sheets:
        files += 1
        sheet_rows = read_sheet_rows(sheet)
        sheet_skipped = 0
        for raw in sheet_rows:
            rows += 1
            mapped = map_row(raw, fallback_scan=fallback_scan, min_token_length=min_token_length)
            if mapped is None:
                skipped += 1
                sheet_skipped += 1
                continue
            payload.pop(mapped.barcode, None)
            payload[mapped.barcode] = {
                "barcode": mapped.barcode,
                "name": mapped.name,
                "phone": mapped.phone,
                "added_at": added_at,
            }
        logger.info(
            "import.sheet_parsed",
            extra={
                "extra_data": {
                    "file": sheet.filename,
                    "rows": len(sheet_rows),
                    "skipped": sheet_skipped,
                }
            },
        )

    report = ImportReport(
        files=files,
        rows=rows,
        written=rows - skipped,
        skipped=skipped,
        unique=len(payload),
    )
    return list(payload.values()), report
