"""Missing / Received spreadsheet reports."""

from __future__ import annotations

from datetime import date
from io import BytesIO
from typing import Iterable

import pandas as pd

from ..core.jinja import fmt_dt
from ..schemas.returns import MissingItem, ReceivedItem

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MISSING_COLUMNS = [
    "BARKOD_NO",
    "ALICI_ISIM",
    "ALICI_TELEFON",
    "KAC_GUNDUR_GELMEDI",
    "ILK_YUKLEME_TARIHI",
]
RECEIVED_COLUMNS = ["BARKOD_NO", "OKUNDUGU_TARIH"]


def missing_filename(today: date | None = None) -> str:
    return f"Eksik_Iadeler_{(today or date.today()).isoformat()}.xlsx"


def received_filename(today: date | None = None) -> str:
    return f"Gelen_Iadeler_{(today or date.today()).isoformat()}.xlsx"


def _workbook(rows: list[dict[str, object]], columns: list[str], sheet_name: str) -> bytes:
    frame = pd.DataFrame(rows, columns=columns)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name=sheet_name)
    return buffer.getvalue()


def build_missing_excel(items: Iterable[MissingItem], tz: str | None = None) -> bytes:
    rows = [
        {
            "BARKOD_NO": item.barcode,
            "ALICI_ISIM": item.name,
            "ALICI_TELEFON": item.phone,
            "KAC_GUNDUR_GELMEDI": item.days_pending,
            "ILK_YUKLEME_TARIHI": fmt_dt(item.added_at, tz),
        }
        for item in items
    ]
    return _workbook(rows, MISSING_COLUMNS, "EksikIadeler")


def build_received_excel(items: Iterable[ReceivedItem], tz: str | None = None) -> bytes:
    rows = [
        {"BARKOD_NO": item.barcode, "OKUNDUGU_TARIH": fmt_dt(item.added_at, tz)}
        for item in items
    ]
    return _workbook(rows, RECEIVED_COLUMNS, "GelenIadeler")
