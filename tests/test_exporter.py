"""Missing / Received workbook exports."""

import sys
from datetime import date, datetime, timezone
from io import BytesIO
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from returntrack.schemas.returns import MissingItem, ReceivedItem
from returntrack.services.exporter import (
    MISSING_COLUMNS,
    RECEIVED_COLUMNS,
    build_missing_excel,
    build_received_excel,
    missing_filename,
    received_filename,
)


def test_filenames_carry_the_date():
    assert missing_filename(date(2024, 6, 10)) == "Eksik_Iadeler_2024-06-10.xlsx"
    assert received_filename(date(2024, 6, 10)) == "Gelen_Iadeler_2024-06-10.xlsx"


def test_missing_export_columns_and_local_time():
    items = [
        MissingItem(
            barcode="123",
            name="Ayşe",
            phone="555",
            added_at=datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc),
            days_pending=9,
        )
    ]
    content = build_missing_excel(items, tz="Europe/Istanbul")
    frame = pd.read_excel(BytesIO(content), sheet_name="EksikIadeler", dtype=str)
    assert list(frame.columns) == MISSING_COLUMNS
    record = frame.iloc[0].to_dict()
    assert record["BARKOD_NO"] == "123"
    assert record["ALICI_ISIM"] == "Ayşe"
    assert record["KAC_GUNDUR_GELMEDI"] == "9"
    assert record["ILK_YUKLEME_TARIHI"] == "01.06.2024 12:00"


def test_empty_received_export_still_has_headers():
    content = build_received_excel([], tz="Europe/Istanbul")
    frame = pd.read_excel(BytesIO(content), sheet_name="GelenIadeler")
    assert list(frame.columns) == RECEIVED_COLUMNS
    assert frame.empty


def test_received_export_rows():
    items = [ReceivedItem(barcode="77", added_at=datetime(2024, 6, 2, 21, 30, tzinfo=timezone.utc))]
    frame = pd.read_excel(BytesIO(build_received_excel(items, tz="Europe/Istanbul")), dtype=str)
    assert frame.iloc[0]["BARKOD_NO"] == "77"
    assert frame.iloc[0]["OKUNDUGU_TARIH"] == "03.06.2024 00:30"
