"""Spreadsheet import: header detection, skipping and batch de-duplication."""

import sys
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path

import pytest
from openpyxl import Workbook

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from returntrack.core.errors import SpreadsheetError
from returntrack.services.importer import UploadedSheet, build_expected_rows, read_sheet_rows

NOW = datetime(2024, 6, 10, 9, 30, tzinfo=timezone.utc)


def _xlsx(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_import_counts_written_and_skipped_rows():
    content = _xlsx(
        [
            ["BARKOD_NO", "ALICI_ISIM", "ALICI_TELEFON"],
            ["000123", "Ayşe", "5551112233"],
            ["456", "Mehmet", ""],
            ["", "Barkodsuz Satır", "5559998877"],
            ["789", "Fatma", "5550000000"],
        ]
    )
    rows, report = build_expected_rows([UploadedSheet("iade.xlsx", content)], now=NOW)
    assert (report.files, report.rows, report.written, report.skipped) == (1, 4, 3, 1)
    assert [row["barcode"] for row in rows] == ["123", "456", "789"]
    assert "5559998877" not in [row["barcode"] for row in rows]
    assert rows[0] == {
        "barcode": "123",
        "name": "Ayşe",
        "phone": "5551112233",
        "added_at": NOW.isoformat(),
    }


def test_numeric_cells_are_read_as_barcodes():
    content = _xlsx([["Barcode", "Name"], [7260001234, "Ali"]])
    rows, _ = build_expected_rows([UploadedSheet("numbers.xlsx", content)], now=NOW)
    assert rows[0]["barcode"] == "7260001234"


def test_title_rows_above_header_are_skipped():
    content = _xlsx(
        [
            ["Haftalık İade Listesi"],
            [],
            ["Takip No", "Müşteri Adı", "GSM"],
            ["0099887766", "Ali", "555"],
        ]
    )
    rows = read_sheet_rows(UploadedSheet("report.xlsx", content))
    assert rows == [{"Takip No": "0099887766", "Müşteri Adı": "Ali", "GSM": "555"}]


def test_duplicate_barcodes_in_one_batch_keep_the_last_row():
    first = _xlsx([["BARKOD", "ISIM"], ["123", "Eski"], ["555", "Diğer"]])
    second = _xlsx([["BARKOD", "ISIM"], ["000123", "Yeni"]])
    rows, report = build_expected_rows(
        [UploadedSheet("a.xlsx", first), UploadedSheet("b.xlsx", second)], now=NOW
    )
    assert report.files == 2
    assert report.written == 3
    assert report.unique == 2
    assert {row["barcode"]: row["name"] for row in rows} == {"555": "Diğer", "123": "Yeni"}


def test_csv_with_semicolons_is_accepted():
    content = "BARKOD_NO;ISIM\n000321;Zeynep\n".encode("utf-8")
    rows, report = build_expected_rows([UploadedSheet("liste.csv", content)], now=NOW)
    assert report.written == 1
    assert rows[0]["barcode"] == "321"
    assert rows[0]["name"] == "Zeynep"


def test_unreadable_file_raises_spreadsheet_error():
    with pytest.raises(SpreadsheetError):
        build_expected_rows([UploadedSheet("broken.xlsx", b"not a workbook")], now=NOW)


def test_unsupported_suffix_raises_spreadsheet_error():
    with pytest.raises(SpreadsheetError):
        build_expected_rows([UploadedSheet("notes.pdf", b"%PDF")], now=NOW)


def test_blank_barcode_cells_are_skipped_even_with_a_phone_number():
    content = _xlsx(
        [
            ["BARKOD_NO", "ALICI_ISIM", "ALICI_TELEFON"],
            ["", "Ali", "5551234567"],
            ["000456", "Veli", "5557654321"],
        ]
    )
    rows, report = build_expected_rows([UploadedSheet("iade.xlsx", content)], now=NOW)
    assert (report.rows, report.written, report.skipped) == (2, 1, 1)
    assert [row["barcode"] for row in rows] == ["456"]
