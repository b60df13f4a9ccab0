"""Barcode canonicalisation and digit-token discovery."""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from returntrack.core.barcodes import find_digit_token, is_valid_barcode, normalize_barcode


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("000123", "123"),
        ("123", "123"),
        (" 12-34 56 ", "123456"),
        ("AB000987", "987"),
        (123456.0, "123456"),
        ("7260000123.0", "72600001230"),
        (42, "42"),
        ("", ""),
        ("0000", ""),
        ("abc", ""),
        (None, ""),
    ],
)
def test_normalize_barcode(raw, expected):
    assert normalize_barcode(raw) == expected


def test_normalize_is_idempotent():
    once = normalize_barcode("  00-4455 66 ")
    assert normalize_barcode(once) == once


def test_fractional_and_nan_floats_are_not_barcodes():
    assert normalize_barcode(12.5) == ""
    assert normalize_barcode(float("nan")) == ""
    assert not is_valid_barcode(True)


def test_find_digit_token_picks_first_long_numeric_token():
    values = ["Ali Veli", "ref 123", "Kargo 7260001234 teslim", "99887766"]
    assert find_digit_token(values) == "7260001234"


def test_find_digit_token_respects_min_length():
    assert find_digit_token(["12345", "abc"], min_length=6) is None
    assert find_digit_token(["12345"], min_length=5) == "12345"


def test_find_digit_token_ignores_mixed_tokens():
    assert find_digit_token(["AB123456", "123-456789"]) is None


@pytest.mark.parametrize(
    "left, right",
    [
        ("12.0", "120"),
        ("120", "1-2-0"),
        ("0012 34", "1234"),
        ("7260.001.234", "7260001234"),
    ],
)
def test_values_differing_only_in_separators_match(left, right):
    assert normalize_barcode(left) == normalize_barcode(right)
