"""Barcode normalisation helpers explained for newcomers.

The same parcel label reaches us in many shapes: a spreadsheet cell holding
``"000123 456"``, a float such as ``123456.0`` that Excel produced, or a
camera read with a stray check prefix. These helpers reveal *what* the
canonical form is (digits only, no leading zeros), *when* it is applied (on
import, on every scan and before every comparison), and *how* an empty result
marks a value as unusable.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

__all__ = ["normalize_barcode", "find_digit_token", "is_valid_barcode"]


_NON_DIGIT_RE = re.compile(r"[^0-9]")
_WHITESPACE_RE = re.compile(r"\s+")


def _as_text(raw: Any) -> str:
    """Turn spreadsheet/JSON cell values into the text the operator typed."""

    if raw is None:
        return ""
    if isinstance(raw, bool):
        return ""
    if isinstance(raw, int):
        return str(raw)
    if isinstance(raw, float):
        if raw != raw or not raw.is_integer():  # NaN or a fractional number
            return ""
        return str(int(raw))
    return str(raw)


def normalize_barcode(raw: Any) -> str:
    """Return the canonical representation of a barcode value.

    * Drops every character that is not a digit (spaces, dashes, letters).
    * Strips leading zeros so ``"000123"`` and ``"123"`` are the same parcel.
    * Returns ``""`` for empty, digit-free or all-zero input; callers treat the
      empty string as "no barcode".
    """

    digits = _NON_DIGIT_RE.sub("", _as_text(raw))
    return digits.lstrip("0")


def is_valid_barcode(raw: Any) -> bool:
    """True when ``raw`` normalizes to a non-empty canonical barcode."""

    return bool(normalize_barcode(raw))


def find_digit_token(values: Iterable[Any], min_length: int = 6) -> str | None:
    """Return the first purely-numeric token of at least ``min_length`` chars.

    Each value is split on whitespace; the first token made only of digits wins.
    Used when a spreadsheet row has no recognizable barcode column.
    """

    for value in values:
        text = _as_text(value).strip()
        if not text:
            continue
        for token in _WHITESPACE_RE.split(text):
            if len(token) >= min_length and token.isascii() and token.isdigit():
                return token
    return None
