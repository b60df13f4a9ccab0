"""Spreadsheet header matching.

Operators export return lists from several carrier and marketplace panels, and
each one spells the columns differently (``Barkod No``, ``MUS_BARKOD_NO``,
``alıcı isim``...). Header keys are folded to an upper-case ASCII identifier
and looked up in a fixed alias table per field.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Mapping

from .barcodes import find_digit_token, normalize_barcode

__all__ = [
    "BARCODE_ALIASES",
    "NAME_ALIASES",
    "PHONE_ALIASES",
    "MappedRow",
    "map_row",
    "normalize_header",
]


BARCODE_ALIASES: tuple[str, ...] = (
    "BARCODE",
    "BARKOD_NO",
    "BARKOD",
    "MUS_BARKOD_NO",
    "BARCODE_NO",
    "GONDERI_BARKOD",
    "TAKIP_NO",
)
NAME_ALIASES: tuple[str, ...] = (
    "ISIM",
    "ALICI_ISIM",
    "ALICI",
    "MUSTERI_ADI",
    "AD_SOYAD",
    "NAME",
    "CUSTOMER_NAME",
)
PHONE_ALIASES: tuple[str, ...] = (
    "TELEFON",
    "ALICI_TELEFON",
    "GSM",
    "TEL",
    "PHONE",
)

_SEPARATOR_RE = re.compile(r"[^A-Z0-9]+")
# Dotless i has no decomposition, so NFKD alone leaves it behind.
_LOCALE_FOLD = str.maketrans({"ı": "I", "İ": "I"})


@dataclass(frozen=True)
class MappedRow:
    barcode: str
    name: str
    phone: str


def normalize_header(key: Any) -> str:
    """Fold a header cell into an alias-table key.

    ``" Alıcı  İsim "`` -> ``"ALICI_ISIM"``; ``"mus-barkod.no"`` ->
    ``"MUS_BARKOD_NO"``.
    """

    text = str(key if key is not None else "").translate(_LOCALE_FOLD)
    decomposed = unicodedata.normalize("NFKD", text)
    ascii_text = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _SEPARATOR_RE.sub("_", ascii_text.upper()).strip("_")


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value).strip()


def _first_value(row: Mapping[str, Any], aliases: tuple[str, ...]) -> str:
    for alias in aliases:
        text = _cell_text(row.get(alias))
        if text:
            return text
    return ""


def map_row(
    raw_row: Mapping[Any, Any],
    *,
    fallback_scan: bool = True,
    min_token_length: int = 6,
) -> MappedRow | None:
    """Map one spreadsheet row onto ``barcode``/``name``/``phone``.

    The first barcode alias holding a non-empty value wins. Only when the row
    has no barcode column at all and ``fallback_scan`` is enabled, every cell
    is searched for a digit-only token of ``min_token_length`` or more
    characters; a blank barcode cell never borrows another column's digits.
    Rows without a usable barcode return ``None`` so the caller can count them
    as skipped.
    """

    folded: dict[str, Any] = {}
    for key, value in raw_row.items():
        # Two headers may fold to the same key; keep the first non-empty one.
        norm = normalize_header(key)
        if norm not in folded or not _cell_text(folded[norm]):
            folded[norm] = value

    barcode = normalize_barcode(_first_value(folded, BARCODE_ALIASES))
    has_barcode_column = any(alias in folded for alias in BARCODE_ALIASES)
    if not barcode and fallback_scan and not has_barcode_column:
        token = find_digit_token(raw_row.values(), min_length=min_token_length)
        barcode = normalize_barcode(token)

    if not barcode:
        return None

    return MappedRow(
        barcode=barcode,
        name=_first_value(folded, NAME_ALIASES),
        phone=_first_value(folded, PHONE_ALIASES),
    )
