"""Expected vs. received reconciliation."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from ..core.barcodes import normalize_barcode
from ..schemas.returns import ExpectedItem, MissingItem, ReceivedItem, ReturnsSummary

SECONDS_PER_DAY = 86400


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def days_pending(added_at: datetime | None, now: datetime | None = None) -> int | None:
    """Whole days elapsed since ``added_at``; ``None`` when it is unknown."""

    if added_at is None:
        return None
    now = now or _utcnow()
    if added_at.tzinfo is None:
        added_at = added_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int((now - added_at).total_seconds() // SECONDS_PER_DAY)


def find_missing(
    expected: Iterable[ExpectedItem],
    received: Iterable[ReceivedItem],
    now: datetime | None = None,
) -> list[MissingItem]:
    """Return expected items with no received item of equal canonical barcode.

    Both sides are normalized here, so rows stored with raw formatting still
    match. The result is ordered by ``days_pending`` descending; unknown ages
    sort as zero and ties keep their input order.
    """

    now = now or _utcnow()
    received_codes = {normalize_barcode(item.barcode) for item in received}
    received_codes.discard("")

    missing: list[MissingItem] = []
    for item in expected:
        code = normalize_barcode(item.barcode)
        if not code or code in received_codes:
            continue
        missing.append(
            MissingItem(
                barcode=item.barcode,
                name=item.name,
                phone=item.phone,
                added_at=item.added_at,
                days_pending=days_pending(item.added_at, now),
            )
        )
    missing.sort(key=lambda m: m.days_pending or 0, reverse=True)
    return missing


def summarize(
    expected: list[ExpectedItem],
    received: list[ReceivedItem],
    now: datetime | None = None,
) -> ReturnsSummary:
    """Dashboard counts plus the missing list."""

    missing = find_missing(expected, received, now=now)
    return ReturnsSummary(
        expected=len(expected),
        received=len(received),
        missing=len(missing),
        items=missing,
    )
