"""Date formatting shared by the operator page and the spreadsheet exports.

Timestamps travel as UTC ISO strings between us and the record store. Before
an operator sees one (in a table cell or an exported workbook) it is converted
to the configured local timezone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import partial
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from .config import AppSettings

DEFAULT_DT_FORMAT = "%d.%m.%Y %H:%M"


def to_local(value: Any, tz: str | None) -> datetime | None:
    """Convert strings or naive datetimes into aware datetimes in ``tz``.

    Naive values are assumed to be UTC since that is how the store writes them.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    if tz:
        dt = dt.astimezone(ZoneInfo(tz))
    return dt


def fmt_dt(value: Any, tz: str | None = None, fmt: str = DEFAULT_DT_FORMAT) -> str:
    """Format a timestamp for people; unknown values become an empty cell."""

    dt = to_local(value, tz)
    return dt.strftime(fmt) if dt else ""


def _fmt_days(value: Any) -> str:
    if value is None or value == "":
        return ""
    return str(value)


def get_templates(settings: AppSettings) -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with our standard filters registered."""

    templates = Jinja2Templates(directory=str(settings.templates_dir))
    env = templates.env
    env.filters["fmt_dt"] = partial(fmt_dt, tz=settings.TZ)
    env.filters["fmt_days"] = _fmt_days
    return templates
