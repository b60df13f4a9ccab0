"""PostgREST (Supabase) implementation of the record store."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import httpx

from ..core.errors import StoreError
from .base import ReturnsStore, Table

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("message", "error_description", "error", "hint"):
            value = payload.get(key)
            if value:
                return str(value)
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


class RestReturnsStore(ReturnsStore):
    """Talks to ``<base_url>/rest/v1/<table>`` with an API key."""

    backend = "rest"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        table_names: dict[str, str] | None = None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.table_names = {"expected": "expected", "received": "received"}
        if table_names:
            self.table_names.update(table_names)
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def _path(self, table: Table) -> str:
        return f"/{self.table_names[table]}"

    def _send(self, method: str, table: Table, context: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, self._path(table), **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Store %s on %s failed: %s", context, table, exc)
            raise StoreError(f"Backend unreachable: {exc}") from exc
        if response.status_code in {401, 403}:
            logger.warning("Store authentication failed for %s on %s", context, table)
        if response.is_error:
            message = _error_message(response)
            logger.error("Store %s on %s returned %s: %s", context, table, response.status_code, message)
            raise StoreError(message, details={"status": response.status_code, "table": table})
        return response

    def select_all(self, table: Table) -> list[dict[str, Any]]:
        response = self._send("GET", table, "select", params={"select": "*"})
        data = response.json()
        if not isinstance(data, list):
            raise StoreError(f"Unexpected payload from {table}: {type(data).__name__}")
        return data

    def upsert(self, table: Table, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        self._send(
            "POST",
            table,
            "upsert",
            params={"on_conflict": "barcode"},
            json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    def delete(self, table: Table, barcodes: Iterable[str]) -> None:
        codes = [code for code in barcodes if code]
        if not codes:
            return
        in_list = ",".join(_quote(code) for code in codes)
        self._send("DELETE", table, "delete", params={"barcode": f"in.({in_list})"})

    def delete_all(self, table: Table) -> None:
        # PostgREST refuses an unfiltered DELETE; every row has a barcode.
        self._send("DELETE", table, "delete_all", params={"barcode": "not.is.null"})

    def close(self) -> None:
        self._client.close()
