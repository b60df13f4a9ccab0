"""PostgREST record store against a mocked transport."""

import json
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from returntrack.core.errors import StoreError
from returntrack.stores import RestReturnsStore


def _store(handler, **kwargs):
    return RestReturnsStore(
        "https://demo.supabase.co/",
        "anon-key",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_select_all_sends_key_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["select"] = request.url.params["select"]
        seen["apikey"] = request.headers["apikey"]
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json=[{"barcode": "1", "isim": "Ali"}])

    rows = _store(handler).select_all("expected")
    assert rows == [{"barcode": "1", "isim": "Ali"}]
    assert seen["path"] == "/rest/v1/expected"
    assert seen["select"] == "*"
    assert seen["apikey"] == "anon-key"
    assert seen["auth"] == "Bearer anon-key"


def test_upsert_merges_on_barcode():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["prefer"] = request.headers["Prefer"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201)

    _store(handler, table_names={"received": "gelen"}).upsert("received", [{"barcode": "9", "added_at": "x"}])
    assert seen["params"] == {"on_conflict": "barcode"}
    assert "resolution=merge-duplicates" in seen["prefer"]
    assert seen["body"] == [{"barcode": "9", "added_at": "x"}]


def test_delete_builds_in_filter_and_delete_all_filters_non_null():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path, request.url.params["barcode"]))
        return httpx.Response(204)

    store = _store(handler)
    store.delete("expected", ["1", "22"])
    store.delete_all("received")
    assert calls == [
        ("DELETE", "/rest/v1/expected", 'in.("1","22")'),
        ("DELETE", "/rest/v1/received", "not.is.null"),
    ]


def test_empty_batches_do_not_hit_the_network():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not run
        raise AssertionError("unexpected request")

    store = _store(handler)
    store.upsert("expected", [])
    store.delete("expected", [])


def test_backend_errors_become_store_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid API key"})

    with pytest.raises(StoreError) as excinfo:
        _store(handler).select_all("expected")
    assert excinfo.value.message == "Invalid API key"
    assert excinfo.value.details == {"status": 401, "table": "expected"}


def test_transport_failures_become_store_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(StoreError):
        _store(handler).upsert("expected", [{"barcode": "1"}])
