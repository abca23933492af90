"""
Tests for the FastAPI application — api/app.py, api/engines.py and
api/routes/dashboards.py.

Each test builds an app around an EngineRegistry backed by the in-memory
fixture tables, so no data source is contacted.
"""
import sys
import time
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient

from api.app import create_app
from api.engines import EngineRegistry
from engine.source import MemorySource
from utils.config import LoaderConfig

BASE = "/api/v1/dashboards"
TRANSPORT = "Department of Transportation"


@pytest.fixture()
def registry(memory_source):
    reg = EngineRegistry(
        memory_source,
        loader_config=LoaderConfig(page_size=2, max_retries=0),
        ttl_seconds=60,
    )
    yield reg
    reg.close()


@pytest.fixture()
def client(registry):
    return TestClient(create_app(registry=registry))


# ── app factory ───────────────────────────────────────────────────────────────

class TestCreateApp:
    def test_metadata(self, registry):
        app = create_app(registry=registry)
        assert app.title == "Fiscal Dashboards API"
        assert app.version == "1.0.0"

    def test_routes_registered(self, registry):
        paths = {getattr(r, "path", "") for r in create_app(registry=registry).routes}
        assert "/health" in paths
        assert BASE in paths
        assert BASE + "/{dataset}" in paths

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["datasets"] == ["capital", "discretionary", "revenue"]
        assert body["engine_cache"] == {"hits": 0, "misses": 0, "size": 0}

    def test_health_counts_engine_reuse(self, client):
        client.get(f"{BASE}/capital", params={"wait": 5})
        client.get(f"{BASE}/capital", params={"wait": 5})
        stats = client.get("/health").json()["engine_cache"]
        assert stats["size"] == 1
        assert stats["misses"] == 1
        assert stats["hits"] >= 1

    def test_request_id_header(self, client):
        assert "X-Request-ID" in client.get("/health").headers

    def test_unknown_route_is_json_404(self, client):
        resp = client.get("/api/v1/nothing-here")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Not found"


# ── listing and summary ───────────────────────────────────────────────────────

class TestDashboards:
    def test_list(self, client):
        resp = client.get(BASE)
        assert resp.status_code == 200
        names = [d["name"] for d in resp.json()]
        assert names == ["capital", "discretionary", "revenue"]
        assert all(d["status"] in ("loading", "ready") for d in resp.json())

    def test_summary(self, client):
        resp = client.get(f"{BASE}/capital", params={"wait": 5})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ready"
        assert body["grand_total"] == 3_900_000.0
        assert body["grand_total_compact"] == "$3.9M"
        assert body["total_items"] == 4
        assert [g["name"] for g in body["groups"]] == [
            TRANSPORT, "Department of Health", "Unknown",
        ]
        top = body["groups"][0]
        assert top["count"] == 2
        assert top["total_compact"] == "$3.5M"
        assert top["pct_of_total"] == 89.7
        assert body["load"]["status"] == "completed"
        assert body["load"]["rows_loaded"] == 4

    def test_summary_limit_keeps_totals(self, client):
        body = client.get(f"{BASE}/capital", params={"wait": 5, "limit": 1}).json()
        assert len(body["groups"]) == 1
        assert body["grand_total"] == 3_900_000.0

    def test_invalid_limit_rejected(self, client):
        assert client.get(f"{BASE}/capital", params={"limit": 0}).status_code == 422

    def test_unknown_dataset(self, client):
        resp = client.get(f"{BASE}/pensions")
        assert resp.status_code == 404
        body = resp.json()
        assert body["error"] == "Not found"
        assert "pensions" in body["detail"]

    def test_failed_load_reported(self):
        reg = EngineRegistry(MemorySource({}), loader_config=LoaderConfig(max_retries=0))
        try:
            body = TestClient(create_app(registry=reg)).get(
                f"{BASE}/revenue", params={"wait": 5}).json()
        finally:
            reg.close()
        assert body["status"] == "failed"
        assert "unknown table" in body["error"]
        assert body["groups"] == []
        assert body["load"]["status"] == "failed"
        assert body["load"]["errors"]


# ── drill-down and context ────────────────────────────────────────────────────

class TestGroupEndpoints:
    def test_items_sorted(self, client):
        resp = client.get(f"{BASE}/capital/groups/{TRANSPORT}/items", params={"wait": 5})
        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 2
        assert [i["recommended"] for i in body["items"]] == [2_000_000.0, 1_500_000.0]

    def test_items_unknown_group_is_empty(self, client):
        body = client.get(f"{BASE}/capital/groups/Nobody/items", params={"wait": 5}).json()
        assert body["count"] == 0
        assert body["items"] == []

    def test_grant_items(self, client):
        body = client.get(f"{BASE}/discretionary/groups/Parks/items",
                          params={"wait": 5}).json()
        assert [i["grantee"] for i in body["items"]] == ["Friends of the Park", "Town of Ithaca"]

    def test_context(self, client):
        resp = client.get(f"{BASE}/capital/groups/{TRANSPORT}/context",
                          params={"wait": 5, "top": 1})
        assert resp.status_code == 200
        lines = resp.json()["context"].splitlines()
        assert lines[0] == f"Agency: {TRANSPORT}"
        assert lines[-1] == "- Rail yard: $2.0M"

    def test_context_unknown_group(self, client):
        resp = client.get(f"{BASE}/capital/groups/Nobody/context", params={"wait": 5})
        assert resp.status_code == 404

    def test_reload_starts_new_engine(self, client, registry):
        client.get(f"{BASE}/capital", params={"wait": 5})
        first = registry.get("capital")
        resp = client.post(f"{BASE}/capital/reload")
        assert resp.status_code == 200
        assert resp.json()["status"] in ("loading", "ready")
        assert registry.get("capital") is not first
        assert first.status().error == "closed"


# ── registry ──────────────────────────────────────────────────────────────────

class TestEngineRegistry:
    def test_same_engine_until_reload(self, memory_source):
        reg = EngineRegistry(memory_source, autostart=False)
        assert reg.get("capital") is reg.get("capital")
        reg.close()

    def test_unknown_dataset(self, memory_source):
        reg = EngineRegistry(memory_source, autostart=False)
        with pytest.raises(KeyError):
            reg.get("pensions")

    def test_expired_engine_closed_and_replaced(self, memory_source):
        reg = EngineRegistry(memory_source, ttl_seconds=0.05, autostart=False)
        first = reg.get("revenue")
        time.sleep(0.1)
        second = reg.get("revenue")
        assert second is not first
        assert first.status().error == "closed"
        reg.close()

    def test_close_closes_engines(self, memory_source):
        reg = EngineRegistry(memory_source, autostart=False)
        engine = reg.get("capital")
        reg.close()
        assert engine.status().error == "closed"
