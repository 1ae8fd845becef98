"""Tests for the KV service (passgen.api) and the HttpStore client.

HttpStore is driven through FastAPI's TestClient, so both ends of the
HTTP backend are exercised without a network listener.
"""

import pytest
from fastapi.testclient import TestClient

from passgen.api import kv_routes, security
from passgen.api.main import app
from passgen.core.exceptions import BackendError
from passgen.kv import HttpStore, MemoryStore
from passgen.lifecycle import PasswordLifecycleManager
from passgen.options import build_options


@pytest.fixture
def backing_store():
    """Store served by the app (clients send environment-qualified keys)."""
    store = MemoryStore(store_id="served")
    kv_routes.set_store(store)
    yield store
    kv_routes.set_store(None)


@pytest.fixture
def client(backing_store):
    security.configure_service_token("")
    yield TestClient(app)
    security._SERVICE_TOKEN = None


@pytest.fixture
def http_store(client):
    return HttpStore(client=client, environment="production")


# ── REST endpoints ───────────────────────────────────────────────────

class TestKVRoutes:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_put_and_get(self, client, backing_store):
        resp = client.put("/api/kv/record", json={
            "key": "production/gen_passwd/db",
            "value": {"password": "pw", "salt": "s"},
        })
        assert resp.status_code == 200
        assert backing_store.get("production/gen_passwd/db").value == {
            "password": "pw", "salt": "s",
        }

        resp = client.get("/api/kv/record", params={"key": "production/gen_passwd/db"})
        assert resp.json() == {"value": {"password": "pw", "salt": "s"}, "metadata": {}}

    def test_missing_record_is_404(self, client):
        resp = client.get("/api/kv/record", params={"key": "production/gen_passwd/nope"})
        assert resp.status_code == 404

    def test_traversal_is_400(self, client):
        resp = client.get("/api/kv/record", params={"key": "production/../etc"})
        assert resp.status_code == 400

    def test_list(self, client, backing_store):
        backing_store.put("production/gen_passwd/db", {"password": "a"})
        backing_store.put("production/gen_passwd/app/web", {"password": "b"})
        resp = client.get("/api/kv/list", params={"prefix": "production/gen_passwd"})
        body = resp.json()
        assert list(body["keys"]) == ["db"]
        assert body["folders"] == ["app"]

    def test_backend_failure_is_502(self, client, monkeypatch, backing_store):
        def broken(key):
            raise BackendError("backend down")

        monkeypatch.setattr(backing_store, "get", broken)
        resp = client.get("/api/kv/record", params={"key": "production/gen_passwd/db"})
        assert resp.status_code == 502


class TestServiceToken:

    def test_token_required(self, client):
        security.configure_service_token("s3cret")
        resp = client.get("/api/kv/exists", params={"key": "x"})
        assert resp.status_code == 401

    def test_wrong_token(self, client):
        security.configure_service_token("s3cret")
        resp = client.get("/api/kv/exists", params={"key": "x"},
                          headers={"X-Session-Token": "nope"})
        assert resp.status_code == 401

    def test_valid_token(self, client):
        security.configure_service_token("s3cret")
        resp = client.get("/api/kv/exists", params={"key": "x"},
                          headers={"X-Session-Token": "s3cret"})
        assert resp.status_code == 200
        assert resp.json() == {"key": "x", "exists": False}

    def test_configured_from_environment(self, monkeypatch):
        monkeypatch.setenv("PASSGEN_API_TOKEN", "from-env")
        assert security.configure_service_token() == "from-env"
        security._SERVICE_TOKEN = None


# ── HttpStore client ─────────────────────────────────────────────────

class TestHttpStore:

    def test_roundtrip_through_service(self, http_store, backing_store):
        http_store.put("gen_passwd/db", {"password": "pw", "salt": "s"}, {"complexity": 0})
        assert backing_store.get("production/gen_passwd/db").metadata == {"complexity": 0}

        record = http_store.get("gen_passwd/db")
        assert record.value == {"password": "pw", "salt": "s"}
        assert http_store.exists("gen_passwd")
        assert http_store.get("gen_passwd/missing") is None

    def test_list_and_delete(self, http_store):
        http_store.put("gen_passwd/db", {"password": "a"})
        http_store.put("gen_passwd/db.last", {"password": "b"})
        assert sorted(http_store.list("gen_passwd").keys) == ["db", "db.last"]

        http_store.delete("gen_passwd/db.last")
        assert sorted(http_store.list("gen_passwd").keys) == ["db"]

        http_store.delete_tree("gen_passwd")
        assert not http_store.exists("gen_passwd")

    def test_sends_token(self, client):
        security.configure_service_token("s3cret")
        anonymous = HttpStore(client=client, environment="production")
        with pytest.raises(BackendError, match="401"):
            anonymous.put("gen_passwd/db", {"password": "pw"})

        authorized = HttpStore(client=client, environment="production", token="s3cret")
        assert authorized.put("gen_passwd/db", {"password": "pw"}) is True

    def test_softfail_on_auth_failure(self, client):
        security.configure_service_token("s3cret")
        store = HttpStore(client=client, environment="production", softfail=True)
        assert store.get("gen_passwd/db") is None

    def test_lifecycle_over_http(self, http_store, backing_store, settings):
        manager = PasswordLifecycleManager(http_store, settings=settings)
        options = build_options()
        first = manager.get_current("db_admin", options)
        assert manager.get_current("db_admin", options) == first
        assert backing_store.get("production/gen_passwd/db_admin").value == {
            "password": first[0], "salt": first[1],
        }
