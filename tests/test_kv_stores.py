"""Tests for the passgen.kv backends and backend selection.

Covers:
  - Record/folder semantics shared by the memory, file and sqlite stores
  - Environment prefixing and bind()
  - Softfail behaviour
  - Fernet encryption at rest in the file store
  - build_store() configuration errors and backend caching
"""

import json

import pytest
from cryptography.fernet import Fernet

from passgen.core.exceptions import BackendError, ConfigurationError, ValidationError
from passgen.kv import (
    FileStore,
    KVListing,
    KVRecord,
    KVStore,
    MemoryStore,
    SQLiteStore,
    build_store,
    register_backend_type,
)
from passgen.kv.factory import BACKEND_TYPES


@pytest.fixture(params=["memory", "file", "sqlite"])
def kv_store(request, tmp_path):
    """Each local backend, bound to the "production" environment."""
    if request.param == "memory":
        store = MemoryStore(environment="production")
    elif request.param == "file":
        store = FileStore(tmp_path / "kv", environment="production")
    else:
        store = SQLiteStore(tmp_path / "kv.db", environment="production")
    yield store
    store.close()


class FailingStore(KVStore):
    """Backend whose every call raises."""

    type_name = "failing"

    def _fail(self, *args):
        raise OSError("disk on fire")

    _exists = _get = _put = _list = _delete = _delete_tree = _fail


# ── Shared contract ──────────────────────────────────────────────────

class TestStoreContract:

    def test_get_missing(self, kv_store):
        assert kv_store.get("gen_passwd/nope") is None
        assert kv_store.exists("gen_passwd/nope") is False

    def test_put_get(self, kv_store):
        kv_store.put("gen_passwd/db", {"password": "pw", "salt": "s"}, {"complexity": 1})
        record = kv_store.get("gen_passwd/db")
        assert record == KVRecord({"password": "pw", "salt": "s"}, {"complexity": 1})
        assert kv_store.exists("gen_passwd/db")

    def test_put_replaces_metadata(self, kv_store):
        kv_store.put("gen_passwd/db", {"password": "pw"}, {"complexity": 1})
        kv_store.put("gen_passwd/db", {"password": "pw2"})
        record = kv_store.get("gen_passwd/db")
        assert record.value == {"password": "pw2"}
        assert record.metadata == {}

    def test_folder_exists(self, kv_store):
        kv_store.put("gen_passwd/app/db", {"password": "pw"})
        assert kv_store.exists("gen_passwd")
        assert kv_store.exists("gen_passwd/app")

    def test_list_immediate_children(self, kv_store):
        kv_store.put("gen_passwd/db", {"password": "a"})
        kv_store.put("gen_passwd/db.last", {"password": "b"})
        kv_store.put("gen_passwd/app/web", {"password": "c"})
        listing = kv_store.list("gen_passwd")
        assert sorted(listing.keys) == ["db", "db.last"]
        assert listing.keys["db"].value == {"password": "a"}
        assert listing.folders == ["app"]

    def test_key_and_folder_coexist(self, kv_store):
        kv_store.put("gen_passwd/app", {"password": "a"})
        kv_store.put("gen_passwd/app/db", {"password": "b"})
        assert kv_store.get("gen_passwd/app").value == {"password": "a"}
        assert kv_store.get("gen_passwd/app/db").value == {"password": "b"}

    def test_list_missing_folder_is_empty(self, kv_store):
        assert not kv_store.list("gen_passwd/none")

    def test_delete(self, kv_store):
        kv_store.put("gen_passwd/db", {"password": "a"})
        kv_store.delete("gen_passwd/db")
        assert kv_store.get("gen_passwd/db") is None
        # Deleting again is not an error
        kv_store.delete("gen_passwd/db")

    def test_delete_tree(self, kv_store):
        kv_store.put("gen_passwd/app/db", {"password": "a"})
        kv_store.put("gen_passwd/app/web", {"password": "b"})
        kv_store.put("gen_passwd/other", {"password": "c"})
        kv_store.delete_tree("gen_passwd/app")
        assert not kv_store.exists("gen_passwd/app")
        assert kv_store.get("gen_passwd/other") is not None

    def test_environments_are_isolated(self, kv_store):
        kv_store.put("gen_passwd/db", {"password": "prod"})
        dev = kv_store.bind(environment="dev")
        assert dev.get("gen_passwd/db") is None
        dev.put("gen_passwd/db", {"password": "dev"})
        assert kv_store.get("gen_passwd/db").value == {"password": "prod"}

        top = kv_store.bind(environment="")
        assert top.list("").folders == ["dev", "production"]
        assert top.get("production/gen_passwd/db").value == {"password": "prod"}

    @pytest.mark.parametrize("key", ["a/../b", "a//b", "./a"])
    def test_traversal_rejected(self, kv_store, key):
        with pytest.raises(ValidationError):
            kv_store.get(key)


# ── Softfail ─────────────────────────────────────────────────────────

class TestSoftfail:

    def test_errors_wrapped(self):
        store = FailingStore(environment="production")
        with pytest.raises(BackendError, match="disk on fire"):
            store.get("gen_passwd/db")

    def test_softfail_returns_defaults(self, caplog):
        store = FailingStore(environment="production", softfail=True)
        assert store.get("gen_passwd/db") is None
        assert store.exists("gen_passwd/db") is False
        assert store.put("gen_passwd/db", {"password": "pw"}) is False
        assert store.list("gen_passwd") == KVListing()
        assert "Softfail" in caplog.text

    def test_bind_toggles_softfail(self):
        store = FailingStore()
        assert store.bind(softfail=True).get("x") is None
        with pytest.raises(BackendError):
            store.get("x")


# ── File store specifics ─────────────────────────────────────────────

class TestFileStore:

    def test_layout_and_mode(self, tmp_path):
        store = FileStore(tmp_path / "kv", environment="production")
        store.put("gen_passwd/db", {"password": "pw", "salt": "s"})
        path = tmp_path / "kv" / "production" / "gen_passwd" / "db.json"
        assert json.loads(path.read_text())["value"] == {"password": "pw", "salt": "s"}
        assert path.stat().st_mode & 0o777 == 0o640
        assert not list(path.parent.glob(".*.tmp"))

    def test_encrypted_at_rest(self, tmp_path):
        key = Fernet.generate_key()
        store = FileStore(tmp_path / "kv", environment="production", encryption_key=key)
        store.put("gen_passwd/db", {"password": "very-secret", "salt": "s"})
        raw = (tmp_path / "kv" / "production" / "gen_passwd" / "db.json").read_bytes()
        assert b"very-secret" not in raw
        assert store.get("gen_passwd/db").value["password"] == "very-secret"

    def test_wrong_key_is_backend_error(self, tmp_path):
        FileStore(tmp_path / "kv", encryption_key=Fernet.generate_key()).put(
            "gen_passwd/db", {"password": "pw"}
        )
        other = FileStore(tmp_path / "kv", encryption_key=Fernet.generate_key())
        with pytest.raises(BackendError, match="decrypt"):
            other.get("gen_passwd/db")


# ── Backend selection ────────────────────────────────────────────────

class TestBuildStore:

    def test_memory_backend_is_shared(self, kv_options):
        build_store(kv_options).put("gen_passwd/db", {"password": "pw"})
        assert build_store(kv_options).get("gen_passwd/db").value == {"password": "pw"}

    def test_bound_to_environment(self, kv_options):
        store = build_store(kv_options)
        assert store.environment == "production"
        assert store.softfail is False

    def test_file_backend(self, tmp_path):
        store = build_store({
            "environment": "production",
            "backends": {"default": {"type": "file", "path": str(tmp_path / "kv")}},
        })
        assert isinstance(store, FileStore)

    def test_undefined_backend(self, kv_options):
        kv_options["backend"] = "missing"
        with pytest.raises(ConfigurationError, match="KV Configuration Error"):
            build_store(kv_options)

    def test_unknown_type(self, kv_options):
        kv_options["backends"]["default"]["type"] = "consul"
        with pytest.raises(ConfigurationError, match="consul"):
            build_store(kv_options)

    def test_file_backend_requires_path(self):
        with pytest.raises(ConfigurationError):
            build_store({"backends": {"default": {"type": "file"}}})

    def test_register_backend_type(self, monkeypatch):
        monkeypatch.setitem(BACKEND_TYPES, "custom", lambda conf: MemoryStore("custom"))
        register_backend_type("custom", BACKEND_TYPES["custom"])
        store = build_store({"backends": {"default": {"type": "custom"}}})
        assert store.store_id == "custom"
