"""
Shared pytest fixtures for the passgen test suite.

Autouse fixtures below isolate tests from the host:
  - Audit logger  -> temp directory  (keeps ./audit_logs clean)
  - KV backends   -> fresh cache     (memory backends do not leak between tests)
  - Settings      -> reset           (no PASSGEN_* values from the environment)
"""

import pytest

from passgen.core.config import PassgenSettings, set_settings
from passgen.kv.factory import reset_stores
from passgen.kv.memory_store import MemoryStore
from passgen.lifecycle import PasswordLifecycleManager


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test."""
    import passgen.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    orig_init = audit_mod.AuditLogger.__init__

    def patched_init(self, log_dir=None):
        orig_init(self, log_dir=log_dir or tmp_path / "audit_logs")

    monkeypatch.setattr(audit_mod.AuditLogger, "__init__", patched_init)

    yield

    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_backends():
    reset_stores()
    set_settings(None)
    yield
    reset_stores()
    set_settings(None)


@pytest.fixture
def kv_options():
    """libkv-style options selecting a shared memory backend."""
    return {
        "app_id": "passgen",
        "environment": "production",
        "softfail": False,
        "backend": "default",
        "backends": {"default": {"type": "memory", "id": "test"}},
    }


@pytest.fixture
def settings(tmp_path, kv_options):
    """Settings rooted in a temp vardir, backed by the memory store."""
    return PassgenSettings(
        vardir=str(tmp_path / "var"),
        environment="production",
        kv_options=kv_options,
    )


@pytest.fixture
def store():
    return MemoryStore(store_id="test", environment="production")


@pytest.fixture
def manager(store, settings):
    return PasswordLifecycleManager(store, settings=settings)


@pytest.fixture
def legacy_dir(settings):
    """Legacy password directory for the settings' environment."""
    key_dir = settings.legacy_key_dir()
    key_dir.mkdir(parents=True)
    return key_dir
