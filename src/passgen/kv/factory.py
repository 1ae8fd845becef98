"""
Backend selection from libkv-style options.

    {
        "app_id": "passgen",
        "environment": "production",
        "softfail": False,
        "backend": "default",
        "backends": {
            "default": {"type": "file", "id": "default", "path": "/var/lib/passgen/kv"},
        },
    }

Store instances are cached per backend definition so that repeated calls
in one process share state (required for the memory backend).
"""

import json
import logging
import threading
from typing import Any, Callable, Dict, Optional

from ..core.exceptions import ConfigurationError
from .base import KVStore
from .file_store import FileStore
from .http_store import HttpStore
from .memory_store import MemoryStore
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)


def _build_memory(conf: Dict[str, Any]) -> KVStore:
    return MemoryStore(store_id=conf.get("id", "default"))


def _build_file(conf: Dict[str, Any]) -> KVStore:
    if not conf.get("path"):
        raise ConfigurationError("KV Configuration Error: file backend requires 'path'")
    return FileStore(
        conf["path"],
        store_id=conf.get("id", "default"),
        encryption_key=conf.get("encryption_key"),
    )


def _build_sqlite(conf: Dict[str, Any]) -> KVStore:
    if not conf.get("path"):
        raise ConfigurationError("KV Configuration Error: sqlite backend requires 'path'")
    return SQLiteStore(conf["path"], store_id=conf.get("id", "default"))


def _build_http(conf: Dict[str, Any]) -> KVStore:
    if not conf.get("url"):
        raise ConfigurationError("KV Configuration Error: http backend requires 'url'")
    return HttpStore(
        conf["url"],
        store_id=conf.get("id", "default"),
        token=conf.get("token"),
    )


BACKEND_TYPES: Dict[str, Callable[[Dict[str, Any]], KVStore]] = {
    "memory": _build_memory,
    "file": _build_file,
    "sqlite": _build_sqlite,
    "http": _build_http,
}

_stores: Dict[str, KVStore] = {}
_stores_lock = threading.Lock()


def register_backend_type(name: str, builder: Callable[[Dict[str, Any]], KVStore]) -> None:
    """Make an extra backend type available to ``build_store``."""
    BACKEND_TYPES[name] = builder


def _resolve_backend(kv_options: Dict[str, Any]) -> Dict[str, Any]:
    backend_name = kv_options.get("backend", "default")
    backends = kv_options.get("backends") or {}
    if backend_name not in backends:
        raise ConfigurationError(
            f"KV Configuration Error: backend '{backend_name}' is not defined"
        )
    conf = backends[backend_name]
    if not isinstance(conf, dict) or "type" not in conf:
        raise ConfigurationError(
            f"KV Configuration Error: backend '{backend_name}' has no 'type'"
        )
    if conf["type"] not in BACKEND_TYPES:
        raise ConfigurationError(
            f"KV Configuration Error: unknown backend type '{conf['type']}' "
            f"for backend '{backend_name}'"
        )
    return conf


def build_store(kv_options: Optional[Dict[str, Any]] = None) -> KVStore:
    """Return the store selected by ``kv_options``.

    The returned store is bound to ``kv_options['environment']`` and
    ``kv_options['softfail']``; the underlying backend is shared with
    every other caller using the same backend definition.
    """
    kv_options = kv_options or {}
    conf = _resolve_backend(kv_options)
    cache_key = json.dumps(conf, sort_keys=True, default=str)

    with _stores_lock:
        store = _stores.get(cache_key)
        if store is None:
            store = BACKEND_TYPES[conf["type"]](conf)
            _stores[cache_key] = store
            logger.debug("Created %s KV backend '%s'", conf["type"], conf.get("id"))

    return store.bind(
        environment=kv_options.get("environment", ""),
        softfail=bool(kv_options.get("softfail", False)),
    )


def reset_stores() -> None:
    """Forget cached backends (closing them)."""
    with _stores_lock:
        for store in _stores.values():
            store.close()
        _stores.clear()
