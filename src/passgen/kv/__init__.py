# Passgen: KV Module - Pluggable key/value backends
#
# Backends: memory, file (JSON per key, optional Fernet), sqlite, http.
# Selection happens in factory.build_store() from libkv-style options.

from .base import KVListing, KVRecord, KVStore
from .factory import build_store, register_backend_type, reset_stores
from .file_store import FileStore
from .http_store import HttpStore
from .memory_store import MemoryStore
from .sqlite_store import SQLiteStore

__all__ = [
    "KVStore",
    "KVRecord",
    "KVListing",
    "MemoryStore",
    "FileStore",
    "SQLiteStore",
    "HttpStore",
    "build_store",
    "register_backend_type",
    "reset_stores",
]
