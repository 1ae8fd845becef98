"""In-process key/value store, used for tests and one-shot runs."""

import copy
import threading
from typing import Dict, Optional

from .base import KVListing, KVRecord, KVStore, split_children


class MemoryStore(KVStore):

    type_name = "memory"

    def __init__(self, store_id: str = "default", environment: str = "",
                 softfail: bool = False):
        super().__init__(store_id, environment, softfail)
        self._data: Dict[str, KVRecord] = {}
        self._lock = threading.Lock()

    def _exists(self, full_key: str) -> bool:
        with self._lock:
            if full_key in self._data:
                return True
            folder = f"{full_key}/" if full_key else ""
            return any(k.startswith(folder) for k in self._data)

    def _get(self, full_key: str) -> Optional[KVRecord]:
        with self._lock:
            record = self._data.get(full_key)
            return copy.deepcopy(record) if record else None

    def _put(self, full_key: str, record: KVRecord) -> bool:
        with self._lock:
            self._data[full_key] = copy.deepcopy(record)
        return True

    def _list(self, full_key: str) -> KVListing:
        with self._lock:
            return split_children(full_key, list(self._data), self._data)

    def _delete(self, full_key: str) -> bool:
        with self._lock:
            self._data.pop(full_key, None)
        return True

    def _delete_tree(self, full_key: str) -> bool:
        folder = f"{full_key}/" if full_key else ""
        with self._lock:
            for key in [k for k in self._data if k == full_key or k.startswith(folder)]:
                del self._data[key]
        return True
