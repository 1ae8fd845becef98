"""
Key/value store contract.

Every backend stores a record as a JSON-serializable ``value`` dict plus a
``metadata`` dict.  ``put`` always replaces both.  Keys are ``/``
separated paths; the store prepends its environment segment so callers
only ever deal with environment-relative keys.

Backend implementations override the ``_exists``/``_get``/``_put``/
``_list``/``_delete``/``_delete_tree`` hooks and work on full keys.  The
public methods wrap every failure in :class:`BackendError`, or swallow it
when the store was built with ``softfail=True``.
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.exceptions import BackendError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class KVRecord:
    """A stored value with its metadata."""
    value: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": copy.deepcopy(self.value),
            "metadata": copy.deepcopy(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["KVRecord"]:
        if not data:
            return None
        return cls(
            value=dict(data.get("value") or {}),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class KVListing:
    """Immediate children of a folder."""
    keys: Dict[str, KVRecord] = field(default_factory=dict)
    folders: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.keys or self.folders)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keys": {name: rec.to_dict() for name, rec in self.keys.items()},
            "folders": list(self.folders),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "KVListing":
        if not data:
            return cls()
        return cls(
            keys={
                name: KVRecord.from_dict(rec) or KVRecord()
                for name, rec in (data.get("keys") or {}).items()
            },
            folders=list(data.get("folders") or []),
        )


def normalize_key(key: str) -> str:
    """Strip surrounding slashes and reject traversal segments."""
    if not isinstance(key, str):
        raise ValidationError(f"Key '{key}' must be a string")
    key = key.strip("/")
    parts = key.split("/") if key else []
    if any(part in ("", ".", "..") for part in parts):
        raise ValidationError(f"Key '{key}' contains an invalid path segment")
    return key


class KVStore(ABC):
    """Abstract key/value backend."""

    type_name = "base"

    def __init__(self, store_id: str = "default", environment: str = "",
                 softfail: bool = False):
        self.store_id = store_id
        self.environment = environment or ""
        self.softfail = softfail

    def bind(self, environment: Optional[str] = None,
             softfail: Optional[bool] = None) -> "KVStore":
        """Shallow copy of this store with another environment/softfail.

        The copy shares the underlying storage.
        """
        bound = copy.copy(self)
        if environment is not None:
            bound.environment = environment
        if softfail is not None:
            bound.softfail = softfail
        return bound

    def full_key(self, key: str) -> str:
        key = normalize_key(key)
        if not self.environment:
            return key
        environment = normalize_key(self.environment)
        return f"{environment}/{key}" if key else environment

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def exists(self, key: str) -> bool:
        """True when ``key`` is a record or a folder."""
        return bool(self._call("exists", key, False, self._exists))

    def get(self, key: str) -> Optional[KVRecord]:
        """Return the record at ``key`` or None."""
        return self._call("get", key, None, self._get)

    def put(self, key: str, value: Dict[str, Any],
            metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Replace the record at ``key``."""
        record = KVRecord(value=dict(value), metadata=dict(metadata or {}))
        return bool(self._call("put", key, False, self._put, record))

    def list(self, prefix: str = "") -> KVListing:
        """Return the immediate keys and folders under ``prefix``."""
        return self._call("list", prefix, None, self._list) or KVListing()

    def delete(self, key: str) -> bool:
        return bool(self._call("delete", key, False, self._delete))

    def delete_tree(self, prefix: str) -> bool:
        """Remove every record at or below ``prefix``."""
        return bool(self._call("delete_tree", prefix, False, self._delete_tree))

    def close(self) -> None:
        return

    def _call(self, operation, key, default, fn, *args):
        full_key = self.full_key(key)
        try:
            return fn(full_key, *args)
        except BackendError as e:
            return self._failed(operation, key, default, e)
        except Exception as e:
            return self._failed(
                operation, key, default,
                BackendError(
                    f"{self.type_name}/{self.store_id}: {operation} "
                    f"'{full_key}' failed: {e}"
                ),
            )

    def _failed(self, operation, key, default, error):
        if self.softfail:
            logger.warning(
                "Softfail: %s '%s' on %s/%s failed: %s",
                operation, key, self.type_name, self.store_id, error,
            )
            return default
        raise error

    # ------------------------------------------------------------------
    # Backend hooks (full keys)
    # ------------------------------------------------------------------

    @abstractmethod
    def _exists(self, full_key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def _get(self, full_key: str) -> Optional[KVRecord]:
        raise NotImplementedError

    @abstractmethod
    def _put(self, full_key: str, record: KVRecord) -> bool:
        raise NotImplementedError

    @abstractmethod
    def _list(self, full_key: str) -> KVListing:
        raise NotImplementedError

    @abstractmethod
    def _delete(self, full_key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def _delete_tree(self, full_key: str) -> bool:
        raise NotImplementedError


def split_children(prefix: str, keys, records=None) -> KVListing:
    """Group flat full keys into the immediate children of ``prefix``.

    Args:
        prefix: Folder full key ("" for the top level).
        keys: Iterable of full record keys.
        records: Optional mapping of full key -> KVRecord.
    """
    records = records or {}
    base = f"{prefix}/" if prefix else ""
    listing = KVListing()
    folders = set()
    for key in keys:
        if not key.startswith(base) or key == prefix:
            continue
        rest = key[len(base):]
        if "/" in rest:
            folders.add(rest.split("/", 1)[0])
        else:
            listing.keys[rest] = copy.deepcopy(records.get(key, KVRecord()))
    listing.folders = sorted(folders)
    return listing
