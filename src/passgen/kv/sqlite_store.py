# Passgen: KV Backend - SQLite
#
# Records live in a single table keyed by the full key path. Folders are
# implicit: a folder exists while at least one key sits below it.

import json
import logging
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..core.db import connect as db_connect
from .base import KVListing, KVRecord, KVStore, split_children

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteStore(KVStore):
    """SQLite-backed key/value store.

    Args:
        db_path: Path to the database file (parent directories are created).
    """

    type_name = "sqlite"

    def __init__(self, db_path: Union[str, Path], store_id: str = "default",
                 environment: str = "", softfail: bool = False):
        super().__init__(store_id, environment, softfail)
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self):
        """Create tables if they don't exist."""
        with closing(db_connect(self.db_path)) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_records (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    metadata TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def _conn(self):
        return closing(db_connect(self.db_path, row_factory=True))

    @staticmethod
    def _row_to_record(row) -> KVRecord:
        return KVRecord(
            value=json.loads(row["value"]),
            metadata=json.loads(row["metadata"]),
        )

    def _keys_below(self, conn, full_key: str):
        if not full_key:
            return conn.execute("SELECT key, value, metadata FROM kv_records").fetchall()
        pattern = _escape_like(full_key) + "/%"
        return conn.execute(
            "SELECT key, value, metadata FROM kv_records WHERE key LIKE ? ESCAPE '\\'",
            (pattern,),
        ).fetchall()

    def _exists(self, full_key: str) -> bool:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT 1 FROM kv_records WHERE key = ?", (full_key,)
            ).fetchone()
            if row:
                return True
            return bool(self._keys_below(conn, full_key))

    def _get(self, full_key: str) -> Optional[KVRecord]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT value, metadata FROM kv_records WHERE key = ?", (full_key,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def _put(self, full_key: str, record: KVRecord) -> bool:
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO kv_records (key, value, metadata, updated_at) "
                "VALUES (?, ?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "metadata = excluded.metadata, updated_at = excluded.updated_at",
                (
                    full_key,
                    json.dumps(record.value, sort_keys=True),
                    json.dumps(record.metadata, sort_keys=True),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            conn.commit()
        return True

    def _list(self, full_key: str) -> KVListing:
        with self._conn() as conn:
            rows = self._keys_below(conn, full_key)
        records = {row["key"]: self._row_to_record(row) for row in rows}
        return split_children(full_key, records.keys(), records)

    def _delete(self, full_key: str) -> bool:
        with self._conn() as conn:
            conn.execute("DELETE FROM kv_records WHERE key = ?", (full_key,))
            conn.commit()
        return True

    def _delete_tree(self, full_key: str) -> bool:
        with self._conn() as conn:
            if full_key:
                conn.execute(
                    "DELETE FROM kv_records WHERE key = ? OR key LIKE ? ESCAPE '\\'",
                    (full_key, _escape_like(full_key) + "/%"),
                )
            else:
                conn.execute("DELETE FROM kv_records")
            conn.commit()
        return True
