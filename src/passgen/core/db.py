# Passgen: Core Module - SQLite Connection Helper
#
# The sqlite KV backend opens a fresh connection per operation through
# `connect()` so that several processes can share one database file:
#
#   - WAL journal mode (concurrent readers + one writer)
#   - busy_timeout to avoid SQLITE_BUSY while another run is writing

import sqlite3
from pathlib import Path
from typing import Union


def connect(
    db_path: Union[str, Path],
    *,
    row_factory: bool = False,
    busy_timeout_ms: int = 5000,
) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and a busy timeout.

    Args:
        db_path: Path to the database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
        busy_timeout_ms: How long a writer waits for a competing lock.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn
