"""
Embedded key-value storage.

A small ordered key-value store on top of SQLite. The database directory
holds a single file; while a Storage is open it keeps an exclusive lock on
that file, so a second process (or a second context) opening the same
directory fails instead of corrupting data.
"""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterator, List, Union

__all__ = ["Storage", "open_db", "DB_FILENAME"]

logger = logging.getLogger(__name__)

DB_FILENAME = "aptly.sqlite"
LOCK_TIMEOUT_S = 0.5

PathLike = Union[str, Path]


class Storage:
    """
    Ordered byte-key/byte-value store.

    Keys are compared bytewise, so prefix scans return keys in sorted order.
    Not safe for concurrent use from several threads.
    """

    def __init__(self, path: Path, conn: sqlite3.Connection):
        self.path = path
        self._conn = conn

    @property
    def closed(self) -> bool:
        return self._conn is None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"database {self.path} is closed")
        return self._conn

    def get(self, key: bytes) -> bytes:
        """
        Return the value stored under ``key``.

        Raises:
            KeyError: If the key does not exist
        """
        row = self._connection().execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise KeyError(key)
        return bytes(row[0])

    def put(self, key: bytes, value: bytes) -> None:
        self._connection().execute(
            "INSERT INTO kv (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    def delete(self, key: bytes) -> None:
        """Delete ``key``; deleting a missing key is not an error."""
        self._connection().execute("DELETE FROM kv WHERE key = ?", (key,))

    def _iter_prefix(self, prefix: bytes) -> Iterator[bytes]:
        cursor = self._connection().execute(
            "SELECT key FROM kv WHERE key >= ? ORDER BY key", (prefix,)
        )
        for (key,) in cursor:
            key = bytes(key)
            if not key.startswith(prefix):
                break
            yield key

    def keys_by_prefix(self, prefix: bytes) -> List[bytes]:
        """Return all keys starting with ``prefix`` in sorted order."""
        return list(self._iter_prefix(prefix))

    def has_prefix(self, prefix: bytes) -> bool:
        return next(self._iter_prefix(prefix), None) is not None

    def close(self) -> None:
        """Close the store and release its lock. Idempotent."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        conn.close()
        logger.debug(f"Closed database {self.path}")


def open_db(path: PathLike, *, lock_timeout: float = LOCK_TIMEOUT_S) -> Storage:
    """
    Open (creating if needed) the database in directory ``path``.

    Args:
        path: Database directory
        lock_timeout: Seconds to wait for a competing lock holder

    Returns:
        Open Storage holding an exclusive lock

    Raises:
        OSError: If the directory cannot be created
        sqlite3.Error: If the database is locked by another holder or corrupt
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        str(path / DB_FILENAME),
        timeout=lock_timeout,
        isolation_level=None,
        check_same_thread=False,
    )
    try:
        conn.execute("PRAGMA locking_mode=EXCLUSIVE")
        # A write transaction takes the exclusive lock; exclusive locking mode keeps it until close.
        conn.execute("BEGIN EXCLUSIVE")
        conn.execute("CREATE TABLE IF NOT EXISTS kv (key BLOB PRIMARY KEY, value BLOB NOT NULL)")
        conn.execute("COMMIT")
    except sqlite3.Error:
        conn.close()
        raise

    logger.debug(f"Opened database {path}")
    return Storage(path, conn)
