"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/cache.py
Persistent hash cache keyed by path and validated by modification time and size.

The store is an SQLite file. The whole table is loaded into memory when the
cache is opened, so lookups from worker threads need no locking. Writes go
through a single connection guarded by a lock and are committed one by one,
which keeps every entry written before an interruption usable on the next run.

The cache is advisory: a missing, unreadable or corrupt store only means the
hashes get recomputed.
"""

import logging
import os
import sqlite3
import threading
from typing import Dict, Optional

from mediadedup.core.exceptions import CacheError
from mediadedup.core.models import CacheEntry, FileRecord, HashValue

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS hashes (
    path TEXT PRIMARY KEY,
    modified_at REAL NOT NULL,
    size INTEGER NOT NULL,
    hash TEXT NOT NULL
)
"""


class HashCache:
    """
    (path, modified_at, size) -> HashValue store.

    Attributes:
        db_path: Location of the SQLite file
        persistent: False once the backing store failed; entries then live in memory only
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        try:
            self._conn = self._open()
            self._entries = self._load()
            logger.debug(f"Loaded {len(self._entries)} cache entries from {db_path}")
        except CacheError as e:
            logger.warning(f"Hash cache unavailable, hashes will be recomputed: {e}")
            self._close_quietly()

    @property
    def persistent(self) -> bool:
        return self._conn is not None

    def _open(self) -> sqlite3.Connection:
        conn = None
        try:
            parent = os.path.dirname(os.path.abspath(self.db_path))
            os.makedirs(parent, exist_ok=True)
            conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
            conn.execute(_SCHEMA)
            conn.commit()
            return conn
        except (sqlite3.Error, OSError) as e:
            if conn is not None:
                conn.close()
            raise CacheError(f"cannot open {self.db_path}: {e}") from e

    def _load(self) -> Dict[str, CacheEntry]:
        entries = {}
        try:
            rows = self._conn.execute("SELECT path, modified_at, size, hash FROM hashes").fetchall()
        except sqlite3.Error as e:
            raise CacheError(f"cannot read {self.db_path}: {e}") from e

        for path, modified_at, size, hash_value in rows:
            # Skip malformed rows rather than trusting them
            if not isinstance(hash_value, str) or not hash_value:
                continue
            try:
                entries[path] = CacheEntry(path, float(modified_at), int(size), hash_value)
            except (TypeError, ValueError):
                continue
        return entries

    def lookup(self, path: str, modified_at: float, size: int) -> Optional[HashValue]:
        """Returns the cached hash only if mtime and size still match."""
        entry = self._entries.get(path)
        if entry is None or not entry.matches(modified_at, size):
            return None
        return entry.hash

    def lookup_record(self, record: FileRecord) -> Optional[HashValue]:
        return self.lookup(record.path, record.modified_at, record.size)

    def store(self, path: str, modified_at: float, size: int, hash_value: HashValue) -> None:
        entry = CacheEntry(path, modified_at, size, hash_value)
        with self._lock:
            self._entries[path] = entry
            if self._conn is None:
                return
            try:
                self._conn.execute(
                    "INSERT OR REPLACE INTO hashes(path, modified_at, size, hash) VALUES (?, ?, ?, ?)",
                    (path, modified_at, size, hash_value),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                logger.warning(f"Hash cache write failed, continuing without persistence: {e}")
                self._close_quietly()

    def store_record(self, record: FileRecord, hash_value: HashValue) -> None:
        self.store(record.path, record.modified_at, record.size, hash_value)

    def close(self) -> None:
        with self._lock:
            self._close_quietly()

    def _close_quietly(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
        except sqlite3.Error as e:
            logger.debug(f"Error closing hash cache: {e}")
        self._conn = None

    def __len__(self) -> int:
        return len(self._entries)

    def __enter__(self) -> "HashCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
