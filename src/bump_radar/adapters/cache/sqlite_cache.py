"""
SQLite-backed TTL key-value cache.

Durable cache shared across restarts. Any database failure degrades
to "always miss" for reads and "no-op" for writes; callers never see
an exception from this class.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)


class SQLiteKeyValueCache:
    """
    SQLite TTL cache with lazy eviction.

    Schema:
        cache(key TEXT PRIMARY KEY, value TEXT, expires_at INTEGER)

    ``expires_at`` is epoch milliseconds. File databases run in WAL
    mode so readers in other processes are not blocked by writes.

    Example:
        >>> cache = SQLiteKeyValueCache("cache.db")
        >>> cache.set("fr24:global_feed", {"flights": []}, ttl_seconds=300)
        >>> cache.get("fr24:global_feed")
        {'flights': []}
    """

    def __init__(
        self,
        db_path: Union[str, Path] = ":memory:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Open (or create) the cache database.

        Args:
            db_path: SQLite file path, or ":memory:".
            clock: Time source in epoch seconds.
        """
        self._db_path = str(db_path)
        self._clock = clock
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            if self._db_path != ":memory:":
                conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables(conn)
        except sqlite3.Error as e:
            logger.error("Cache database unavailable at %s: %s", self._db_path, e)
            if conn is not None:
                conn.close()
            return
        self._conn = conn

    @staticmethod
    def _create_tables(conn: sqlite3.Connection) -> None:
        """Create the cache table if it does not exist."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cache (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at INTEGER NOT NULL
            )
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_cache_expires_at ON cache(expires_at)"
        )
        conn.commit()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def available(self) -> bool:
        return self._conn is not None

    def get(self, key: str) -> Optional[Any]:
        """Get a value; expired rows are deleted and reported as a miss."""
        if self._conn is None:
            return None
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value, expires_at FROM cache WHERE key = ?", (key,)
                ).fetchone()
                if row is None:
                    return None
                encoded, expires_at = row
                if self._now_ms() > expires_at:
                    self._conn.execute("DELETE FROM cache WHERE key = ?", (key,))
                    self._conn.commit()
                    return None
        except sqlite3.Error as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

        try:
            return json.loads(encoded)
        except ValueError:
            logger.warning("Discarding corrupt cache entry %s", key)
            return None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Insert or replace a value."""
        if self._conn is None:
            return
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning("Not caching %s: value is not JSON-serializable (%s)", key, e)
            return
        expires_at = self._now_ms() + int(ttl_seconds * 1000)
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO cache (key, value, expires_at) VALUES (?, ?, ?)",
                    (key, encoded, expires_at),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    def purge_expired(self) -> int:
        """Delete every expired row."""
        if self._conn is None:
            return 0
        try:
            with self._lock:
                cursor = self._conn.execute(
                    "DELETE FROM cache WHERE expires_at < ?", (self._now_ms(),)
                )
                self._conn.commit()
                removed = cursor.rowcount
        except sqlite3.Error as e:
            logger.warning("Cache purge failed: %s", e)
            return 0
        if removed:
            logger.info("Purged %d expired cache rows", removed)
        return removed

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
