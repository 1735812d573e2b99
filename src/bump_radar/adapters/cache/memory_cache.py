"""
In-process TTL key-value cache.

Per-process store used in tests and single-worker deployments.
Values are kept JSON-encoded so every read returns a fresh copy,
matching the durable SQLite cache byte for byte.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class InMemoryKeyValueCache:
    """
    Thread-safe in-memory TTL cache.

    Expired entries are evicted lazily on read and by ``purge_expired``.

    Attributes:
        _entries: Map of key to (encoded value, expiry epoch ms).
        _lock: Lock for thread-safe access.
        _clock: Returns the current time in epoch seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """
        Initialize an empty cache.

        Args:
            clock: Time source in epoch seconds. Tests inject a fake clock.
        """
        self._entries: Dict[str, Tuple[str, int]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get(self, key: str) -> Optional[Any]:
        """Get a value, or None on miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            encoded, expires_at = entry
            if self._now_ms() > expires_at:
                del self._entries[key]
                return None
        return json.loads(encoded)

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value; unserializable values are logged and skipped."""
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning("Not caching %s: value is not JSON-serializable (%s)", key, e)
            return
        expires_at = self._now_ms() + int(ttl_seconds * 1000)
        with self._lock:
            self._entries[key] = (encoded, expires_at)

    def purge_expired(self) -> int:
        """Remove expired entries."""
        now = self._now_ms()
        with self._lock:
            expired = [k for k, (_, exp) in self._entries.items() if now > exp]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
