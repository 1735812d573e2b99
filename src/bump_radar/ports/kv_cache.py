"""
Key-value cache port.

Every source adapter caches upstream responses through this protocol
to avoid re-hitting rate-limited APIs.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueCache(Protocol):
    """
    Protocol for a TTL key-value store with JSON-serializable values.

    A read past an entry's expiry is a miss. Implementations must never
    raise to callers: an unavailable backend behaves as "always miss".
    Negative results are stored as explicit values, never ``None``,
    since ``None`` means miss.
    """

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None on miss."""
        ...

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value for ``ttl_seconds``."""
        ...

    def purge_expired(self) -> int:
        """Delete expired entries and return how many were removed."""
        ...
