"""
Background sweep of expired cache entries.

Reads already treat expired entries as misses; the sweeper only keeps
the store from growing with rows nobody reads again.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from src.bump_radar.ports.kv_cache import KeyValueCache

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_S = 10 * 60


class CacheSweeper:
    """
    Daemon thread that calls ``purge_expired`` on a fixed interval.

    Usage:
        >>> sweeper = CacheSweeper(cache, interval_s=600)
        >>> sweeper.start()
        >>> ...
        >>> sweeper.stop()
    """

    def __init__(self, cache: KeyValueCache, interval_s: float = DEFAULT_SWEEP_INTERVAL_S) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}")
        self._cache = cache
        self._interval_s = interval_s
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sweeping. Calling start on a running sweeper is a no-op."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="cache-sweeper", daemon=True
        )
        self._thread.start()
        logger.debug("Cache sweeper started (every %.0fs)", self._interval_s)

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the thread to exit and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def sweep_once(self) -> int:
        """Run one purge; failures are logged, never raised."""
        try:
            return self._cache.purge_expired()
        except Exception as e:
            logger.error("Cache sweep failed: %s", e)
            return 0

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            self.sweep_once()
