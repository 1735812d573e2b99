"""
Process-wide minimum-interval rate limiter.

One upstream (OpenSky) allows a request only every few seconds per
client, regardless of which airport is queried. All callers share a
single "next free slot" counter; each call reserves the next slot in
arrival order and sleeps until it comes up, which yields a strict
FIFO delay rather than a token bucket.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Awaitable, Callable, Dict

logger = logging.getLogger(__name__)

OPENSKY_MIN_INTERVAL_S = 6.0


class MinIntervalRateLimiter:
    """
    Serializes calls with a fixed minimum spacing.

    The slot counter is guarded by a ``threading.Lock`` rather than an
    ``asyncio.Lock`` so one instance can be shared across event loops.

    Attributes:
        _min_interval_s: Minimum spacing between consecutive slots.
        _next_slot: Monotonic time of the next free slot.
    """

    def __init__(
        self,
        min_interval_s: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if min_interval_s < 0:
            raise ValueError(f"min_interval_s must be >= 0, got {min_interval_s}")
        self._min_interval_s = min_interval_s
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot = float("-inf")

    @property
    def min_interval_s(self) -> float:
        return self._min_interval_s

    def reserve(self) -> float:
        """
        Claim the next slot.

        Returns:
            Seconds the caller must wait before its request.
        """
        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self._min_interval_s
            return slot - now

    async def wait(self) -> None:
        """Wait for this caller's slot."""
        delay = self.reserve()
        if delay > 0:
            logger.debug("Rate limiter: waiting %.1fs for next slot", delay)
            await self._sleep(delay)

    def reset(self) -> None:
        """Forget past reservations."""
        with self._lock:
            self._next_slot = float("-inf")


_shared_limiters: Dict[float, MinIntervalRateLimiter] = {}
_shared_lock = threading.Lock()


def shared_rate_limiter(min_interval_s: float) -> MinIntervalRateLimiter:
    """
    Get the process-wide limiter for a spacing.

    Every caller configured with the same interval shares one slot
    counter.
    """
    with _shared_lock:
        limiter = _shared_limiters.get(min_interval_s)
        if limiter is None:
            limiter = MinIntervalRateLimiter(min_interval_s)
            _shared_limiters[min_interval_s] = limiter
        return limiter


OPENSKY_RATE_LIMITER = shared_rate_limiter(OPENSKY_MIN_INTERVAL_S)
