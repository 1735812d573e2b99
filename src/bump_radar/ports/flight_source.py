"""
Flight Source port interface.

Defines the narrow fetch contract every upstream adapter implements.
Adapters own their caching and failure semantics and never raise past
this boundary: failures come back as a structured result.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Tuple

from src.bump_radar.schemas.flight import SourceFlight


@dataclass(frozen=True)
class FetchScope:
    """
    What to fetch. Each adapter reads the fields it needs.

    Attributes:
        airport: Origin airport IATA code.
        destination: Destination IATA code for route-filtered feeds.
        day: Travel date for schedule queries.
        callsign: ICAO callsign for route verification.
    """

    airport: Optional[str] = None
    destination: Optional[str] = None
    day: Optional[date] = None
    callsign: Optional[str] = None


@dataclass(frozen=True)
class SourceFetchResult:
    """
    Outcome of one adapter fetch.

    ``rate_limited`` is distinct from ``error``: callers skip and
    continue on a rate limit, but log and continue on other errors.

    Attributes:
        records: Normalized records; empty on failure.
        rate_limited: True when the upstream answered 429.
        error: Error description, or None on success.
    """

    records: Tuple[SourceFlight, ...] = field(default_factory=tuple)
    rate_limited: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.rate_limited


class FlightSource(ABC):
    """
    Abstract interface for an upstream flight feed.

    Implementations:
    - FR24ScheduleSource: airport departures schedule
    - FR24LiveSource: global airborne feed
    - OpenSkyDepartureSource: recent observed departures
    - AdsbdbRouteSource: callsign route verification
    """

    @abstractmethod
    async def fetch(self, scope: FetchScope) -> SourceFetchResult:
        """
        Fetch records for a scope.

        Never raises; network, rate-limit and parse failures are
        reported in the returned result.

        Args:
            scope: What to fetch.

        Returns:
            SourceFetchResult with normalized records.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable source name (e.g. "FlightRadar24 (live)")."""
        ...

    async def close(self) -> None:
        """Release network resources. Default is a no-op."""
        return None
