"""
Reconciliation result schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from src.bump_radar.schemas.flight import ReconciledFlight

MESSAGE_RATE_LIMITED = (
    "Real-time flight data is temporarily unavailable (rate limit). "
    "Try again in a few minutes."
)
MESSAGE_HISTORICAL_RATE_LIMITED = (
    "OpenSky Network is rate limited. Showing flights from FlightRadar24."
)


def no_flights_message(origin: str, destination: Optional[str]) -> str:
    """Message for an empty result that was not caused by rate limiting."""
    route = f"{origin}→{destination}" if destination else f"departures from {origin}"
    return (
        f"No flights found for {route} right now. This route may not have active "
        "flights at this time, or the data sources may be temporarily unavailable."
    )


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Deduplicated, confidence-tiered flights for one route and date.

    Attributes:
        flights: Flights sorted ascending by departure timestamp.
        rate_limited: True when the result is empty because sources were rate limited.
        historical_rate_limited: True when the historical feed answered 429.
        error: Error summary, if any stage failed.
        message: User-facing explanation for empty or degraded results.
        data_sources: Labels of sources that contributed flights, in stage order.
        verified_count: Number of flights with ``verified=True``.
        total_departures: Number of flights in the result.
    """

    flights: Tuple[ReconciledFlight, ...] = ()
    rate_limited: bool = False
    historical_rate_limited: bool = False
    error: Optional[str] = None
    message: Optional[str] = None
    data_sources: Tuple[str, ...] = field(default_factory=tuple)
    verified_count: int = 0
    total_departures: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "flights": [f.to_dict() for f in self.flights],
            "rate_limited": self.rate_limited,
            "historical_rate_limited": self.historical_rate_limited,
            "error": self.error,
            "message": self.message,
            "data_sources": list(self.data_sources),
            "verified_count": self.verified_count,
            "total_departures": self.total_departures,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReconciliationResult:
        """Rebuild from :meth:`to_dict` output."""
        return cls(
            flights=tuple(ReconciledFlight.from_dict(f) for f in data["flights"]),
            rate_limited=data["rate_limited"],
            historical_rate_limited=data["historical_rate_limited"],
            error=data["error"],
            message=data["message"],
            data_sources=tuple(data["data_sources"]),
            verified_count=data["verified_count"],
            total_departures=data["total_departures"],
        )
