"""Upstream flight source adapters."""

from src.bump_radar.adapters.sources.adsbdb_routes import AdsbdbRouteSource
from src.bump_radar.adapters.sources.base import HttpFlightSource
from src.bump_radar.adapters.sources.fr24_live import FR24LiveSource
from src.bump_radar.adapters.sources.fr24_schedule import FR24ScheduleSource
from src.bump_radar.adapters.sources.opensky_departures import OpenSkyDepartureSource
from src.bump_radar.adapters.sources.rate_limiter import (
    OPENSKY_RATE_LIMITER,
    MinIntervalRateLimiter,
    shared_rate_limiter,
)

__all__ = [
    "AdsbdbRouteSource",
    "FR24LiveSource",
    "FR24ScheduleSource",
    "HttpFlightSource",
    "MinIntervalRateLimiter",
    "OPENSKY_RATE_LIMITER",
    "OpenSkyDepartureSource",
    "shared_rate_limiter",
]
