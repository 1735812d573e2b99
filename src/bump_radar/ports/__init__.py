"""
Port interfaces for bump radar.

Ports define the abstract interfaces (ABCs and Protocols) the services
use to reach caches, upstream flight feeds and signal providers.
"""

from src.bump_radar.ports.flight_source import FetchScope, FlightSource, SourceFetchResult
from src.bump_radar.ports.kv_cache import KeyValueCache
from src.bump_radar.ports.signal_providers import (
    AirportStatus,
    AirportStatusProvider,
    DelayType,
    HolidayCalendar,
    HolidayScore,
    WeatherSeverity,
    WeatherSeverityProvider,
)

__all__ = [
    "AirportStatus",
    "AirportStatusProvider",
    "DelayType",
    "FetchScope",
    "FlightSource",
    "HolidayCalendar",
    "HolidayScore",
    "KeyValueCache",
    "SourceFetchResult",
    "WeatherSeverity",
    "WeatherSeverityProvider",
]
