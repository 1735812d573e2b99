"""
FindBumpableFlights Use Case - Public API for bump-risk search.

This module provides the main entry point for Bump Radar. It acts as a
Facade/Factory: it wires the cache, the upstream sources, reference
data and signal providers with sensible defaults, and exposes async
search methods plus a synchronous convenience wrapper.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import date
from typing import Callable, List, Optional, Union

from src.bump_radar.adapters.cache.memory_cache import InMemoryKeyValueCache
from src.bump_radar.adapters.cache.sqlite_cache import SQLiteKeyValueCache
from src.bump_radar.adapters.cache.sweeper import CacheSweeper
from src.bump_radar.adapters.reference.csv_reference_loader import get_reference_data
from src.bump_radar.adapters.signals.holiday_calendar import RuleBasedHolidayCalendar
from src.bump_radar.adapters.signals.neutral import (
    NeutralAirportStatusProvider,
    NeutralWeatherProvider,
)
from src.bump_radar.adapters.sources.adsbdb_routes import AdsbdbRouteSource
from src.bump_radar.adapters.sources.fr24_live import FR24LiveSource
from src.bump_radar.adapters.sources.fr24_schedule import FR24ScheduleSource
from src.bump_radar.adapters.sources.opensky_departures import OpenSkyDepartureSource
from src.bump_radar.ports.flight_source import FlightSource
from src.bump_radar.ports.kv_cache import KeyValueCache
from src.bump_radar.ports.signal_providers import (
    AirportStatusProvider,
    HolidayCalendar,
    WeatherSeverityProvider,
)
from src.bump_radar.schemas.config import Settings
from src.bump_radar.schemas.reconciliation import ReconciliationResult
from src.bump_radar.schemas.reference import ReferenceData
from src.bump_radar.schemas.scoring import ScoreResult
from src.bump_radar.services.reconciliation_service import ReconciliationService
from src.bump_radar.services.scoring_service import ScoringService

logger = logging.getLogger(__name__)


class FindBumpableFlights:
    """
    Public API for finding flights likely to be oversold.

    Example usage:
        >>> radar = FindBumpableFlights()
        >>> result = radar.search("ATL", "LGA", "2026-04-13")
        >>> for scored in result.flights[:3]:
        ...     print(scored.flight.flight_number, scored.bump_score)

    Attributes:
        _settings: Effective settings.
        _cache: TTL cache shared by every adapter.
        _sweeper: Background expired-entry sweeper (if started).
        _sources: Upstream sources, closed on shutdown.
        _reconciliation: Reconciliation service.
        _scoring: Scoring service.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[KeyValueCache] = None,
        reference: Optional[ReferenceData] = None,
        schedule_source: Optional[FlightSource] = None,
        live_source: Optional[FlightSource] = None,
        historical_source: Optional[FlightSource] = None,
        verification_source: Optional[FlightSource] = None,
        weather: Optional[WeatherSeverityProvider] = None,
        airport_status: Optional[AirportStatusProvider] = None,
        holidays: Optional[HolidayCalendar] = None,
        clock: Callable[[], float] = time.time,
        start_sweeper: bool = True,
    ) -> None:
        """
        Initialize with optional custom dependencies.

        Args:
            settings: Settings. If None, read from the environment.
            cache: Custom cache. If None, SQLite when ``cache_path`` is
                set, otherwise in memory.
            reference: Reference data. If None, the packaged tables.
            schedule_source: If None, uses FR24ScheduleSource.
            live_source: If None, uses FR24LiveSource.
            historical_source: If None, uses OpenSkyDepartureSource.
            verification_source: If None, uses AdsbdbRouteSource.
            weather: If None, every airport reports clear weather.
            airport_status: If None, no FAA status is known.
            holidays: If None, uses RuleBasedHolidayCalendar.
            clock: Wall clock in epoch seconds.
            start_sweeper: Start the background cache sweeper.
        """
        self._settings = settings or Settings.from_env()
        sources_config = self._settings.sources

        if cache is not None:
            self._cache = cache
        elif self._settings.cache_path:
            self._cache = SQLiteKeyValueCache(self._settings.cache_path)
        else:
            self._cache = InMemoryKeyValueCache()

        self._sweeper: Optional[CacheSweeper] = None
        if start_sweeper:
            self._sweeper = CacheSweeper(self._cache, self._settings.cache_sweep_interval_s)
            self._sweeper.start()

        reference = reference or get_reference_data()

        self._sources: List[FlightSource] = [
            schedule_source or FR24ScheduleSource(self._cache, sources_config, reference, clock=clock),
            live_source or FR24LiveSource(self._cache, sources_config),
            historical_source or OpenSkyDepartureSource(self._cache, reference, sources_config, clock=clock),
            verification_source or AdsbdbRouteSource(self._cache, sources_config),
        ]

        self._reconciliation = ReconciliationService(
            *self._sources,
            reference=reference,
            cache=self._cache,
            config=sources_config,
            clock=clock,
        )
        self._scoring = ScoringService(
            reconciliation=self._reconciliation,
            reference=reference,
            weather=weather or NeutralWeatherProvider(),
            airport_status=airport_status or NeutralAirportStatusProvider(),
            holidays=holidays or RuleBasedHolidayCalendar(),
            config=self._settings.scoring,
            clock=clock,
        )

        logger.info(
            "FindBumpableFlights initialized with %s cache",
            type(self._cache).__name__,
        )

    async def reconcile_route(
        self,
        origin: str,
        destination: str,
        day: Optional[date] = None,
    ) -> ReconciliationResult:
        """Deduplicated, confidence-tiered flights for a route."""
        return await self._reconciliation.reconcile_route(origin, destination, day)

    async def score_flights(
        self,
        origin: str,
        destination: str,
        day: Optional[date] = None,
    ) -> ScoreResult:
        """Scored flights for a route, highest bump risk first."""
        return await self._scoring.score_flights(origin, destination, day)

    async def score_origin_departures(
        self,
        origin: str,
        day: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> ScoreResult:
        """Top-scored departures from an origin to any destination."""
        return await self._scoring.score_origin_departures(origin, day, limit)

    def search(
        self,
        origin: str,
        destination: Optional[str] = None,
        day: Optional[Union[date, str]] = None,
        limit: Optional[int] = None,
    ) -> ScoreResult:
        """
        Synchronous search.

        Scores a route when ``destination`` is given (``"ANY"`` counts
        as none), otherwise the origin's top departures.

        Args:
            origin: Origin IATA code.
            destination: Destination IATA code, optional.
            day: Travel date or ISO date string; defaults to today.
            limit: Top-N for origin searches.

        Returns:
            ScoreResult.
        """
        if isinstance(day, str):
            day = date.fromisoformat(day)
        if destination and destination.strip().upper() == "ANY":
            destination = None

        async def _run() -> ScoreResult:
            try:
                if destination:
                    return await self.score_flights(origin, destination, day)
                return await self.score_origin_departures(origin, day, limit)
            finally:
                # HTTP clients are bound to this event loop
                await self._close_sources()

        return asyncio.run(_run())

    async def _close_sources(self) -> None:
        for source in self._sources:
            try:
                await source.close()
            except Exception as e:
                logger.warning("Failed to close %s: %s", source.name, e)

    def shutdown(self) -> None:
        """Stop the sweeper and close the cache."""
        if self._sweeper is not None:
            self._sweeper.stop()
            self._sweeper = None
        close = getattr(self._cache, "close", None)
        if callable(close):
            close()
        logger.info("FindBumpableFlights shutdown complete")

    async def close(self) -> None:
        """Close HTTP clients, then shut down."""
        await self._close_sources()
        self.shutdown()

    async def __aenter__(self) -> "FindBumpableFlights":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __enter__(self) -> "FindBumpableFlights":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
