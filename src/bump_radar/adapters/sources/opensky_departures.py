"""
OpenSky Network historical departures adapter.

Observed departures from an airport over the last few hours. The
arrival airport is OpenSky's own estimate, so records are only
candidates until their route is confirmed elsewhere.

Anonymous OpenSky access allows roughly one request every five
seconds per client. Instances configured with the same
``historical_min_interval_s`` share one process-wide limiter, so the
spacing holds across airports and callers.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional

import httpx
from pydantic import ValidationError

from src.bump_radar.adapters.sources.base import HttpFlightSource
from src.bump_radar.adapters.sources.payloads import OpenSkyDeparture
from src.bump_radar.adapters.sources.rate_limiter import MinIntervalRateLimiter, shared_rate_limiter
from src.bump_radar.exceptions import UnknownEntityError, UnparseableResponseError
from src.bump_radar.ports.flight_source import FetchScope, SourceFetchResult
from src.bump_radar.ports.kv_cache import KeyValueCache
from src.bump_radar.schemas.config import SourceConfig
from src.bump_radar.schemas.flight import DataSource, SourceConfidence, SourceFlight
from src.bump_radar.schemas.reference import ReferenceData

logger = logging.getLogger(__name__)

OPENSKY_DEPARTURES_URL = "https://opensky-network.org/api/flights/departure"


class OpenSkyDepartureSource(HttpFlightSource):
    """
    Recent departures observed by the OpenSky Network.

    Attributes:
        _reference: Reference data, for IATA/ICAO airport mapping.
        _rate_limiter: Shared minimum-interval limiter.
        _clock: Wall clock in epoch seconds.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        reference: ReferenceData,
        config: Optional[SourceConfig] = None,
        rate_limiter: Optional[MinIntervalRateLimiter] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or SourceConfig()
        auth = None
        if self._config.opensky_username and self._config.opensky_password:
            auth = httpx.BasicAuth(self._config.opensky_username, self._config.opensky_password)
        super().__init__(cache, timeout_s=self._config.historical_timeout_s, auth=auth)
        self._reference = reference
        if rate_limiter is None:
            rate_limiter = shared_rate_limiter(self._config.historical_min_interval_s)
        self._rate_limiter = rate_limiter
        self._clock = clock

    @property
    def name(self) -> str:
        return DataSource.OPENSKY.label

    async def _fetch(self, scope: FetchScope) -> SourceFetchResult:
        if not scope.airport:
            return SourceFetchResult(error=f"{self.name}: airport is required")

        airport = scope.airport.upper()
        icao = self._reference.icao_for(airport)
        if icao is None:
            raise UnknownEntityError("airport", airport)

        hours = self._config.historical_hours_back
        cache_key = f"opensky:departures:{icao}:{hours}h"
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("OpenSky cache hit for departures from %s", icao)
            raw = cached
        else:
            await self._rate_limiter.wait()
            now = int(self._clock())
            logger.info("Fetching OpenSky departures from %s (last %dh)...", icao, hours)
            raw = await self._get_json(
                OPENSKY_DEPARTURES_URL,
                params={"airport": icao, "begin": now - hours * 3600, "end": now},
            )
            if not isinstance(raw, list):
                raise UnparseableResponseError(self.name, f"{self.name}: expected a list of departures")
            logger.info("OpenSky: %d departures from %s", len(raw), icao)
            self._cache.set(cache_key, raw, self._config.historical_cache_ttl_s)

        return SourceFetchResult(records=tuple(self._map_departures(raw, airport)))

    def _map_departures(self, raw: List[Any], airport: str) -> List[SourceFlight]:
        records = []
        dropped = 0
        for item in raw:
            try:
                departure = OpenSkyDeparture.model_validate(item)
            except ValidationError:
                dropped += 1
                continue
            if not departure.callsign:
                dropped += 1
                continue

            arrival_icao = departure.est_arrival_airport
            records.append(
                SourceFlight(
                    source=DataSource.OPENSKY,
                    confidence=SourceConfidence.OBSERVED,
                    callsign=departure.callsign,
                    origin=airport,
                    destination=self._reference.iata_for_icao(arrival_icao) if arrival_icao else None,
                    departure_timestamp=departure.first_seen,
                    external_id=departure.icao24,
                    estimated_arrival_icao=arrival_icao,
                )
            )

        if dropped:
            logger.debug("OpenSky %s: dropped %d records without a usable callsign", airport, dropped)
        return records
