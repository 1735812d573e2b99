"""
FlightRadar24 live feed adapter.

The feed returns every airborne flight in one response (~16k entries)
keyed by FR24's internal id. The parsed feed is cached as a whole and
filtered locally, so one fetch serves every route within the TTL.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from src.bump_radar.adapters.sources.base import HttpFlightSource
from src.bump_radar.adapters.sources.payloads import LIVE_FEED_MIN_FIELDS, LiveFeedEntry
from src.bump_radar.exceptions import UnparseableResponseError
from src.bump_radar.ports.flight_source import FetchScope, SourceFetchResult
from src.bump_radar.ports.kv_cache import KeyValueCache
from src.bump_radar.schemas.config import SourceConfig
from src.bump_radar.schemas.flight import DataSource, SourceConfidence, SourceFlight

logger = logging.getLogger(__name__)

FR24_FEED_URL = (
    "https://data-cloud.flightradar24.com/zones/fcgi/feed.js"
    "?faa=1&satellite=1&mlat=1&adsb=1&gnd=0&air=1&vehicles=0"
    "&estimated=1&maxage=14400&gliders=0&stats=0"
)
FEED_CACHE_KEY = "fr24:global_feed"
LIVE_STATUS = "In Air"


class FR24LiveSource(HttpFlightSource):
    """Airborne flights for an origin (and optionally a destination)."""

    def __init__(self, cache: KeyValueCache, config: Optional[SourceConfig] = None) -> None:
        self._config = config or SourceConfig()
        super().__init__(
            cache,
            timeout_s=self._config.live_timeout_s,
            headers={"User-Agent": self._config.user_agent},
        )

    @property
    def name(self) -> str:
        return DataSource.FR24_LIVE.label

    async def _fetch(self, scope: FetchScope) -> SourceFetchResult:
        feed = await self._global_feed()

        origin = scope.airport.upper() if scope.airport else None
        destination = scope.destination.upper() if scope.destination else None
        records = tuple(
            SourceFlight.from_dict(item)
            for item in feed
            if (origin is None or item["origin"] == origin)
            and (destination is None or item["destination"] == destination)
        )
        logger.debug(
            "FR24 live %s->%s: %d of %d airborne flights",
            origin or "*",
            destination or "*",
            len(records),
            len(feed),
        )
        return SourceFetchResult(records=records)

    async def _global_feed(self) -> List[Dict[str, Any]]:
        cached = self._cache.get(FEED_CACHE_KEY)
        if cached is not None:
            logger.debug("FR24 live feed cache hit (%d flights)", len(cached))
            return cached

        logger.info("Fetching FR24 global flight feed...")
        raw = await self._get_json(FR24_FEED_URL)
        if not isinstance(raw, dict):
            raise UnparseableResponseError(self.name, f"{self.name}: feed is not an object")

        flights = []
        for key, value in raw.items():
            record = self.parse_entry(key, value)
            if record is not None:
                flights.append(record.to_dict())
        logger.info("FR24 live feed: %d flights currently in the air", len(flights))

        self._cache.set(FEED_CACHE_KEY, flights, self._config.live_cache_ttl_s)
        return flights

    @staticmethod
    def parse_entry(key: str, value: Any) -> Optional[SourceFlight]:
        """
        Map one feed entry.

        Metadata keys (``full_count``, ``version``) and entries without a
        callsign, origin and destination yield None.
        """
        if not isinstance(value, list) or len(value) < LIVE_FEED_MIN_FIELDS:
            return None
        try:
            entry = LiveFeedEntry.from_array(value)
        except ValidationError as e:
            logger.debug("FR24 live entry %s rejected: %s", key, e)
            return None

        if not entry.callsign or not entry.origin or not entry.destination:
            return None

        number = entry.flight_number or ""
        return SourceFlight(
            source=DataSource.FR24_LIVE,
            confidence=SourceConfidence.LIVE_TRACK,
            callsign=entry.callsign,
            flight_number=number,
            carrier_code=number[:2] if number else "",
            origin=entry.origin,
            destination=entry.destination,
            departure_timestamp=entry.timestamp,
            aircraft_code=entry.aircraft_code,
            registration=entry.registration,
            status=LIVE_STATUS,
            is_live=True,
            external_id=key,
        )
