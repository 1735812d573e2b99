"""
FlightRadar24 airport schedule adapter.

Pages through an airport's scheduled departures for one day and maps
each record to a ``SourceFlight``. The upstream only serves a few days
ahead; later dates are answered with today's schedule instead, since
most routes fly daily.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, timedelta
from datetime import time as dt_time
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from src.bump_radar.adapters.sources.base import HttpFlightSource
from src.bump_radar.adapters.sources.payloads import ScheduleDepartures, ScheduleFlight
from src.bump_radar.exceptions import TransientNetworkError, UnparseableResponseError
from src.bump_radar.ports.flight_source import FetchScope, SourceFetchResult
from src.bump_radar.ports.kv_cache import KeyValueCache
from src.bump_radar.schemas.config import SourceConfig
from src.bump_radar.schemas.flight import DataSource, SourceConfidence, SourceFlight
from src.bump_radar.schemas.reference import ReferenceData

logger = logging.getLogger(__name__)

FR24_SCHEDULE_URL = "https://api.flightradar24.com/common/v1/airport.json"


class FR24ScheduleSource(HttpFlightSource):
    """
    Scheduled departures for one airport and day.

    Attributes:
        _config: Source configuration (pages, TTL, timeout).
        _reference: Reference data, for airport time zones.
        _clock: Wall clock in epoch seconds.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        config: Optional[SourceConfig] = None,
        reference: Optional[ReferenceData] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or SourceConfig()
        super().__init__(
            cache,
            timeout_s=self._config.schedule_timeout_s,
            headers={"User-Agent": self._config.user_agent},
        )
        self._reference = reference
        self._clock = clock

    @property
    def name(self) -> str:
        return DataSource.FR24_SCHEDULE.label

    def today(self, airport: str) -> date:
        """Current date at the airport."""
        tz = self._timezone(airport)
        return datetime.fromtimestamp(self._clock(), tz).date()

    def effective_day(self, airport: str, day: Optional[date]) -> date:
        """
        Date actually queried for a requested day.

        Dates beyond the upstream's horizon fall back to today.
        """
        today = self.today(airport)
        if day is None:
            return today
        if day - today > timedelta(days=self._config.schedule_max_days_ahead):
            logger.info(
                "FR24 schedule: %s is more than %d days ahead, using today's schedule for %s",
                day,
                self._config.schedule_max_days_ahead,
                airport,
            )
            return today
        return day

    async def _fetch(self, scope: FetchScope) -> SourceFetchResult:
        if not scope.airport:
            return SourceFetchResult(error=f"{self.name}: airport is required")

        airport = scope.airport.upper()
        day = self.effective_day(airport, scope.day)
        try:
            records = await self._departures(airport, day)
        except TransientNetworkError as e:
            today = self.today(airport)
            if e.status_code != 400 or day == today:
                raise
            logger.info("FR24 schedule rejected %s for %s, retrying with today", day, airport)
            records = await self._departures(airport, today)

        return SourceFetchResult(records=tuple(records))

    async def _departures(self, airport: str, day: date) -> List[SourceFlight]:
        cache_key = f"fr24:schedule:{airport}:{day.isoformat()}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("FR24 schedule cache hit: %s", cache_key)
            return [SourceFlight.from_dict(item) for item in cached]

        timestamp = int(datetime.combine(day, dt_time.min, tzinfo=self._timezone(airport)).timestamp())
        records: List[SourceFlight] = []
        dropped = 0

        for page in range(1, self._config.schedule_max_pages + 1):
            raw = await self._get_json(FR24_SCHEDULE_URL, params=self._params(airport, timestamp, page))
            departures = self._extract_departures(raw)

            for item in departures.data:
                flight = self._parse_record(item, airport)
                if flight is None:
                    dropped += 1
                    continue
                records.append(flight)

            if departures.page.current >= departures.page.total:
                break

        if dropped:
            logger.debug("FR24 schedule %s %s: dropped %d unusable records", airport, day, dropped)
        logger.info("FR24 schedule %s %s: %d departures", airport, day, len(records))

        self._cache.set(
            cache_key,
            [r.to_dict() for r in records],
            self._config.schedule_cache_ttl_s,
        )
        return records

    def _params(self, airport: str, timestamp: int, page: int) -> Dict[str, Any]:
        return {
            "code": airport,
            "plugin[]": "schedule",
            "plugin-setting[schedule][mode]": "departures",
            "plugin-setting[schedule][timestamp]": timestamp,
            "page": page,
            "limit": self._config.schedule_page_size,
        }

    def _extract_departures(self, raw: Any) -> ScheduleDepartures:
        try:
            node = raw["result"]["response"]["airport"]["pluginData"]["schedule"]["departures"]
        except (KeyError, TypeError) as e:
            raise UnparseableResponseError(self.name, f"{self.name}: missing departures block") from e
        try:
            return ScheduleDepartures.model_validate(node)
        except ValidationError as e:
            raise UnparseableResponseError(self.name, f"{self.name}: malformed departures block") from e

    def _parse_record(self, item: Any, airport: str) -> Optional[SourceFlight]:
        """Map one schedule record, or None if it is unusable."""
        if not isinstance(item, dict):
            return None
        try:
            flight = ScheduleFlight.model_validate(item.get("flight") or {})
        except ValidationError as e:
            logger.debug("FR24 schedule record rejected: %s", e)
            return None

        destination = flight.destination_iata
        departure = flight.time.scheduled.departure
        if not destination or not departure:
            return None

        number = flight.identification.number.default or ""
        carrier = flight.airline.code.iata or number[:2]
        operating = flight.owner.code.iata if flight.owner and flight.owner.code.iata else carrier

        return SourceFlight(
            source=DataSource.FR24_SCHEDULE,
            confidence=SourceConfidence.SCHEDULED,
            callsign=flight.identification.callsign or "",
            flight_number=number,
            carrier_code=carrier,
            operating_carrier_code=operating,
            origin=airport,
            destination=destination,
            departure_timestamp=departure,
            aircraft_code=flight.aircraft.model.code,
            aircraft_name=flight.aircraft.model.text,
            registration=flight.aircraft.registration,
            status=flight.status.text,
            is_live=flight.status.live,
            codeshares=tuple(flight.codeshares),
            external_id=flight.identification.id,
        )

    def _timezone(self, airport: str) -> ZoneInfo:
        if self._reference is None:
            return ZoneInfo("America/New_York")
        return ZoneInfo(self._reference.timezone_for(airport))
