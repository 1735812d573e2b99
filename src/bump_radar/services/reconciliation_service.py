"""
Reconciliation Service - merges upstream feeds into one flight list.

Runs a strict priority cascade of stages for an origin, destination
and date:

1. Schedule: the airport's published departures to the destination
   (authoritative, both endpoints reported).
2. Live: airborne flights on the route. Matches enrich an accepted
   flight; new scorable flights are inserted.
3. Historical: only when the schedule stage found nothing. Observed
   departures are verified callsign by callsign, in small concurrent
   batches, against the route database.

Identity is fixed on first sight. A flight is a duplicate if its
flight number or its callsign was already accepted; later stages only
enrich it. Carriers without denied-boarding statistics are dropped
before dedup.

One adapter's failure or rate limit never aborts the cascade: every
stage reports a ``StageOutcome`` and the result summarizes them.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from src.bump_radar.ports.flight_source import FetchScope, FlightSource, SourceFetchResult
from src.bump_radar.ports.kv_cache import KeyValueCache
from src.bump_radar.schemas.config import SourceConfig
from src.bump_radar.schemas.flight import (
    DataSource,
    ReconciledFlight,
    SourceFlight,
    VerificationSource,
)
from src.bump_radar.schemas.reconciliation import (
    MESSAGE_HISTORICAL_RATE_LIMITED,
    MESSAGE_RATE_LIMITED,
    ReconciliationResult,
    no_flights_message,
)
from src.bump_radar.schemas.reference import ReferenceData
from src.bump_radar.services.carrier_directory import CarrierDirectory

logger = logging.getLogger(__name__)

TRACKING_URL = "https://www.flightaware.com/live/flight/{ident}"
ERROR_ALL_SOURCES_UNAVAILABLE = "All data sources unavailable or rate limited"


@dataclass(frozen=True)
class StageOutcome:
    """
    What one cascade stage did.

    Attributes:
        data_source: Adapter the stage queried.
        contributed: Flights the stage inserted.
        enriched: Accepted flights the stage enriched.
        rate_limited: Whether the adapter answered with a rate limit.
        error: Adapter error, if any.
        skipped: Whether the stage did not run.
    """

    data_source: DataSource
    contributed: int = 0
    enriched: int = 0
    rate_limited: bool = False
    error: Optional[str] = None
    skipped: bool = False

    @property
    def used(self) -> bool:
        return self.contributed > 0 or self.enriched > 0


@dataclass(frozen=True)
class _RouteQuery:
    origin: str
    destination: Optional[str]
    day: date


class _FlightLedger:
    """Accepted flights with first-sight identity by flight number and callsign."""

    def __init__(self) -> None:
        self._flights: List[ReconciledFlight] = []
        self._by_number: Dict[str, int] = {}
        self._by_callsign: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._flights)

    def __getitem__(self, position: int) -> ReconciledFlight:
        return self._flights[position]

    def find(self, flight_number: str = "", callsign: str = "") -> Optional[int]:
        if flight_number and flight_number in self._by_number:
            return self._by_number[flight_number]
        if callsign and callsign in self._by_callsign:
            return self._by_callsign[callsign]
        return None

    def add(self, flight: ReconciledFlight) -> bool:
        """Accept a flight unless it is a duplicate."""
        if self.find(flight.flight_number, flight.callsign) is not None:
            return False
        self._flights.append(flight)
        self._index(len(self._flights) - 1, flight)
        return True

    def replace(self, position: int, flight: ReconciledFlight) -> None:
        self._flights[position] = flight
        self._index(position, flight)

    def sorted_flights(self) -> List[ReconciledFlight]:
        return sorted(self._flights, key=lambda f: f.departure_timestamp)

    def _index(self, position: int, flight: ReconciledFlight) -> None:
        if flight.flight_number:
            self._by_number.setdefault(flight.flight_number, position)
        if flight.callsign:
            self._by_callsign.setdefault(flight.callsign, position)


class ReconciliationService:
    """
    Builds deduplicated, confidence-tiered flight lists.

    Attributes:
        _schedule: Scheduled-departures source.
        _live: Live-position source.
        _historical: Historical-departures source.
        _verification: Route-verification source.
        _reference: Reference data.
        _carriers: Callsign and carrier branding lookups.
        _cache: Cache for reconciled results.
        _config: Source configuration.
        _clock: Wall clock in epoch seconds.
    """

    def __init__(
        self,
        schedule_source: FlightSource,
        live_source: FlightSource,
        historical_source: FlightSource,
        verification_source: FlightSource,
        reference: ReferenceData,
        cache: KeyValueCache,
        config: Optional[SourceConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._schedule = schedule_source
        self._live = live_source
        self._historical = historical_source
        self._verification = verification_source
        self._reference = reference
        self._carriers = CarrierDirectory(reference)
        self._cache = cache
        self._config = config or SourceConfig()
        self._clock = clock

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def reconcile_route(
        self,
        origin: str,
        destination: str,
        day: Optional[date] = None,
    ) -> ReconciliationResult:
        """
        Reconcile flights for one route and date.

        Args:
            origin: Origin IATA code.
            destination: Destination IATA code.
            day: Travel date; defaults to today at the origin.

        Returns:
            ReconciliationResult sorted by departure time. Never raises
            for upstream failures.
        """
        origin = origin.strip().upper()
        destination = destination.strip().upper()

        unknown = [code for code in (origin, destination) if self._reference.airport(code) is None]
        if unknown:
            return self._unknown_airport_result(unknown)

        query = _RouteQuery(origin, destination, day or self.today(origin))
        cache_key = f"combined:route:{origin}:{destination}:{query.day.isoformat()}"
        return await self._reconcile(
            query,
            cache_key,
            [self._schedule_stage, self._live_stage, self._historical_stage],
        )

    async def reconcile_origin(
        self,
        origin: str,
        day: Optional[date] = None,
    ) -> ReconciliationResult:
        """
        Reconcile all departures from an origin, any destination.

        Runs the schedule stage and the live overlay; the historical
        fallback needs a destination to verify against and is skipped.
        """
        origin = origin.strip().upper()
        if self._reference.airport(origin) is None:
            return self._unknown_airport_result([origin])

        query = _RouteQuery(origin, None, day or self.today(origin))
        cache_key = f"combined:origin:{origin}:{query.day.isoformat()}"
        return await self._reconcile(query, cache_key, [self._schedule_stage, self._live_stage])

    def today(self, airport: str) -> date:
        return datetime.fromtimestamp(self._clock(), self._timezone(airport)).date()

    # =========================================================================
    # CASCADE
    # =========================================================================

    async def _reconcile(self, query: _RouteQuery, cache_key: str, stages: list) -> ReconciliationResult:
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Reconciliation cache hit: %s", cache_key)
            return ReconciliationResult.from_dict(cached)

        ledger = _FlightLedger()
        outcomes: List[StageOutcome] = []
        for stage in stages:
            outcomes.extend(await stage(query, ledger, outcomes))

        result = self._build_result(query, ledger, outcomes)
        logger.info(
            "Reconciled %s->%s on %s: %d flights from [%s]",
            query.origin,
            query.destination or "*",
            query.day,
            result.total_departures,
            ", ".join(result.data_sources),
        )

        if result.flights:
            self._cache.set(cache_key, result.to_dict(), self._config.route_cache_ttl_s)
        return result

    async def _schedule_stage(
        self,
        query: _RouteQuery,
        ledger: _FlightLedger,
        outcomes: List[StageOutcome],
    ) -> List[StageOutcome]:
        fetched = await self._safe_fetch(self._schedule, FetchScope(airport=query.origin, day=query.day))

        contributed = 0
        for record in fetched.records:
            if not record.destination:
                continue
            if query.destination and record.destination != query.destination:
                continue
            flight = self._to_reconciled(record, query.origin, record.destination, VerificationSource.SCHEDULE)
            if flight is not None and ledger.add(flight):
                contributed += 1

        return [
            StageOutcome(
                data_source=DataSource.FR24_SCHEDULE,
                contributed=contributed,
                rate_limited=fetched.rate_limited,
                error=fetched.error,
            )
        ]

    async def _live_stage(
        self,
        query: _RouteQuery,
        ledger: _FlightLedger,
        outcomes: List[StageOutcome],
    ) -> List[StageOutcome]:
        fetched = await self._safe_fetch(
            self._live,
            FetchScope(airport=query.origin, destination=query.destination),
        )

        contributed = 0
        enriched = 0
        for record in fetched.records:
            if not record.destination:
                continue
            if query.destination and record.destination != query.destination:
                continue
            flight = self._to_reconciled(record, query.origin, record.destination, VerificationSource.LIVE)
            if flight is None:
                continue

            position = ledger.find(flight.flight_number, flight.callsign)
            if position is None:
                ledger.add(flight)
                contributed += 1
                continue

            accepted = ledger[position]
            callsign_owner = ledger.find(callsign=flight.callsign)
            if callsign_owner is not None and callsign_owner != position:
                logger.debug(
                    "Live %s reports %s but that callsign belongs to %s; skipped",
                    flight.callsign,
                    flight.flight_number,
                    ledger[callsign_owner].flight_number,
                )
                continue

            ledger.replace(
                position,
                replace(
                    accepted,
                    callsign=accepted.callsign or flight.callsign,
                    status=record.status or accepted.status,
                    is_live=True,
                    registration=accepted.registration or record.registration,
                    aircraft_code=accepted.aircraft_code or record.aircraft_code,
                ),
            )
            enriched += 1

        return [
            StageOutcome(
                data_source=DataSource.FR24_LIVE,
                contributed=contributed,
                enriched=enriched,
                rate_limited=fetched.rate_limited,
                error=fetched.error,
            )
        ]

    async def _historical_stage(
        self,
        query: _RouteQuery,
        ledger: _FlightLedger,
        outcomes: List[StageOutcome],
    ) -> List[StageOutcome]:
        schedule_hits = sum(
            o.contributed for o in outcomes if o.data_source is DataSource.FR24_SCHEDULE
        )
        if query.destination is None or schedule_hits > 0:
            return [StageOutcome(data_source=DataSource.OPENSKY, skipped=True)]

        fetched = await self._safe_fetch(self._historical, FetchScope(airport=query.origin))
        historical = StageOutcome(
            data_source=DataSource.OPENSKY,
            rate_limited=fetched.rate_limited,
            error=fetched.error,
        )
        if not fetched.records:
            return [historical]

        candidates = self._historical_candidates(fetched.records, ledger)
        destination_icao = self._reference.icao_for(query.destination)
        batch_size = max(1, self._config.verification_batch_size)

        contributed = 0
        verified = 0
        verification_errors: List[str] = []
        verification_rate_limited = False

        for start in range(0, len(candidates), batch_size):
            batch = candidates[start : start + batch_size]
            lookups = await asyncio.gather(
                *(
                    self._safe_fetch(self._verification, FetchScope(callsign=c.callsign))
                    for c in batch
                )
            )

            for candidate, lookup in zip(batch, lookups):
                verification_rate_limited = verification_rate_limited or lookup.rate_limited
                if lookup.error:
                    verification_errors.append(lookup.error)

                confirmed = next((r.destination for r in lookup.records if r.destination), None)
                if confirmed is not None:
                    if confirmed != query.destination:
                        continue
                    tier = VerificationSource.VERIFIED_ROUTE
                elif destination_icao and candidate.estimated_arrival_icao == destination_icao:
                    tier = VerificationSource.ESTIMATED
                else:
                    continue

                flight = self._to_reconciled(candidate, query.origin, query.destination, tier)
                if flight is not None and ledger.add(flight):
                    contributed += 1
                    if tier is VerificationSource.VERIFIED_ROUTE:
                        verified += 1

        if verification_errors:
            logger.warning(
                "Route verification failed for %d of %d candidates from %s",
                len(verification_errors),
                len(candidates),
                query.origin,
            )

        return [
            replace(historical, contributed=contributed),
            StageOutcome(
                data_source=DataSource.ADSBDB,
                enriched=verified,
                rate_limited=verification_rate_limited,
                error=verification_errors[0] if verification_errors else None,
            ),
        ]

    def _historical_candidates(
        self,
        records: tuple,
        ledger: _FlightLedger,
    ) -> List[SourceFlight]:
        """Observed departures worth a verification lookup."""
        candidates = []
        seen = set()
        for record in records:
            parsed = self._carriers.parse_callsign(record.callsign)
            if parsed is None or not self._carriers.is_scorable(parsed.marketing_code):
                continue
            if parsed.callsign in seen or ledger.find(callsign=parsed.callsign) is not None:
                continue
            seen.add(parsed.callsign)
            candidates.append(record)
        return candidates

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _safe_fetch(self, source: FlightSource, scope: FetchScope) -> SourceFetchResult:
        try:
            return await source.fetch(scope)
        except Exception as e:
            logger.error("Source %s raised: %s", source.name, e, exc_info=True)
            return SourceFetchResult(error=f"{source.name} failed: {e}")

    def _to_reconciled(
        self,
        record: SourceFlight,
        origin: str,
        destination: str,
        tier: VerificationSource,
    ) -> Optional[ReconciledFlight]:
        """
        Map a source record to a reconciled flight.

        Returns None when neither the flight number nor the callsign
        identifies a scorable passenger carrier.
        """
        parsed = self._carriers.parse_callsign(record.callsign) if record.callsign else None
        numbered = self._carriers.parse_flight_number(record.flight_number)

        if numbered is not None:
            marketing = record.carrier_code or numbered[0]
            number = numbered[1]
        elif parsed is not None:
            marketing = parsed.marketing_code
            number = parsed.number
        else:
            return None

        if not self._carriers.is_scorable(marketing):
            return None

        operator = parsed.operator if parsed is not None else None
        if operator is None and record.operating_carrier_code and record.operating_carrier_code != marketing:
            operator = self._carriers.operator_for_iata(record.operating_carrier_code)
        is_regional = operator is not None and operator.is_regional

        timestamp = record.departure_timestamp or int(self._clock())
        callsign = parsed.callsign if parsed is not None else (record.callsign or "")
        ident = callsign or f"{marketing}{number}"

        return ReconciledFlight(
            flight_number=self._carriers.display_flight_number(marketing, number),
            callsign=callsign,
            carrier_code=marketing,
            carrier_name=self._carriers.display_name(marketing, operator),
            operating_carrier_code=operator.iata_code if operator else (record.operating_carrier_code or marketing),
            origin=origin,
            destination=destination,
            departure_timestamp=timestamp,
            departure_time=self.local_time(timestamp, origin),
            verified=tier is not VerificationSource.ESTIMATED,
            verification_source=tier,
            is_regional=is_regional,
            data_source=record.source,
            tracking_url=TRACKING_URL.format(ident=ident),
            aircraft_code=record.aircraft_code,
            aircraft_name=record.aircraft_name,
            registration=record.registration,
            status=record.status,
            is_live=record.is_live,
            codeshares=record.codeshares,
            external_id=record.external_id,
        )

    def local_time(self, timestamp: int, airport: str) -> str:
        """Format an epoch timestamp as "HH:MM" at the airport."""
        return datetime.fromtimestamp(timestamp, self._timezone(airport)).strftime("%H:%M")

    def _timezone(self, airport: str) -> ZoneInfo:
        return ZoneInfo(self._reference.timezone_for(airport))

    def _build_result(
        self,
        query: _RouteQuery,
        ledger: _FlightLedger,
        outcomes: List[StageOutcome],
    ) -> ReconciliationResult:
        flights = tuple(ledger.sorted_flights())
        errors = [o.error for o in outcomes if o.error]
        rate_limited = any(o.rate_limited for o in outcomes)
        historical_rate_limited = any(
            o.rate_limited for o in outcomes if o.data_source is DataSource.OPENSKY
        )

        data_sources: List[str] = []
        for outcome in outcomes:
            label = outcome.data_source.label
            if outcome.used and label not in data_sources:
                data_sources.append(label)

        if not flights:
            if rate_limited:
                error: Optional[str] = ERROR_ALL_SOURCES_UNAVAILABLE
                message: Optional[str] = MESSAGE_RATE_LIMITED
            else:
                error = "; ".join(errors) or None
                message = no_flights_message(query.origin, query.destination)
        else:
            rate_limited = False
            error = "; ".join(errors) or None
            message = MESSAGE_HISTORICAL_RATE_LIMITED if historical_rate_limited else None

        return ReconciliationResult(
            flights=flights,
            rate_limited=rate_limited,
            historical_rate_limited=historical_rate_limited,
            error=error,
            message=message,
            data_sources=tuple(data_sources),
            verified_count=sum(1 for f in flights if f.verified),
            total_departures=len(flights),
        )

    @staticmethod
    def _unknown_airport_result(codes: List[str]) -> ReconciliationResult:
        error = "Unknown airport: " + " or ".join(codes)
        logger.warning("%s", error)
        return ReconciliationResult(error=error, message=error)
