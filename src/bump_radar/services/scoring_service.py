"""
Scoring Service - bump-risk scores for reconciled flights.

Every flight starts at a base score and collects points from a fixed,
ordered list of bounded factors. Each factor is clamped to its own cap,
the total is clamped to [5, 98], and every factor (zero or not) is kept
with a description so the score can be audited.

Factors:
    Carrier           0-15  round(denied-boarding rate x 12)
    Load Factor       0-20  round((LF - 0.80) x 133), peak days +0.04
    Day of Week       0-15  Mon/Thu/Fri 15, Sun 10, leisure Sat 12, else 2
    Time of Day       0-15  evening banks and early mornings score highest
    Aircraft          0-20  fewer seats, higher score
    Origin Weather    0-25  provider severity
    Destination Weather 0-15  60% of provider severity
    Holiday           0-15  calendar score
    Fortress Hub      0-5   dominant carrier at its hub
    FAA Disruption    0-15  ground stop/closure 15, ground delay 10, delay 5
    Cascade Boost     0-13  disrupted origin, departure 2-8h out

Each scored flight also carries a DOT compensation estimate based on
the next departure on its route.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from src.bump_radar.ports.signal_providers import (
    AirportStatus,
    AirportStatusProvider,
    DelayType,
    HolidayCalendar,
    HolidayScore,
    WeatherSeverity,
    WeatherSeverityProvider,
)
from src.bump_radar.schemas.config import ScoringConfig
from src.bump_radar.schemas.flight import ReconciledFlight
from src.bump_radar.schemas.reconciliation import ReconciliationResult
from src.bump_radar.schemas.reference import AircraftType, ReferenceData
from src.bump_radar.schemas.scoring import (
    MAX_BUMP_SCORE,
    MIN_BUMP_SCORE,
    ScoredFlight,
    ScoreFactor,
    ScoreResult,
)
from src.bump_radar.services.aircraft_resolver import AircraftResolver
from src.bump_radar.services.compensation import estimate_compensation, estimate_fare
from src.bump_radar.services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

# Factor caps
CARRIER_MAX = 15
LOAD_FACTOR_MAX = 20
DAY_OF_WEEK_MAX = 15
TIME_OF_DAY_MAX = 15
AIRCRAFT_MAX = 20
ORIGIN_WEATHER_MAX = 25
DESTINATION_WEATHER_MAX = 15
HOLIDAY_MAX = 15
FORTRESS_HUB_MAX = 5
FAA_MAX = 15
CASCADE_MAX = 13

CASCADE_POINTS = 8
CASCADE_WEATHER_THRESHOLD = 15

FORTRESS_HUBS: Dict[str, Tuple[str, ...]] = {
    "DL": ("ATL",),
    "AA": ("DFW", "CLT"),
    "UA": ("EWR", "ORD", "DEN"),
}

FAA_POINTS: Dict[DelayType, int] = {
    DelayType.GROUND_STOP: 15,
    DelayType.CLOSURE: 15,
    DelayType.GROUND_DELAY: 10,
    DelayType.DELAY: 5,
}


def round_half_up(value: float) -> int:
    """Round like a calculator: 0.5 goes up."""
    return int(math.floor(value + 0.5))


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def minutes_of_day(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


@dataclass(frozen=True)
class RouteSignals:
    """
    External signals shared by every flight on a route.

    Attributes:
        day: Travel date (drives day-of-week and holiday factors).
        origin_weather: Weather severity at the origin.
        destination_weather: Weather severity at the destination.
        origin_status: FAA status at the origin, if known.
        destination_status: FAA status at the destination, if known.
        holiday: Holiday calendar score for ``day``.
        route_frequency: Flights on the route that day.
        route_times: "HH:MM" departures on the route that day.
        now: Current time in epoch seconds.
    """

    day: date
    origin_weather: WeatherSeverity = field(default_factory=WeatherSeverity)
    destination_weather: WeatherSeverity = field(default_factory=WeatherSeverity)
    origin_status: Optional[AirportStatus] = None
    destination_status: Optional[AirportStatus] = None
    holiday: HolidayScore = field(default_factory=HolidayScore)
    route_frequency: int = 0
    route_times: Tuple[str, ...] = ()
    now: float = 0.0


class ScoringService:
    """
    Scores reconciled flights.

    Attributes:
        _reconciliation: Source of reconciled flights.
        _reference: Carrier, route and aircraft reference data.
        _aircraft: Aircraft resolver.
        _weather: Weather severity provider.
        _airport_status: FAA status provider.
        _holidays: Holiday calendar.
        _config: Scoring configuration.
        _clock: Wall clock in epoch seconds.
    """

    def __init__(
        self,
        reconciliation: ReconciliationService,
        reference: ReferenceData,
        weather: WeatherSeverityProvider,
        airport_status: AirportStatusProvider,
        holidays: HolidayCalendar,
        config: Optional[ScoringConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._reconciliation = reconciliation
        self._reference = reference
        self._aircraft = AircraftResolver(reference)
        self._weather = weather
        self._airport_status = airport_status
        self._holidays = holidays
        self._config = config or ScoringConfig()
        self._clock = clock

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def score_flights(
        self,
        origin: str,
        destination: str,
        day: Optional[date] = None,
    ) -> ScoreResult:
        """
        Score every reconciled flight on a route.

        Returns:
            ScoreResult with flights sorted by score, highest first.
        """
        origin = origin.strip().upper()
        destination = destination.strip().upper()
        day = day or self._reconciliation.today(origin)

        reconciled = await self._reconciliation.reconcile_route(origin, destination, day)
        if not reconciled.flights:
            return self._empty_result(reconciled)

        signals = await self._route_signals(origin, destination, day, reconciled.flights)
        scored = [self.score_flight(flight, signals) for flight in reconciled.flights]
        scored.sort(key=lambda s: s.bump_score, reverse=True)

        logger.info(
            "Scored %d flights %s->%s on %s (top score %d)",
            len(scored),
            origin,
            destination,
            day,
            scored[0].bump_score,
        )
        return self._result(reconciled, scored, scored)

    async def score_origin_departures(
        self,
        origin: str,
        day: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> ScoreResult:
        """
        Score departures from an origin to any destination.

        Args:
            origin: Origin IATA code.
            day: Travel date; defaults to today at the origin.
            limit: Keep only the top-N flights (default from config).

        Returns:
            ScoreResult with the top flights; ``total_departures`` counts
            all scored departures before truncation.
        """
        origin = origin.strip().upper()
        day = day or self._reconciliation.today(origin)
        limit = self._config.origin_search_limit if limit is None else limit

        reconciled = await self._reconciliation.reconcile_origin(origin, day)
        if not reconciled.flights:
            return self._empty_result(reconciled)

        per_destination: Dict[str, List[ReconciledFlight]] = {}
        for flight in reconciled.flights:
            per_destination.setdefault(flight.destination, []).append(flight)

        destinations = sorted(per_destination)
        signals_list = await asyncio.gather(
            *(
                self._route_signals(origin, dest, day, per_destination[dest])
                for dest in destinations
            )
        )

        scored: List[ScoredFlight] = []
        for dest, signals in zip(destinations, signals_list):
            scored.extend(self.score_flight(flight, signals) for flight in per_destination[dest])
        scored.sort(key=lambda s: s.bump_score, reverse=True)

        logger.info(
            "Scored %d departures from %s on %s across %d destinations",
            len(scored),
            origin,
            day,
            len(destinations),
        )
        return self._result(reconciled, scored[:limit], scored)

    def score_flight(self, flight: ReconciledFlight, signals: RouteSignals) -> ScoredFlight:
        """Score one flight against precomputed route signals."""
        origin, destination = flight.origin, flight.destination
        aircraft = self._aircraft.resolve(
            origin,
            destination,
            flight.carrier_code,
            is_regional=flight.is_regional,
            feed_code=flight.aircraft_code,
        )

        carrier_factor, db_rate = self._carrier_factor(flight.carrier_code)
        load_factor_factor, load_factor = self._load_factor_factor(origin, destination, signals.day)

        factors = (
            ScoreFactor("Base", self._config.base_score, self._config.base_score, "Base bump risk"),
            carrier_factor,
            load_factor_factor,
            self._day_of_week_factor(origin, destination, signals.day),
            self._time_of_day_factor(flight.departure_time),
            self._aircraft_factor(aircraft),
            self._origin_weather_factor(signals.origin_weather),
            self._destination_weather_factor(signals.destination_weather),
            self._holiday_factor(signals.holiday),
            self._fortress_hub_factor(flight.carrier_code, origin),
            self._faa_factor(signals.origin_status, signals.destination_status),
            self._cascade_factor(flight, signals),
        )

        score = clamp(sum(f.points for f in factors), MIN_BUMP_SCORE, MAX_BUMP_SCORE)
        duration = self._reference.route_duration(origin, destination)

        return ScoredFlight(
            flight=flight,
            bump_score=score,
            factors=factors,
            aircraft=aircraft,
            load_factor=load_factor,
            carrier_db_rate=db_rate,
            arrival_time=self._add_minutes(flight.departure_time, duration),
            compensation=estimate_compensation(
                flight.departure_time,
                signals.route_times or (flight.departure_time,),
                duration,
                estimate_fare(self._reference.route_distance(origin, destination)),
            ),
        )

    # =========================================================================
    # FACTORS
    # =========================================================================

    def _carrier_factor(self, carrier_code: str) -> Tuple[ScoreFactor, float]:
        stats = self._reference.carrier(carrier_code)
        db_rate = stats.db_rate if stats else self._config.default_db_rate
        points = clamp(round_half_up(db_rate * 12), 0, CARRIER_MAX)

        if stats is None:
            description = f"Industry average DB rate ({db_rate:g}/10k)"
        elif points >= 8:
            description = f"{stats.name} high DB rate ({db_rate:g}/10k)"
        else:
            description = f"{stats.name} DB rate ({db_rate:g}/10k)"
        return ScoreFactor("Carrier", points, CARRIER_MAX, description), db_rate

    def _load_factor_factor(self, origin: str, destination: str, day: date) -> Tuple[ScoreFactor, float]:
        route = self._reference.route_load_factor(origin, destination)
        load_factor = route.load_factor if route else self._config.default_load_factor
        if route is not None and day.weekday() in route.peak_days:
            load_factor = min(self._config.max_load_factor, load_factor + self._config.peak_day_boost)

        points = clamp(round_half_up((load_factor - 0.80) * 133), 0, LOAD_FACTOR_MAX)
        percent = round_half_up(load_factor * 100)
        if load_factor >= 0.88:
            description = f"High load factor ({percent}%)"
        else:
            description = f"Load factor {percent}%"
        return ScoreFactor("Load Factor", points, LOAD_FACTOR_MAX, description), load_factor

    def _day_of_week_factor(self, origin: str, destination: str, day: date) -> ScoreFactor:
        weekday = day.weekday()
        route = self._reference.route_load_factor(origin, destination)
        is_leisure = route.is_leisure if route else False

        if weekday in (0, 3, 4):
            points, description = 15, "Peak business travel day"
        elif weekday == 6:
            points, description = 10, "Sunday return travel surge"
        elif weekday == 5 and is_leisure:
            points, description = 12, "Weekend leisure route demand"
        else:
            points, description = 2, "Off-peak travel day"
        return ScoreFactor("Day of Week", points, DAY_OF_WEEK_MAX, description)

    def _time_of_day_factor(self, departure_time: str) -> ScoreFactor:
        minutes = minutes_of_day(departure_time)
        if minutes >= 18 * 60:
            points, description = 15, "Last bank of the day"
        elif minutes >= 16 * 60:
            points, description = 12, "Late afternoon departure"
        elif minutes <= 8 * 60:
            points, description = 10, "Early morning business rush"
        elif minutes <= 10 * 60:
            points, description = 8, "Morning peak departure"
        else:
            points, description = 3, "Midday departure"
        return ScoreFactor("Time of Day", points, TIME_OF_DAY_MAX, description)

    def _aircraft_factor(self, aircraft: AircraftType) -> ScoreFactor:
        capacity = aircraft.capacity
        if aircraft.is_regional:
            points, description = 20, f"Regional jet ({aircraft.name}, {capacity} seats)"
        elif capacity <= 140:
            points, description = 12, f"Small narrowbody ({aircraft.name}, {capacity} seats)"
        elif capacity <= 180:
            points, description = 8, f"Standard narrowbody ({capacity} seats)"
        elif capacity <= 200:
            points, description = 4, f"Large narrowbody ({capacity} seats)"
        else:
            points, description = 0, f"Widebody ({aircraft.name}, {capacity} seats)"
        return ScoreFactor("Aircraft", points, AIRCRAFT_MAX, description)

    def _origin_weather_factor(self, weather: WeatherSeverity) -> ScoreFactor:
        if weather.score > 0 and weather.reason:
            points = clamp(weather.score, 0, ORIGIN_WEATHER_MAX)
            return ScoreFactor("Origin Weather", points, ORIGIN_WEATHER_MAX, f"Origin: {weather.reason}")
        return ScoreFactor("Origin Weather", 0, ORIGIN_WEATHER_MAX, "No significant weather at origin")

    def _destination_weather_factor(self, weather: WeatherSeverity) -> ScoreFactor:
        if weather.score > 0 and weather.reason:
            points = clamp(
                round_half_up(weather.score * self._config.destination_weight),
                0,
                DESTINATION_WEATHER_MAX,
            )
            return ScoreFactor(
                "Destination Weather", points, DESTINATION_WEATHER_MAX, f"Destination: {weather.reason}"
            )
        return ScoreFactor(
            "Destination Weather", 0, DESTINATION_WEATHER_MAX, "No significant weather at destination"
        )

    def _holiday_factor(self, holiday: HolidayScore) -> ScoreFactor:
        points = clamp(holiday.score, 0, HOLIDAY_MAX)
        if points > 0 and holiday.description:
            return ScoreFactor("Holiday", points, HOLIDAY_MAX, holiday.description)
        return ScoreFactor("Holiday", 0, HOLIDAY_MAX, "No holiday or seasonal peak")

    def _fortress_hub_factor(self, carrier_code: str, origin: str) -> ScoreFactor:
        if origin in FORTRESS_HUBS.get(carrier_code, ()):
            stats = self._reference.carrier(carrier_code)
            name = stats.name if stats else carrier_code
            return ScoreFactor(
                "Fortress Hub", FORTRESS_HUB_MAX, FORTRESS_HUB_MAX, f"{name} fortress hub dynamics"
            )
        return ScoreFactor("Fortress Hub", 0, FORTRESS_HUB_MAX, "No fortress hub effect")

    def _faa_factor(
        self,
        origin_status: Optional[AirportStatus],
        destination_status: Optional[AirportStatus],
    ) -> ScoreFactor:
        origin_points = self._faa_points(origin_status)
        destination_points = round_half_up(
            self._faa_points(destination_status) * self._config.destination_weight
        )

        if origin_points == 0 and destination_points == 0:
            return ScoreFactor("FAA Disruption", 0, FAA_MAX, "No active airport disruptions")

        status = origin_status if origin_points >= destination_points else destination_status
        points = clamp(max(origin_points, destination_points), 0, FAA_MAX)
        return ScoreFactor("FAA Disruption", points, FAA_MAX, self._faa_description(status))

    @staticmethod
    def _faa_points(status: Optional[AirportStatus]) -> int:
        if status is None or not status.delay:
            return 0
        return FAA_POINTS[status.delay_type or DelayType.DELAY]

    @staticmethod
    def _faa_description(status: AirportStatus) -> str:
        label = (status.delay_type or DelayType.DELAY).label
        details = [d for d in (status.reason, f"avg {status.avg_delay}" if status.avg_delay else None) if d]
        description = f"FAA {label} at {status.airport}"
        if details:
            description += f" ({', '.join(details)})"
        return description

    def _cascade_factor(self, flight: ReconciledFlight, signals: RouteSignals) -> ScoreFactor:
        """
        Boost flights departing a few hours after an origin disruption.

        Aircraft and crews stranded by the disruption push misconnected
        passengers onto later departures; routes with a single daily
        frequency have nowhere else to put them.
        """
        origin_disrupted = signals.origin_weather.score >= CASCADE_WEATHER_THRESHOLD or (
            signals.origin_status is not None and signals.origin_status.delay
        )
        if not origin_disrupted:
            return ScoreFactor("Cascade Boost", 0, CASCADE_MAX, "No upstream disruption")

        tz = ZoneInfo(self._reference.timezone_for(flight.origin))
        hours, minutes = divmod(minutes_of_day(flight.departure_time), 60)
        departure = datetime(
            signals.day.year, signals.day.month, signals.day.day, hours, minutes, tzinfo=tz
        )
        hours_out = (departure.timestamp() - signals.now) / 3600

        window_start, window_end = self._config.cascade_window_hours
        if not window_start <= hours_out <= window_end:
            return ScoreFactor("Cascade Boost", 0, CASCADE_MAX, "Outside disruption cascade window")

        if signals.route_frequency <= 1:
            return ScoreFactor(
                "Cascade Boost", CASCADE_MAX, CASCADE_MAX, "Cascade from origin disruption (single daily flight)"
            )
        return ScoreFactor("Cascade Boost", CASCADE_POINTS, CASCADE_MAX, "Cascade from origin disruption")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _route_signals(
        self,
        origin: str,
        destination: str,
        day: date,
        flights: Sequence[ReconciledFlight],
    ) -> RouteSignals:
        origin_weather, destination_weather, origin_status, destination_status = await asyncio.gather(
            self._safe_weather(origin),
            self._safe_weather(destination),
            self._safe_status(origin),
            self._safe_status(destination),
        )
        return RouteSignals(
            day=day,
            origin_weather=origin_weather,
            destination_weather=destination_weather,
            origin_status=origin_status,
            destination_status=destination_status,
            holiday=self._safe_holiday(day),
            route_frequency=len(flights),
            route_times=tuple(f.departure_time for f in flights),
            now=self._clock(),
        )

    async def _safe_weather(self, airport: str) -> WeatherSeverity:
        try:
            return await self._weather.get_severity(airport)
        except Exception as e:
            logger.warning("Weather severity unavailable for %s: %s", airport, e)
            return WeatherSeverity()

    async def _safe_status(self, airport: str) -> Optional[AirportStatus]:
        try:
            return await self._airport_status.get_status(airport)
        except Exception as e:
            logger.warning("FAA status unavailable for %s: %s", airport, e)
            return None

    def _safe_holiday(self, day: date) -> HolidayScore:
        try:
            return self._holidays.score(day)
        except Exception as e:
            logger.warning("Holiday calendar failed for %s: %s", day, e)
            return HolidayScore()

    @staticmethod
    def _add_minutes(hhmm: str, minutes: int) -> str:
        start = datetime(2000, 1, 1) + timedelta(minutes=minutes_of_day(hhmm) + minutes)
        return start.strftime("%H:%M")

    @staticmethod
    def _empty_result(reconciled: ReconciliationResult) -> ScoreResult:
        return ScoreResult(
            rate_limited=reconciled.rate_limited,
            historical_rate_limited=reconciled.historical_rate_limited,
            error=reconciled.error,
            message=reconciled.message,
            data_sources=reconciled.data_sources,
        )

    @staticmethod
    def _result(
        reconciled: ReconciliationResult,
        kept: List[ScoredFlight],
        scored: List[ScoredFlight],
    ) -> ScoreResult:
        """Build a result from the kept flights; counts cover every scored flight."""
        return ScoreResult(
            flights=tuple(kept),
            rate_limited=False,
            historical_rate_limited=reconciled.historical_rate_limited,
            error=reconciled.error,
            message=reconciled.message,
            data_sources=reconciled.data_sources,
            verified_count=sum(1 for s in scored if s.flight.verified),
            total_departures=len(scored),
        )
