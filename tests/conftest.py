"""
Shared pytest fixtures.

Fakes for the upstream sources live here so service and application
tests can script exactly what each feed returns and assert which
feeds were consulted.
"""

from datetime import date, datetime
from types import SimpleNamespace
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest

from src.bump_radar.adapters.reference.csv_reference_loader import load_reference_data
from src.bump_radar.ports.flight_source import FetchScope, FlightSource, SourceFetchResult
from src.bump_radar.schemas.flight import DataSource, SourceConfidence, SourceFlight
from src.bump_radar.schemas.reference import ReferenceData

# 2026-04-14 10:00 America/New_York (a Tuesday)
NOW = 1_776_175_200.0
TODAY = date(2026, 4, 14)


# =============================================================================
# FAKES
# =============================================================================


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFlightSource(FlightSource):
    """Returns a canned result and records every scope it was asked for."""

    def __init__(
        self,
        name: str,
        records: tuple = (),
        rate_limited: bool = False,
        error: Optional[str] = None,
        raises: Optional[Exception] = None,
    ) -> None:
        self._name = name
        self.result = SourceFetchResult(records=tuple(records), rate_limited=rate_limited, error=error)
        self.raises = raises
        self.calls: List[FetchScope] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, scope: FetchScope) -> SourceFetchResult:
        self.calls.append(scope)
        if self.raises is not None:
            raise self.raises
        return self.result

    async def close(self) -> None:
        self.closed = True


class FakeRouteVerifier(FlightSource):
    """Confirms destinations for known callsigns; other callsigns are misses."""

    def __init__(
        self,
        routes: Optional[Dict[str, str]] = None,
        rate_limited: bool = False,
    ) -> None:
        self.routes = routes or {}
        self.rate_limited = rate_limited
        self.calls: List[str] = []
        self.closed = False

    @property
    def name(self) -> str:
        return DataSource.ADSBDB.label

    async def fetch(self, scope: FetchScope) -> SourceFetchResult:
        self.calls.append(scope.callsign)
        if self.rate_limited:
            return SourceFetchResult(rate_limited=True, error="ADSBDB rate limit reached")
        destination = self.routes.get(scope.callsign)
        if destination is None:
            return SourceFetchResult()
        return SourceFetchResult(
            records=(
                SourceFlight(
                    source=DataSource.ADSBDB,
                    confidence=SourceConfidence.ROUTE_CONFIRMED,
                    callsign=scope.callsign,
                    origin="ATL",
                    destination=destination,
                ),
            )
        )

    async def close(self) -> None:
        self.closed = True


def departs_at(hhmm: str, day: date = TODAY, tz: str = "America/New_York") -> int:
    """Epoch seconds for a local departure time."""
    hours, minutes = (int(part) for part in hhmm.split(":"))
    return int(datetime(day.year, day.month, day.day, hours, minutes, tzinfo=ZoneInfo(tz)).timestamp())


def scheduled(
    number: str,
    destination: str,
    hhmm: str,
    callsign: str = "",
    origin: str = "ATL",
    day: date = TODAY,
    operating: str = "",
    aircraft_code: Optional[str] = None,
) -> SourceFlight:
    return SourceFlight(
        source=DataSource.FR24_SCHEDULE,
        confidence=SourceConfidence.SCHEDULED,
        callsign=callsign,
        flight_number=number,
        carrier_code=number[:2],
        operating_carrier_code=operating or number[:2],
        origin=origin,
        destination=destination,
        departure_timestamp=departs_at(hhmm, day),
        aircraft_code=aircraft_code,
        status="Scheduled",
    )


def airborne(
    callsign: str,
    destination: str,
    number: str = "",
    origin: str = "ATL",
    departure_timestamp: Optional[int] = None,
) -> SourceFlight:
    return SourceFlight(
        source=DataSource.FR24_LIVE,
        confidence=SourceConfidence.LIVE_TRACK,
        callsign=callsign,
        flight_number=number,
        carrier_code=number[:2],
        origin=origin,
        destination=destination,
        departure_timestamp=departure_timestamp,
        registration="N801DZ",
        aircraft_code="B739",
        status="In Air",
        is_live=True,
    )


def observed(
    callsign: str,
    arrival_icao: Optional[str],
    hhmm: str = "07:00",
    origin: str = "ATL",
) -> SourceFlight:
    return SourceFlight(
        source=DataSource.OPENSKY,
        confidence=SourceConfidence.OBSERVED,
        callsign=callsign,
        origin=origin,
        departure_timestamp=departs_at(hhmm),
        estimated_arrival_icao=arrival_icao,
    )


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def anyio_backend():
    """Use asyncio backend."""
    return "asyncio"


@pytest.fixture(scope="session")
def reference() -> ReferenceData:
    """Packaged reference tables (loaded once per session)."""
    return load_reference_data()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_source():
    """Factory for scripted flight sources."""
    return FakeFlightSource


@pytest.fixture
def make_verifier():
    """Factory for scripted route verifiers."""
    return FakeRouteVerifier


@pytest.fixture
def flights():
    """Builders for source records: ``scheduled``, ``airborne``, ``observed``, ``departs_at``."""
    return SimpleNamespace(
        scheduled=scheduled,
        airborne=airborne,
        observed=observed,
        departs_at=departs_at,
    )
