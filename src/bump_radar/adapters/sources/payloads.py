"""
Pydantic models for upstream payloads.

Each upstream record is validated on its own: a record that fails
validation is dropped and counted, the rest of the response survives.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _upper_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().upper()
    return text or None


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# Codes arrive padded, lower-cased or empty depending on the feed
Code = Annotated[Optional[str], BeforeValidator(_upper_or_none)]
Text = Annotated[Optional[str], BeforeValidator(_strip_or_none)]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# =============================================================================
# FLIGHTRADAR24 AIRPORT SCHEDULE
# =============================================================================


class AirlineCode(_Payload):
    iata: Code = None
    icao: Code = None


class Airline(_Payload):
    code: AirlineCode = Field(default_factory=AirlineCode)


class FlightNumber(_Payload):
    default: Code = None


class Identification(_Payload):
    id: Text = None
    number: FlightNumber = Field(default_factory=FlightNumber)
    callsign: Code = None
    codeshare: Optional[List[Any]] = None


class FlightStatus(_Payload):
    text: Text = None
    live: bool = False


class AircraftModel(_Payload):
    code: Code = None
    text: Text = None


class Aircraft(_Payload):
    model: AircraftModel = Field(default_factory=AircraftModel)
    registration: Text = None


class AirportCode(_Payload):
    iata: Code = None
    icao: Code = None


class AirportRef(_Payload):
    code: AirportCode = Field(default_factory=AirportCode)


class ScheduleAirports(_Payload):
    origin: Optional[AirportRef] = None
    destination: Optional[AirportRef] = None


class ScheduledTimes(_Payload):
    departure: Optional[int] = None


class FlightTimes(_Payload):
    scheduled: ScheduledTimes = Field(default_factory=ScheduledTimes)


class ScheduleFlight(_Payload):
    """One entry of ``pluginData.schedule.departures.data[].flight``."""

    identification: Identification = Field(default_factory=Identification)
    status: FlightStatus = Field(default_factory=FlightStatus)
    aircraft: Aircraft = Field(default_factory=Aircraft)
    airline: Airline = Field(default_factory=Airline)
    owner: Optional[Airline] = None
    airport: ScheduleAirports = Field(default_factory=ScheduleAirports)
    time: FlightTimes = Field(default_factory=FlightTimes)

    @property
    def destination_iata(self) -> Optional[str]:
        dest = self.airport.destination
        return dest.code.iata if dest else None

    @property
    def codeshares(self) -> List[str]:
        """Codeshare flight numbers as plain strings."""
        numbers = []
        for item in self.identification.codeshare or []:
            if isinstance(item, dict):
                item = item.get("default") or item.get("number")
                if isinstance(item, dict):
                    item = item.get("default")
            number = _upper_or_none(item)
            if number:
                numbers.append(number)
        return numbers


class SchedulePage(_Payload):
    current: int = 1
    total: int = 1


class ScheduleDepartures(_Payload):
    """``pluginData.schedule.departures`` envelope; records stay raw."""

    page: SchedulePage = Field(default_factory=SchedulePage)
    data: List[Any] = Field(default_factory=list)


# =============================================================================
# FLIGHTRADAR24 LIVE FEED
# =============================================================================

LIVE_FEED_MIN_FIELDS = 17


class LiveFeedEntry(_Payload):
    """
    One positional array from the live feed.

    Index map: 0 icao24, 1 lat, 2 lon, 3 heading, 4 altitude, 5 speed,
    6 squawk, 8 aircraft code, 9 registration, 10 timestamp,
    11 origin, 12 destination, 13 flight number, 16 callsign.
    """

    icao24: Text = None
    latitude: float = 0.0
    longitude: float = 0.0
    aircraft_code: Code = None
    registration: Text = None
    timestamp: Optional[int] = None
    origin: Code = None
    destination: Code = None
    flight_number: Code = None
    callsign: Code = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _zero_to_none(cls, value: Any) -> Any:
        if value in (None, "", 0):
            return None
        return value

    @classmethod
    def from_array(cls, values: List[Any]) -> LiveFeedEntry:
        """Validate a positional feed array (at least 17 fields)."""
        return cls.model_validate(
            {
                "icao24": values[0],
                "latitude": values[1] or 0.0,
                "longitude": values[2] or 0.0,
                "aircraft_code": values[8],
                "registration": values[9],
                "timestamp": values[10],
                "origin": values[11],
                "destination": values[12],
                "flight_number": values[13],
                "callsign": values[16],
            }
        )


# =============================================================================
# OPENSKY DEPARTURES
# =============================================================================


class OpenSkyDeparture(_Payload):
    icao24: str
    first_seen: int = Field(alias="firstSeen")
    last_seen: Optional[int] = Field(default=None, alias="lastSeen")
    est_departure_airport: Code = Field(default=None, alias="estDepartureAirport")
    est_arrival_airport: Code = Field(default=None, alias="estArrivalAirport")
    callsign: Code = None


# =============================================================================
# ADSBDB CALLSIGN ROUTES
# =============================================================================


class AdsbdbAirport(_Payload):
    iata_code: Code = None
    icao_code: Code = None
    code: Code = None

    @property
    def iata(self) -> Optional[str]:
        return self.iata_code or self.code


class AdsbdbFlightRoute(_Payload):
    callsign: Code = None
    origin: Optional[AdsbdbAirport] = None
    destination: Optional[AdsbdbAirport] = None


class AdsbdbResponse(_Payload):
    flightroute: Optional[AdsbdbFlightRoute] = None
