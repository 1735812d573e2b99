"""
Reference data schemas.

Pandera models validate the packaged reference tables at the loader
boundary; the frozen dataclasses and ``ReferenceData`` are the
immutable lookup the scoring engine is injected with.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

import pandera as pa
from pandera.typing import Series

from src.bump_radar.exceptions import UnknownEntityError


# =============================================================================
# TABLE SCHEMAS (validated once, at load time)
# =============================================================================


class CarrierStatsSchema(pa.DataFrameModel):
    """BTS denied-boarding statistics per marketing carrier."""

    code: Series[str] = pa.Field(unique=True, str_length={"min_value": 2, "max_value": 2})
    name: Series[str] = pa.Field(nullable=False)
    db_rate: Series[float] = pa.Field(ge=0, description="Denied boardings per 10k enplanements")
    idb_rate: Series[float] = pa.Field(ge=0)
    vdb_rate: Series[float] = pa.Field(ge=0)
    load_factor: Series[float] = pa.Field(ge=0, le=1)
    avg_compensation: Series[float] = pa.Field(ge=0)
    oversale_rate: Series[float] = pa.Field(ge=0, le=1)

    class Config:
        strict = False
        coerce = True
        name = "CarrierStatsSchema"


class RouteLoadFactorSchema(pa.DataFrameModel):
    """Route-level load factors for high-demand corridors."""

    origin: Series[str] = pa.Field(str_length={"min_value": 3, "max_value": 3})
    destination: Series[str] = pa.Field(str_length={"min_value": 3, "max_value": 3})
    load_factor: Series[float] = pa.Field(ge=0, le=1)
    peak_days: Series[str] = pa.Field(
        nullable=True,
        description="Semicolon-separated Python weekdays (0=Monday)",
    )
    is_leisure: Series[bool]

    class Config:
        strict = False
        coerce = True
        name = "RouteLoadFactorSchema"


class AircraftTypeSchema(pa.DataFrameModel):
    """Aircraft categories used for capacity banding."""

    key: Series[str] = pa.Field(unique=True)
    name: Series[str]
    iata_code: Series[str]
    capacity: Series[int] = pa.Field(gt=0)
    is_regional: Series[bool]

    class Config:
        strict = False
        coerce = True
        name = "AircraftTypeSchema"


class AircraftCodeSchema(pa.DataFrameModel):
    """Feed aircraft code (e.g. 'B738') to aircraft category key."""

    feed_code: Series[str] = pa.Field(unique=True)
    aircraft_key: Series[str]

    class Config:
        strict = False
        coerce = True
        name = "AircraftCodeSchema"


class AircraftDefaultSchema(pa.DataFrameModel):
    """Per-carrier default aircraft by route duration band."""

    carrier: Series[str] = pa.Field(unique=True)
    short_haul: Series[str]
    medium_haul: Series[str]
    long_haul: Series[str]

    class Config:
        strict = False
        coerce = True
        name = "AircraftDefaultSchema"


class RouteDurationSchema(pa.DataFrameModel):
    """Typical block time per route, in minutes."""

    origin: Series[str] = pa.Field(str_length={"min_value": 3, "max_value": 3})
    destination: Series[str] = pa.Field(str_length={"min_value": 3, "max_value": 3})
    minutes: Series[int] = pa.Field(gt=0)

    class Config:
        strict = False
        coerce = True
        name = "RouteDurationSchema"


class RouteDistanceSchema(pa.DataFrameModel):
    """Great-circle distance per route, in statute miles."""

    origin: Series[str] = pa.Field(str_length={"min_value": 3, "max_value": 3})
    destination: Series[str] = pa.Field(str_length={"min_value": 3, "max_value": 3})
    miles: Series[int] = pa.Field(gt=0)

    class Config:
        strict = False
        coerce = True
        name = "RouteDistanceSchema"


class AirportSchema(pa.DataFrameModel):
    """Airports the system knows, with ICAO codes and local time zones."""

    iata: Series[str] = pa.Field(unique=True, str_length={"min_value": 3, "max_value": 3})
    icao: Series[str] = pa.Field(unique=True, str_length={"min_value": 4, "max_value": 4})
    timezone: Series[str]
    is_hub: Series[bool]

    class Config:
        strict = False
        coerce = True
        name = "AirportSchema"


class OperatorSchema(pa.DataFrameModel):
    """ICAO callsign prefixes and the carrier they fly for."""

    icao_prefix: Series[str] = pa.Field(unique=True)
    iata_code: Series[str]
    name: Series[str]
    branded_as: Series[str] = pa.Field(nullable=True)
    is_cargo: Series[bool]

    class Config:
        strict = False
        coerce = True
        name = "OperatorSchema"


# =============================================================================
# LOOKUP RECORDS
# =============================================================================


@dataclass(frozen=True)
class CarrierStats:
    """Denied-boarding statistics for one carrier."""

    code: str
    name: str
    db_rate: float
    idb_rate: float
    vdb_rate: float
    load_factor: float
    avg_compensation: float
    oversale_rate: float


@dataclass(frozen=True)
class AircraftType:
    """Aircraft category with seat capacity."""

    key: str
    name: str
    iata_code: str
    capacity: int
    is_regional: bool


@dataclass(frozen=True)
class RouteLoadFactor:
    """Load factor for one directed route."""

    origin: str
    destination: str
    load_factor: float
    peak_days: FrozenSet[int]
    is_leisure: bool


@dataclass(frozen=True)
class AircraftDefaults:
    """Default aircraft keys for a carrier by duration band."""

    carrier: str
    short_haul: str
    medium_haul: str
    long_haul: str


@dataclass(frozen=True)
class AirportInfo:
    """Airport identity and local time zone."""

    iata: str
    icao: str
    timezone: str
    is_hub: bool


@dataclass(frozen=True)
class Operator:
    """
    Airline operator keyed by ICAO callsign prefix.

    Attributes:
        icao_prefix: Callsign prefix (e.g. "EDV").
        iata_code: Operator's own IATA code (e.g. "EV").
        name: Operator display name.
        branded_as: Mainline carrier it flies for, if a regional.
        is_cargo: Whether it is a cargo-only operator.
    """

    icao_prefix: str
    iata_code: str
    name: str
    branded_as: Optional[str]
    is_cargo: bool

    @property
    def is_regional(self) -> bool:
        """Regional operators fly under another carrier's brand."""
        return self.branded_as is not None

    @property
    def marketing_code(self) -> str:
        """Carrier code the flight is sold under."""
        return self.branded_as or self.iata_code


class ReferenceData:
    """
    Immutable lookup over the reference tables.

    Every mapping is exposed read-only. Route lookups match either
    direction of travel.
    """

    def __init__(
        self,
        carriers: Dict[str, CarrierStats],
        aircraft_types: Dict[str, AircraftType],
        aircraft_codes: Dict[str, str],
        aircraft_defaults: Dict[str, AircraftDefaults],
        route_load_factors: Dict[Tuple[str, str], RouteLoadFactor],
        route_durations: Dict[Tuple[str, str], int],
        airports: Dict[str, AirportInfo],
        operators: Dict[str, Operator],
        route_distances: Optional[Dict[Tuple[str, str], int]] = None,
    ) -> None:
        self.carriers: Mapping[str, CarrierStats] = MappingProxyType(dict(carriers))
        self.aircraft_types: Mapping[str, AircraftType] = MappingProxyType(dict(aircraft_types))
        self.aircraft_codes: Mapping[str, str] = MappingProxyType(dict(aircraft_codes))
        self.aircraft_defaults: Mapping[str, AircraftDefaults] = MappingProxyType(
            dict(aircraft_defaults)
        )
        self.route_load_factors: Mapping[Tuple[str, str], RouteLoadFactor] = MappingProxyType(
            dict(route_load_factors)
        )
        self.route_durations: Mapping[Tuple[str, str], int] = MappingProxyType(
            dict(route_durations)
        )
        self.route_distances: Mapping[Tuple[str, str], int] = MappingProxyType(
            dict(route_distances or {})
        )
        self.airports: Mapping[str, AirportInfo] = MappingProxyType(dict(airports))
        self.operators: Mapping[str, Operator] = MappingProxyType(dict(operators))
        self._icao_to_iata = MappingProxyType({a.icao: a.iata for a in airports.values()})

    @property
    def scorable_carriers(self) -> FrozenSet[str]:
        """Carriers with denied-boarding statistics."""
        return frozenset(self.carriers)

    def carrier(self, code: str) -> Optional[CarrierStats]:
        return self.carriers.get(code)

    def aircraft(self, key: str) -> AircraftType:
        """Get an aircraft category, raising for unknown keys."""
        try:
            return self.aircraft_types[key]
        except KeyError:
            raise UnknownEntityError("aircraft", key) from None

    def route_load_factor(self, origin: str, destination: str) -> Optional[RouteLoadFactor]:
        return self.route_load_factors.get((origin, destination)) or self.route_load_factors.get(
            (destination, origin)
        )

    def route_duration(self, origin: str, destination: str, default: int = 150) -> int:
        duration = self.route_durations.get((origin, destination))
        if duration is None:
            duration = self.route_durations.get((destination, origin), default)
        return duration

    def route_distance(self, origin: str, destination: str, default: int = 800) -> int:
        """Route distance in statute miles, either direction."""
        distance = self.route_distances.get((origin, destination))
        if distance is None:
            distance = self.route_distances.get((destination, origin), default)
        return distance

    def airport(self, iata: str) -> Optional[AirportInfo]:
        return self.airports.get(iata)

    def icao_for(self, iata: str) -> Optional[str]:
        info = self.airports.get(iata)
        return info.icao if info else None

    def iata_for_icao(self, icao: str) -> Optional[str]:
        return self._icao_to_iata.get(icao)

    def timezone_for(self, iata: str, default: str = "America/New_York") -> str:
        info = self.airports.get(iata)
        return info.timezone if info else default
