"""
Flight record schemas.

Defines the normalized record every source adapter emits and the
canonical reconciled flight consumed by scoring. Both round-trip
through plain dicts so they can live in the JSON-valued TTL cache.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class DataSource(Enum):
    """Upstream feed that supplied a record."""

    FR24_SCHEDULE = "fr24-schedule"
    FR24_LIVE = "fr24-live"
    OPENSKY = "opensky"
    ADSBDB = "adsbdb"

    @property
    def label(self) -> str:
        """Human-readable name used in result ``data_sources`` lists."""
        return _DATA_SOURCE_LABELS[self]


_DATA_SOURCE_LABELS = {
    DataSource.FR24_SCHEDULE: "FlightRadar24 (schedule)",
    DataSource.FR24_LIVE: "FlightRadar24 (live)",
    DataSource.OPENSKY: "OpenSky Network",
    DataSource.ADSBDB: "ADSBDB",
}


class SourceConfidence(Enum):
    """
    What a single adapter can vouch for about one of its records.

    This is the adapter's own claim, before reconciliation assigns
    a verification tier.
    """

    SCHEDULED = "scheduled"
    """Published schedule with both endpoints."""

    LIVE_TRACK = "live-track"
    """Airborne radar track with reported endpoints."""

    OBSERVED = "observed"
    """Observed departure; arrival airport is only estimated."""

    ROUTE_CONFIRMED = "route-confirmed"
    """Callsign route confirmed by a route database."""


class VerificationSource(Enum):
    """
    Ranked confidence tier of a reconciled flight.

    Ordered strongest first: schedule > live > verified-route > estimated.
    """

    SCHEDULE = "schedule"
    LIVE = "live"
    VERIFIED_ROUTE = "verified-route"
    ESTIMATED = "estimated"

    @property
    def rank(self) -> int:
        """Position in the tier ordering (0 is the strongest)."""
        return list(VerificationSource).index(self)


@dataclass(frozen=True)
class SourceFlight:
    """
    Normalized record emitted by every source adapter.

    Adapter-native payloads are mapped into this shape at the adapter
    boundary so reconciliation never sees upstream formats.

    Attributes:
        source: Adapter that produced the record.
        confidence: Adapter-level confidence indicator.
        callsign: ICAO callsign (e.g. "DAL323"), empty if unknown.
        flight_number: Raw IATA flight number (e.g. "DL323"), empty if unknown.
        carrier_code: Marketing carrier IATA code, empty if unknown.
        operating_carrier_code: Operating carrier IATA code, empty if unknown.
        origin: Origin IATA code (may be absent before filtering).
        destination: Destination IATA code (may be absent).
        departure_timestamp: Departure time in epoch seconds.
        aircraft_code: Feed aircraft type code (e.g. "B738").
        aircraft_name: Full aircraft model name (e.g. "Boeing 737-932(ER)").
        registration: Tail number.
        status: Free-text status from the feed.
        is_live: Whether the flight is currently tracked airborne.
        codeshares: Codeshare flight numbers.
        external_id: Upstream identifier (FR24 id or ICAO24 hex).
        estimated_arrival_icao: Self-reported arrival ICAO code (historical feed).
    """

    source: DataSource
    confidence: SourceConfidence
    callsign: str = ""
    flight_number: str = ""
    carrier_code: str = ""
    operating_carrier_code: str = ""
    origin: Optional[str] = None
    destination: Optional[str] = None
    departure_timestamp: Optional[int] = None
    aircraft_code: Optional[str] = None
    aircraft_name: Optional[str] = None
    registration: Optional[str] = None
    status: Optional[str] = None
    is_live: bool = False
    codeshares: Tuple[str, ...] = ()
    external_id: Optional[str] = None
    estimated_arrival_icao: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        data = asdict(self)
        data["source"] = self.source.value
        data["confidence"] = self.confidence.value
        data["codeshares"] = list(self.codeshares)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SourceFlight:
        """Rebuild from :meth:`to_dict` output, ignoring retired keys."""
        values = _known_fields(cls, data)
        values["source"] = DataSource(values["source"])
        values["confidence"] = SourceConfidence(values["confidence"])
        values["codeshares"] = tuple(values.get("codeshares") or ())
        return cls(**values)


@dataclass(frozen=True)
class ReconciledFlight:
    """
    Canonical, de-duplicated flight consumed by scoring.

    Identity is fixed on first sight; later sources only enrich the
    record (live status, tail number) through ``dataclasses.replace``.

    Attributes:
        flight_number: Branded marketing carrier + numeric suffix ("DL 323").
        callsign: ICAO callsign, empty when only the flight number is known.
        carrier_code: Branded (marketing) carrier IATA code.
        carrier_name: Display name, e.g. "Endeavor Air (Delta)" for regionals.
        operating_carrier_code: Operating carrier IATA code.
        origin: Origin IATA code.
        destination: Destination IATA code.
        departure_timestamp: Departure time in epoch seconds.
        departure_time: "HH:MM" in origin local time.
        verified: Whether the route is independently confirmed.
        verification_source: Confidence tier.
        is_regional: Whether a regional operator flies it.
        data_source: Adapter that first supplied the record.
        tracking_url: External tracking reference.
    """

    flight_number: str
    callsign: str
    carrier_code: str
    carrier_name: str
    operating_carrier_code: str
    origin: str
    destination: str
    departure_timestamp: int
    departure_time: str
    verified: bool
    verification_source: VerificationSource
    is_regional: bool
    data_source: DataSource
    tracking_url: str
    aircraft_code: Optional[str] = None
    aircraft_name: Optional[str] = None
    registration: Optional[str] = None
    status: Optional[str] = None
    is_live: bool = False
    codeshares: Tuple[str, ...] = field(default_factory=tuple)
    external_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        data = asdict(self)
        data["verification_source"] = self.verification_source.value
        data["data_source"] = self.data_source.value
        data["codeshares"] = list(self.codeshares)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReconciledFlight:
        """Rebuild from :meth:`to_dict` output, ignoring retired keys."""
        values = _known_fields(cls, data)
        values["verification_source"] = VerificationSource(values["verification_source"])
        values["data_source"] = DataSource(values["data_source"])
        values["codeshares"] = tuple(values.get("codeshares") or ())
        return cls(**values)


def _known_fields(cls: type, data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys the record no longer declares (older cache entries)."""
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}
