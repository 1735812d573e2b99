"""
Signal provider ports.

Weather severity, airport disruption status and the holiday calendar
are external collaborators of the scoring engine. They are consumed
through these protocols and return typed values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class WeatherSeverity:
    """
    Weather severity at an airport.

    Attributes:
        score: Severity points, 0 (clear) to 25 (severe).
        reason: Short explanation (e.g. "Thunderstorm at ATL"), None when clear.
    """

    score: int = 0
    reason: Optional[str] = None


class DelayType(Enum):
    """FAA airport disruption category."""

    GROUND_STOP = "GS"
    GROUND_DELAY = "GDP"
    CLOSURE = "CLOSURE"
    DELAY = "DELAY"

    @property
    def label(self) -> str:
        return _DELAY_LABELS[self]


_DELAY_LABELS = {
    DelayType.GROUND_STOP: "Ground Stop",
    DelayType.GROUND_DELAY: "Ground Delay",
    DelayType.CLOSURE: "Closure",
    DelayType.DELAY: "Delay",
}


@dataclass(frozen=True)
class AirportStatus:
    """
    FAA status for one airport.

    Attributes:
        airport: IATA code.
        delay: Whether any disruption is active.
        delay_type: Disruption category when ``delay`` is True.
        reason: Cause reported by the FAA (e.g. "thunderstorms").
        avg_delay: Average delay text (e.g. "45 minutes").
    """

    airport: str
    delay: bool = False
    delay_type: Optional[DelayType] = None
    reason: Optional[str] = None
    avg_delay: Optional[str] = None


@dataclass(frozen=True)
class HolidayScore:
    """
    Holiday or seasonal travel intensity for a date.

    Attributes:
        score: Intensity points, 0 to 15.
        name: Matched holiday or season, None when nothing matched.
        days_until: Days from the date to the holiday (negative if past).
        description: Factor description (e.g. "Thanksgiving travel week (DOT peak period)").
    """

    score: int = 0
    name: Optional[str] = None
    days_until: int = 0
    description: Optional[str] = None


@runtime_checkable
class WeatherSeverityProvider(Protocol):
    """Provides weather severity per airport."""

    async def get_severity(self, airport: str) -> WeatherSeverity:
        ...


@runtime_checkable
class AirportStatusProvider(Protocol):
    """Provides FAA disruption status per airport; None when unknown."""

    async def get_status(self, airport: str) -> Optional[AirportStatus]:
        ...


@runtime_checkable
class HolidayCalendar(Protocol):
    """Scores a travel date for holiday and seasonal demand."""

    def score(self, day: date) -> HolidayScore:
        ...
