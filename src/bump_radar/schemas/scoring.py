"""
Scoring result schemas.

A scored flight carries its full factor breakdown so every point of
the final score can be traced back to a named rule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from src.bump_radar.schemas.compensation import CompensationEstimate
from src.bump_radar.schemas.flight import ReconciledFlight
from src.bump_radar.schemas.reference import AircraftType

MIN_BUMP_SCORE = 5
MAX_BUMP_SCORE = 98


@dataclass(frozen=True)
class ScoreFactor:
    """
    One scoring rule's contribution.

    Attributes:
        name: Factor name (e.g. "Time of Day").
        points: Points awarded, already clamped to [0, max_points].
        max_points: Cap for this factor.
        description: Human-readable explanation.
    """

    name: str
    points: int
    max_points: int
    description: str


@dataclass(frozen=True)
class ScoredFlight:
    """
    A reconciled flight with its bump-risk score.

    Attributes:
        flight: The reconciled flight that was scored.
        bump_score: Final score, clamped to [5, 98].
        factors: Ordered factor breakdown, base score first.
        aircraft: Resolved aircraft category.
        load_factor: Effective route load factor used.
        carrier_db_rate: Carrier denied-boarding rate used.
        arrival_time: Estimated "HH:MM" arrival (origin clock).
        compensation: DOT payout estimate if bumped from this flight.
    """

    flight: ReconciledFlight
    bump_score: int
    factors: Tuple[ScoreFactor, ...]
    aircraft: AircraftType
    load_factor: float
    carrier_db_rate: float
    arrival_time: str
    compensation: Optional[CompensationEstimate] = None

    def __post_init__(self) -> None:
        """Validate score bounds."""
        if not MIN_BUMP_SCORE <= self.bump_score <= MAX_BUMP_SCORE:
            raise ValueError(
                f"bump_score must be within [{MIN_BUMP_SCORE}, {MAX_BUMP_SCORE}], "
                f"got {self.bump_score}"
            )

    @property
    def raw_score(self) -> int:
        """Sum of factor points before clamping."""
        return sum(f.points for f in self.factors)

    @property
    def highlights(self) -> List[str]:
        """Descriptions of factors that actually contributed points."""
        return [f.description for f in self.factors if f.points > 0 and f.name != "Base"]

    def factor(self, name: str) -> Optional[ScoreFactor]:
        """Look up a factor by name."""
        for item in self.factors:
            if item.name == name:
                return item
        return None


@dataclass(frozen=True)
class ScoreResult:
    """
    Scored flights for a route or origin search.

    Attributes:
        flights: Scored flights, highest score first.
        rate_limited: True when no flights were found and sources were rate limited.
        historical_rate_limited: True when the historical feed answered 429.
        error: Error summary, if any.
        message: User-facing explanation for empty or degraded results.
        data_sources: Labels of sources that contributed flights.
        verified_count: Verified flights among all scored departures.
        total_departures: Departures found before any top-N truncation.
    """

    flights: Tuple[ScoredFlight, ...] = ()
    rate_limited: bool = False
    historical_rate_limited: bool = False
    error: Optional[str] = None
    message: Optional[str] = None
    data_sources: Tuple[str, ...] = field(default_factory=tuple)
    verified_count: int = 0
    total_departures: int = 0
