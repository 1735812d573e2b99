"""
Data schemas for bump radar.

Frozen dataclasses for flight records and results, plus Pandera
models that validate reference tables at the loader boundary.
"""

from src.bump_radar.schemas.compensation import CompensationEstimate, CompensationTier
from src.bump_radar.schemas.config import ScoringConfig, Settings, SourceConfig
from src.bump_radar.schemas.flight import (
    DataSource,
    ReconciledFlight,
    SourceConfidence,
    SourceFlight,
    VerificationSource,
)
from src.bump_radar.schemas.reconciliation import ReconciliationResult
from src.bump_radar.schemas.reference import (
    AircraftType,
    AirportInfo,
    CarrierStats,
    Operator,
    ReferenceData,
    RouteLoadFactor,
)
from src.bump_radar.schemas.scoring import ScoredFlight, ScoreFactor, ScoreResult

__all__ = [
    "AircraftType",
    "AirportInfo",
    "CarrierStats",
    "CompensationEstimate",
    "CompensationTier",
    "DataSource",
    "Operator",
    "ReconciledFlight",
    "ReconciliationResult",
    "ReferenceData",
    "RouteLoadFactor",
    "ScoreFactor",
    "ScoreResult",
    "ScoredFlight",
    "ScoringConfig",
    "Settings",
    "SourceConfidence",
    "SourceConfig",
    "SourceFlight",
    "VerificationSource",
]
