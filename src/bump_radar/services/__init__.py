"""
Domain services for Bump Radar.

Services orchestrate the interaction between ports (flight sources,
cache, signal providers) and domain logic (reconciliation, scoring).
"""

from src.bump_radar.services.aircraft_resolver import AircraftResolver
from src.bump_radar.services.carrier_directory import CarrierDirectory, ParsedCallsign
from src.bump_radar.services.compensation import estimate_compensation, estimate_fare
from src.bump_radar.services.reconciliation_service import ReconciliationService, StageOutcome
from src.bump_radar.services.scoring_service import RouteSignals, ScoringService

__all__ = [
    "AircraftResolver",
    "CarrierDirectory",
    "ParsedCallsign",
    "ReconciliationService",
    "RouteSignals",
    "ScoringService",
    "StageOutcome",
    "estimate_compensation",
    "estimate_fare",
]
