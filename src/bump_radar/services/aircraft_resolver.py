"""
Aircraft Resolver - best-effort aircraft category for a flight.

Resolution order:
1. The feed's reported aircraft code, if it maps to a known category
2. The smallest regional jet, if a regional operator flies the route
3. The carrier's default for the route's duration band
4. A generic narrowbody

Never raises: any unknown code or key falls through to the next step.
"""

from __future__ import annotations

import logging
from typing import Optional

from src.bump_radar.exceptions import UnknownEntityError
from src.bump_radar.schemas.reference import AircraftType, ReferenceData

logger = logging.getLogger(__name__)

REGIONAL_DEFAULT = "E175"
GENERIC_DEFAULT = "B737"
SHORT_HAUL_MAX_MINUTES = 90
LONG_HAUL_MIN_MINUTES = 250


class AircraftResolver:
    """Resolves an ``AircraftType`` from whatever the feeds reported."""

    def __init__(self, reference: ReferenceData) -> None:
        self._reference = reference

    def resolve(
        self,
        origin: str,
        destination: str,
        carrier_code: str,
        is_regional: bool = False,
        feed_code: Optional[str] = None,
    ) -> AircraftType:
        if feed_code:
            key = self._reference.aircraft_codes.get(feed_code.strip().upper())
            aircraft = self._lookup(key)
            if aircraft is not None:
                return aircraft

        if is_regional:
            aircraft = self._lookup(REGIONAL_DEFAULT)
            if aircraft is not None:
                return aircraft

        defaults = self._reference.aircraft_defaults.get(carrier_code)
        if defaults is not None:
            duration = self._reference.route_duration(origin, destination)
            if duration <= SHORT_HAUL_MAX_MINUTES:
                key = defaults.short_haul
            elif duration >= LONG_HAUL_MIN_MINUTES:
                key = defaults.long_haul
            else:
                key = defaults.medium_haul
            aircraft = self._lookup(key)
            if aircraft is not None:
                return aircraft

        return self._reference.aircraft(GENERIC_DEFAULT)

    def _lookup(self, key: Optional[str]) -> Optional[AircraftType]:
        if not key:
            return None
        try:
            return self._reference.aircraft(key)
        except UnknownEntityError:
            logger.debug("No aircraft category for key %s", key)
            return None
