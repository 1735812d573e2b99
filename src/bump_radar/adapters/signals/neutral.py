"""
Neutral signal providers.

Used when no weather or FAA feed is wired in: every airport reports
clear weather and no known status, so those factors score zero.
"""

from __future__ import annotations

from typing import Optional

from src.bump_radar.ports.signal_providers import AirportStatus, WeatherSeverity


class NeutralWeatherProvider:
    """Reports clear weather everywhere."""

    async def get_severity(self, airport: str) -> WeatherSeverity:
        return WeatherSeverity()


class NeutralAirportStatusProvider:
    """Reports no known FAA status."""

    async def get_status(self, airport: str) -> Optional[AirportStatus]:
        return None
