"""
Application layer for Bump Radar.

This layer provides the public API. It acts as a facade, handling
dependency initialization and providing a simple interface for
consumers.
"""

from src.bump_radar.application.find_bumpable_flights import FindBumpableFlights

__all__ = ["FindBumpableFlights"]
