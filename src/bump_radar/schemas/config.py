"""
Configuration schemas.

Frozen dataclasses with documented defaults. ``Settings.from_env``
reads overrides from the environment (and a local ``.env`` file).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv


@dataclass(frozen=True)
class SourceConfig:
    """
    Timeouts, cache TTLs and limits for the upstream flight sources.

    Attributes:
        user_agent: User-Agent header sent to FlightRadar24.
        schedule_timeout_s: Scheduled-departures request timeout.
        live_timeout_s: Live feed request timeout.
        historical_timeout_s: Historical departures request timeout.
        verification_timeout_s: Route verification request timeout.
        schedule_max_pages: Page cap for the schedule query.
        schedule_page_size: Records requested per schedule page.
        schedule_max_days_ahead: Furthest future date the schedule accepts.
        schedule_cache_ttl_s: Schedule cache TTL.
        live_cache_ttl_s: Live feed cache TTL.
        historical_cache_ttl_s: Historical departures cache TTL.
        historical_hours_back: Size of the historical departures window.
        historical_min_interval_s: Process-wide spacing between historical requests.
        verification_cache_ttl_s: TTL for confirmed routes.
        verification_not_found_ttl_s: Negative TTL for "route not found".
        verification_failure_ttl_s: Negative TTL for transport failures.
        verification_batch_size: Concurrent route lookups per batch.
        route_cache_ttl_s: TTL for a reconciled route result.
        opensky_username: Optional OpenSky account (raises its rate limit).
        opensky_password: Password for ``opensky_username``.
    """

    user_agent: str = "Mozilla/5.0 (compatible; BumpRadar/1.0)"
    schedule_timeout_s: float = 15.0
    live_timeout_s: float = 20.0
    historical_timeout_s: float = 15.0
    verification_timeout_s: float = 10.0
    schedule_max_pages: int = 5
    schedule_page_size: int = 100
    schedule_max_days_ahead: int = 3
    schedule_cache_ttl_s: int = 60 * 60
    live_cache_ttl_s: int = 5 * 60
    historical_cache_ttl_s: int = 60 * 60
    historical_hours_back: int = 12
    historical_min_interval_s: float = 6.0
    verification_cache_ttl_s: int = 24 * 60 * 60
    verification_not_found_ttl_s: int = 60 * 60
    verification_failure_ttl_s: int = 30 * 60
    verification_batch_size: int = 5
    route_cache_ttl_s: int = 5 * 60
    opensky_username: Optional[str] = None
    opensky_password: Optional[str] = None


@dataclass(frozen=True)
class ScoringConfig:
    """
    Tunables for the bump-risk score.

    Attributes:
        base_score: Starting score before factors.
        default_db_rate: Industry denied-boarding rate for carriers without stats.
        default_load_factor: Load factor for routes without data.
        peak_day_boost: Load factor added on a route's peak days.
        max_load_factor: Ceiling for the boosted load factor.
        destination_weight: Share of destination-side disruption that counts.
        cascade_window_hours: Departures this many hours after now get a cascade boost.
        origin_search_limit: Default top-N for origin-only searches.
    """

    base_score: int = 25
    default_db_rate: float = 0.5
    default_load_factor: float = 0.83
    peak_day_boost: float = 0.04
    max_load_factor: float = 0.98
    destination_weight: float = 0.6
    cascade_window_hours: Tuple[int, int] = (2, 8)
    origin_search_limit: int = 20


@dataclass(frozen=True)
class Settings:
    """
    Top-level settings for the application facade.

    Attributes:
        cache_path: SQLite cache file; None keeps the cache in memory.
        cache_sweep_interval_s: Seconds between expired-row sweeps.
        sources: Upstream source configuration.
        scoring: Scoring configuration.
    """

    cache_path: Optional[str] = None
    cache_sweep_interval_s: float = 10 * 60
    sources: SourceConfig = field(default_factory=SourceConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    @classmethod
    def from_env(cls) -> Settings:
        """
        Build settings from environment variables.

        Recognized variables:
            BUMP_RADAR_CACHE_PATH: SQLite cache file path.
            BUMP_RADAR_CACHE_SWEEP_S: Sweep interval in seconds.
            BUMP_RADAR_USER_AGENT: User-Agent for FlightRadar24.
            OPENSKY_USERNAME / OPENSKY_PASSWORD: OpenSky credentials.
        """
        load_dotenv()

        sources = SourceConfig(
            user_agent=os.getenv("BUMP_RADAR_USER_AGENT", SourceConfig.user_agent),
            opensky_username=os.getenv("OPENSKY_USERNAME") or None,
            opensky_password=os.getenv("OPENSKY_PASSWORD") or None,
        )
        return cls(
            cache_path=os.getenv("BUMP_RADAR_CACHE_PATH") or None,
            cache_sweep_interval_s=float(
                os.getenv("BUMP_RADAR_CACHE_SWEEP_S", cls.cache_sweep_interval_s)
            ),
            sources=sources,
        )
