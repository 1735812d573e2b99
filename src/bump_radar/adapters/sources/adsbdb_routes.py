"""
ADSBDB callsign route verification adapter.

Looks up the published origin/destination for a callsign. Routes
rarely change, so confirmations are cached for a day. Misses are
cached too, as explicit ``{"found": false}`` values: an hour for
"route not known", half an hour for outages so a transient failure is
retried sooner.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from src.bump_radar.adapters.sources.base import HttpFlightSource
from src.bump_radar.adapters.sources.payloads import AdsbdbResponse
from src.bump_radar.exceptions import (
    RateLimitedError,
    TransientNetworkError,
    UnparseableResponseError,
)
from src.bump_radar.ports.flight_source import FetchScope, SourceFetchResult
from src.bump_radar.ports.kv_cache import KeyValueCache
from src.bump_radar.schemas.config import SourceConfig
from src.bump_radar.schemas.flight import DataSource, SourceConfidence, SourceFlight

logger = logging.getLogger(__name__)

ADSBDB_CALLSIGN_URL = "https://api.adsbdb.com/v0/callsign/{callsign}"

_CALLSIGN_RE = re.compile(r"^[A-Z0-9]{3,8}$")
_NOT_FOUND: Dict[str, Any] = {"found": False}


class AdsbdbRouteSource(HttpFlightSource):
    """Confirmed route for a single callsign."""

    def __init__(self, cache: KeyValueCache, config: Optional[SourceConfig] = None) -> None:
        self._config = config or SourceConfig()
        super().__init__(cache, timeout_s=self._config.verification_timeout_s)

    @property
    def name(self) -> str:
        return DataSource.ADSBDB.label

    async def _fetch(self, scope: FetchScope) -> SourceFetchResult:
        callsign = (scope.callsign or "").strip().upper()
        if not _CALLSIGN_RE.match(callsign):
            return SourceFetchResult()

        cache_key = f"adsbdb:route:{callsign}"
        cached = self._cache.get(cache_key)
        if cached is None:
            cached = await self._lookup(callsign, cache_key)
        else:
            logger.debug("ADSBDB cache hit for %s", callsign)

        if not cached.get("found"):
            return SourceFetchResult()

        return SourceFetchResult(
            records=(
                SourceFlight(
                    source=DataSource.ADSBDB,
                    confidence=SourceConfidence.ROUTE_CONFIRMED,
                    callsign=callsign,
                    origin=cached["origin"],
                    destination=cached["destination"],
                ),
            )
        )

    async def _lookup(self, callsign: str, cache_key: str) -> Dict[str, Any]:
        """Query ADSBDB and cache the outcome, positive or negative."""
        url = ADSBDB_CALLSIGN_URL.format(callsign=callsign)
        try:
            raw = await self._get_json(url)
        except RateLimitedError:
            self._cache.set(cache_key, _NOT_FOUND, self._config.verification_failure_ttl_s)
            raise
        except TransientNetworkError as e:
            if e.status_code is None:
                self._cache.set(cache_key, _NOT_FOUND, self._config.verification_failure_ttl_s)
                raise
            self._cache.set(cache_key, _NOT_FOUND, self._config.verification_not_found_ttl_s)
            if e.status_code >= 500:
                raise
            logger.debug("ADSBDB has no route for %s (HTTP %d)", callsign, e.status_code)
            return _NOT_FOUND
        except UnparseableResponseError:
            self._cache.set(cache_key, _NOT_FOUND, self._config.verification_failure_ttl_s)
            raise

        route = self._parse_route(raw)
        if route is None:
            logger.debug("ADSBDB has no route for %s", callsign)
            self._cache.set(cache_key, _NOT_FOUND, self._config.verification_not_found_ttl_s)
            return _NOT_FOUND

        self._cache.set(cache_key, route, self._config.verification_cache_ttl_s)
        return route

    @staticmethod
    def _parse_route(raw: Any) -> Optional[Dict[str, Any]]:
        body = raw.get("response") if isinstance(raw, dict) else None
        if not isinstance(body, dict):
            return None
        try:
            response = AdsbdbResponse.model_validate(body)
        except ValidationError:
            return None

        route = response.flightroute
        if route is None or route.origin is None or route.destination is None:
            return None
        origin, destination = route.origin.iata, route.destination.iata
        if not origin or not destination:
            return None
        return {"found": True, "origin": origin, "destination": destination}
