"""
Shared HTTP plumbing for the upstream flight sources.

``HttpFlightSource`` owns a lazily created ``httpx.AsyncClient``,
maps transport and HTTP failures onto the package exceptions, and
turns any exception raised by a concrete adapter into a structured
``SourceFetchResult`` so nothing escapes the adapter boundary.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Dict, Optional

import httpx

from src.bump_radar.exceptions import (
    RateLimitedError,
    SourceError,
    TransientNetworkError,
    UnknownEntityError,
    UnparseableResponseError,
)
from src.bump_radar.ports.flight_source import FetchScope, FlightSource, SourceFetchResult
from src.bump_radar.ports.kv_cache import KeyValueCache

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_S = 5.0


class HttpFlightSource(FlightSource):
    """
    Base class for adapters that talk to a JSON HTTP API.

    Subclasses implement ``_fetch`` and may raise any ``SourceError``
    or ``UnknownEntityError``; ``fetch`` converts them.

    Attributes:
        _cache: TTL cache for upstream responses.
        _timeout_s: Per-request timeout.
        _headers: Default request headers.
        _client: Async HTTP client (lazy initialized).
    """

    def __init__(
        self,
        cache: KeyValueCache,
        timeout_s: float,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[httpx.Auth] = None,
    ) -> None:
        self._cache = cache
        self._timeout_s = timeout_s
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._auth = auth
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self._headers,
                auth=self._auth,
                timeout=httpx.Timeout(self._timeout_s, connect=CONNECT_TIMEOUT_S),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch(self, scope: FetchScope) -> SourceFetchResult:
        """Fetch records; every failure is returned, never raised."""
        try:
            return await self._fetch(scope)
        except RateLimitedError as e:
            logger.warning("%s rate limited: %s", self.name, e)
            return SourceFetchResult(rate_limited=True, error=str(e))
        except (SourceError, UnknownEntityError) as e:
            logger.warning("%s fetch failed: %s", self.name, e)
            return SourceFetchResult(error=str(e))
        except Exception as e:
            logger.error("Unexpected %s failure: %s", self.name, e, exc_info=True)
            return SourceFetchResult(error=f"{self.name} failed: {e}")

    @abstractmethod
    async def _fetch(self, scope: FetchScope) -> SourceFetchResult:
        """Adapter-specific fetch; may raise package exceptions."""
        ...

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        GET a URL and decode the JSON body.

        Raises:
            RateLimitedError: On HTTP 429.
            TransientNetworkError: On timeouts, connection errors and other
                non-2xx statuses (``status_code`` is set for the latter).
            UnparseableResponseError: If the body is not JSON.
        """
        client = await self._get_client()
        try:
            response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(self.name, f"{self.name} timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(self.name, f"{self.name} unreachable: {e}") from e

        if response.status_code == 429:
            raise RateLimitedError(self.name, f"{self.name} rate limit reached")
        if response.is_error:
            logger.debug("%s HTTP %d: %s", self.name, response.status_code, response.text[:200])
            raise TransientNetworkError(
                self.name,
                f"{self.name} HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UnparseableResponseError(self.name, f"{self.name} returned invalid JSON") from e
