"""Pytest configuration for service tests."""

import pytest

from src.bump_radar.adapters.cache.memory_cache import InMemoryKeyValueCache
from src.bump_radar.schemas.config import SourceConfig
from src.bump_radar.schemas.flight import DataSource
from src.bump_radar.services.reconciliation_service import ReconciliationService


@pytest.fixture
def anyio_backend():
    """Use only asyncio backend (trio not installed)."""
    return "asyncio"


@pytest.fixture
def cache(clock) -> InMemoryKeyValueCache:
    return InMemoryKeyValueCache(clock=clock)


@pytest.fixture
def build_reconciliation(reference, cache, clock, make_source, make_verifier):
    """
    Build a ReconciliationService over scripted sources.

    Sources not passed in return no records. The built service keeps
    its sources on ``service.sources`` for call assertions.
    """

    def _build(
        schedule=None,
        live=None,
        historical=None,
        verifier=None,
        config: SourceConfig = None,
    ) -> ReconciliationService:
        sources = {
            "schedule": schedule or make_source(DataSource.FR24_SCHEDULE.label),
            "live": live or make_source(DataSource.FR24_LIVE.label),
            "historical": historical or make_source(DataSource.OPENSKY.label),
            "verifier": verifier or make_verifier(),
        }
        service = ReconciliationService(
            sources["schedule"],
            sources["live"],
            sources["historical"],
            sources["verifier"],
            reference=reference,
            cache=cache,
            config=config,
            clock=clock,
        )
        service.sources = sources
        return service

    return _build
