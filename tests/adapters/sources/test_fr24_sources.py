"""
Tests for the FlightRadar24 schedule and live feed adapters.

Tests cover:
- Schedule record mapping and rejection of unusable records
- Pagination and the page cap
- Cache idempotence (one upstream call per TTL)
- Date substitution beyond the schedule horizon and on HTTP 400
- Live feed filtering and discarding of incomplete entries
- Failure conversion (429, timeouts, malformed payloads)
"""

from datetime import date
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from src.bump_radar.adapters.cache.memory_cache import InMemoryKeyValueCache
from src.bump_radar.adapters.sources.fr24_live import FEED_CACHE_KEY, FR24LiveSource
from src.bump_radar.adapters.sources.fr24_schedule import FR24_SCHEDULE_URL, FR24ScheduleSource
from src.bump_radar.ports.flight_source import FetchScope
from src.bump_radar.schemas.config import SourceConfig
from src.bump_radar.schemas.flight import DataSource, SourceConfidence

FEED_URL_PREFIX = "https://data-cloud.flightradar24.com/zones/fcgi/feed.js"

# Local midnights in America/New_York
MIDNIGHT_2026_04_14 = 1_776_139_200
MIDNIGHT_2026_04_16 = MIDNIGHT_2026_04_14 + 2 * 86_400


# =============================================================================
# FIXTURES
# =============================================================================


def schedule_item(
    number: str = "DL323",
    callsign: str = "DAL323",
    destination: str = "LGA",
    departure: int = 1_776_186_000,
    airline_iata: str = "DL",
    owner_iata: str = None,
    aircraft_code: str = "B739",
) -> dict:
    """One ``departures.data[]`` record as FR24 returns it."""
    return {
        "flight": {
            "identification": {
                "id": f"3a{number.lower()}",
                "number": {"default": number, "alternative": None},
                "callsign": callsign,
                "codeshare": None,
            },
            "status": {"text": "Scheduled", "live": False},
            "aircraft": {
                "model": {"code": aircraft_code, "text": "Boeing 737-932(ER)"},
                "registration": "N801DZ",
            },
            "airline": {"name": "Delta Air Lines", "code": {"iata": airline_iata, "icao": "DAL"}},
            "owner": {"name": "Endeavor Air", "code": {"iata": owner_iata, "icao": "EDV"}} if owner_iata else None,
            "airport": {
                "origin": {"code": {"iata": "ATL", "icao": "KATL"}},
                "destination": {"code": {"iata": destination, "icao": None}} if destination else None,
            },
            "time": {"scheduled": {"departure": departure, "arrival": departure + 8700}},
        }
    }


def schedule_page(items: list, current: int = 1, total: int = 1) -> dict:
    """Full airport.json envelope around one page of departures."""
    return {
        "result": {
            "response": {
                "airport": {
                    "pluginData": {
                        "schedule": {
                            "departures": {
                                "page": {"current": current, "total": total},
                                "data": items,
                            }
                        }
                    }
                }
            }
        }
    }


def live_entry(
    callsign: str = "DAL323",
    origin: str = "ATL",
    destination: str = "LGA",
    number: str = "DL323",
    timestamp: int = 1_776_170_000,
) -> list:
    """One positional live feed array (18 fields)."""
    return [
        "A1B2C3", 33.64, -84.43, 45, 32000, 450, "1234", "F-KATL1",
        "B739", "N801DZ", timestamp, origin, destination, number,
        0, 0, callsign, 0,
    ]


@pytest.fixture
def cache(clock) -> InMemoryKeyValueCache:
    return InMemoryKeyValueCache(clock=clock)


@pytest.fixture
def schedule(cache, reference, clock) -> FR24ScheduleSource:
    return FR24ScheduleSource(cache, SourceConfig(), reference, clock=clock)


@pytest.fixture
def live(cache) -> FR24LiveSource:
    return FR24LiveSource(cache, SourceConfig())


# =============================================================================
# SCHEDULE MAPPING
# =============================================================================


class TestScheduleMapping:
    """Tests for FR24 schedule record mapping."""

    @pytest.mark.anyio
    @respx.mock
    async def test_maps_departures(self, schedule):
        respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(200, json=schedule_page([schedule_item()]))
        )

        result = await schedule.fetch(FetchScope(airport="ATL", day=date(2026, 4, 14)))

        assert result.ok
        assert len(result.records) == 1
        record = result.records[0]
        assert record.source is DataSource.FR24_SCHEDULE
        assert record.confidence is SourceConfidence.SCHEDULED
        assert record.flight_number == "DL323"
        assert record.callsign == "DAL323"
        assert record.carrier_code == "DL"
        assert record.operating_carrier_code == "DL"
        assert record.origin == "ATL"
        assert record.destination == "LGA"
        assert record.departure_timestamp == 1_776_186_000
        assert record.aircraft_code == "B739"
        assert record.registration == "N801DZ"

    @pytest.mark.anyio
    @respx.mock
    async def test_operating_carrier_from_owner(self, schedule):
        respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(
                200,
                json=schedule_page([schedule_item(number="DL5012", callsign="EDV5012", owner_iata="9E")]),
            )
        )

        result = await schedule.fetch(FetchScope(airport="ATL"))

        assert result.records[0].carrier_code == "DL"
        assert result.records[0].operating_carrier_code == "9E"

    @pytest.mark.anyio
    @respx.mock
    async def test_drops_records_without_destination_or_departure(self, schedule):
        respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(
                200,
                json=schedule_page(
                    [
                        schedule_item(number="DL1"),
                        schedule_item(number="DL2", destination=None),
                        schedule_item(number="DL3", departure=None),
                        "not-a-record",
                    ]
                ),
            )
        )

        result = await schedule.fetch(FetchScope(airport="ATL"))

        assert [r.flight_number for r in result.records] == ["DL1"]

    @pytest.mark.anyio
    async def test_missing_airport_is_an_error(self, schedule):
        result = await schedule.fetch(FetchScope())

        assert result.records == ()
        assert "airport is required" in result.error


# =============================================================================
# SCHEDULE PAGINATION AND CACHING
# =============================================================================


class TestSchedulePagination:
    """Tests for schedule paging and caching."""

    @pytest.mark.anyio
    @respx.mock
    async def test_follows_pages_until_total(self, schedule):
        route = respx.get(url__startswith=FR24_SCHEDULE_URL)
        route.side_effect = [
            httpx.Response(200, json=schedule_page([schedule_item(number="DL1")], current=1, total=2)),
            httpx.Response(200, json=schedule_page([schedule_item(number="DL2")], current=2, total=2)),
        ]

        result = await schedule.fetch(FetchScope(airport="ATL"))

        assert route.call_count == 2
        assert [r.flight_number for r in result.records] == ["DL1", "DL2"]
        assert route.calls[1].request.url.params["page"] == "2"
        assert route.calls[1].request.url.params["limit"] == "100"

    @pytest.mark.anyio
    @respx.mock
    async def test_stops_at_page_cap(self, cache, reference, clock):
        source = FR24ScheduleSource(cache, SourceConfig(schedule_max_pages=2), reference, clock=clock)
        route = respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(200, json=schedule_page([schedule_item()], current=1, total=9))
        )

        await source.fetch(FetchScope(airport="ATL"))

        assert route.call_count == 2

    @pytest.mark.anyio
    @respx.mock
    async def test_second_fetch_served_from_cache(self, schedule):
        route = respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(200, json=schedule_page([schedule_item()]))
        )

        first = await schedule.fetch(FetchScope(airport="ATL", day=date(2026, 4, 14)))
        second = await schedule.fetch(FetchScope(airport="ATL", day=date(2026, 4, 14)))

        assert route.call_count == 1
        assert first.records == second.records

    @pytest.mark.anyio
    @respx.mock
    async def test_cache_expires_after_ttl(self, schedule, clock):
        route = respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(200, json=schedule_page([schedule_item()]))
        )

        await schedule.fetch(FetchScope(airport="ATL"))
        clock.advance(3601)
        await schedule.fetch(FetchScope(airport="ATL"))

        assert route.call_count == 2


# =============================================================================
# SCHEDULE DATE HANDLING
# =============================================================================


class TestScheduleDates:
    """Tests for schedule date selection."""

    def test_today_uses_airport_timezone(self, schedule):
        # 10:00 in Atlanta is still the same calendar day in Los Angeles
        assert schedule.today("ATL") == date(2026, 4, 14)
        assert schedule.today("LAX") == date(2026, 4, 14)

    def test_effective_day_defaults_to_today(self, schedule):
        assert schedule.effective_day("ATL", None) == date(2026, 4, 14)

    def test_effective_day_within_horizon(self, schedule):
        assert schedule.effective_day("ATL", date(2026, 4, 17)) == date(2026, 4, 17)

    def test_effective_day_beyond_horizon_uses_today(self, schedule):
        assert schedule.effective_day("ATL", date(2026, 4, 30)) == date(2026, 4, 14)

    @pytest.mark.anyio
    @respx.mock
    async def test_requests_local_midnight_timestamp(self, schedule):
        route = respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(200, json=schedule_page([]))
        )

        await schedule.fetch(FetchScope(airport="ATL", day=date(2026, 4, 30)))

        params = route.calls[0].request.url.params
        assert params["code"] == "ATL"
        assert params["plugin-setting[schedule][mode]"] == "departures"
        assert params["plugin-setting[schedule][timestamp]"] == str(MIDNIGHT_2026_04_14)

    @pytest.mark.anyio
    @respx.mock
    async def test_http_400_retries_with_today(self, schedule):
        route = respx.get(url__startswith=FR24_SCHEDULE_URL)
        route.side_effect = [
            httpx.Response(400, json={"errors": "invalid timestamp"}),
            httpx.Response(200, json=schedule_page([schedule_item()])),
        ]

        result = await schedule.fetch(FetchScope(airport="ATL", day=date(2026, 4, 16)))

        assert result.ok
        assert len(result.records) == 1
        timestamps = [c.request.url.params["plugin-setting[schedule][timestamp]"] for c in route.calls]
        assert timestamps == [str(MIDNIGHT_2026_04_16), str(MIDNIGHT_2026_04_14)]

    @pytest.mark.anyio
    @respx.mock
    async def test_http_400_for_today_is_an_error(self, schedule):
        route = respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(400, json={})
        )

        result = await schedule.fetch(FetchScope(airport="ATL"))

        assert route.call_count == 1
        assert result.records == ()
        assert "HTTP 400" in result.error
        assert not result.rate_limited


# =============================================================================
# SCHEDULE FAILURES
# =============================================================================


class TestScheduleFailures:
    """Tests for schedule failure conversion."""

    @pytest.mark.anyio
    @respx.mock
    async def test_rate_limit(self, schedule):
        respx.get(url__startswith=FR24_SCHEDULE_URL).mock(return_value=httpx.Response(429))

        result = await schedule.fetch(FetchScope(airport="ATL"))

        assert result.rate_limited is True
        assert result.records == ()
        assert "rate limit" in result.error

    @pytest.mark.anyio
    @respx.mock
    async def test_timeout(self, schedule):
        respx.get(url__startswith=FR24_SCHEDULE_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

        result = await schedule.fetch(FetchScope(airport="ATL"))

        assert result.rate_limited is False
        assert "timed out" in result.error

    @pytest.mark.anyio
    @respx.mock
    async def test_missing_departures_block(self, schedule):
        respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(200, json={"result": {"response": {}}})
        )

        result = await schedule.fetch(FetchScope(airport="ATL"))

        assert result.records == ()
        assert "missing departures block" in result.error

    @pytest.mark.anyio
    @respx.mock
    async def test_invalid_json(self, schedule):
        respx.get(url__startswith=FR24_SCHEDULE_URL).mock(
            return_value=httpx.Response(200, content=b"<html>blocked</html>")
        )

        result = await schedule.fetch(FetchScope(airport="ATL"))

        assert "invalid JSON" in result.error

    @pytest.mark.anyio
    @respx.mock
    async def test_failures_are_not_cached(self, schedule):
        route = respx.get(url__startswith=FR24_SCHEDULE_URL)
        route.side_effect = [
            httpx.Response(503),
            httpx.Response(200, json=schedule_page([schedule_item()])),
        ]

        failed = await schedule.fetch(FetchScope(airport="ATL"))
        recovered = await schedule.fetch(FetchScope(airport="ATL"))

        assert failed.error is not None
        assert len(recovered.records) == 1


# =============================================================================
# LIVE FEED
# =============================================================================


class TestFR24LiveSource:
    """Tests for the FR24 live feed adapter."""

    @pytest.fixture
    def feed(self) -> dict:
        return {
            "full_count": 16012,
            "version": 4,
            "2f1a001": live_entry(),
            "2f1a002": live_entry(callsign="DAL1199", number="DL1199", destination="JFK"),
            "2f1a003": live_entry(callsign="AAL100", number="AA100", origin="DFW"),
            "2f1a004": live_entry(callsign=""),
            "2f1a005": live_entry(destination=""),
            "2f1a006": ["A1B2C3", 33.6, -84.4],
        }

    @pytest.mark.anyio
    @respx.mock
    async def test_filters_by_origin_and_destination(self, live, feed):
        respx.get(url__startswith=FEED_URL_PREFIX).mock(return_value=httpx.Response(200, json=feed))

        result = await live.fetch(FetchScope(airport="ATL", destination="LGA"))

        assert len(result.records) == 1
        record = result.records[0]
        assert record.source is DataSource.FR24_LIVE
        assert record.confidence is SourceConfidence.LIVE_TRACK
        assert record.callsign == "DAL323"
        assert record.carrier_code == "DL"
        assert record.is_live is True
        assert record.status == "In Air"
        assert record.external_id == "2f1a001"
        assert record.departure_timestamp == 1_776_170_000

    @pytest.mark.anyio
    @respx.mock
    async def test_origin_only(self, live, feed):
        respx.get(url__startswith=FEED_URL_PREFIX).mock(return_value=httpx.Response(200, json=feed))

        result = await live.fetch(FetchScope(airport="atl"))

        assert sorted(r.callsign for r in result.records) == ["DAL1199", "DAL323"]

    @pytest.mark.anyio
    @respx.mock
    async def test_feed_fetched_once_per_ttl(self, live, feed, cache):
        route = respx.get(url__startswith=FEED_URL_PREFIX).mock(
            return_value=httpx.Response(200, json=feed)
        )

        await live.fetch(FetchScope(airport="ATL", destination="LGA"))
        await live.fetch(FetchScope(airport="DFW"))

        assert route.call_count == 1
        # Incomplete entries and metadata keys never reach the cache
        assert len(cache.get(FEED_CACHE_KEY)) == 3

    def test_parse_entry_rejects_incomplete(self):
        assert FR24LiveSource.parse_entry("full_count", 16012) is None
        assert FR24LiveSource.parse_entry("x", live_entry()[:16]) is None
        assert FR24LiveSource.parse_entry("x", live_entry(origin="")) is None
        assert FR24LiveSource.parse_entry("x", live_entry(callsign=" ")) is None

    def test_parse_entry_zero_timestamp(self):
        record = FR24LiveSource.parse_entry("x", live_entry(timestamp=0))

        assert record.departure_timestamp is None

    @pytest.mark.anyio
    @respx.mock
    async def test_rate_limited(self, live):
        respx.get(url__startswith=FEED_URL_PREFIX).mock(return_value=httpx.Response(429))

        result = await live.fetch(FetchScope(airport="ATL"))

        assert result.rate_limited is True
        assert result.records == ()

    @pytest.mark.anyio
    @respx.mock
    async def test_non_object_feed(self, live):
        respx.get(url__startswith=FEED_URL_PREFIX).mock(return_value=httpx.Response(200, json=[1, 2]))

        result = await live.fetch(FetchScope(airport="ATL"))

        assert "feed is not an object" in result.error

    @pytest.mark.anyio
    async def test_unexpected_exception_becomes_error(self, live):
        with patch.object(live, "_global_feed", AsyncMock(side_effect=RuntimeError("boom"))):
            result = await live.fetch(FetchScope(airport="ATL"))

        assert result.error == "FlightRadar24 (live) failed: boom"
        assert result.records == ()

    @pytest.mark.anyio
    async def test_close_releases_client(self, live):
        client = await live._get_client()

        await live.close()

        assert client.is_closed
        assert live._client is None
