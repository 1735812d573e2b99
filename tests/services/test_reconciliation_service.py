"""
Tests for ReconciliationService.

Tests cover:
- Schedule stage: route filtering, carrier filtering, display fields
- Dedup by flight number and callsign, identity fixed on first sight
- Live overlay enrichment and insertion
- Historical fallback with per-callsign verification and the estimated tier
- Historical stage never consulted when the schedule matched
- Rate-limit isolation and result messages
- Result caching and unknown airports
"""

from datetime import date

import pytest

from src.bump_radar.schemas.config import SourceConfig
from src.bump_radar.schemas.flight import DataSource, VerificationSource
from src.bump_radar.schemas.reconciliation import (
    MESSAGE_HISTORICAL_RATE_LIMITED,
    MESSAGE_RATE_LIMITED,
)
from src.bump_radar.services.reconciliation_service import ERROR_ALL_SOURCES_UNAVAILABLE

SCHEDULE = DataSource.FR24_SCHEDULE.label
LIVE = DataSource.FR24_LIVE.label
OPENSKY = DataSource.OPENSKY.label
ADSBDB = DataSource.ADSBDB.label


def assert_deduplicated_and_ordered(result):
    numbers = [f.flight_number for f in result.flights if f.flight_number]
    callsigns = [f.callsign for f in result.flights if f.callsign]
    timestamps = [f.departure_timestamp for f in result.flights]

    assert len(numbers) == len(set(numbers))
    assert len(callsigns) == len(set(callsigns))
    assert timestamps == sorted(timestamps)


# =============================================================================
# SCHEDULE STAGE
# =============================================================================


class TestScheduleStage:
    """Tests for the schedule stage."""

    @pytest.mark.anyio
    async def test_route_flights_sorted_by_departure(self, build_reconciliation, make_source, flights):
        schedule = make_source(
            SCHEDULE,
            records=[
                flights.scheduled("DL323", "LGA", "14:00", callsign="DAL323"),
                flights.scheduled("DL1199", "LGA", "08:00", callsign="DAL1199"),
                flights.scheduled("DL2201", "JFK", "09:00"),
                flights.scheduled("AA1540", "LGA", "11:30"),
            ],
        )
        service = build_reconciliation(schedule=schedule)

        result = await service.reconcile_route("ATL", "LGA", date(2026, 4, 14))

        assert [f.flight_number for f in result.flights] == ["DL 1199", "AA 1540", "DL 323"]
        assert result.total_departures == 3
        assert result.verified_count == 3
        assert result.data_sources == (SCHEDULE,)
        assert result.message is None
        assert result.error is None
        assert result.rate_limited is False
        assert_deduplicated_and_ordered(result)

    @pytest.mark.anyio
    async def test_reconciled_fields(self, build_reconciliation, make_source, flights):
        schedule = make_source(SCHEDULE, records=[flights.scheduled("DL323", "LGA", "14:00", callsign="DAL323")])
        service = build_reconciliation(schedule=schedule)

        result = await service.reconcile_route("ATL", "LGA")

        flight = result.flights[0]
        assert flight.carrier_code == "DL"
        assert flight.carrier_name == "Delta"
        assert flight.origin == "ATL"
        assert flight.destination == "LGA"
        assert flight.departure_time == "14:00"
        assert flight.verification_source is VerificationSource.SCHEDULE
        assert flight.verified is True
        assert flight.is_regional is False
        assert flight.data_source is DataSource.FR24_SCHEDULE
        assert flight.tracking_url == "https://www.flightaware.com/live/flight/DAL323"

    @pytest.mark.anyio
    async def test_non_scorable_carriers_dropped(self, build_reconciliation, make_source, flights):
        schedule = make_source(
            SCHEDULE,
            records=[
                flights.scheduled("FX1234", "LGA", "03:00"),
                flights.scheduled("XP401", "LGA", "09:00"),
                flights.scheduled("DL323", "LGA", "14:00"),
            ],
        )
        service = build_reconciliation(schedule=schedule)

        result = await service.reconcile_route("ATL", "LGA")

        assert [f.flight_number for f in result.flights] == ["DL 323"]

    @pytest.mark.anyio
    async def test_regional_from_callsign(self, build_reconciliation, make_source, flights):
        schedule = make_source(
            SCHEDULE,
            records=[flights.scheduled("DL5012", "LGA", "17:05", callsign="EDV5012")],
        )
        service = build_reconciliation(schedule=schedule)

        flight = (await service.reconcile_route("ATL", "LGA")).flights[0]

        assert flight.flight_number == "DL 5012"
        assert flight.carrier_code == "DL"
        assert flight.carrier_name == "Endeavor Air (Delta)"
        assert flight.operating_carrier_code == "EV"
        assert flight.is_regional is True

    @pytest.mark.anyio
    async def test_regional_from_operating_carrier(self, build_reconciliation, make_source, flights):
        schedule = make_source(
            SCHEDULE,
            records=[flights.scheduled("DL4401", "LGA", "12:00", operating="OO")],
        )
        service = build_reconciliation(schedule=schedule)

        flight = (await service.reconcile_route("ATL", "LGA")).flights[0]

        assert flight.carrier_name == "SkyWest (Delta)"
        assert flight.operating_carrier_code == "OO"
        assert flight.is_regional is True
        assert flight.tracking_url == "https://www.flightaware.com/live/flight/DL4401"

    @pytest.mark.anyio
    async def test_duplicate_schedule_records_collapse(self, build_reconciliation, make_source, flights):
        schedule = make_source(
            SCHEDULE,
            records=[
                flights.scheduled("DL323", "LGA", "14:00", callsign="DAL323"),
                flights.scheduled("DL323", "LGA", "14:05"),
                flights.scheduled("DL9323", "LGA", "14:10", callsign="DAL323"),
            ],
        )
        service = build_reconciliation(schedule=schedule)

        result = await service.reconcile_route("ATL", "LGA")

        assert len(result.flights) == 1
        assert result.flights[0].departure_time == "14:00"

    @pytest.mark.anyio
    async def test_default_day_is_today_at_origin(self, build_reconciliation, make_source):
        schedule = make_source(SCHEDULE)
        service = build_reconciliation(schedule=schedule)

        await service.reconcile_route(" atl ", "lga")

        assert schedule.calls[0].airport == "ATL"
        assert schedule.calls[0].day == date(2026, 4, 14)


# =============================================================================
# LIVE STAGE
# =============================================================================


class TestLiveStage:
    """Tests for the live overlay."""

    @pytest.mark.anyio
    async def test_enriches_scheduled_flight(self, build_reconciliation, make_source, flights):
        schedule = make_source(SCHEDULE, records=[flights.scheduled("DL323", "LGA", "08:00", callsign="DAL323")])
        live = make_source(LIVE, records=[flights.airborne("DAL323", "LGA", number="DL323")])
        service = build_reconciliation(schedule=schedule, live=live)

        result = await service.reconcile_route("ATL", "LGA")

        assert len(result.flights) == 1
        flight = result.flights[0]
        assert flight.verification_source is VerificationSource.SCHEDULE
        assert flight.data_source is DataSource.FR24_SCHEDULE
        assert flight.is_live is True
        assert flight.status == "In Air"
        assert flight.registration == "N801DZ"
        assert flight.aircraft_code == "B739"
        assert result.data_sources == (SCHEDULE, LIVE)

    @pytest.mark.anyio
    async def test_matches_by_callsign_alone(self, build_reconciliation, make_source, flights):
        schedule = make_source(SCHEDULE, records=[flights.scheduled("DL323", "LGA", "08:00", callsign="DAL323")])
        live = make_source(LIVE, records=[flights.airborne("DAL323", "LGA")])
        service = build_reconciliation(schedule=schedule, live=live)

        result = await service.reconcile_route("ATL", "LGA")

        assert len(result.flights) == 1
        assert result.flights[0].is_live is True

    @pytest.mark.anyio
    async def test_conflicting_callsign_not_copied(self, build_reconciliation, make_source, flights):
        schedule = make_source(
            SCHEDULE,
            records=[
                flights.scheduled("DL100", "LGA", "08:00"),
                flights.scheduled("DL200", "LGA", "09:00", callsign="DAL555"),
            ],
        )
        live = make_source(LIVE, records=[flights.airborne("DAL555", "LGA", number="DL100")])
        service = build_reconciliation(schedule=schedule, live=live)

        result = await service.reconcile_route("ATL", "LGA")

        assert [(f.flight_number, f.callsign) for f in result.flights] == [
            ("DL 100", ""),
            ("DL 200", "DAL555"),
        ]
        assert not any(f.is_live for f in result.flights)
        assert_deduplicated_and_ordered(result)

    @pytest.mark.anyio
    async def test_inserts_unscheduled_flight(self, build_reconciliation, make_source, flights):
        schedule = make_source(SCHEDULE, records=[flights.scheduled("DL323", "LGA", "14:00", callsign="DAL323")])
        live = make_source(
            LIVE,
            records=[
                flights.airborne("DAL88", "LGA", number="DL88", departure_timestamp=flights.departs_at("09:15")),
                flights.airborne("FDX1402", "LGA"),
                flights.airborne("DAL77", "JFK", number="DL77"),
            ],
        )
        service = build_reconciliation(schedule=schedule, live=live)

        result = await service.reconcile_route("ATL", "LGA")

        assert [f.flight_number for f in result.flights] == ["DL 88", "DL 323"]
        inserted = result.flights[0]
        assert inserted.verification_source is VerificationSource.LIVE
        assert inserted.verified is True
        assert inserted.data_source is DataSource.FR24_LIVE
        assert_deduplicated_and_ordered(result)

    @pytest.mark.anyio
    async def test_missing_departure_uses_now(self, build_reconciliation, make_source, flights):
        live = make_source(LIVE, records=[flights.airborne("DAL88", "LGA", number="DL88")])
        service = build_reconciliation(live=live)

        result = await service.reconcile_route("ATL", "LGA")

        assert result.flights[0].departure_time == "10:00"

    @pytest.mark.anyio
    async def test_queried_with_route_scope(self, build_reconciliation, make_source):
        live = make_source(LIVE)
        service = build_reconciliation(live=live)

        await service.reconcile_route("ATL", "LGA")

        assert live.calls[0].airport == "ATL"
        assert live.calls[0].destination == "LGA"


# =============================================================================
# HISTORICAL STAGE
# =============================================================================


class TestHistoricalStage:
    """Tests for the historical fallback and route verification."""

    @pytest.fixture
    def observed_departures(self, flights) -> list:
        return [
            flights.observed("DAL323", "KLGA", "07:00"),
            flights.observed("DAL1199", None, "07:30"),
            flights.observed("EDV5012", "KLGA", "08:00"),
            flights.observed("AAL55", "KBOS", "08:10"),
            flights.observed("FDX100", "KLGA", "08:20"),
            flights.observed("XYZ1234", "KLGA", "08:30"),
            flights.observed("DAL323", "KLGA", "07:00"),
        ]

    @pytest.mark.anyio
    async def test_never_consulted_when_schedule_matched(
        self, build_reconciliation, make_source, make_verifier, flights, observed_departures
    ):
        schedule = make_source(SCHEDULE, records=[flights.scheduled("DL323", "LGA", "14:00")])
        historical = make_source(OPENSKY, records=observed_departures)
        verifier = make_verifier({"DAL1199": "LGA"})
        service = build_reconciliation(schedule=schedule, historical=historical, verifier=verifier)

        await service.reconcile_route("ATL", "LGA")

        assert historical.calls == []
        assert verifier.calls == []

    @pytest.mark.anyio
    async def test_verifies_candidates(
        self, build_reconciliation, make_source, make_verifier, observed_departures
    ):
        historical = make_source(OPENSKY, records=observed_departures)
        verifier = make_verifier({"DAL323": "LGA", "DAL1199": "LGA", "AAL55": "BOS"})
        service = build_reconciliation(historical=historical, verifier=verifier)

        result = await service.reconcile_route("ATL", "LGA")

        # Cargo and unknown prefixes are never looked up; duplicates once
        assert verifier.calls == ["DAL323", "DAL1199", "EDV5012", "AAL55"]
        assert [f.callsign for f in result.flights] == ["DAL323", "DAL1199", "EDV5012"]
        tiers = {f.callsign: f.verification_source for f in result.flights}
        assert tiers == {
            "DAL323": VerificationSource.VERIFIED_ROUTE,
            "DAL1199": VerificationSource.VERIFIED_ROUTE,
            "EDV5012": VerificationSource.ESTIMATED,
        }
        assert result.verified_count == 2
        assert result.data_sources == (OPENSKY, ADSBDB)
        assert_deduplicated_and_ordered(result)

    @pytest.mark.anyio
    async def test_estimated_tier_is_not_verified(
        self, build_reconciliation, make_source, make_verifier, flights
    ):
        historical = make_source(OPENSKY, records=[flights.observed("EDV5012", "KLGA", "08:00")])
        service = build_reconciliation(historical=historical, verifier=make_verifier())

        flight = (await service.reconcile_route("ATL", "LGA")).flights[0]

        assert flight.verification_source is VerificationSource.ESTIMATED
        assert flight.verified is False
        assert flight.flight_number == "DL 5012"
        assert flight.carrier_name == "Endeavor Air (Delta)"
        assert flight.data_source is DataSource.OPENSKY

    @pytest.mark.anyio
    async def test_confirmed_mismatch_beats_estimate(
        self, build_reconciliation, make_source, make_verifier, flights
    ):
        historical = make_source(OPENSKY, records=[flights.observed("DAL323", "KLGA")])
        verifier = make_verifier({"DAL323": "JFK"})
        service = build_reconciliation(historical=historical, verifier=verifier)

        result = await service.reconcile_route("ATL", "LGA")

        assert result.flights == ()

    @pytest.mark.anyio
    async def test_runs_when_schedule_only_has_other_routes(
        self, build_reconciliation, make_source, make_verifier, flights
    ):
        schedule = make_source(SCHEDULE, records=[flights.scheduled("DL2201", "JFK", "09:00")])
        historical = make_source(OPENSKY, records=[flights.observed("DAL323", None)])
        service = build_reconciliation(
            schedule=schedule, historical=historical, verifier=make_verifier({"DAL323": "LGA"})
        )

        result = await service.reconcile_route("ATL", "LGA")

        assert len(historical.calls) == 1
        assert [f.callsign for f in result.flights] == ["DAL323"]

    @pytest.mark.anyio
    async def test_batches_cover_every_candidate(
        self, build_reconciliation, make_source, make_verifier, flights
    ):
        callsigns = [f"DAL{100 + i}" for i in range(7)]
        historical = make_source(OPENSKY, records=[flights.observed(cs, None) for cs in callsigns])
        verifier = make_verifier({cs: "LGA" for cs in callsigns})
        service = build_reconciliation(
            historical=historical,
            verifier=verifier,
            config=SourceConfig(verification_batch_size=2),
        )

        result = await service.reconcile_route("ATL", "LGA")

        assert verifier.calls == callsigns
        assert result.verified_count == 7

    @pytest.mark.anyio
    async def test_skips_candidates_already_seen_live(
        self, build_reconciliation, make_source, make_verifier, flights
    ):
        live = make_source(LIVE, records=[flights.airborne("DAL323", "LGA", number="DL323")])
        historical = make_source(OPENSKY, records=[flights.observed("DAL323", "KLGA")])
        verifier = make_verifier({"DAL323": "LGA"})
        service = build_reconciliation(live=live, historical=historical, verifier=verifier)

        result = await service.reconcile_route("ATL", "LGA")

        assert verifier.calls == []
        assert result.flights[0].verification_source is VerificationSource.LIVE

    @pytest.mark.anyio
    async def test_verification_outage_keeps_estimates(
        self, build_reconciliation, make_source, make_verifier, flights
    ):
        historical = make_source(
            OPENSKY,
            records=[flights.observed("DAL323", "KLGA"), flights.observed("DAL1199", None)],
        )
        verifier = make_verifier({"DAL1199": "LGA"}, rate_limited=True)
        service = build_reconciliation(historical=historical, verifier=verifier)

        result = await service.reconcile_route("ATL", "LGA")

        assert [f.verification_source for f in result.flights] == [VerificationSource.ESTIMATED]
        assert result.rate_limited is False
        assert result.error == "ADSBDB rate limit reached"


# =============================================================================
# FAILURES AND MESSAGES
# =============================================================================


class TestFailures:
    """Tests for rate-limit isolation and degraded results."""

    @pytest.mark.anyio
    async def test_historical_rate_limit_does_not_abort(self, build_reconciliation, make_source, flights):
        live = make_source(LIVE, records=[flights.airborne("DAL88", "LGA", number="DL88")])
        historical = make_source(OPENSKY, rate_limited=True, error="OpenSky Network rate limit reached")
        service = build_reconciliation(live=live, historical=historical)

        result = await service.reconcile_route("ATL", "LGA")

        assert len(historical.calls) == 1
        assert [f.flight_number for f in result.flights] == ["DL 88"]
        assert result.rate_limited is False
        assert result.historical_rate_limited is True
        assert result.message == MESSAGE_HISTORICAL_RATE_LIMITED
        assert result.data_sources == (LIVE,)

    @pytest.mark.anyio
    async def test_everything_rate_limited(self, build_reconciliation, make_source):
        schedule = make_source(SCHEDULE, rate_limited=True, error="FlightRadar24 (schedule) rate limit reached")
        historical = make_source(OPENSKY, rate_limited=True, error="OpenSky Network rate limit reached")
        service = build_reconciliation(schedule=schedule, historical=historical)

        result = await service.reconcile_route("ATL", "LGA")

        assert result.flights == ()
        assert result.rate_limited is True
        assert result.error == ERROR_ALL_SOURCES_UNAVAILABLE
        assert result.message == MESSAGE_RATE_LIMITED

    @pytest.mark.anyio
    async def test_no_flights_message(self, build_reconciliation):
        service = build_reconciliation()

        result = await service.reconcile_route("ATL", "LGA")

        assert result.flights == ()
        assert result.rate_limited is False
        assert result.message.startswith("No flights found for ATL→LGA right now.")

    @pytest.mark.anyio
    async def test_schedule_error_falls_through(self, build_reconciliation, make_source, flights):
        schedule = make_source(SCHEDULE, error="FlightRadar24 (schedule) HTTP 503")
        live = make_source(LIVE, records=[flights.airborne("DAL88", "LGA", number="DL88")])
        service = build_reconciliation(schedule=schedule, live=live)

        result = await service.reconcile_route("ATL", "LGA")

        assert len(result.flights) == 1
        assert "HTTP 503" in result.error

    @pytest.mark.anyio
    async def test_source_that_raises_is_contained(self, build_reconciliation, make_source, flights):
        schedule = make_source(SCHEDULE, raises=RuntimeError("socket closed"))
        live = make_source(LIVE, records=[flights.airborne("DAL88", "LGA", number="DL88")])
        service = build_reconciliation(schedule=schedule, live=live)

        result = await service.reconcile_route("ATL", "LGA")

        assert len(result.flights) == 1
        assert "socket closed" in result.error

    @pytest.mark.anyio
    async def test_unknown_airport(self, build_reconciliation, make_source):
        schedule = make_source(SCHEDULE)
        service = build_reconciliation(schedule=schedule)

        result = await service.reconcile_route("ATL", "ZZZ")

        assert result.flights == ()
        assert result.error == "Unknown airport: ZZZ"
        assert schedule.calls == []


# =============================================================================
# CACHING
# =============================================================================


class TestResultCache:
    """Tests for reconciled-result caching."""

    @pytest.mark.anyio
    async def test_result_cached_within_ttl(self, build_reconciliation, make_source, flights, clock):
        schedule = make_source(SCHEDULE, records=[flights.scheduled("DL323", "LGA", "14:00")])
        service = build_reconciliation(schedule=schedule)

        first = await service.reconcile_route("ATL", "LGA")
        second = await service.reconcile_route("ATL", "LGA")
        assert len(schedule.calls) == 1
        assert first == second

        clock.advance(301)
        await service.reconcile_route("ATL", "LGA")
        assert len(schedule.calls) == 2

    @pytest.mark.anyio
    async def test_empty_result_not_cached(self, build_reconciliation, make_source):
        schedule = make_source(SCHEDULE)
        service = build_reconciliation(schedule=schedule)

        await service.reconcile_route("ATL", "LGA")
        await service.reconcile_route("ATL", "LGA")

        assert len(schedule.calls) == 2

    @pytest.mark.anyio
    async def test_cache_key_includes_date(self, build_reconciliation, make_source, flights):
        schedule = make_source(SCHEDULE, records=[flights.scheduled("DL323", "LGA", "14:00")])
        service = build_reconciliation(schedule=schedule)

        await service.reconcile_route("ATL", "LGA", date(2026, 4, 14))
        await service.reconcile_route("ATL", "LGA", date(2026, 4, 15))

        assert len(schedule.calls) == 2


# =============================================================================
# ORIGIN SEARCH
# =============================================================================


class TestReconcileOrigin:
    """Tests for reconcile_origin."""

    @pytest.mark.anyio
    async def test_all_destinations(self, build_reconciliation, make_source, make_verifier, flights):
        schedule = make_source(
            SCHEDULE,
            records=[
                flights.scheduled("DL323", "LGA", "14:00"),
                flights.scheduled("DL2201", "JFK", "09:00"),
            ],
        )
        live = make_source(LIVE, records=[flights.airborne("DAL1456", "MCO", number="DL1456")])
        historical = make_source(OPENSKY, records=[flights.observed("DAL9", "KBOS")])
        service = build_reconciliation(schedule=schedule, live=live, historical=historical)

        result = await service.reconcile_origin("ATL")

        assert {f.destination for f in result.flights} == {"LGA", "JFK", "MCO"}
        assert live.calls[0].destination is None
        assert historical.calls == []

    @pytest.mark.anyio
    async def test_empty_message(self, build_reconciliation):
        result = await build_reconciliation().reconcile_origin("ATL")

        assert result.message.startswith("No flights found for departures from ATL right now.")

    @pytest.mark.anyio
    async def test_unknown_origin(self, build_reconciliation):
        result = await build_reconciliation().reconcile_origin("ZZZ")

        assert result.error == "Unknown airport: ZZZ"
