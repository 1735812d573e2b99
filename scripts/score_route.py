#!/usr/bin/env python3
"""
Score flights for a route (or an origin's departures) from the command line.

Usage:
    python scripts/score_route.py ATL LGA --date 2026-04-13
    python scripts/score_route.py ATL --limit 10
    python scripts/score_route.py ATL LGA --factors
"""

from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.bump_radar.application.find_bumpable_flights import FindBumpableFlights
from src.bump_radar.logging_config import configure_logging
from src.bump_radar.schemas.scoring import ScoreResult


def print_result(result: ScoreResult, show_factors: bool = False) -> None:
    if result.message:
        print(result.message)
    if not result.flights:
        return

    print(f"{'Flight':<10}{'Dep':<7}{'Arr':<7}{'Route':<10}{'Aircraft':<22}{'Score':>6}  {'Compensation':<22}Source")
    print("-" * 100)
    for scored in result.flights:
        flight = scored.flight
        compensation = scored.compensation.display if scored.compensation else "-"
        print(
            f"{flight.flight_number:<10}{flight.departure_time:<7}{scored.arrival_time:<7}"
            f"{flight.origin + '-' + flight.destination:<10}{scored.aircraft.name[:21]:<22}"
            f"{scored.bump_score:>6}  {compensation:<22}{flight.verification_source.value}"
        )
        if show_factors:
            for factor in scored.factors:
                print(f"    {factor.name:<20}{factor.points:>3}/{factor.max_points:<3} {factor.description}")
            if scored.compensation:
                print(f"    {scored.compensation.explanation}")

    print("-" * 100)
    print(
        f"{len(result.flights)} of {result.total_departures} flights, "
        f"{result.verified_count} verified, sources: {', '.join(result.data_sources) or 'none'}"
    )


def main(origin: str, destination: str = None, day: str = None, limit: int = None, show_factors: bool = False):
    with FindBumpableFlights() as radar:
        result = radar.search(origin, destination, day, limit=limit)
    print_result(result, show_factors)


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="Score flights by bump risk")
    parser.add_argument("origin", type=str, help="Origin airport IATA code (e.g. ATL)")
    parser.add_argument("destination", type=str, nargs="?", help="Destination IATA code; omit for all departures")
    parser.add_argument("--date", type=str, help="Travel date, YYYY-MM-DD (default: today)")
    parser.add_argument("--limit", type=int, help="Top-N for origin searches")
    parser.add_argument("--factors", action="store_true", help="Show the factor breakdown")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    import logging
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    main(args.origin, args.destination, args.date, args.limit, args.factors)
