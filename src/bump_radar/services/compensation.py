"""
Compensation - DOT denied-boarding payout estimates.

A bumped passenger is rebooked on the next departure of the same route.
The arrival delay that rebooking causes picks the tier:

    under 1 hour    nothing
    1 to 2 hours    200% of the one-way fare, max $775
    2+ hours        400% of the one-way fare, max $1,550

The last flight of the day is treated as a 24 hour delay. Fares are
estimated from route distance.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from src.bump_radar.schemas.compensation import CompensationEstimate, CompensationTier

logger = logging.getLogger(__name__)

FARE_PER_MILE = 0.11
MIN_FARE = 100
OVERNIGHT_DELAY_HOURS = 24.0


def _minutes(hhmm: str) -> int:
    hours, _, minutes = hhmm.partition(":")
    return int(hours) * 60 + int(minutes or 0)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_fare(distance_miles: int) -> int:
    """One-way fare at the industry average yield, floored for short hops."""
    return max(MIN_FARE, _round_half_up(distance_miles * FARE_PER_MILE))


def find_next_flight_time(departure_time: str, route_times: Iterable[str]) -> Optional[str]:
    """
    Closest departure strictly after ``departure_time``.

    Args:
        departure_time: "HH:MM" of the flight a passenger was bumped from.
        route_times: Every "HH:MM" departure on the route that day.

    Returns:
        The next departure time, or None for the last flight of the day.
    """
    start = _minutes(departure_time)
    later = [t for t in route_times if _minutes(t) > start]
    if not later:
        return None
    return min(later, key=_minutes)


def is_last_flight_of_day(departure_time: str, route_times: Iterable[str]) -> bool:
    return find_next_flight_time(departure_time, route_times) is None


def rebooking_delay_hours(
    departure_time: str,
    next_flight_time: Optional[str],
    duration_min: int,
) -> float:
    """
    Arrival delay, in hours, of rebooking onto ``next_flight_time``.

    Both flights share the route's block time, so the arrival delay
    equals the gap between departures.
    """
    if next_flight_time is None:
        return OVERNIGHT_DELAY_HOURS
    original_arrival = _minutes(departure_time) + duration_min
    rebooked_arrival = _minutes(next_flight_time) + duration_min
    return max(0.0, (rebooked_arrival - original_arrival) / 60)


def compensation_tier(delay_hours: float) -> CompensationTier:
    if delay_hours < 1:
        return CompensationTier.NONE
    if delay_hours < 2:
        return CompensationTier.DOUBLE
    return CompensationTier.QUADRUPLE


def estimate_compensation(
    departure_time: str,
    route_times: Iterable[str],
    duration_min: int,
    fare: int,
) -> CompensationEstimate:
    """
    Full payout estimate for one flight.

    Args:
        departure_time: "HH:MM" of the flight being estimated.
        route_times: Every "HH:MM" departure on the same route that day.
        duration_min: Route block time in minutes.
        fare: Estimated one-way fare in dollars.

    Returns:
        CompensationEstimate with tier, capped amount and explanation.
    """
    next_time = find_next_flight_time(departure_time, route_times)
    delay = rebooking_delay_hours(departure_time, next_time, duration_min)
    tier = compensation_tier(delay)
    maximum = f"${tier.max_amount:,}"

    if tier is CompensationTier.NONE:
        display = "No DOT compensation"
        explanation = f"Next flight departs at {next_time}; arrival delay under 1 hour."
    elif next_time is None:
        display = f"Up to {maximum}"
        explanation = f"Last flight of day, next flight tomorrow. {tier.label}. DOT max: {maximum}."
    else:
        display = f"Up to {maximum}"
        explanation = (
            f"Next flight at {next_time} (~{_round_half_up(delay)}hr delay). "
            f"{tier.label}. DOT max: {maximum}."
        )

    estimate = CompensationEstimate(
        last_flight_of_day=next_time is None,
        next_flight_time=next_time,
        rebooking_delay_hours=math.floor(delay * 10 + 0.5) / 10,
        tier=tier,
        fare=fare,
        estimated_compensation=min(tier.multiplier * fare, tier.max_amount),
        display=display,
        explanation=explanation,
    )
    logger.debug("Compensation for %s departure: %s", departure_time, estimate.display)
    return estimate
