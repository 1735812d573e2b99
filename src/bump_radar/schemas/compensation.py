"""
Involuntary denied-boarding compensation schemas.

DOT rules (14 CFR 250.5, domestic) pay a multiple of the one-way fare
based on how late the rebooked passenger arrives, capped per tier.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CompensationTier(Enum):
    """DOT compensation tier by arrival delay."""

    NONE = "none"
    DOUBLE = "200pct"
    QUADRUPLE = "400pct"

    @property
    def multiplier(self) -> int:
        """Multiple of the one-way fare owed."""
        return _TIER_TERMS[self][0]

    @property
    def max_amount(self) -> int:
        """DOT cap in dollars."""
        return _TIER_TERMS[self][1]

    @property
    def label(self) -> str:
        return _TIER_TERMS[self][2]


_TIER_TERMS = {
    CompensationTier.NONE: (0, 0, "No compensation (< 1hr delay)"),
    CompensationTier.DOUBLE: (2, 775, "200% rule (1-2hr delay)"),
    CompensationTier.QUADRUPLE: (4, 1550, "400% rule (2+hr delay)"),
}


@dataclass(frozen=True)
class CompensationEstimate:
    """
    Estimated payout if a passenger is bumped from one flight.

    Attributes:
        last_flight_of_day: No later departure on the route that day.
        next_flight_time: "HH:MM" of the next departure, if any.
        rebooking_delay_hours: Arrival delay on the rebooked flight, 1 decimal.
        tier: DOT compensation tier.
        fare: Estimated one-way fare in dollars.
        estimated_compensation: Fare multiple, capped at the tier maximum.
        display: Short label for listings ("Up to $1,550").
        explanation: One-line reasoning for the user.
    """

    last_flight_of_day: bool
    next_flight_time: Optional[str]
    rebooking_delay_hours: float
    tier: CompensationTier
    fare: int
    estimated_compensation: int
    display: str
    explanation: str

    @property
    def max_compensation(self) -> int:
        return self.tier.max_amount
