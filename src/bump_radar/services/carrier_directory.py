"""
Carrier Directory - callsign parsing and carrier branding.

Maps ICAO callsigns ("EDV5012") and IATA flight numbers ("DL 5012")
to the carrier a passenger actually buys: regional operators are
shown under their mainline brand, cargo operators are never scorable.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from src.bump_radar.schemas.reference import Operator, ReferenceData

logger = logging.getLogger(__name__)

CALLSIGN_PATTERN = re.compile(r"^([A-Z]{2,4})(\d+)$")
FLIGHT_NUMBER_PATTERN = re.compile(r"^([A-Z0-9]{2})\s*(\d{1,4})[A-Z]?$")
MIN_CALLSIGN_LENGTH = 4


@dataclass(frozen=True)
class ParsedCallsign:
    """
    A passenger callsign resolved against the operator table.

    Attributes:
        callsign: Normalized callsign (e.g. "EDV5012").
        number: Numeric suffix (e.g. "5012").
        operator: Operator the prefix belongs to.
    """

    callsign: str
    number: str
    operator: Operator

    @property
    def marketing_code(self) -> str:
        return self.operator.marketing_code

    @property
    def is_regional(self) -> bool:
        return self.operator.is_regional


class CarrierDirectory:
    """
    Carrier lookups over the reference operator and carrier tables.

    Attributes:
        _reference: Reference data.
        _operators_by_iata: Operators keyed by their own IATA code.
    """

    def __init__(self, reference: ReferenceData) -> None:
        self._reference = reference
        self._operators_by_iata: Dict[str, Operator] = {
            op.iata_code: op for op in reference.operators.values()
        }

    def parse_callsign(self, callsign: str) -> Optional[ParsedCallsign]:
        """
        Parse a callsign into operator and number.

        Returns None for short or malformed callsigns, unknown prefixes
        and cargo operators.
        """
        text = (callsign or "").strip().upper()
        if len(text) < MIN_CALLSIGN_LENGTH:
            return None
        match = CALLSIGN_PATTERN.match(text)
        if not match:
            return None

        prefix, number = match.groups()
        operator = self._reference.operators.get(prefix)
        if operator is None or operator.is_cargo:
            return None
        return ParsedCallsign(callsign=text, number=number, operator=operator)

    @staticmethod
    def parse_flight_number(flight_number: str) -> Optional[Tuple[str, str]]:
        """Split "DL323" or "DL 323" into ("DL", "323")."""
        match = FLIGHT_NUMBER_PATTERN.match((flight_number or "").strip().upper())
        if not match:
            return None
        return match.group(1), match.group(2)

    def operator_for_iata(self, code: str) -> Optional[Operator]:
        return self._operators_by_iata.get(code)

    def is_scorable(self, carrier_code: str) -> bool:
        """Whether the carrier has denied-boarding statistics."""
        return carrier_code in self._reference.scorable_carriers

    def carrier_name(self, carrier_code: str) -> str:
        stats = self._reference.carrier(carrier_code)
        return stats.name if stats else carrier_code

    def display_name(self, marketing_code: str, operator: Optional[Operator] = None) -> str:
        """Carrier display name; regionals read "Endeavor Air (Delta)"."""
        mainline = self.carrier_name(marketing_code)
        if operator is not None and operator.is_regional:
            return f"{operator.name} ({mainline})"
        return mainline

    @staticmethod
    def display_flight_number(carrier_code: str, number: str) -> str:
        return f"{carrier_code} {number}"
