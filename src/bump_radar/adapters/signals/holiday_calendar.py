"""
Rule-based US holiday and travel-season calendar.

Federal holidays are computed from rules ("4th Thursday of November"),
never from a list of dates, so the calendar works for any year.
Seasonal periods are fixed month/day ranges.

Scoring:
    A date inside a holiday's travel window scores the holiday's
    intensity minus one point per day of distance, floored at half the
    intensity (rounded up). Seasons score their flat intensity. The
    single best match wins.
"""

from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple

from src.bump_radar.ports.signal_providers import HolidayScore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HolidayRule:
    """
    A holiday and its travel window.

    Attributes:
        name: Holiday name.
        month: Month (1-12).
        intensity: Peak score on the day itself.
        window_before: Days before the holiday that count.
        window_after: Days after the holiday that count.
        day: Fixed day of month, for fixed-date holidays.
        weekday: Python weekday (0=Monday), for nth-weekday holidays.
        nth: Occurrence of ``weekday`` in the month; -1 for the last.
    """

    name: str
    month: int
    intensity: int
    window_before: int
    window_after: int
    day: Optional[int] = None
    weekday: Optional[int] = None
    nth: int = 1

    def date_in(self, year: int) -> date:
        """Date of this holiday in ``year``."""
        if self.day is not None:
            return date(year, self.month, self.day)
        return nth_weekday(year, self.month, self.weekday, self.nth)


@dataclass(frozen=True)
class SeasonalPeriod:
    """A recurring month/day range with flat intensity."""

    name: str
    start: Tuple[int, int]
    end: Tuple[int, int]
    intensity: int

    def contains(self, day: date) -> bool:
        return self.start <= (day.month, day.day) <= self.end


HOLIDAY_RULES: List[HolidayRule] = [
    # Fixed-date
    HolidayRule("New Year's Day", 1, 12, 3, 1, day=1),
    HolidayRule("Juneteenth", 6, 5, 1, 1, day=19),
    HolidayRule("Independence Day", 7, 12, 3, 2, day=4),
    HolidayRule("Veterans Day", 11, 5, 1, 1, day=11),
    HolidayRule("Christmas", 12, 15, 4, 3, day=25),
    # Nth weekday
    HolidayRule("MLK Jr. Day", 1, 6, 2, 1, weekday=calendar.MONDAY, nth=3),
    HolidayRule("Presidents' Day", 2, 6, 2, 1, weekday=calendar.MONDAY, nth=3),
    HolidayRule("Memorial Day", 5, 10, 3, 1, weekday=calendar.MONDAY, nth=-1),
    HolidayRule("Labor Day", 9, 10, 3, 1, weekday=calendar.MONDAY, nth=1),
    HolidayRule("Columbus Day", 10, 5, 2, 1, weekday=calendar.MONDAY, nth=2),
    HolidayRule("Thanksgiving", 11, 15, 3, 2, weekday=calendar.THURSDAY, nth=4),
]

SEASONAL_PERIODS: List[SeasonalPeriod] = [
    SeasonalPeriod("Spring Break", (3, 5), (4, 5), 8),
    SeasonalPeriod("Summer Peak", (6, 15), (8, 20), 7),
    SeasonalPeriod("Holiday Season", (12, 20), (12, 31), 10),
    SeasonalPeriod("Holiday Season", (1, 1), (1, 3), 10),
]

MAJOR_HOLIDAYS = frozenset(
    {
        "Thanksgiving",
        "Christmas",
        "Independence Day",
        "Memorial Day",
        "Labor Day",
        "New Year's Day",
    }
)

_SEASON_TAGS = {
    "Spring Break": "Spring break window",
    "Summer Peak": "Summer peak travel period",
    "Holiday Season": "Holiday season travel corridor",
}


def nth_weekday(year: int, month: int, weekday: int, nth: int) -> date:
    """
    Date of the nth ``weekday`` in a month.

    Args:
        year: Year.
        month: Month (1-12).
        weekday: Python weekday (0=Monday).
        nth: 1-based occurrence, or -1 for the last one.
    """
    if nth == -1:
        last = date(year, month, calendar.monthrange(year, month)[1])
        return last - timedelta(days=(last.weekday() - weekday) % 7)

    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset + (nth - 1) * 7)


def holiday_tag(name: str) -> str:
    """Factor description for a matched holiday or season."""
    if name in _SEASON_TAGS:
        return _SEASON_TAGS[name]
    if name in MAJOR_HOLIDAYS:
        return f"{name} travel week (DOT peak period)"
    return f"{name} weekend"


class RuleBasedHolidayCalendar:
    """Holiday calendar backed by ``HOLIDAY_RULES`` and ``SEASONAL_PERIODS``."""

    def __init__(
        self,
        rules: Optional[List[HolidayRule]] = None,
        seasons: Optional[List[SeasonalPeriod]] = None,
    ) -> None:
        self._rules = rules if rules is not None else HOLIDAY_RULES
        self._seasons = seasons if seasons is not None else SEASONAL_PERIODS

    def score(self, day: date) -> HolidayScore:
        best = HolidayScore()

        for rule in self._rules:
            # Adjacent years catch windows that straddle New Year
            for year in (day.year - 1, day.year, day.year + 1):
                days_until = (rule.date_in(year) - day).days
                window = rule.window_before if days_until >= 0 else rule.window_after
                if abs(days_until) > window:
                    continue

                points = max(math.ceil(rule.intensity * 0.5), rule.intensity - abs(days_until))
                if points > best.score:
                    best = HolidayScore(points, rule.name, days_until, holiday_tag(rule.name))

        for season in self._seasons:
            if season.contains(day) and season.intensity > best.score:
                best = HolidayScore(season.intensity, season.name, 0, holiday_tag(season.name))

        if best.name:
            logger.debug("Holiday match for %s: %s (%d)", day, best.name, best.score)
        return best
