"""Signal provider adapters for the scoring engine."""

from src.bump_radar.adapters.signals.holiday_calendar import (
    HOLIDAY_RULES,
    SEASONAL_PERIODS,
    HolidayRule,
    RuleBasedHolidayCalendar,
    SeasonalPeriod,
    holiday_tag,
    nth_weekday,
)
from src.bump_radar.adapters.signals.neutral import (
    NeutralAirportStatusProvider,
    NeutralWeatherProvider,
)

__all__ = [
    "HOLIDAY_RULES",
    "SEASONAL_PERIODS",
    "HolidayRule",
    "NeutralAirportStatusProvider",
    "NeutralWeatherProvider",
    "RuleBasedHolidayCalendar",
    "SeasonalPeriod",
    "holiday_tag",
    "nth_weekday",
]
