"""
Module: ridepay_engines.holidays
Responsibility:
    Recognize Dutch public holidays and resolve the holiday name for a ride
    date, honoring the hours-option overrides that force a day to count as a
    holiday or not.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Movable feasts derive from ``dateutil.easter`` (Western calendar).
    - King's Day moves to 26 April when 27 April is a Sunday.
    - Liberation Day counts as a paid holiday only in lustrum years.
    - ``HoursOptionKind.HOLIDAY`` forces a holiday, ``NO_HOLIDAY`` suppresses
      one; every other option leaves the calendar in charge.
"""

from __future__ import annotations

from datetime import date, timedelta
from functools import lru_cache
from typing import Protocol

from dateutil.easter import EASTER_WESTERN, easter

from ridepay_kernel.domain.values import HoursOptionKind

FORCED_HOLIDAY_NAME = "Holiday"


class HolidayCalendar(Protocol):
    def holiday_name(self, value: date) -> str | None:
        ...


@lru_cache(maxsize=64)
def dutch_public_holidays(year: int) -> dict[date, str]:
    """Every Dutch public holiday of ``year`` keyed by date."""
    easter_sunday = easter(year, EASTER_WESTERN)
    kings_day = date(year, 4, 27)
    if kings_day.weekday() == 6:
        kings_day = date(year, 4, 26)

    holidays = {
        date(year, 1, 1): "New Year's Day",
        easter_sunday - timedelta(days=2): "Good Friday",
        easter_sunday + timedelta(days=1): "Easter Monday",
        kings_day: "King's Day",
        easter_sunday + timedelta(days=39): "Ascension Day",
        easter_sunday + timedelta(days=50): "Whit Monday",
        date(year, 12, 25): "Christmas Day",
        date(year, 12, 26): "Boxing Day",
    }
    if year % 5 == 0:
        holidays[date(year, 5, 5)] = "Liberation Day"
    return holidays


class DutchHolidayCalendar:
    """Default calendar for the CAO."""

    def holiday_name(self, value: date) -> str | None:
        return dutch_public_holidays(value.year).get(value)


class FixedHolidayCalendar:
    """Calendar over an explicit date-to-name mapping."""

    def __init__(self, holidays: dict[date, str]):
        self._holidays = dict(holidays)

    def holiday_name(self, value: date) -> str | None:
        return self._holidays.get(value)


def resolve_holiday_name(
    calendar: HolidayCalendar,
    value: date,
    option: HoursOptionKind | None,
) -> str | None:
    """Holiday name for a ride date after applying option overrides."""
    if option is HoursOptionKind.NO_HOLIDAY:
        return None
    name = calendar.holiday_name(value)
    if option is HoursOptionKind.HOLIDAY and not name:
        return FORCED_HOLIDAY_NAME
    return name
