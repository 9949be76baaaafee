"""
Periods -- ISO week and four-week pay period arithmetic.

Responsibility:
    Maps a calendar date to its ISO week and to the four-week pay period
    used for driver sign-off, and maps periods back to their weeks and
    date ranges.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - The ISO year owns the period: 2024-12-30 (ISO 2025-W01) belongs to
      period 1 of 2025.
    - period = ceil(week / 4).  Week 53 of a long ISO year joins period 13,
      which then spans five weeks.
    - A period runs from the Monday of its first week to the Sunday of its
      last week.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

WEEKS_PER_PERIOD = 4
PERIODS_PER_YEAR = 13


@dataclass(frozen=True)
class PeriodKey:
    """ISO year, ISO week and the pay period the week belongs to."""

    year: int
    week_number: int
    period_number: int
    week_in_period: int


def iso_weeks_in_year(year: int) -> int:
    """52 or 53; 28 December always falls in the last ISO week."""
    return date(year, 12, 28).isocalendar()[1]


def period_for_week(year: int, week_number: int) -> PeriodKey:
    if not 1 <= week_number <= iso_weeks_in_year(year):
        raise ValueError(f"ISO year {year} has no week {week_number}")
    period_number = min(
        (week_number + WEEKS_PER_PERIOD - 1) // WEEKS_PER_PERIOD,
        PERIODS_PER_YEAR,
    )
    week_in_period = week_number - (period_number - 1) * WEEKS_PER_PERIOD
    return PeriodKey(
        year=year,
        week_number=week_number,
        period_number=period_number,
        week_in_period=week_in_period,
    )


def period_for_date(value: date) -> PeriodKey:
    """Period key of the ISO week containing ``value``."""
    iso_year, iso_week, _ = value.isocalendar()
    return period_for_week(iso_year, iso_week)


def weeks_in_period(year: int, period_number: int) -> tuple[int, ...]:
    """ISO week numbers that make up a period."""
    if not 1 <= period_number <= PERIODS_PER_YEAR:
        raise ValueError(f"Period number out of range: {period_number}")
    first = (period_number - 1) * WEEKS_PER_PERIOD + 1
    last = first + WEEKS_PER_PERIOD - 1
    if period_number == PERIODS_PER_YEAR:
        last = iso_weeks_in_year(year)
    return tuple(range(first, last + 1))


def week_date_range(year: int, week_number: int) -> tuple[date, date]:
    """Monday and Sunday of an ISO week."""
    monday = date.fromisocalendar(year, week_number, 1)
    return monday, monday + timedelta(days=6)


def period_date_range(year: int, period_number: int) -> tuple[date, date]:
    """First Monday and last Sunday of a period."""
    weeks = weeks_in_period(year, period_number)
    start, _ = week_date_range(year, weeks[0])
    _, end = week_date_range(year, weeks[-1])
    return start, end
