"""
Module: ridepay_engines.vacation
Responsibility:
    Pure arithmetic behind vacation accrual: age on 31 December, working
    weekdays in a window, and the hours earned for one work day.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Contract and bracket
    lookup live in ``ridepay_services.vacation_service``.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from ridepay_kernel.domain.values import ZERO, round2

HOURS_PER_VACATION_DAY = Decimal("8")


def age_at_year_end(date_of_birth: date, year: int) -> int:
    """Completed years of age on 31 December of ``year``."""
    return year - date_of_birth.year


def count_weekdays(start: date, end: date) -> int:
    """Monday-to-Friday days in the inclusive range; 0 when empty."""
    if end < start:
        return 0
    days = (end - start).days + 1
    full_weeks, remainder = divmod(days, 7)
    count = full_weeks * 5
    for offset in range(remainder):
        if (start + timedelta(days=full_weeks * 7 + offset)).weekday() < 5:
            count += 1
    return count


def contract_window_in_year(
    date_of_employment: date,
    last_working_day: date | None,
    year: int,
) -> tuple[date, date]:
    """Overlap of a contract with the calendar year (may be empty)."""
    start = max(date_of_employment, date(year, 1, 1))
    end = date(year, 12, 31)
    if last_working_day is not None:
        end = min(end, last_working_day)
    return start, end


def hours_per_work_day(right_days: int, working_days: int) -> Decimal:
    """Entitlement spread over the working days of the window."""
    if working_days <= 0:
        return ZERO
    return round2(Decimal(right_days) * HOURS_PER_VACATION_DAY / Decimal(working_days))
