"""
Module: ridepay_engines
Responsibility:
    Pure calculation engines for ride pay: work hours and daily allowances,
    kilometer reimbursement, night allowance, holiday recognition, vacation
    accrual arithmetic, and the compensation orchestrator that threads them.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ridepay_kernel.domain (and sibling engine modules).
    MUST NOT import ridepay_services or kernel services/models.

Invariants enforced:
    - Purity: engines never read the clock or the database.  Dates are
      passed in explicitly.
    - Decimal-only arithmetic; floats are forbidden.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from ridepay_engines import compute_compensation, DutchHolidayCalendar
"""

from ridepay_engines.compensation import compute_compensation
from ridepay_engines.holidays import (
    DutchHolidayCalendar,
    FixedHolidayCalendar,
    HolidayCalendar,
    resolve_holiday_name,
)

__all__ = [
    "DutchHolidayCalendar",
    "FixedHolidayCalendar",
    "HolidayCalendar",
    "compute_compensation",
    "resolve_holiday_name",
]
