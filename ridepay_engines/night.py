"""
Module: ridepay_engines.night
Responsibility:
    Night-allowance calculator: hours of the shift that fall inside the rate
    row's night window, priced at the driver's hourly rate times the CAO
    night-allowance rate.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Both the shift and the night window may wrap past midnight; each is
      split into same-day segments before overlapping.
    - Disabled for drivers without night eligibility and for the
      ``NO_NIGHT_ALLOWANCE`` option.
"""

from __future__ import annotations

from decimal import Decimal

from ridepay_kernel.domain.values import (
    HOURS_PER_DAY,
    ZERO,
    HoursOptionKind,
    floor_hours,
    round2,
)

Segment = tuple[Decimal, Decimal]


def _segments(start: Decimal, end: Decimal) -> list[Segment]:
    if end < start:
        return [(start, HOURS_PER_DAY), (ZERO, end)]
    return [(start, end)]


def night_hours(
    start: Decimal,
    end: Decimal,
    night_start: Decimal,
    night_end: Decimal,
) -> Decimal:
    """Overlap between the shift and the night window, in hours."""
    total = ZERO
    for shift_from, shift_to in _segments(start, end):
        for night_from, night_to in _segments(night_start, night_end):
            overlap = min(shift_to, night_to) - max(shift_from, night_from)
            if overlap > ZERO:
                total += overlap
    return total


def night_allowance(
    *,
    hours: Decimal,
    allowed: bool,
    option: HoursOptionKind | None,
    driver_rate_per_hour: Decimal,
    night_rate: Decimal,
) -> Decimal:
    if not allowed or option is HoursOptionKind.NO_NIGHT_ALLOWANCE:
        return ZERO
    return round2(hours * driver_rate_per_hour * night_rate)


def countable_night_hours(
    start: Decimal,
    end: Decimal,
    night_start: Decimal,
    night_end: Decimal,
    whole_hours: bool,
) -> Decimal:
    """Night hours, optionally truncated to whole hours."""
    hours = night_hours(start, end, night_start, night_end)
    if whole_hours:
        return floor_hours(hours)
    return round2(hours)
