"""
Values -- hour and money primitives shared by the kernel and the engines.

Responsibility:
    Conversion between shift clock times (``timedelta`` since midnight) and
    fractional ``Decimal`` hours, plus the single rounding rule used for
    every reported pay figure.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic; floats never enter a pay calculation.
    - Reported figures are rounded half-up to two decimal places.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from enum import Enum

ZERO = Decimal("0")
TWO_PLACES = Decimal("0.01")
HOURS_PER_DAY = Decimal("24")
SECONDS_PER_HOUR = Decimal("3600")
FULL_DAY = timedelta(hours=24)


def round2(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def floor_hours(value: Decimal) -> Decimal:
    """Truncate to whole hours."""
    return value.quantize(Decimal("1"), rounding=ROUND_FLOOR)


def to_decimal(value: Decimal | int | str | None) -> Decimal:
    """Coerce a stored numeric value; ``None`` reads as zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def hours_from_timedelta(value: timedelta | None) -> Decimal:
    """Fractional hours of a clock time or duration (``None`` is zero)."""
    if value is None:
        return ZERO
    seconds = value.days * 86400 + value.seconds
    return Decimal(seconds) / SECONDS_PER_HOUR


def timedelta_from_hours(hours: Decimal) -> timedelta:
    """Inverse of ``hours_from_timedelta`` at one-second resolution."""
    seconds = (hours * SECONDS_PER_HOUR).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return timedelta(seconds=int(seconds))


class HoursCodeKind(str, Enum):
    """Classification of a work day; drives which allowance formula applies."""

    ONE_DAY_RIDE = "one_day_ride"
    DEPARTURE = "multi_day_departure"
    INTERMEDIATE = "multi_day_intermediate"
    ARRIVAL = "multi_day_arrival"
    HOLIDAY = "holiday"
    SICK = "sick"
    TIME_FOR_TIME = "time_for_time"
    OTHER_WORK = "other_work"
    COURSE_DAY = "course_day"
    CONSIGNMENT = "consignment"
    UNPAID = "unpaid"


class HoursOptionKind(str, Enum):
    """Secondary modifier adjusting allowance eligibility."""

    STAND_OVER = "stand_over"
    HOLIDAY = "holiday"
    NO_HOLIDAY = "no_holiday"
    NO_ALLOWANCE = "no_allowance"
    NO_COMMUTING_ALLOWANCE = "no_commuting_allowance"
    NO_NIGHT_ALLOWANCE = "no_night_allowance"
