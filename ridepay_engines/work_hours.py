"""
Module: ridepay_engines.work_hours
Responsibility:
    Work-hours calculator: untaxed daily allowance per hours code, sick and
    paid-leave carve-outs, break schedule, gross/net hours, Saturday and
    Sunday/holiday splits, and the consignment allowance.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Every monetary constant
    comes from the ``RateRow`` argument; nothing CAO-specific is hard-coded
    outside this module and the rate table.

Invariants enforced:
    - Clock times are fractional ``Decimal`` hours in 0..24.  ``end < start``
      means the shift crosses midnight.
    - Allowance figures are rounded half-up to two places.
    - Deterministic: same inputs, same outputs.

Rules (day rate = standard untaxed allowance, evening rate = multi-day
after-17 allowance):
    single day    same day: 0 under 4 hours, else the normal-day partial
                  across midnight, start < 14: ((18 - start) + end) x day
                      + 6 x evening
                  across midnight otherwise: span x day, plus the >12h lump
                      sum when span >= 12; 0 under 4 hours
    departure     start < 17: (17 - start) x before17 + 7 x after17
                  else (24 - start) x before17
    intermediate  the multi-day untaxed daily amount
    arrival       end <= 12: end x before17
                  end < 18: 6 x after17 + (end - 6) x before17
                  else (end - 18) x after17 + 12 x before17 + 6 x after17
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ridepay_kernel.domain.dtos import RateRow
from ridepay_kernel.domain.values import (
    HOURS_PER_DAY,
    ZERO,
    HoursCodeKind,
    round2,
)

HUNDRED = Decimal("100")
MIN_ALLOWANCE_SPAN = Decimal("4")
LUMP_SUM_SPAN = Decimal("12")
AFTERNOON_START = Decimal("14")
EVENING_START = Decimal("18")
DEPARTURE_CUTOFF = Decimal("17")
ARRIVAL_NOON = Decimal("12")
MORNING_HOURS = Decimal("6")
CONSIGNMENT_MAX_HOURS = Decimal("8")

# (minimum shift span, break) -- first match from the top wins
BREAK_SCHEDULE: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("16.5"), Decimal("2.5")),
    (Decimal("13.5"), Decimal("2")),
    (Decimal("10.5"), Decimal("1.5")),
    (Decimal("7.5"), Decimal("1")),
    (Decimal("4.5"), Decimal("0.5")),
)

NO_SATURDAY_KINDS = frozenset({HoursCodeKind.COURSE_DAY})
NO_SUNDAY_HOLIDAY_KINDS = frozenset({
    HoursCodeKind.COURSE_DAY,
    HoursCodeKind.SICK,
    HoursCodeKind.HOLIDAY,
    HoursCodeKind.UNPAID,
})


def crosses_midnight(start: Decimal, end: Decimal) -> bool:
    return end < start


def shift_span(start: Decimal, end: Decimal) -> Decimal:
    """Length of the shift in hours, wrapping past midnight."""
    if crosses_midnight(start, end):
        return HOURS_PER_DAY - start + end
    return end - start


# ---------------------------------------------------------------------------
# Untaxed daily allowance
# ---------------------------------------------------------------------------


def normal_day_partial_allowance(
    rate: RateRow,
    start: Decimal,
    end: Decimal,
    is_holiday: bool,
) -> Decimal:
    """Same-day allowance: day rate until 18:00, evening rate after."""
    if is_holiday or crosses_midnight(start, end):
        return ZERO
    day_rate = rate.standard_untaxed_allowance
    evening_rate = rate.multi_day_after_17_allowance
    length = end - start
    if start >= AFTERNOON_START:
        amount = length * day_rate
    elif end >= EVENING_START:
        amount = (EVENING_START - start) * day_rate + (end - EVENING_START) * evening_rate
    else:
        amount = length * day_rate
    return round2(amount)


def single_day_allowance(
    rate: RateRow,
    kind: HoursCodeKind,
    start: Decimal,
    end: Decimal,
    is_holiday: bool,
) -> Decimal:
    if kind is not HoursCodeKind.ONE_DAY_RIDE:
        return ZERO
    if start == ZERO and end == ZERO:
        return ZERO
    if is_holiday:
        return ZERO

    if not crosses_midnight(start, end):
        if end - start < MIN_ALLOWANCE_SPAN:
            return ZERO
        return normal_day_partial_allowance(rate, start, end, is_holiday)

    day_rate = rate.standard_untaxed_allowance
    evening_rate = rate.multi_day_after_17_allowance
    if start < AFTERNOON_START:
        amount = ((EVENING_START - start) + end) * day_rate + MORNING_HOURS * evening_rate
        return round2(amount)

    total = shift_span(start, end)
    if total < MIN_ALLOWANCE_SPAN:
        return ZERO
    amount = total * day_rate
    if total >= LUMP_SUM_SPAN:
        amount += rate.shift_more_than_12h_allowance
    return round2(amount)


def departure_day_allowance(rate: RateRow, kind: HoursCodeKind, start: Decimal) -> Decimal:
    if kind is not HoursCodeKind.DEPARTURE:
        return ZERO
    before = rate.multi_day_before_17_allowance
    after = rate.multi_day_after_17_allowance
    if start < DEPARTURE_CUTOFF:
        amount = (DEPARTURE_CUTOFF - start) * before + (HOURS_PER_DAY - DEPARTURE_CUTOFF) * after
    else:
        amount = (HOURS_PER_DAY - start) * before
    return round2(amount)


def intermediate_day_allowance(rate: RateRow, kind: HoursCodeKind) -> Decimal:
    if kind is not HoursCodeKind.INTERMEDIATE:
        return ZERO
    return round2(rate.multi_day_untaxed_allowance)


def arrival_day_allowance(rate: RateRow, kind: HoursCodeKind, end: Decimal) -> Decimal:
    if kind is not HoursCodeKind.ARRIVAL:
        return ZERO
    before = rate.multi_day_before_17_allowance
    after = rate.multi_day_after_17_allowance
    if end <= ARRIVAL_NOON:
        amount = end * before
    elif end < EVENING_START:
        amount = MORNING_HOURS * after + (end - MORNING_HOURS) * before
    else:
        amount = (
            (end - EVENING_START) * after
            + ARRIVAL_NOON * before
            + MORNING_HOURS * after
        )
    return round2(amount)


def untaxed_allowance(
    rate: RateRow,
    kind: HoursCodeKind,
    start: Decimal,
    end: Decimal,
    is_holiday: bool,
) -> Decimal:
    """Tax-free compensation: the sum of the per-code allowances."""
    return round2(
        single_day_allowance(rate, kind, start, end, is_holiday)
        + departure_day_allowance(rate, kind, start)
        + intermediate_day_allowance(rate, kind)
        + arrival_day_allowance(rate, kind, end)
    )


# ---------------------------------------------------------------------------
# Hours
# ---------------------------------------------------------------------------


def sick_hours(
    kind: HoursCodeKind,
    percentage_of_work: Decimal,
    start: Decimal,
    end: Decimal,
) -> Decimal:
    if kind is not HoursCodeKind.SICK:
        return ZERO
    return round2(shift_span(start, end) * percentage_of_work / HUNDRED)


def leave_hours(
    kind: HoursCodeKind,
    percentage_of_work: Decimal,
    start: Decimal,
    end: Decimal,
) -> Decimal:
    if kind is not HoursCodeKind.HOLIDAY:
        return ZERO
    return round2(shift_span(start, end) * percentage_of_work / HUNDRED)


def break_duration(
    kind: HoursCodeKind,
    start: Decimal,
    end: Decimal,
    sick: Decimal,
    leave: Decimal,
) -> Decimal:
    """Break from the fixed schedule; none for sick, leave or time-for-time."""
    if kind is HoursCodeKind.TIME_FOR_TIME:
        return ZERO
    if sick + leave > ZERO:
        return ZERO
    span = shift_span(start, end)
    for threshold, duration in BREAK_SCHEDULE:
        if span >= threshold:
            return duration
    return ZERO


def total_hours(
    start: Decimal,
    end: Decimal,
    rest: Decimal,
    correction: Decimal,
) -> Decimal:
    """Shift span minus rest plus the manual correction."""
    return round2(shift_span(start, end) - rest + correction)


def net_hours(
    kind: HoursCodeKind,
    number_of_hours: Decimal,
    sick: Decimal,
    leave: Decimal,
) -> Decimal:
    """Decimal hours that count as worked/paid for the day."""
    if kind is HoursCodeKind.SICK:
        return sick
    if kind is HoursCodeKind.HOLIDAY:
        return leave
    if kind is HoursCodeKind.UNPAID:
        return ZERO
    return number_of_hours


def saturday_hours(
    ride_date: date,
    holiday_name: str | None,
    kind: HoursCodeKind,
    hours: Decimal,
) -> Decimal:
    if ride_date.weekday() == 5 and not holiday_name and kind not in NO_SATURDAY_KINDS:
        return hours
    return ZERO


def sunday_holiday_hours(
    ride_date: date,
    holiday_name: str | None,
    kind: HoursCodeKind,
    hours: Decimal,
) -> Decimal:
    if (ride_date.weekday() == 6 or holiday_name) and kind not in NO_SUNDAY_HOLIDAY_KINDS:
        return hours
    return ZERO


def consignment_allowance(
    rate: RateRow,
    kind: HoursCodeKind,
    start: Decimal,
    end: Decimal,
) -> Decimal:
    """Consignment pay for up to eight hours of the shift."""
    if kind is not HoursCodeKind.CONSIGNMENT:
        return ZERO
    hours = min(max(shift_span(start, end), ZERO), CONSIGNMENT_MAX_HOURS)
    return round2(rate.consignment_untaxed_allowance * hours)


@dataclass(frozen=True)
class WorkHoursResult:
    tax_free_compensation: Decimal
    sick_hours: Decimal
    leave_hours: Decimal
    rest_calculated: Decimal
    rest_applied: Decimal
    number_of_hours: Decimal
    decimal_hours: Decimal
    saturday_hours: Decimal
    sunday_holiday_hours: Decimal
    consignment_fee: Decimal


def calculate_work_hours(
    *,
    rate: RateRow,
    kind: HoursCodeKind,
    ride_date: date,
    start: Decimal,
    end: Decimal,
    rest_taken: Decimal | None,
    correction: Decimal,
    percentage_of_work: Decimal,
    holiday_name: str | None,
    allowance_suppressed: bool = False,
) -> WorkHoursResult:
    """
    Run the whole work-hours calculator for one shift.

    ``rest_taken`` of ``None`` applies the break schedule; otherwise the
    recorded rest is used and the schedule value is still reported.
    ``allowance_suppressed`` zeroes the untaxed and consignment allowances.
    """
    is_holiday = bool(holiday_name)
    sick = sick_hours(kind, percentage_of_work, start, end)
    leave = leave_hours(kind, percentage_of_work, start, end)
    rest_calculated = break_duration(kind, start, end, sick, leave)
    rest_applied = rest_calculated if rest_taken is None else rest_taken
    if sick + leave > ZERO:
        rest_applied = ZERO
    gross = total_hours(start, end, rest_applied, correction)
    decimal = net_hours(kind, gross, sick, leave)

    if allowance_suppressed:
        tax_free = ZERO
        consignment = ZERO
    else:
        tax_free = untaxed_allowance(rate, kind, start, end, is_holiday)
        consignment = consignment_allowance(rate, kind, start, end)

    return WorkHoursResult(
        tax_free_compensation=tax_free,
        sick_hours=sick,
        leave_hours=leave,
        rest_calculated=rest_calculated,
        rest_applied=rest_applied,
        number_of_hours=gross,
        decimal_hours=decimal,
        saturday_hours=saturday_hours(ride_date, holiday_name, kind, gross),
        sunday_holiday_hours=sunday_holiday_hours(ride_date, holiday_name, kind, gross),
        consignment_fee=consignment,
    )
