"""
Module: ridepay_engines.compensation
Responsibility:
    Thread the three allowance calculators together for one ride and
    assemble the immutable ``CompensationResult``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Reference rows are
    resolved by ``ridepay_services.CompensationCalculator`` and
    passed in already loaded.

Invariants enforced:
    - Idempotence: the result is a pure function of the inputs, the rate
      row, the driver settings, the holiday name and the vacation rate.
    - Net hours feed the kilometer calculator; the holiday name feeds the
      work-hours calculator and the Saturday/Sunday splits.
    - ``NO_ALLOWANCE`` zeroes untaxed, consignment and kilometer figures.
"""

from __future__ import annotations

from decimal import Decimal

from ridepay_engines import kilometers, night, work_hours
from ridepay_engines.tracer import traced_engine
from ridepay_kernel.domain.dtos import CompensationResult, DriverCompensation, RateRow, RideInputs
from ridepay_kernel.domain.periods import period_for_date
from ridepay_kernel.domain.values import (
    ZERO,
    HoursCodeKind,
    HoursOptionKind,
    hours_from_timedelta,
    round2,
)

CONTAINER_WAITING_FREE_HOURS = Decimal("2")


def exceeding_container_waiting_time(inputs: RideInputs) -> Decimal | None:
    """Waiting beyond the free two hours; ``None`` when not recorded."""
    if inputs.container_waiting_time is None:
        return None
    waiting = hours_from_timedelta(inputs.container_waiting_time)
    return round2(max(waiting - CONTAINER_WAITING_FREE_HOURS, ZERO))


@traced_engine(
    "compensation",
    "1.0",
    fingerprint_fields=("inputs", "rate", "settings", "kind", "option", "holiday_name"),
)
def compute_compensation(
    *,
    inputs: RideInputs,
    rate: RateRow,
    settings: DriverCompensation,
    kind: HoursCodeKind,
    option: HoursOptionKind | None,
    holiday_name: str | None,
    vacation_hours_per_day: Decimal,
) -> CompensationResult:
    start = hours_from_timedelta(inputs.start)
    end = hours_from_timedelta(inputs.end)
    rest_taken = None if inputs.rest is None else hours_from_timedelta(inputs.rest)
    no_allowance = option is HoursOptionKind.NO_ALLOWANCE

    worked = work_hours.calculate_work_hours(
        rate=rate,
        kind=kind,
        ride_date=inputs.ride_date,
        start=start,
        end=end,
        rest_taken=rest_taken,
        correction=inputs.correction_hours,
        percentage_of_work=settings.percentage_of_work,
        holiday_name=holiday_name,
        allowance_suppressed=no_allowance,
    )

    commute = kilometers.home_work_distance(
        rate,
        settings.kilometer_allowance_enabled,
        settings.kilometers_one_way_value,
    )
    km_reimbursement = kilometers.kilometer_reimbursement(
        rate=rate,
        kind=kind,
        option=option,
        extra_kilometers=inputs.extra_kilometers,
        net_hours=worked.decimal_hours,
        commute_distance=commute,
    )

    counted_night_hours = night.countable_night_hours(
        start,
        end,
        hours_from_timedelta(rate.night_time_start),
        hours_from_timedelta(rate.night_time_end),
        settings.night_hours_whole_hours,
    )
    night_pay = night.night_allowance(
        hours=counted_night_hours,
        allowed=settings.night_hours_allowed,
        option=option,
        driver_rate_per_hour=settings.driver_rate_per_hour,
        night_rate=rate.night_hours_allowance_rate,
    )

    vacation_earned = vacation_hours_per_day if worked.decimal_hours > ZERO else ZERO
    period = period_for_date(inputs.ride_date)

    return CompensationResult(
        hours_code_kind=kind,
        hours_option_kind=option,
        rate_row_id=rate.id,
        holiday_name=holiday_name,
        rest_calculated=worked.rest_calculated,
        rest_applied=worked.rest_applied,
        number_of_hours=worked.number_of_hours,
        decimal_hours=worked.decimal_hours,
        sick_hours=worked.sick_hours,
        leave_hours=worked.leave_hours,
        tax_free_compensation=worked.tax_free_compensation,
        night_hours=counted_night_hours,
        night_allowance=night_pay,
        kilometer_reimbursement=km_reimbursement,
        consignment_fee=worked.consignment_fee,
        saturday_hours=worked.saturday_hours,
        sunday_holiday_hours=worked.sunday_holiday_hours,
        vacation_hours_earned=vacation_earned,
        hourly_compensation=round2(worked.decimal_hours * settings.driver_rate_per_hour),
        exceeding_container_waiting_time=exceeding_container_waiting_time(inputs),
        period_year=period.year,
        period_number=period.period_number,
        week_number=period.week_number,
        week_nr_in_period=period.week_in_period,
    )
