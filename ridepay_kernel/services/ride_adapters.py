"""
Ride shape adapters -- the boundary between stored records and the calculator.

Responsibility:
    Map each stored ride shape onto the canonical ``RideInputs`` and write a
    ``CompensationResult`` back onto the shape's computed columns.  The
    calculator is written once; each shape only owns this mapping.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - Both shapes write exactly the same computed-column set.
    - Only the execution shape carries container waiting time, so only it
      stores ``exceeding_container_waiting_time``.
"""

from __future__ import annotations

from datetime import datetime

from ridepay_kernel.domain.dtos import CompensationResult, RideInputs
from ridepay_kernel.models.ride import RideExecution, RideRecord

COMPUTED_FIELDS = (
    "rate_row_id",
    "holiday_name",
    "rest_calculated",
    "number_of_hours",
    "decimal_hours",
    "sick_hours",
    "leave_hours",
    "tax_free_compensation",
    "night_hours",
    "night_allowance",
    "kilometer_reimbursement",
    "consignment_fee",
    "saturday_hours",
    "sunday_holiday_hours",
    "vacation_hours_earned",
    "hourly_compensation",
    "period_year",
    "period_number",
    "week_number",
    "week_nr_in_period",
)


def _write_computed(record, result: CompensationResult, calculated_at: datetime) -> None:
    for name in COMPUTED_FIELDS:
        setattr(record, name, getattr(result, name))
    record.calculated_at = calculated_at


class RideRecordAdapter:
    entity_type = "RideRecord"

    @staticmethod
    def ride_date(record: RideRecord):
        return record.ride_date

    @staticmethod
    def to_inputs(record: RideRecord) -> RideInputs:
        return RideInputs(
            driver_id=record.driver_id,
            ride_date=record.ride_date,
            start=record.start_time,
            end=record.end_time,
            rest=record.rest_time,
            overnight=record.overnight,
            hours_code_id=record.hours_code_id,
            hours_option_id=record.hours_option_id,
            correction_hours=record.correction_total_hours,
            extra_kilometers=record.extra_kilometers,
        )

    @staticmethod
    def apply_result(record: RideRecord, result: CompensationResult, calculated_at: datetime) -> None:
        _write_computed(record, result, calculated_at)


class RideExecutionAdapter:
    entity_type = "RideExecution"

    @staticmethod
    def ride_date(record: RideExecution):
        return record.ride_date

    @staticmethod
    def to_inputs(record: RideExecution) -> RideInputs:
        return RideInputs(
            driver_id=record.driver_id,
            ride_date=record.ride_date,
            start=record.start_time,
            end=record.end_time,
            rest=record.rest_time,
            overnight=record.overnight,
            hours_code_id=record.hours_code_id,
            hours_option_id=record.hours_option_id,
            correction_hours=record.correction_total_hours,
            extra_kilometers=record.extra_kilometers,
            container_waiting_time=record.container_waiting_time,
        )

    @staticmethod
    def apply_result(
        record: RideExecution,
        result: CompensationResult,
        calculated_at: datetime,
    ) -> None:
        _write_computed(record, result, calculated_at)
        record.exceeding_container_waiting_time = result.exceeding_container_waiting_time
