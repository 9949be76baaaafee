"""
RideRecordService -- legacy single-driver ride records.

Responsibility:
    Creates and edits ``RideRecord`` rows.  Every write goes through
    ``RideRecalculationService`` so computed columns, week attachment and
    approval invalidation stay in step with the raw inputs.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - Computed columns are never accepted as edits.
    - ``expected_version`` guards concurrent edits; rows are loaded
      ``FOR UPDATE`` on backends that support it.
    - The correction value is locked while a ride-level dispute on the
      record is unresolved; accepting the dispute is the only way to
      change it then.

Failure modes:
    - RideRecordNotFoundError, RideValidationError,
      DisputedValueLockedError, ConcurrentModificationError, plus every
      reference-data error of the calculator.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from ridepay_kernel.domain.validation import validate_editable
from ridepay_kernel.domain.workflow import UNRESOLVED_RIDE_DISPUTE_STATUSES
from ridepay_kernel.exceptions import DisputedValueLockedError, RideRecordNotFoundError
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.dispute import RideDispute
from ridepay_kernel.models.ride import RideRecord
from ridepay_kernel.services.base import BaseService
from ridepay_kernel.services.ride_adapters import RideRecordAdapter
from ridepay_kernel.services.ride_recalculation_service import RideRecalculationService

logger = get_logger("services.ride_record")

EDITABLE_FIELDS = frozenset({
    "ride_date",
    "start_time",
    "end_time",
    "rest_time",
    "overnight",
    "hours_code_id",
    "hours_option_id",
    "correction_total_hours",
    "extra_kilometers",
    "odometer_start",
    "odometer_end",
    "remark",
})


class RideRecordService(BaseService[RideRecord]):

    adapter = RideRecordAdapter

    def __init__(self, recalculation: RideRecalculationService):
        super().__init__(recalculation.session)
        self.recalculation = recalculation

    def get(self, ride_record_id: UUID, *, for_update: bool = False) -> RideRecord:
        stmt = select(RideRecord).where(RideRecord.id == ride_record_id)
        if for_update:
            stmt = stmt.with_for_update()
        record = self.session.scalars(stmt).first()
        if record is None:
            raise RideRecordNotFoundError(str(ride_record_id))
        return record

    def open_dispute(self, record: RideRecord) -> RideDispute | None:
        return self.session.scalars(
            select(RideDispute).where(
                RideDispute.ride_record_id == record.id,
                RideDispute.status.in_([s.value for s in UNRESOLVED_RIDE_DISPUTE_STATUSES]),
            )
        ).first()

    def create(
        self,
        driver_id: UUID,
        actor_id: UUID,
        *,
        ride_date: date,
        start_time: timedelta,
        end_time: timedelta,
        rest_time: timedelta | None = None,
        overnight: bool = False,
        hours_code_id: UUID | None = None,
        hours_option_id: UUID | None = None,
        correction_total_hours: Decimal = Decimal("0"),
        extra_kilometers: Decimal = Decimal("0"),
        odometer_start: Decimal | None = None,
        odometer_end: Decimal | None = None,
        remark: str | None = None,
    ) -> RideRecord:
        record = RideRecord(
            driver_id=driver_id,
            ride_date=ride_date,
            start_time=start_time,
            end_time=end_time,
            rest_time=rest_time,
            overnight=overnight,
            hours_code_id=hours_code_id,
            hours_option_id=hours_option_id,
            correction_total_hours=correction_total_hours,
            extra_kilometers=extra_kilometers,
            odometer_start=odometer_start,
            odometer_end=odometer_end,
            remark=remark,
            created_by_id=actor_id,
        )
        result = self.recalculation.calculate(record, self.adapter)
        self.session.add(record)
        self.recalculation.commit_result(record, self.adapter, result, actor_id)

        logger.info(
            "ride_record_created",
            extra={
                "ride_id": str(record.id),
                "driver_id": str(driver_id),
                "ride_date": ride_date.isoformat(),
            },
        )
        return record

    def edit(
        self,
        ride_record_id: UUID,
        actor_id: UUID,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> RideRecord:
        validate_editable(changes, EDITABLE_FIELDS)

        record = self.get(ride_record_id, for_update=True)
        self.recalculation.check_version(record, self.adapter, expected_version)

        if "correction_total_hours" in changes:
            dispute = self.open_dispute(record)
            if dispute is not None:
                raise DisputedValueLockedError("RideRecord", str(record.id), str(dispute.id))

        self.recalculation.apply_changes(record, self.adapter, changes, actor_id)
        logger.info(
            "ride_record_edited",
            extra={
                "ride_id": str(record.id),
                "actor_id": str(actor_id),
                "fields": sorted(changes),
                "version": record.version,
            },
        )
        return record

    def recalculate(self, ride_record_id: UUID, actor_id: UUID) -> RideRecord:
        """Recompute without changing inputs (e.g. after a rate correction)."""
        record = self.get(ride_record_id, for_update=True)
        self.recalculation.apply_changes(record, self.adapter, {}, actor_id)
        return record

    def apply_correction_delta(
        self,
        record: RideRecord,
        delta: Decimal,
        actor_id: UUID,
    ) -> RideRecord:
        """Add an agreed dispute correction; bypasses the dispute lock."""
        self.recalculation.apply_changes(
            record,
            self.adapter,
            {"correction_total_hours": record.correction_total_hours + delta},
            actor_id,
        )
        return record
