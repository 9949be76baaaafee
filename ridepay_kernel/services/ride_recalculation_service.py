"""
RideRecalculationService -- recompute a ride and cascade into approvals.

Responsibility:
    The single path through which a ride of either shape is (re)computed:
    run the calculator on the adapter's inputs, write the result back,
    attach the ride to its week approval (creating it lazily), and
    invalidate the week and period when they were already signed.  When an
    edit moves a ride into another week, the week it left is treated as
    edited too.

Architecture position:
    Kernel > Services.  Used by ``RideRecordService``,
    ``RideExecutionService`` and both dispute services.  The calculator is
    injected (``RideCalculator`` protocol) by the services layer.

Invariants enforced:
    - Inputs are validated and every reference row resolved before any
      column is written; a failed calculation discards the pending edit.
    - Invalidation is monotonic: a signed week whose ride changed never
      stays signed.
    - A stale ORM version counter surfaces as ConcurrentModificationError.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ridepay_kernel.domain.clock import Clock, SystemClock
from ridepay_kernel.domain.dtos import CompensationResult, RideInputs
from ridepay_kernel.exceptions import ConcurrentModificationError, RidePayError
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.services.week_approval_service import WeekApprovalService

logger = get_logger("services.ride_recalculation")


class RideCalculator(Protocol):
    """Resolves reference data for a ride and returns its figures."""

    def calculate(self, inputs: RideInputs) -> CompensationResult:
        ...


class RideRecalculationService:

    def __init__(
        self,
        session: Session,
        calculator: RideCalculator,
        weeks: WeekApprovalService,
        clock: Clock | None = None,
    ):
        self.session = session
        self.calculator = calculator
        self.weeks = weeks
        self.clock = clock or SystemClock()

    def flush(self, record, adapter) -> None:
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise ConcurrentModificationError(
                adapter.entity_type, str(record.id), expected_version=record.version,
            ) from exc

    def check_version(self, record, adapter, expected_version: int | None) -> None:
        if expected_version is not None and record.version != expected_version:
            raise ConcurrentModificationError(
                adapter.entity_type,
                str(record.id),
                expected_version=expected_version,
                actual_version=record.version,
            )

    def calculate(self, record, adapter) -> CompensationResult:
        return self.calculator.calculate(adapter.to_inputs(record))

    def apply_changes(
        self,
        record,
        adapter,
        changes: dict[str, Any],
        actor_id: UUID,
    ) -> CompensationResult:
        """
        Write ``changes`` onto an attached ride and recompute it.

        On any kernel error the pending attribute changes are expired so
        the ride keeps its stored values.
        """
        previous_week_id = record.week_approval_id
        previous_date: date = adapter.ride_date(record)
        for name, value in changes.items():
            setattr(record, name, value)
        try:
            with self.session.no_autoflush:
                result = self.calculate(record, adapter)
        except RidePayError:
            self.session.expire(record)
            raise
        return self.commit_result(
            record,
            adapter,
            result,
            actor_id,
            previous_week_id=previous_week_id,
            previous_date=previous_date,
        )

    def commit_result(
        self,
        record,
        adapter,
        result: CompensationResult,
        actor_id: UUID,
        *,
        previous_week_id: UUID | None = None,
        previous_date: date | None = None,
    ) -> CompensationResult:
        """Store ``result`` on ``record`` and run the approval cascade."""
        adapter.apply_result(record, result, self.clock.now())
        ride_date = adapter.ride_date(record)
        week = self.weeks.get_or_create(record.driver_id, ride_date, actor_id)
        record.week_approval_id = week.id
        record.updated_by_id = actor_id
        self.flush(record, adapter)

        self.weeks.invalidate_for_edit(week, actor_id)
        if previous_week_id is not None and previous_week_id != week.id:
            self.weeks.invalidate_for_edit(self.weeks.get(previous_week_id), actor_id)

        logger.info(
            "ride_recalculated",
            extra={
                "ride_id": str(record.id),
                "entity_type": adapter.entity_type,
                "driver_id": str(record.driver_id),
                "ride_date": ride_date.isoformat(),
                "previous_date": previous_date.isoformat() if previous_date else None,
                "week_approval_id": str(week.id),
                "decimal_hours": str(result.decimal_hours),
            },
        )
        return result
