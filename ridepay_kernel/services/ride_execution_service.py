"""
RideExecutionService -- per-driver executions of shared rides.

Responsibility:
    Creates shared ``Ride`` rows and the ``RideExecution`` of each driver,
    edits executions through the shared recalculation path, and runs the
    execution lifecycle: pending -> submitted -> approved | rejected, with
    resubmission after a rejection.

Architecture position:
    Kernel > Services.  The dispute leg of the lifecycle (rejected ->
    dispute -> approved | rejected) is driven by
    ``ExecutionDisputeService`` through ``transition``.

Invariants enforced:
    - One execution per (ride, driver) (unique constraint).
    - Approved executions are final and cannot be edited.
    - While an execution is in dispute, approving or rejecting it goes
      through the dispute resolution, never around it.
    - The correction value is locked while an execution dispute is open.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from ridepay_kernel.domain.validation import validate_editable
from ridepay_kernel.domain.workflow import (
    EXECUTION_TRANSITIONS,
    Actor,
    ExecutionDisputeStatus,
    ExecutionStatus,
    require_transition,
)
from ridepay_kernel.exceptions import (
    DisputedValueLockedError,
    InvalidStateTransitionError,
    RideExecutionNotFoundError,
    RidePayError,
    UnauthorizedActorError,
)
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.dispute import ExecutionDispute
from ridepay_kernel.models.ride import Ride, RideExecution
from ridepay_kernel.services.base import BaseService
from ridepay_kernel.services.ride_adapters import RideExecutionAdapter
from ridepay_kernel.services.ride_recalculation_service import RideRecalculationService

logger = get_logger("services.ride_execution")

EDITABLE_FIELDS = frozenset({
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
    "container_waiting_time",
})


class RideExecutionService(BaseService[RideExecution]):

    adapter = RideExecutionAdapter

    def __init__(self, recalculation: RideRecalculationService):
        super().__init__(recalculation.session)
        self.recalculation = recalculation
        self._clock = recalculation.clock

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, execution_id: UUID, *, for_update: bool = False) -> RideExecution:
        stmt = select(RideExecution).where(RideExecution.id == execution_id)
        if for_update:
            stmt = stmt.with_for_update()
        execution = self.session.scalars(stmt).first()
        if execution is None:
            raise RideExecutionNotFoundError(str(execution_id))
        return execution

    def open_dispute(self, execution: RideExecution) -> ExecutionDispute | None:
        return self.session.scalars(
            select(ExecutionDispute).where(
                ExecutionDispute.ride_execution_id == execution.id,
                ExecutionDispute.status == ExecutionDisputeStatus.OPEN.value,
            )
        ).first()

    # ------------------------------------------------------------------
    # Creation and edits
    # ------------------------------------------------------------------

    def create_ride(
        self,
        planned_date: date,
        actor_id: UUID,
        description: str | None = None,
    ) -> Ride:
        ride = Ride(planned_date=planned_date, description=description, created_by_id=actor_id)
        self.session.add(ride)
        self.session.flush()
        logger.info(
            "ride_created",
            extra={"ride_id": str(ride.id), "planned_date": planned_date.isoformat()},
        )
        return ride

    def create(
        self,
        ride: Ride,
        driver_id: UUID,
        actor_id: UUID,
        *,
        start_time: timedelta,
        end_time: timedelta,
        rest_time: timedelta | None = None,
        overnight: bool = False,
        hours_code_id: UUID | None = None,
        hours_option_id: UUID | None = None,
        correction_total_hours: Decimal = Decimal("0"),
        extra_kilometers: Decimal = Decimal("0"),
        container_waiting_time: timedelta | None = None,
        remark: str | None = None,
    ) -> RideExecution:
        with self.session.no_autoflush:
            execution = RideExecution(
                ride=ride,
                driver_id=driver_id,
                status=ExecutionStatus.PENDING.value,
                start_time=start_time,
                end_time=end_time,
                rest_time=rest_time,
                overnight=overnight,
                hours_code_id=hours_code_id,
                hours_option_id=hours_option_id,
                correction_total_hours=correction_total_hours,
                extra_kilometers=extra_kilometers,
                container_waiting_time=container_waiting_time,
                remark=remark,
                created_by_id=actor_id,
            )
            try:
                result = self.recalculation.calculate(execution, self.adapter)
            except RidePayError:
                # Detach the rejected execution so a later flush never inserts it.
                ride.executions.remove(execution)
                if execution in self.session:
                    self.session.expunge(execution)
                raise
        self.session.add(execution)
        self.recalculation.commit_result(execution, self.adapter, result, actor_id)

        logger.info(
            "ride_execution_created",
            extra={
                "ride_id": str(execution.id),
                "shared_ride_id": str(ride.id),
                "driver_id": str(driver_id),
            },
        )
        return execution

    def edit(
        self,
        execution_id: UUID,
        actor_id: UUID,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> RideExecution:
        validate_editable(changes, EDITABLE_FIELDS)

        execution = self.get(execution_id, for_update=True)
        self.recalculation.check_version(execution, self.adapter, expected_version)
        if execution.execution_status is ExecutionStatus.APPROVED:
            raise InvalidStateTransitionError(
                "RideExecution", str(execution.id), execution.status, "edit",
                reason="approved executions are final",
            )
        if "correction_total_hours" in changes:
            dispute = self.open_dispute(execution)
            if dispute is not None:
                raise DisputedValueLockedError("RideExecution", str(execution.id), str(dispute.id))

        self.recalculation.apply_changes(execution, self.adapter, changes, actor_id)
        logger.info(
            "ride_execution_edited",
            extra={
                "ride_id": str(execution.id),
                "actor_id": str(actor_id),
                "fields": sorted(changes),
                "version": execution.version,
            },
        )
        return execution

    def apply_corrected_hours(
        self,
        execution: RideExecution,
        corrected_hours: Decimal,
        actor_id: UUID,
    ) -> RideExecution:
        """Set the correction agreed in a dispute resolution."""
        self.recalculation.apply_changes(
            execution, self.adapter, {"correction_total_hours": corrected_hours}, actor_id,
        )
        return execution

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def transition(
        self,
        execution: RideExecution,
        target: ExecutionStatus,
        actor_id: UUID,
        action: str,
    ) -> RideExecution:
        current = execution.execution_status
        execution.status = require_transition(
            EXECUTION_TRANSITIONS,
            current,
            target,
            entity_type="RideExecution",
            entity_id=execution.id,
            action=action,
        ).value
        now = self._clock.now()
        if target is ExecutionStatus.SUBMITTED:
            execution.submitted_at = now
        elif target is ExecutionStatus.APPROVED:
            execution.approved_at = now
            execution.approved_by_id = actor_id
        elif target is ExecutionStatus.REJECTED:
            execution.rejected_at = now
            execution.rejected_by_id = actor_id
        execution.updated_by_id = actor_id
        self.recalculation.flush(execution, self.adapter)

        logger.info(
            "ride_execution_status_changed",
            extra={
                "ride_id": str(execution.id),
                "actor_id": str(actor_id),
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return execution

    def submit(self, execution_id: UUID, actor: Actor) -> RideExecution:
        execution = self.get(execution_id, for_update=True)
        if not actor.is_driver or actor.actor_id != execution.driver_id:
            raise UnauthorizedActorError(
                "RideExecution", str(execution.id), execution.status, "submit", actor.role.value,
            )
        return self.transition(execution, ExecutionStatus.SUBMITTED, actor.actor_id, "submit")

    def _admin_decision(self, execution_id: UUID, actor: Actor, action: str) -> RideExecution:
        execution = self.get(execution_id, for_update=True)
        if not actor.is_admin:
            raise UnauthorizedActorError(
                "RideExecution", str(execution.id), execution.status, action, actor.role.value,
            )
        if execution.execution_status is ExecutionStatus.DISPUTE:
            raise InvalidStateTransitionError(
                "RideExecution", str(execution.id), execution.status, action,
                reason="resolve the open dispute instead",
            )
        return execution

    def approve(self, execution_id: UUID, actor: Actor) -> RideExecution:
        execution = self._admin_decision(execution_id, actor, "approve")
        return self.transition(execution, ExecutionStatus.APPROVED, actor.actor_id, "approve")

    def reject(self, execution_id: UUID, actor: Actor, reason: str) -> RideExecution:
        execution = self._admin_decision(execution_id, actor, "reject")
        execution.rejection_reason = reason
        return self.transition(execution, ExecutionStatus.REJECTED, actor.actor_id, "reject")
