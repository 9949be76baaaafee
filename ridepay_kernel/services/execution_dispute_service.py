"""
ExecutionDisputeService -- driver objections to a rejected execution.

Responsibility:
    A driver opens a dispute with a free-text reason on one of their
    rejected ride executions.  An admin resolves it with notes and a
    resolution type (``accept`` approves the execution, ``reject`` returns
    it to rejected), optionally setting corrected hours, or closes it
    without a decision.

Architecture position:
    Kernel > Services.  Execution status changes go through
    ``RideExecutionService.transition``; corrected hours go through the
    shared recalculation path.

Invariants enforced:
    - open -> resolved | closed; both are final.
    - A dispute may only be opened on a rejected execution with no other
      open dispute, and moves the execution to ``dispute``.
    - Corrected hours are applied before the execution status changes, and
      cascade into week/period invalidation like any other edit.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ridepay_kernel.domain.clock import Clock, SystemClock
from ridepay_kernel.domain.workflow import (
    EXECUTION_DISPUTE_TRANSITIONS,
    Actor,
    ExecutionDisputeStatus,
    ExecutionStatus,
    ResolutionType,
    require_transition,
)
from ridepay_kernel.exceptions import (
    DisputeAlreadyOpenError,
    DisputeNotFoundError,
    InvalidStateTransitionError,
    UnauthorizedActorError,
)
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.dispute import ExecutionDispute, ExecutionDisputeComment
from ridepay_kernel.services.base import BaseService
from ridepay_kernel.services.ride_execution_service import RideExecutionService

logger = get_logger("services.execution_dispute")

_RESOLUTION_TARGET = {
    ResolutionType.ACCEPT: ExecutionStatus.APPROVED,
    ResolutionType.REJECT: ExecutionStatus.REJECTED,
}


class ExecutionDisputeService(BaseService[ExecutionDispute]):

    def __init__(self, executions: RideExecutionService, clock: Clock | None = None):
        super().__init__(executions.session)
        self.executions = executions
        self._clock = clock or SystemClock()

    def get(self, dispute_id: UUID) -> ExecutionDispute:
        dispute = self.session.get(ExecutionDispute, dispute_id)
        if dispute is None:
            raise DisputeNotFoundError(str(dispute_id))
        return dispute

    def _transition(self, dispute: ExecutionDispute, target: ExecutionDisputeStatus, action: str):
        dispute.status = require_transition(
            EXECUTION_DISPUTE_TRANSITIONS,
            dispute.dispute_status,
            target,
            entity_type="ExecutionDispute",
            entity_id=dispute.id,
            action=action,
        ).value

    def open(self, execution_id: UUID, actor: Actor, reason: str) -> ExecutionDispute:
        execution = self.executions.get(execution_id, for_update=True)
        if not actor.is_driver or actor.actor_id != execution.driver_id:
            raise UnauthorizedActorError(
                "RideExecution", str(execution.id), execution.status, "open_dispute",
                actor.role.value,
            )
        existing = self.executions.open_dispute(execution)
        if existing is not None:
            raise DisputeAlreadyOpenError(
                "RideExecution", str(execution.id), str(existing.id), execution.status,
            )
        if execution.execution_status is not ExecutionStatus.REJECTED:
            raise InvalidStateTransitionError(
                "RideExecution", str(execution.id), execution.status, "open_dispute",
                reason="only rejected executions can be disputed",
            )

        dispute = ExecutionDispute(
            ride_execution_id=execution.id,
            opened_by_id=actor.actor_id,
            reason=reason,
            status=ExecutionDisputeStatus.OPEN.value,
            opened_at=self._clock.now(),
            created_by_id=actor.actor_id,
        )
        self.session.add(dispute)
        self.session.flush()
        self.executions.transition(execution, ExecutionStatus.DISPUTE, actor.actor_id, "open_dispute")

        logger.info(
            "execution_dispute_opened",
            extra={
                "dispute_id": str(dispute.id),
                "ride_id": str(execution.id),
                "actor_id": str(actor.actor_id),
            },
        )
        return dispute

    def resolve(
        self,
        dispute_id: UUID,
        actor: Actor,
        resolution_type: ResolutionType,
        notes: str | None = None,
        corrected_hours: Decimal | None = None,
    ) -> ExecutionDispute:
        dispute = self.get(dispute_id)
        if not actor.is_admin:
            raise UnauthorizedActorError(
                "ExecutionDispute", str(dispute.id), dispute.status, "resolve", actor.role.value,
            )
        self._transition(dispute, ExecutionDisputeStatus.RESOLVED, "resolve")
        now = self._clock.now()
        dispute.resolved_by_id = actor.actor_id
        dispute.resolved_at = now
        dispute.closed_at = now
        dispute.resolution_notes = notes
        dispute.resolution_type = resolution_type.value
        dispute.corrected_hours = corrected_hours
        dispute.updated_by_id = actor.actor_id
        self.session.flush()

        execution = self.executions.get(dispute.ride_execution_id, for_update=True)
        if corrected_hours is not None:
            self.executions.apply_corrected_hours(execution, corrected_hours, actor.actor_id)
        self.executions.transition(
            execution, _RESOLUTION_TARGET[resolution_type], actor.actor_id, "resolve_dispute",
        )

        logger.info(
            "execution_dispute_resolved",
            extra={
                "dispute_id": str(dispute.id),
                "ride_id": str(execution.id),
                "actor_id": str(actor.actor_id),
                "resolution_type": resolution_type.value,
                "corrected_hours": str(corrected_hours) if corrected_hours is not None else None,
            },
        )
        return dispute

    def close(self, dispute_id: UUID, actor: Actor) -> ExecutionDispute:
        """Admin closes without a decision; the execution stays rejected."""
        dispute = self.get(dispute_id)
        if not actor.is_admin:
            raise UnauthorizedActorError(
                "ExecutionDispute", str(dispute.id), dispute.status, "close", actor.role.value,
            )
        self._transition(dispute, ExecutionDisputeStatus.CLOSED, "close")
        dispute.closed_at = self._clock.now()
        dispute.updated_by_id = actor.actor_id
        self.session.flush()

        execution = self.executions.get(dispute.ride_execution_id, for_update=True)
        self.executions.transition(execution, ExecutionStatus.REJECTED, actor.actor_id, "close_dispute")

        logger.info(
            "execution_dispute_closed",
            extra={"dispute_id": str(dispute.id), "actor_id": str(actor.actor_id)},
        )
        return dispute

    def add_comment(self, dispute_id: UUID, actor: Actor, body: str) -> ExecutionDisputeComment:
        dispute = self.get(dispute_id)
        if dispute.dispute_status is not ExecutionDisputeStatus.OPEN:
            raise InvalidStateTransitionError(
                "ExecutionDispute", str(dispute.id), dispute.status, "comment",
                reason="dispute is no longer open",
            )
        if actor.is_driver:
            execution = self.executions.get(dispute.ride_execution_id)
            if actor.actor_id != execution.driver_id:
                raise UnauthorizedActorError(
                    "ExecutionDispute", str(dispute.id), dispute.status, "comment",
                    actor.role.value,
                )

        sequence = self.session.scalar(
            select(func.coalesce(func.max(ExecutionDisputeComment.sequence), 0)).where(
                ExecutionDisputeComment.dispute_id == dispute.id
            )
        ) + 1
        comment = ExecutionDisputeComment(
            dispute_id=dispute.id,
            author_id=actor.actor_id,
            author_role=actor.role.value,
            body=body,
            sequence=sequence,
            created_at=self._clock.now(),
        )
        self.session.add(comment)
        self.session.flush()
        self.session.expire(dispute, ["comments"])

        logger.info(
            "execution_dispute_comment_added",
            extra={
                "dispute_id": str(dispute.id),
                "actor_id": str(actor.actor_id),
                "sequence": sequence,
            },
        )
        return comment
