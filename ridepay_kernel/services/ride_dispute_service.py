"""
RideDisputeService -- ride-level hours-correction disputes.

Responsibility:
    Staff open a dispute on a ride record proposing an hours correction.
    Driver and admin then take turns: the pending party may accept, or
    counter (optionally with a new correction), which hands the turn to the
    other party.  An admin may amend the proposal or close the dispute
    without agreement at any point while it is unresolved.  Either party
    may add comments; comments never change status.

Architecture position:
    Kernel > Services.  Accepting a dispute applies the correction through
    ``RideRecordService`` so the ride is recomputed and its signed week
    and period are invalidated in the same unit of work.

Invariants enforced:
    - At most one unresolved dispute per ride record.
    - pending_driver -> accepted_by_driver | pending_admin | closed;
      pending_admin -> accepted_by_admin | pending_driver | closed.
      Accepted and closed disputes are final.
    - Only the pending side may accept or counter, so neither party can
      counter twice in a row.
    - The accepted correction is added to the ride's correction hours.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ridepay_kernel.domain.clock import Clock, SystemClock
from ridepay_kernel.domain.workflow import (
    RIDE_DISPUTE_TRANSITIONS,
    Actor,
    ActorRole,
    RideDisputeOutcome,
    RideDisputeStatus,
    require_transition,
)
from ridepay_kernel.exceptions import (
    DisputeAlreadyOpenError,
    DisputeNotFoundError,
    InvalidStateTransitionError,
    UnauthorizedActorError,
)
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.dispute import RideDispute, RideDisputeComment
from ridepay_kernel.models.ride import RideRecord
from ridepay_kernel.services.base import BaseService
from ridepay_kernel.services.ride_record_service import RideRecordService

logger = get_logger("services.ride_dispute")

_PENDING_ROLE = {
    RideDisputeStatus.PENDING_DRIVER: ActorRole.DRIVER,
    RideDisputeStatus.PENDING_ADMIN: ActorRole.ADMIN,
}
_COUNTER_TARGET = {
    RideDisputeStatus.PENDING_DRIVER: RideDisputeStatus.PENDING_ADMIN,
    RideDisputeStatus.PENDING_ADMIN: RideDisputeStatus.PENDING_DRIVER,
}
_ACCEPT_TARGET = {
    RideDisputeStatus.PENDING_DRIVER: RideDisputeStatus.ACCEPTED_BY_DRIVER,
    RideDisputeStatus.PENDING_ADMIN: RideDisputeStatus.ACCEPTED_BY_ADMIN,
}


class RideDisputeService(BaseService[RideDispute]):

    def __init__(self, rides: RideRecordService, clock: Clock | None = None):
        super().__init__(rides.session)
        self.rides = rides
        self._clock = clock or SystemClock()

    def get(self, dispute_id: UUID) -> RideDispute:
        dispute = self.session.get(RideDispute, dispute_id)
        if dispute is None:
            raise DisputeNotFoundError(str(dispute_id))
        return dispute

    def _record(self, dispute: RideDispute) -> RideRecord:
        return self.rides.get(dispute.ride_record_id)

    def _require_party(self, dispute: RideDispute, actor: Actor, action: str) -> None:
        """Admins act on any dispute; drivers only on their own rides."""
        if actor.is_admin:
            return
        if actor.actor_id != self._record(dispute).driver_id:
            raise UnauthorizedActorError(
                "RideDispute", str(dispute.id), dispute.status, action, actor.role.value,
            )

    def _require_turn(self, dispute: RideDispute, actor: Actor, action: str) -> RideDisputeStatus:
        status = dispute.dispute_status
        pending = _PENDING_ROLE.get(status)
        if pending is None:
            raise InvalidStateTransitionError(
                "RideDispute", str(dispute.id), status.value, action,
                reason="dispute is resolved",
            )
        if actor.role is not pending:
            raise InvalidStateTransitionError(
                "RideDispute", str(dispute.id), status.value, action,
                reason=f"awaiting {pending.value}",
            )
        self._require_party(dispute, actor, action)
        return status

    # ------------------------------------------------------------------
    # Opening and negotiation
    # ------------------------------------------------------------------

    def open(
        self,
        ride_record_id: UUID,
        actor: Actor,
        correction_hours: Decimal,
        comment: str | None = None,
    ) -> RideDispute:
        record = self.rides.get(ride_record_id, for_update=True)
        if not actor.is_admin:
            raise UnauthorizedActorError(
                "RideRecord", str(record.id), "open", "open_dispute", actor.role.value,
            )
        existing = self.rides.open_dispute(record)
        if existing is not None:
            raise DisputeAlreadyOpenError(
                "RideRecord", str(record.id), str(existing.id), existing.status,
            )

        dispute = RideDispute(
            ride_record_id=record.id,
            opened_by_id=actor.actor_id,
            correction_hours=correction_hours,
            status=RideDisputeStatus.PENDING_DRIVER.value,
            opened_at=self._clock.now(),
            last_counter_role=ActorRole.ADMIN.value,
            created_by_id=actor.actor_id,
        )
        self.session.add(dispute)
        self.session.flush()
        if comment:
            self.add_comment(dispute.id, actor, comment)

        logger.info(
            "dispute_opened",
            extra={
                "dispute_id": str(dispute.id),
                "ride_id": str(record.id),
                "actor_id": str(actor.actor_id),
                "correction_hours": str(correction_hours),
            },
        )
        return dispute

    def counter(
        self,
        dispute_id: UUID,
        actor: Actor,
        correction_hours: Decimal | None = None,
        comment: str | None = None,
    ) -> RideDispute:
        dispute = self.get(dispute_id)
        status = self._require_turn(dispute, actor, "counter")
        dispute.status = require_transition(
            RIDE_DISPUTE_TRANSITIONS,
            status,
            _COUNTER_TARGET[status],
            entity_type="RideDispute",
            entity_id=dispute.id,
            action="counter",
        ).value
        if correction_hours is not None:
            dispute.correction_hours = correction_hours
        dispute.last_counter_role = actor.role.value
        dispute.updated_by_id = actor.actor_id
        self.session.flush()
        if comment:
            self.add_comment(dispute.id, actor, comment)

        logger.info(
            "dispute_countered",
            extra={
                "dispute_id": str(dispute.id),
                "actor_id": str(actor.actor_id),
                "from_status": status.value,
                "to_status": dispute.status,
                "correction_hours": str(dispute.correction_hours),
            },
        )
        return dispute

    def update_correction(
        self,
        dispute_id: UUID,
        actor: Actor,
        correction_hours: Decimal,
    ) -> RideDispute:
        dispute = self.get(dispute_id)
        if not actor.is_admin:
            raise UnauthorizedActorError(
                "RideDispute", str(dispute.id), dispute.status, "update_correction",
                actor.role.value,
            )
        if dispute.dispute_status not in _PENDING_ROLE:
            raise InvalidStateTransitionError(
                "RideDispute", str(dispute.id), dispute.status, "update_correction",
                reason="dispute is resolved",
            )
        previous = dispute.correction_hours
        dispute.correction_hours = correction_hours
        dispute.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info(
            "dispute_correction_updated",
            extra={
                "dispute_id": str(dispute.id),
                "previous_correction_hours": str(previous),
                "correction_hours": str(correction_hours),
            },
        )
        return dispute

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def accept(self, dispute_id: UUID, actor: Actor) -> RideDispute:
        dispute = self.get(dispute_id)
        status = self._require_turn(dispute, actor, "accept")
        dispute.status = require_transition(
            RIDE_DISPUTE_TRANSITIONS,
            status,
            _ACCEPT_TARGET[status],
            entity_type="RideDispute",
            entity_id=dispute.id,
            action="accept",
        ).value
        dispute.closed_at = self._clock.now()
        dispute.updated_by_id = actor.actor_id
        self.session.flush()

        record = self.rides.get(dispute.ride_record_id, for_update=True)
        self.rides.apply_correction_delta(record, dispute.correction_hours, actor.actor_id)

        logger.info(
            "dispute_accepted",
            extra={
                "dispute_id": str(dispute.id),
                "ride_id": str(record.id),
                "actor_id": str(actor.actor_id),
                "status": dispute.status,
                "correction_hours": str(dispute.correction_hours),
            },
        )
        return dispute

    def close(self, dispute_id: UUID, actor: Actor) -> RideDispute:
        """Admin ends the dispute without applying the correction."""
        dispute = self.get(dispute_id)
        status = dispute.dispute_status
        if not actor.is_admin:
            raise UnauthorizedActorError(
                "RideDispute", str(dispute.id), status.value, "close", actor.role.value,
            )
        dispute.status = require_transition(
            RIDE_DISPUTE_TRANSITIONS,
            status,
            RideDisputeStatus.CLOSED,
            entity_type="RideDispute",
            entity_id=dispute.id,
            action="close",
        ).value
        dispute.closed_at = self._clock.now()
        dispute.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info(
            "dispute_closed",
            extra={"dispute_id": str(dispute.id), "actor_id": str(actor.actor_id)},
        )
        return dispute

    def resolve(self, dispute_id: UUID, actor: Actor, outcome: RideDisputeOutcome) -> RideDispute:
        if outcome is RideDisputeOutcome.ACCEPT:
            return self.accept(dispute_id, actor)
        return self.close(dispute_id, actor)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(self, dispute_id: UUID, actor: Actor, body: str) -> RideDisputeComment:
        dispute = self.get(dispute_id)
        if dispute.dispute_status not in _PENDING_ROLE:
            raise InvalidStateTransitionError(
                "RideDispute", str(dispute.id), dispute.status, "comment",
                reason="dispute is resolved",
            )
        self._require_party(dispute, actor, "comment")

        sequence = self.session.scalar(
            select(func.coalesce(func.max(RideDisputeComment.sequence), 0)).where(
                RideDisputeComment.dispute_id == dispute.id
            )
        ) + 1
        comment = RideDisputeComment(
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
            "dispute_comment_added",
            extra={
                "dispute_id": str(dispute.id),
                "actor_id": str(actor.actor_id),
                "sequence": sequence,
            },
        )
        return comment
