"""
Workflow domain types (``ridepay_kernel.domain.workflow``).

Responsibility
--------------
Status enums and transition tables for every state machine in the kernel:
week approval, period approval, ride-level dispute, execution-level dispute
and ride execution.  Also the ``Actor`` value object that identifies who is
acting and in which role.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Each ``*_TRANSITIONS`` table defines the only valid status changes and has
  an entry for every member of its enum.  Terminal states have no outgoing
  edges.
* ``require_transition`` is the single gate services call before writing a
  new status; it raises ``InvalidStateTransitionError`` carrying the current
  status.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeVar
from uuid import UUID

from ridepay_kernel.exceptions import InvalidStateTransitionError


class ActorRole(str, Enum):
    DRIVER = "driver"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """
    Who performs an action.

    ``ip_address`` and ``user_agent`` are the signing context recorded on
    period signatures.
    """

    actor_id: UUID
    role: ActorRole
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.ADMIN

    @property
    def is_driver(self) -> bool:
        return self.role is ActorRole.DRIVER


# =========================================================================
# Week approval
# =========================================================================


class WeekApprovalStatus(str, Enum):
    PENDING_ADMIN = "pending_admin"
    PENDING_DRIVER = "pending_driver"
    SIGNED = "signed"
    INVALIDATED = "invalidated"


WEEK_APPROVAL_TRANSITIONS: dict[WeekApprovalStatus, frozenset[WeekApprovalStatus]] = {
    WeekApprovalStatus.PENDING_ADMIN: frozenset({WeekApprovalStatus.PENDING_DRIVER}),
    WeekApprovalStatus.PENDING_DRIVER: frozenset({WeekApprovalStatus.SIGNED}),
    WeekApprovalStatus.SIGNED: frozenset({WeekApprovalStatus.INVALIDATED}),
    # Re-allowed by the admin, then re-signed by the driver.
    WeekApprovalStatus.INVALIDATED: frozenset({WeekApprovalStatus.PENDING_DRIVER}),
}


# =========================================================================
# Period approval
# =========================================================================


class PeriodApprovalStatus(str, Enum):
    """
    NOT_READY until every week is signed, PENDING_DRIVER once it is ready to
    sign, PENDING_ADMIN after the driver signature, SIGNED after the admin
    countersignature.
    """

    NOT_READY = "not_ready"
    PENDING_DRIVER = "pending_driver"
    PENDING_ADMIN = "pending_admin"
    SIGNED = "signed"
    INVALIDATED = "invalidated"


PERIOD_APPROVAL_TRANSITIONS: dict[PeriodApprovalStatus, frozenset[PeriodApprovalStatus]] = {
    PeriodApprovalStatus.NOT_READY: frozenset({
        PeriodApprovalStatus.PENDING_DRIVER,
        PeriodApprovalStatus.PENDING_ADMIN,
    }),
    PeriodApprovalStatus.PENDING_DRIVER: frozenset({
        PeriodApprovalStatus.NOT_READY,
        PeriodApprovalStatus.PENDING_ADMIN,
    }),
    PeriodApprovalStatus.PENDING_ADMIN: frozenset({
        PeriodApprovalStatus.SIGNED,
        PeriodApprovalStatus.INVALIDATED,
    }),
    PeriodApprovalStatus.SIGNED: frozenset({PeriodApprovalStatus.INVALIDATED}),
    PeriodApprovalStatus.INVALIDATED: frozenset({PeriodApprovalStatus.PENDING_ADMIN}),
}

DRIVER_SIGNABLE_PERIOD_STATUSES: frozenset[PeriodApprovalStatus] = frozenset({
    PeriodApprovalStatus.NOT_READY,
    PeriodApprovalStatus.PENDING_DRIVER,
    PeriodApprovalStatus.INVALIDATED,
})


# =========================================================================
# Ride-level dispute
# =========================================================================


class RideDisputeStatus(str, Enum):
    PENDING_DRIVER = "pending_driver"
    PENDING_ADMIN = "pending_admin"
    ACCEPTED_BY_DRIVER = "accepted_by_driver"
    ACCEPTED_BY_ADMIN = "accepted_by_admin"
    CLOSED = "closed"


RIDE_DISPUTE_TRANSITIONS: dict[RideDisputeStatus, frozenset[RideDisputeStatus]] = {
    RideDisputeStatus.PENDING_DRIVER: frozenset({
        RideDisputeStatus.ACCEPTED_BY_DRIVER,
        RideDisputeStatus.PENDING_ADMIN,
        RideDisputeStatus.CLOSED,
    }),
    RideDisputeStatus.PENDING_ADMIN: frozenset({
        RideDisputeStatus.ACCEPTED_BY_ADMIN,
        RideDisputeStatus.PENDING_DRIVER,
        RideDisputeStatus.CLOSED,
    }),
    RideDisputeStatus.ACCEPTED_BY_DRIVER: frozenset(),
    RideDisputeStatus.ACCEPTED_BY_ADMIN: frozenset(),
    RideDisputeStatus.CLOSED: frozenset(),
}

UNRESOLVED_RIDE_DISPUTE_STATUSES: frozenset[RideDisputeStatus] = frozenset({
    RideDisputeStatus.PENDING_DRIVER,
    RideDisputeStatus.PENDING_ADMIN,
})


# =========================================================================
# Ride execution and execution-level dispute
# =========================================================================


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISPUTE = "dispute"


EXECUTION_TRANSITIONS: dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
    ExecutionStatus.PENDING: frozenset({ExecutionStatus.SUBMITTED}),
    ExecutionStatus.SUBMITTED: frozenset({
        ExecutionStatus.APPROVED,
        ExecutionStatus.REJECTED,
    }),
    ExecutionStatus.APPROVED: frozenset(),
    ExecutionStatus.REJECTED: frozenset({
        ExecutionStatus.SUBMITTED,
        ExecutionStatus.DISPUTE,
    }),
    ExecutionStatus.DISPUTE: frozenset({
        ExecutionStatus.APPROVED,
        ExecutionStatus.REJECTED,
    }),
}


class ExecutionDisputeStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"
    CLOSED = "closed"


EXECUTION_DISPUTE_TRANSITIONS: dict[ExecutionDisputeStatus, frozenset[ExecutionDisputeStatus]] = {
    ExecutionDisputeStatus.OPEN: frozenset({
        ExecutionDisputeStatus.RESOLVED,
        ExecutionDisputeStatus.CLOSED,
    }),
    ExecutionDisputeStatus.RESOLVED: frozenset(),
    ExecutionDisputeStatus.CLOSED: frozenset(),
}


class ResolutionType(str, Enum):
    """How an admin resolved an execution-level dispute."""

    ACCEPT = "accept"
    REJECT = "reject"


class RideDisputeOutcome(str, Enum):
    """How a ride-level dispute is settled."""

    ACCEPT = "accept"
    CLOSE = "close"


# =========================================================================
# Transition gate
# =========================================================================

S = TypeVar("S", bound=Enum)


def require_transition(
    table: dict[S, frozenset[S]],
    current: S,
    target: S,
    *,
    entity_type: str,
    entity_id: UUID | str,
    action: str,
) -> S:
    """Return ``target`` if ``current -> target`` is in ``table``."""
    if target not in table[current]:
        raise InvalidStateTransitionError(
            entity_type,
            str(entity_id),
            current.value,
            action,
        )
    return target
