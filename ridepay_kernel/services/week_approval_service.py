"""
WeekApprovalService -- admin-then-driver sign-off of one ISO week.

Responsibility:
    Lazily creates the week approval for a (driver, ISO year, ISO week)
    key, links it to its period approval, runs the admin "allow" and the
    driver "sign" transitions, and invalidates a signed week when one of
    its rides changes.

Architecture position:
    Kernel > Services.  Owns a ``PeriodApprovalService`` so every week
    change is reflected on the period in the same unit of work.

Invariants enforced:
    - Lazy creation is idempotent (SAVEPOINT insert, IntegrityError
      re-fetch).
    - pending_admin -> pending_driver (admin allow) -> signed (driver sign).
      A signed week moves to invalidated on any ride edit and goes back to
      pending_driver when the admin allows it again.
    - Allow is refused while any ride in the week has an unresolved
      dispute.

Failure modes:
    - WeekApprovalNotFoundError, OpenDisputeBlocksApprovalError,
      UnauthorizedActorError, InvalidStateTransitionError,
      ConcurrentModificationError.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ridepay_kernel.domain.clock import Clock, SystemClock
from ridepay_kernel.domain.periods import period_for_date
from ridepay_kernel.domain.workflow import (
    UNRESOLVED_RIDE_DISPUTE_STATUSES,
    WEEK_APPROVAL_TRANSITIONS,
    Actor,
    ExecutionDisputeStatus,
    WeekApprovalStatus,
    require_transition,
)
from ridepay_kernel.exceptions import (
    ConcurrentModificationError,
    OpenDisputeBlocksApprovalError,
    UnauthorizedActorError,
    WeekApprovalNotFoundError,
)
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.approval import WeekApproval
from ridepay_kernel.models.dispute import ExecutionDispute, RideDispute
from ridepay_kernel.models.ride import RideExecution, RideRecord
from ridepay_kernel.services.base import BaseService
from ridepay_kernel.services.period_approval_service import PeriodApprovalService

logger = get_logger("services.week_approval")


class WeekApprovalService(BaseService[WeekApproval]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        periods: PeriodApprovalService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self.periods = periods or PeriodApprovalService(session, self._clock)

    def get(self, week_approval_id: UUID) -> WeekApproval:
        week = self.session.get(WeekApproval, week_approval_id)
        if week is None:
            raise WeekApprovalNotFoundError(str(week_approval_id))
        return week

    def _find(self, driver_id: UUID, year: int, week_number: int) -> WeekApproval | None:
        return self.session.scalars(
            select(WeekApproval).where(
                WeekApproval.driver_id == driver_id,
                WeekApproval.year == year,
                WeekApproval.week_number == week_number,
            )
        ).first()

    def get_or_create(self, driver_id: UUID, on: date, actor_id: UUID) -> WeekApproval:
        key = period_for_date(on)
        existing = self._find(driver_id, key.year, key.week_number)
        if existing is not None:
            return existing

        period = self.periods.get_or_create(driver_id, on, actor_id)
        week = WeekApproval(
            driver_id=driver_id,
            year=key.year,
            week_number=key.week_number,
            period_number=key.period_number,
            status=WeekApprovalStatus.PENDING_ADMIN.value,
            period_approval_id=period.id,
            created_by_id=actor_id,
        )
        try:
            with self.session.begin_nested():
                self.session.add(week)
        except IntegrityError:
            logger.warning(
                "week_approval_create_conflict",
                extra={
                    "driver_id": str(driver_id),
                    "year": key.year,
                    "week_number": key.week_number,
                },
            )
            existing = self._find(driver_id, key.year, key.week_number)
            if existing is None:
                raise ConcurrentModificationError(
                    "WeekApproval", f"{driver_id}:{key.year}-W{key.week_number:02d}",
                )
            return existing

        logger.info(
            "week_approval_created",
            extra={
                "week_approval_id": str(week.id),
                "driver_id": str(driver_id),
                "year": key.year,
                "week_number": key.week_number,
                "period_number": key.period_number,
            },
        )
        # A new unsigned week can make a ready period not ready again.
        self.periods.refresh_readiness(period)
        return week

    def open_dispute_ids(self, week: WeekApproval) -> list[UUID]:
        ride_ids = select(RideRecord.id).where(RideRecord.week_approval_id == week.id)
        execution_ids = select(RideExecution.id).where(RideExecution.week_approval_id == week.id)
        ride_disputes = self.session.scalars(
            select(RideDispute.id).where(
                RideDispute.ride_record_id.in_(ride_ids),
                RideDispute.status.in_([s.value for s in UNRESOLVED_RIDE_DISPUTE_STATUSES]),
            )
        )
        execution_disputes = self.session.scalars(
            select(ExecutionDispute.id).where(
                ExecutionDispute.ride_execution_id.in_(execution_ids),
                ExecutionDispute.status == ExecutionDisputeStatus.OPEN.value,
            )
        )
        return [*ride_disputes, *execution_disputes]

    def allow(self, week_approval_id: UUID, actor: Actor) -> WeekApproval:
        """Admin releases the week to the driver for signing."""
        week = self.get(week_approval_id)
        status = week.approval_status
        if not actor.is_admin:
            raise UnauthorizedActorError(
                "WeekApproval", str(week.id), status.value, "allow", actor.role.value,
            )
        target = require_transition(
            WEEK_APPROVAL_TRANSITIONS,
            status,
            WeekApprovalStatus.PENDING_DRIVER,
            entity_type="WeekApproval",
            entity_id=week.id,
            action="allow",
        )
        open_ids = self.open_dispute_ids(week)
        if open_ids:
            raise OpenDisputeBlocksApprovalError(
                str(week.id), status.value, [str(i) for i in open_ids],
            )

        week.status = target.value
        week.admin_user_id = actor.actor_id
        week.admin_allowed_at = self._clock.now()
        week.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info(
            "week_approval_allowed",
            extra={
                "week_approval_id": str(week.id),
                "driver_id": str(week.driver_id),
                "actor_id": str(actor.actor_id),
                "from_status": status.value,
            },
        )
        return week

    def sign(self, week_approval_id: UUID, actor: Actor) -> WeekApproval:
        """Driver signs an allowed week."""
        week = self.get(week_approval_id)
        status = week.approval_status
        if not actor.is_driver or actor.actor_id != week.driver_id:
            raise UnauthorizedActorError(
                "WeekApproval", str(week.id), status.value, "sign", actor.role.value,
            )
        week.status = require_transition(
            WEEK_APPROVAL_TRANSITIONS,
            status,
            WeekApprovalStatus.SIGNED,
            entity_type="WeekApproval",
            entity_id=week.id,
            action="sign",
        ).value
        week.driver_signed_at = self._clock.now()
        week.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info(
            "week_approval_signed",
            extra={"week_approval_id": str(week.id), "driver_id": str(week.driver_id)},
        )
        if week.period_approval_id is not None:
            self.periods.refresh_readiness(self.periods.get(week.period_approval_id))
        return week

    def invalidate_for_edit(self, week: WeekApproval, actor_id: UUID) -> WeekApproval:
        """
        Reflect a ride edit on the week and its period.

        Only a signed week changes status; the period is invalidated if the
        driver had already signed it.
        """
        status = week.approval_status
        if status is WeekApprovalStatus.SIGNED:
            week.status = require_transition(
                WEEK_APPROVAL_TRANSITIONS,
                status,
                WeekApprovalStatus.INVALIDATED,
                entity_type="WeekApproval",
                entity_id=week.id,
                action="invalidate",
            ).value
            week.invalidated_at = self._clock.now()
            week.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "week_approval_invalidated",
                extra={
                    "week_approval_id": str(week.id),
                    "driver_id": str(week.driver_id),
                    "actor_id": str(actor_id),
                },
            )

        if week.period_approval_id is not None:
            self.periods.invalidate_for_edit(self.periods.get(week.period_approval_id), actor_id)
        return week
