"""
PeriodApprovalService -- four-week sign-off with driver and admin signatures.

Responsibility:
    Lazily creates the period approval for a (driver, year, period) key,
    tracks readiness as weeks get signed, records the driver signature and
    the admin countersignature, caches reporting totals, and invalidates a
    signed period when one of its rides changes.

Architecture position:
    Kernel > Services.  Called by ``WeekApprovalService`` (lazy creation,
    readiness, invalidation) and by ``RidePayWorkflow`` (signing).

Invariants enforced:
    - Lazy creation is idempotent: the insert runs in a SAVEPOINT and a
      unique-key violation re-fetches the row another writer created.
    - Driver signing requires every constituent week to be signed; the
      status path is not_ready/pending_driver -> pending_admin -> signed.
    - An edit after the driver signed moves the period to invalidated and
      clears the cached totals; the driver re-signs to continue.

Failure modes:
    - PeriodApprovalNotFoundError, PeriodNotReadyError,
      UnauthorizedActorError, InvalidStateTransitionError,
      ConcurrentModificationError (lost creation race with no row to
      re-fetch).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ridepay_kernel.domain.clock import Clock, SystemClock
from ridepay_kernel.domain.periods import period_date_range, period_for_date, weeks_in_period
from ridepay_kernel.domain.values import ZERO, to_decimal
from ridepay_kernel.domain.workflow import (
    DRIVER_SIGNABLE_PERIOD_STATUSES,
    PERIOD_APPROVAL_TRANSITIONS,
    Actor,
    ExecutionStatus,
    PeriodApprovalStatus,
    WeekApprovalStatus,
    require_transition,
)
from ridepay_kernel.exceptions import (
    ConcurrentModificationError,
    InvalidStateTransitionError,
    PeriodApprovalNotFoundError,
    PeriodNotReadyError,
    UnauthorizedActorError,
)
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.approval import PeriodApproval, WeekApproval
from ridepay_kernel.models.ride import RideExecution, RideRecord
from ridepay_kernel.services.base import BaseService

logger = get_logger("services.period_approval")

_INVALIDATABLE = frozenset({PeriodApprovalStatus.PENDING_ADMIN, PeriodApprovalStatus.SIGNED})


class PeriodApprovalService(BaseService[PeriodApproval]):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Lookup and lazy creation
    # ------------------------------------------------------------------

    def get(self, period_approval_id: UUID) -> PeriodApproval:
        period = self.session.get(PeriodApproval, period_approval_id)
        if period is None:
            raise PeriodApprovalNotFoundError(str(period_approval_id))
        return period

    def _find(self, driver_id: UUID, year: int, period_number: int) -> PeriodApproval | None:
        return self.session.scalars(
            select(PeriodApproval).where(
                PeriodApproval.driver_id == driver_id,
                PeriodApproval.year == year,
                PeriodApproval.period_number == period_number,
            )
        ).first()

    def get_or_create(self, driver_id: UUID, on: date, actor_id: UUID) -> PeriodApproval:
        key = period_for_date(on)
        existing = self._find(driver_id, key.year, key.period_number)
        if existing is not None:
            return existing

        from_date, to_date = period_date_range(key.year, key.period_number)
        period = PeriodApproval(
            driver_id=driver_id,
            year=key.year,
            period_number=key.period_number,
            from_date=from_date,
            to_date=to_date,
            status=PeriodApprovalStatus.NOT_READY.value,
            created_by_id=actor_id,
        )
        try:
            with self.session.begin_nested():
                self.session.add(period)
        except IntegrityError:
            logger.warning(
                "period_approval_create_conflict",
                extra={
                    "driver_id": str(driver_id),
                    "year": key.year,
                    "period_number": key.period_number,
                },
            )
            existing = self._find(driver_id, key.year, key.period_number)
            if existing is None:
                raise ConcurrentModificationError(
                    "PeriodApproval", f"{driver_id}:{key.year}-P{key.period_number}",
                )
            return existing

        logger.info(
            "period_approval_created",
            extra={
                "period_approval_id": str(period.id),
                "driver_id": str(driver_id),
                "year": key.year,
                "period_number": key.period_number,
            },
        )
        return period

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    def required_weeks(self, period: PeriodApproval) -> tuple[int, ...]:
        return weeks_in_period(period.year, period.period_number)

    def signed_week_count(self, period: PeriodApproval) -> int:
        return self.session.scalar(
            select(func.count(WeekApproval.id)).where(
                WeekApproval.driver_id == period.driver_id,
                WeekApproval.year == period.year,
                WeekApproval.week_number.in_(self.required_weeks(period)),
                WeekApproval.status == WeekApprovalStatus.SIGNED.value,
            )
        ) or 0

    def is_ready(self, period: PeriodApproval) -> bool:
        return self.signed_week_count(period) == len(self.required_weeks(period))

    def refresh_readiness(self, period: PeriodApproval) -> PeriodApproval:
        """Move between not_ready and pending_driver as weeks change."""
        status = period.approval_status
        ready = self.is_ready(period)
        target = None
        if status is PeriodApprovalStatus.NOT_READY and ready:
            target = PeriodApprovalStatus.PENDING_DRIVER
        elif status is PeriodApprovalStatus.PENDING_DRIVER and not ready:
            target = PeriodApprovalStatus.NOT_READY
        if target is None:
            return period

        period.status = require_transition(
            PERIOD_APPROVAL_TRANSITIONS,
            status,
            target,
            entity_type="PeriodApproval",
            entity_id=period.id,
            action="refresh_readiness",
        ).value
        self.session.flush()
        logger.info(
            "period_approval_readiness_changed",
            extra={
                "period_approval_id": str(period.id),
                "from_status": status.value,
                "to_status": target.value,
            },
        )
        return period

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def compute_totals(self, period: PeriodApproval) -> tuple[Decimal, Decimal]:
        """
        Sum decimal hours and allowance totals over both ride shapes.

        Executions count only once approved; legacy records always count.
        """
        week_ids = select(WeekApproval.id).where(
            WeekApproval.driver_id == period.driver_id,
            WeekApproval.year == period.year,
            WeekApproval.week_number.in_(self.required_weeks(period)),
        )
        hours = ZERO
        compensation = ZERO
        statements = (
            select(RideRecord).where(RideRecord.week_approval_id.in_(week_ids)),
            select(RideExecution).where(
                RideExecution.week_approval_id.in_(week_ids),
                RideExecution.status == ExecutionStatus.APPROVED.value,
            ),
        )
        for stmt in statements:
            for record in self.session.scalars(stmt):
                hours += to_decimal(record.decimal_hours)
                compensation += to_decimal(record.total_compensation)
        return hours, compensation

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign(self, period_approval_id: UUID, actor: Actor) -> PeriodApproval:
        """
        Driver signature or admin countersignature, by actor role.

        Raises:
            PeriodNotReadyError: driver signs before every week is signed.
            InvalidStateTransitionError: signing out of turn.
            UnauthorizedActorError: a driver signing someone else's period.
        """
        period = self.get(period_approval_id)
        if actor.is_admin:
            return self._admin_sign(period, actor)
        return self._driver_sign(period, actor)

    def _driver_sign(self, period: PeriodApproval, actor: Actor) -> PeriodApproval:
        status = period.approval_status
        if actor.actor_id != period.driver_id:
            raise UnauthorizedActorError(
                "PeriodApproval", str(period.id), status.value, "sign", actor.role.value,
            )
        if status not in DRIVER_SIGNABLE_PERIOD_STATUSES:
            raise InvalidStateTransitionError(
                "PeriodApproval", str(period.id), status.value, "sign",
            )
        required = len(self.required_weeks(period))
        signed = self.signed_week_count(period)
        if signed < required:
            raise PeriodNotReadyError(str(period.id), status.value, signed, required)

        period.status = require_transition(
            PERIOD_APPROVAL_TRANSITIONS,
            status,
            PeriodApprovalStatus.PENDING_ADMIN,
            entity_type="PeriodApproval",
            entity_id=period.id,
            action="sign",
        ).value
        now = self._clock.now()
        period.driver_signed_at = now
        period.driver_signer_id = actor.actor_id
        period.driver_ip_address = actor.ip_address
        period.driver_user_agent = actor.user_agent
        period.total_hours, period.total_compensation = self.compute_totals(period)
        period.totals_computed_at = now
        period.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info(
            "period_approval_driver_signed",
            extra={
                "period_approval_id": str(period.id),
                "driver_id": str(period.driver_id),
                "from_status": status.value,
                "total_hours": str(period.total_hours),
            },
        )
        return period

    def _admin_sign(self, period: PeriodApproval, actor: Actor) -> PeriodApproval:
        status = period.approval_status
        period.status = require_transition(
            PERIOD_APPROVAL_TRANSITIONS,
            status,
            PeriodApprovalStatus.SIGNED,
            entity_type="PeriodApproval",
            entity_id=period.id,
            action="countersign",
        ).value
        period.admin_signed_at = self._clock.now()
        period.admin_signer_id = actor.actor_id
        period.admin_ip_address = actor.ip_address
        period.admin_user_agent = actor.user_agent
        period.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info(
            "period_approval_admin_signed",
            extra={
                "period_approval_id": str(period.id),
                "driver_id": str(period.driver_id),
                "actor_id": str(actor.actor_id),
            },
        )
        return period

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate_for_edit(self, period: PeriodApproval, actor_id: UUID) -> PeriodApproval:
        """Invalidate once the driver has signed; otherwise re-check readiness."""
        status = period.approval_status
        if status not in _INVALIDATABLE:
            return self.refresh_readiness(period)

        period.status = require_transition(
            PERIOD_APPROVAL_TRANSITIONS,
            status,
            PeriodApprovalStatus.INVALIDATED,
            entity_type="PeriodApproval",
            entity_id=period.id,
            action="invalidate",
        ).value
        period.invalidated_at = self._clock.now()
        period.total_hours = None
        period.total_compensation = None
        period.totals_computed_at = None
        period.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "period_approval_invalidated",
            extra={
                "period_approval_id": str(period.id),
                "driver_id": str(period.driver_id),
                "from_status": status.value,
            },
        )
        return period
