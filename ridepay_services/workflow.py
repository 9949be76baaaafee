"""
ridepay_services.workflow -- in-process entry points of the ride pay core.

Responsibility:
    Constructs every kernel service exactly once over one Session and Clock
    and exposes the operations the request-handling layer calls: rate
    resolution, compensation, vacation accrual, lazy week/period approvals,
    signing, disputes and ride edits.  Every entry point returns frozen
    DTOs, never ORM rows.

Architecture position:
    Services -- composition over ``ridepay_kernel`` and ``ridepay_engines``.
    The only layer that wires services together.

Invariants enforced:
    - Single-instance lifecycle: all services share one Session and Clock.
    - No entry point commits.  ``workflow_scope()`` wraps a workflow in
      ``session_scope()`` so a dispute resolution and its recompute and
      invalidation cascade commit all-or-nothing.

Usage:
    with workflow_scope(config) as workflow:
        week = workflow.get_or_create_week_approval(driver_id, date(2024, 7, 1))
        workflow.sign_week(week.id, admin)
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ridepay_config.schema import RidePayConfig
from ridepay_config.seeder import ReferenceDataSeeder, SeedReport
from ridepay_engines.holidays import HolidayCalendar
from ridepay_kernel.db.engine import session_scope
from ridepay_kernel.domain.clock import Clock, SystemClock
from ridepay_kernel.domain.dtos import (
    CommentInfo,
    CompensationResult,
    DriverCompensation,
    ExecutionDisputeInfo,
    PeriodApprovalInfo,
    RateRow,
    RideDisputeInfo,
    RideInputs,
    WeekApprovalInfo,
)
from ridepay_kernel.domain.validation import require_field
from ridepay_kernel.domain.workflow import Actor, ResolutionType, RideDisputeOutcome
from ridepay_kernel.exceptions import DisputeNotFoundError
from ridepay_kernel.logging_config import LogContext, get_logger
from ridepay_kernel.models.dispute import ExecutionDispute, RideDispute
from ridepay_kernel.models.ride import RideExecution, RideRecord
from ridepay_kernel.services.driver_settings_service import DriverSettingsService
from ridepay_kernel.services.execution_dispute_service import ExecutionDisputeService
from ridepay_kernel.services.period_approval_service import PeriodApprovalService
from ridepay_kernel.services.rate_service import RateTableService
from ridepay_kernel.services.ride_dispute_service import RideDisputeService
from ridepay_kernel.services.ride_execution_service import RideExecutionService
from ridepay_kernel.services.ride_recalculation_service import RideRecalculationService
from ridepay_kernel.services.ride_record_service import RideRecordService
from ridepay_kernel.services.week_approval_service import WeekApprovalService
from ridepay_services.compensation_service import CompensationCalculator
from ridepay_services.vacation_service import VacationAccrualService

logger = get_logger("workflow")


@dataclass(frozen=True)
class DisputeResolution:
    """
    How to settle a dispute.

    A ``RideDisputeOutcome`` settles a ride-level dispute (accept applies
    the proposed correction, close drops it).  A ``ResolutionType`` settles
    an execution-level dispute, with optional notes and corrected hours.
    """

    outcome: RideDisputeOutcome | ResolutionType
    notes: str | None = None
    corrected_hours: Decimal | None = None


class RidePayWorkflow:
    """
    Contract:
        Receives a Session, the active configuration and an optional Clock
        and holiday calendar.  Never commits; see ``workflow_scope``.
    """

    def __init__(
        self,
        session: Session,
        config: RidePayConfig,
        clock: Clock | None = None,
        calendar: HolidayCalendar | None = None,
    ) -> None:
        self.session = session
        self.config = config
        self.clock = clock or SystemClock()

        self.seeder = ReferenceDataSeeder(session)
        self.rates = RateTableService(session)
        self.settings = DriverSettingsService(session)
        self.vacation = VacationAccrualService(session)
        self.calculator = CompensationCalculator(
            session, config.default_hours_code_id, calendar=calendar,
        )
        self.periods = PeriodApprovalService(session, self.clock)
        self.weeks = WeekApprovalService(session, self.clock, periods=self.periods)
        self.recalculation = RideRecalculationService(
            session, self.calculator, self.weeks, self.clock,
        )
        self.rides = RideRecordService(self.recalculation)
        self.executions = RideExecutionService(self.recalculation)
        self.ride_disputes = RideDisputeService(self.rides, self.clock)
        self.execution_disputes = ExecutionDisputeService(self.executions, self.clock)

    # ------------------------------------------------------------------
    # Reference data and onboarding
    # ------------------------------------------------------------------

    def seed_reference_data(self) -> SeedReport:
        return self.seeder.seed(self.config)

    def onboard_driver(self, driver_id: UUID, actor_id: UUID) -> DriverCompensation:
        return self.settings.create_defaults(
            driver_id, actor_id, **asdict(self.config.compensation_defaults),
        )

    def update_driver_settings(
        self, driver_id: UUID, actor_id: UUID, /, **changes: Any,
    ) -> DriverCompensation:
        return self.settings.update(driver_id, actor_id, **changes)

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def resolve_rate(self, on: date) -> RateRow:
        return self.rates.resolve(on)

    def calculate_compensation(self, inputs: RideInputs) -> CompensationResult:
        with LogContext.bind(driver_id=inputs.driver_id):
            return self.calculator.calculate(inputs)

    def earned_vacation_hours(self, driver_id: UUID, on: date) -> Decimal:
        return self.vacation.earned_hours(driver_id, on)

    # ------------------------------------------------------------------
    # Rides
    # ------------------------------------------------------------------

    def record_ride(
        self,
        driver_id: UUID,
        actor: Actor,
        *,
        ride_date: date,
        start_time: timedelta,
        end_time: timedelta,
        **fields: Any,
    ) -> RideRecord:
        with LogContext.bind(actor_id=actor.actor_id, driver_id=driver_id):
            return self.rides.create(
                driver_id,
                actor.actor_id,
                ride_date=ride_date,
                start_time=start_time,
                end_time=end_time,
                **fields,
            )

    def edit_ride(
        self,
        ride_record_id: UUID,
        actor: Actor,
        changes: dict[str, Any],
        expected_version: int | None = None,
    ) -> RideRecord:
        with LogContext.bind(actor_id=actor.actor_id, ride_id=ride_record_id):
            return self.rides.edit(
                ride_record_id, actor.actor_id, changes, expected_version=expected_version,
            )

    def edit_execution(
        self,
        execution_id: UUID,
        actor: Actor,
        changes: dict[str, Any],
        expected_version: int | None = None,
    ) -> RideExecution:
        with LogContext.bind(actor_id=actor.actor_id, ride_id=execution_id):
            return self.executions.edit(
                execution_id, actor.actor_id, changes, expected_version=expected_version,
            )

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------

    def get_or_create_week_approval(
        self, driver_id: UUID, on: date, actor_id: UUID | None = None,
    ) -> WeekApprovalInfo:
        return self.weeks.get_or_create(driver_id, on, actor_id or driver_id).to_dto()

    def get_or_create_period_approval(
        self, driver_id: UUID, on: date, actor_id: UUID | None = None,
    ) -> PeriodApprovalInfo:
        return self.periods.get_or_create(driver_id, on, actor_id or driver_id).to_dto()

    def sign_week(self, week_approval_id: UUID, actor: Actor) -> WeekApprovalInfo:
        """Admin signs by allowing the week; the driver signs it."""
        with LogContext.bind(actor_id=actor.actor_id):
            if actor.is_admin:
                return self.weeks.allow(week_approval_id, actor).to_dto()
            return self.weeks.sign(week_approval_id, actor).to_dto()

    def sign_period(self, period_approval_id: UUID, actor: Actor) -> PeriodApprovalInfo:
        with LogContext.bind(actor_id=actor.actor_id):
            return self.periods.sign(period_approval_id, actor).to_dto()

    # ------------------------------------------------------------------
    # Disputes
    # ------------------------------------------------------------------

    def open_dispute(
        self,
        ride_id: UUID,
        opener: Actor,
        *,
        correction_hours: Decimal | None = None,
        reason: str | None = None,
        comment: str | None = None,
    ) -> RideDisputeInfo | ExecutionDisputeInfo:
        """
        Staff open a ride-level dispute with a correction on a ride record;
        drivers open an execution-level dispute with a reason on an execution.
        """
        with LogContext.bind(actor_id=opener.actor_id, ride_id=ride_id):
            if opener.is_admin:
                require_field(
                    "correction_hours", correction_hours, "a ride-level dispute proposes a correction",
                )
                return self.ride_disputes.open(
                    ride_id, opener, correction_hours, comment=comment,
                ).to_dto()
            require_field("reason", reason, "an execution-level dispute needs a reason")
            dispute = self.execution_disputes.open(ride_id, opener, reason)
            if comment:
                self.execution_disputes.add_comment(dispute.id, opener, comment)
            return dispute.to_dto()

    def counter_dispute(
        self,
        dispute_id: UUID,
        actor: Actor,
        correction_hours: Decimal | None = None,
        comment: str | None = None,
    ) -> RideDisputeInfo:
        with LogContext.bind(actor_id=actor.actor_id, dispute_id=dispute_id):
            return self.ride_disputes.counter(
                dispute_id, actor, correction_hours=correction_hours, comment=comment,
            ).to_dto()

    def comment_on_dispute(self, dispute_id: UUID, actor: Actor, body: str) -> CommentInfo:
        with LogContext.bind(actor_id=actor.actor_id, dispute_id=dispute_id):
            if self.session.get(RideDispute, dispute_id) is not None:
                return self.ride_disputes.add_comment(dispute_id, actor, body).to_dto()
            if self.session.get(ExecutionDispute, dispute_id) is not None:
                return self.execution_disputes.add_comment(dispute_id, actor, body).to_dto()
            raise DisputeNotFoundError(str(dispute_id))

    def resolve_dispute(
        self,
        dispute_id: UUID,
        actor: Actor,
        resolution: DisputeResolution,
    ) -> RideDisputeInfo | ExecutionDisputeInfo:
        """Settle a dispute and run the recompute/invalidation cascade."""
        with LogContext.bind(actor_id=actor.actor_id, dispute_id=dispute_id):
            if isinstance(resolution.outcome, RideDisputeOutcome):
                return self.ride_disputes.resolve(
                    dispute_id, actor, resolution.outcome,
                ).to_dto()
            return self.execution_disputes.resolve(
                dispute_id,
                actor,
                resolution.outcome,
                notes=resolution.notes,
                corrected_hours=resolution.corrected_hours,
            ).to_dto()


@contextmanager
def workflow_scope(
    config: RidePayConfig,
    clock: Clock | None = None,
    calendar: HolidayCalendar | None = None,
) -> Generator[RidePayWorkflow, None, None]:
    """A workflow bound to one committed-or-rolled-back unit of work."""
    with session_scope() as session:
        yield RidePayWorkflow(session, config, clock=clock, calendar=calendar)
