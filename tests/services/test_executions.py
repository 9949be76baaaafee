"""
Tests for shared rides, per-driver executions and execution-level disputes.

Covers:
- Execution creation with container waiting time
- pending -> submitted -> approved / rejected lifecycle
- Driver disputes on rejected executions and their resolution
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from ridepay_kernel.domain.workflow import (
    Actor,
    ActorRole,
    ExecutionDisputeStatus,
    ExecutionStatus,
    ResolutionType,
    WeekApprovalStatus,
)
from ridepay_kernel.exceptions import (
    DisputeAlreadyOpenError,
    DisputedValueLockedError,
    InvalidStateTransitionError,
    MissingHoursCodeError,
    RideExecutionNotFoundError,
    RideValidationError,
    UnauthorizedActorError,
)
from ridepay_kernel.models.ride import RideExecution
from ridepay_services.workflow import DisputeResolution


@pytest.fixture
def shared_ride(workflow, admin):
    return workflow.executions.create_ride(date(2024, 7, 2), admin.actor_id, "Rotterdam - Venlo")


@pytest.fixture
def execution(workflow, shared_ride, onboarded_driver, admin):
    return workflow.executions.create(
        shared_ride,
        onboarded_driver.actor_id,
        admin.actor_id,
        start_time=timedelta(hours=6),
        end_time=timedelta(hours=18),
        rest_time=timedelta(minutes=45),
        container_waiting_time=timedelta(hours=3, minutes=30),
    )


@pytest.fixture
def rejected(workflow, execution, onboarded_driver, admin):
    workflow.executions.submit(execution.id, onboarded_driver)
    return workflow.executions.reject(execution.id, admin, "Waiting time not documented")


@pytest.fixture
def execution_dispute(workflow, rejected, onboarded_driver):
    return workflow.open_dispute(
        rejected.id, onboarded_driver, reason="Terminal queue was 3.5 hours",
    )


class TestCreateExecution:

    def test_computed_on_creation(self, execution, shared_ride):
        assert execution.execution_status is ExecutionStatus.PENDING
        assert execution.ride_date == date(2024, 7, 2)
        assert execution.ride_id == shared_ride.id
        assert execution.decimal_hours == Decimal("11.25")
        assert execution.exceeding_container_waiting_time == Decimal("1.50")
        assert execution.week_approval_id is not None

    def test_ride_lists_its_executions(self, workflow, shared_ride, execution, admin):
        other = Actor(uuid4(), ActorRole.DRIVER)
        workflow.onboard_driver(other.actor_id, admin.actor_id)
        second = workflow.executions.create(
            shared_ride,
            other.actor_id,
            admin.actor_id,
            start_time=timedelta(hours=7),
            end_time=timedelta(hours=15),
        )
        assert {e.id for e in shared_ride.executions} == {execution.id, second.id}
        assert second.week_approval_id != execution.week_approval_id

    def test_failed_calculation_stores_nothing(
        self, workflow, session, shared_ride, onboarded_driver, admin,
    ):
        with pytest.raises(MissingHoursCodeError):
            workflow.executions.create(
                shared_ride,
                onboarded_driver.actor_id,
                admin.actor_id,
                start_time=timedelta(hours=6),
                end_time=timedelta(hours=18),
                hours_code_id=uuid4(),
            )
        session.flush()
        assert shared_ride.executions == []
        assert session.scalars(select(RideExecution)).all() == []

    def test_unknown_execution(self, workflow, admin):
        with pytest.raises(RideExecutionNotFoundError):
            workflow.executions.approve(uuid4(), admin)


class TestLifecycle:

    def test_submit_then_approve(self, workflow, execution, onboarded_driver, admin):
        submitted = workflow.executions.submit(execution.id, onboarded_driver)
        assert submitted.execution_status is ExecutionStatus.SUBMITTED
        assert submitted.submitted_at is not None

        approved = workflow.executions.approve(execution.id, admin)
        assert approved.execution_status is ExecutionStatus.APPROVED
        assert approved.approved_by_id == admin.actor_id

    def test_cannot_approve_pending(self, workflow, execution, admin):
        with pytest.raises(InvalidStateTransitionError):
            workflow.executions.approve(execution.id, admin)

    def test_only_own_driver_submits(self, workflow, execution, admin):
        with pytest.raises(UnauthorizedActorError):
            workflow.executions.submit(execution.id, admin)

    def test_driver_cannot_approve(self, workflow, execution, onboarded_driver):
        workflow.executions.submit(execution.id, onboarded_driver)
        with pytest.raises(UnauthorizedActorError):
            workflow.executions.approve(execution.id, onboarded_driver)

    def test_reject_records_reason(self, rejected, admin):
        assert rejected.execution_status is ExecutionStatus.REJECTED
        assert rejected.rejection_reason == "Waiting time not documented"
        assert rejected.rejected_by_id == admin.actor_id

    def test_resubmit_after_rejection(self, workflow, rejected, onboarded_driver):
        again = workflow.executions.submit(rejected.id, onboarded_driver)
        assert again.execution_status is ExecutionStatus.SUBMITTED

    def test_approved_is_final(self, workflow, execution, onboarded_driver, admin):
        workflow.executions.submit(execution.id, onboarded_driver)
        workflow.executions.approve(execution.id, admin)
        with pytest.raises(InvalidStateTransitionError):
            workflow.edit_execution(execution.id, admin, {"remark": "late change"})

    def test_edit_recomputes_waiting_time(self, workflow, execution, admin):
        workflow.edit_execution(
            execution.id, admin, {"container_waiting_time": timedelta(hours=2, minutes=45)},
        )
        assert execution.exceeding_container_waiting_time == Decimal("0.75")

    def test_edit_invalidates_signed_week(self, workflow, execution, onboarded_driver, admin):
        week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 2))
        workflow.sign_week(week.id, admin)
        workflow.sign_week(week.id, onboarded_driver)

        workflow.edit_execution(execution.id, admin, {"extra_kilometers": Decimal("20")})
        week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 2))
        assert week.status is WeekApprovalStatus.INVALIDATED


class TestExecutionDisputes:

    def test_driver_opens_on_rejected(self, execution_dispute, rejected, onboarded_driver):
        assert execution_dispute.status is ExecutionDisputeStatus.OPEN
        assert execution_dispute.ride_execution_id == rejected.id
        assert execution_dispute.opened_by_id == onboarded_driver.actor_id
        assert rejected.execution_status is ExecutionStatus.DISPUTE

    def test_driver_must_give_reason(self, workflow, rejected, onboarded_driver):
        with pytest.raises(RideValidationError) as exc_info:
            workflow.open_dispute(rejected.id, onboarded_driver)
        assert exc_info.value.field_errors[0]["field"] == "reason"

    def test_only_rejected_executions(self, workflow, execution, onboarded_driver):
        with pytest.raises(InvalidStateTransitionError):
            workflow.open_dispute(execution.id, onboarded_driver, reason="premature")

    def test_admin_cannot_open_execution_dispute(self, workflow, rejected, admin):
        with pytest.raises(UnauthorizedActorError):
            workflow.execution_disputes.open(rejected.id, admin, "staff objection")

    def test_one_open_dispute(self, workflow, execution_dispute, rejected, onboarded_driver):
        with pytest.raises(DisputeAlreadyOpenError):
            workflow.open_dispute(rejected.id, onboarded_driver, reason="again")

    def test_decision_refused_while_disputed(self, workflow, execution_dispute, rejected, admin):
        with pytest.raises(InvalidStateTransitionError):
            workflow.executions.approve(rejected.id, admin)

    def test_correction_locked_while_disputed(self, workflow, execution_dispute, rejected, admin):
        with pytest.raises(DisputedValueLockedError):
            workflow.edit_execution(
                rejected.id, admin, {"correction_total_hours": Decimal("1")},
            )

    def test_accept_with_corrected_hours(self, workflow, execution_dispute, rejected, admin):
        resolved = workflow.resolve_dispute(
            execution_dispute.id,
            admin,
            DisputeResolution(
                ResolutionType.ACCEPT,
                notes="Queue confirmed by terminal log",
                corrected_hours=Decimal("1.5"),
            ),
        )
        assert resolved.status is ExecutionDisputeStatus.RESOLVED
        assert resolved.resolution_type is ResolutionType.ACCEPT
        assert resolved.resolved_by_id == admin.actor_id
        assert resolved.corrected_hours == Decimal("1.5")
        assert rejected.execution_status is ExecutionStatus.APPROVED
        assert rejected.correction_total_hours == Decimal("1.5")
        assert rejected.decimal_hours == Decimal("12.75")

    def test_reject_keeps_hours(self, workflow, execution_dispute, rejected, admin):
        workflow.resolve_dispute(
            execution_dispute.id, admin, DisputeResolution(ResolutionType.REJECT, notes="No proof"),
        )
        assert rejected.execution_status is ExecutionStatus.REJECTED
        assert rejected.decimal_hours == Decimal("11.25")

    def test_driver_cannot_resolve(self, workflow, execution_dispute, onboarded_driver):
        with pytest.raises(UnauthorizedActorError):
            workflow.resolve_dispute(
                execution_dispute.id, onboarded_driver, DisputeResolution(ResolutionType.ACCEPT),
            )

    def test_close_leaves_execution_rejected(self, workflow, execution_dispute, rejected, admin):
        closed = workflow.execution_disputes.close(execution_dispute.id, admin)
        assert closed.dispute_status is ExecutionDisputeStatus.CLOSED
        assert rejected.execution_status is ExecutionStatus.REJECTED

    def test_resolved_dispute_is_final(self, workflow, execution_dispute, admin):
        workflow.execution_disputes.close(execution_dispute.id, admin)
        with pytest.raises(InvalidStateTransitionError):
            workflow.resolve_dispute(
                execution_dispute.id, admin, DisputeResolution(ResolutionType.ACCEPT),
            )

    def test_open_dispute_blocks_week_allow(
        self, workflow, execution_dispute, onboarded_driver, admin,
    ):
        week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 2))
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            workflow.sign_week(week.id, admin)
        assert exc_info.value.code == "OPEN_DISPUTE_BLOCKS_APPROVAL"

    def test_comments(self, workflow, execution_dispute, onboarded_driver, admin):
        workflow.comment_on_dispute(execution_dispute.id, admin, "Send the terminal log")
        workflow.comment_on_dispute(execution_dispute.id, onboarded_driver, "Attached")

        current = workflow.execution_disputes.get(execution_dispute.id)
        assert [c.sequence for c in current.comments] == [1, 2]
        assert [c.author_role for c in current.comments] == ["admin", "driver"]

    def test_opening_comment(self, workflow, rejected, onboarded_driver):
        opened = workflow.open_dispute(
            rejected.id, onboarded_driver, reason="Queue", comment="Photo of the queue attached",
        )
        assert [c.body for c in opened.comments] == ["Photo of the queue attached"]


class TestPeriodTotals:

    PERIOD_7_MONDAYS = (date(2024, 6, 17), date(2024, 6, 24), date(2024, 7, 1), date(2024, 7, 8))

    def _driver_signed_period(self, workflow, driver, admin):
        for monday in self.PERIOD_7_MONDAYS:
            week = workflow.get_or_create_week_approval(driver.actor_id, monday)
            workflow.sign_week(week.id, admin)
            workflow.sign_week(week.id, driver)
        period = workflow.get_or_create_period_approval(driver.actor_id, date(2024, 7, 2))
        return workflow.sign_period(period.id, driver)

    def test_rejected_execution_not_counted(self, workflow, rejected, onboarded_driver, admin):
        signed = self._driver_signed_period(workflow, onboarded_driver, admin)
        assert signed.total_hours == Decimal("0")
        assert signed.total_compensation == Decimal("0")

    def test_submitted_execution_not_counted(self, workflow, execution, onboarded_driver, admin):
        workflow.executions.submit(execution.id, onboarded_driver)
        signed = self._driver_signed_period(workflow, onboarded_driver, admin)
        assert signed.total_hours == Decimal("0")

    def test_approved_execution_counted(self, workflow, execution, onboarded_driver, admin):
        workflow.executions.submit(execution.id, onboarded_driver)
        workflow.executions.approve(execution.id, admin)
        signed = self._driver_signed_period(workflow, onboarded_driver, admin)
        assert signed.total_hours == Decimal("11.25")
        assert signed.total_compensation == execution.total_compensation
