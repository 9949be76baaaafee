"""
Tests for the workflow transition tables and the transition gate.
"""

from uuid import uuid4

import pytest

from ridepay_kernel.domain.workflow import (
    EXECUTION_DISPUTE_TRANSITIONS,
    EXECUTION_TRANSITIONS,
    PERIOD_APPROVAL_TRANSITIONS,
    RIDE_DISPUTE_TRANSITIONS,
    WEEK_APPROVAL_TRANSITIONS,
    Actor,
    ActorRole,
    ExecutionDisputeStatus,
    ExecutionStatus,
    PeriodApprovalStatus,
    RideDisputeStatus,
    WeekApprovalStatus,
    require_transition,
)
from ridepay_kernel.exceptions import InvalidStateTransitionError

TABLES = [
    (WEEK_APPROVAL_TRANSITIONS, WeekApprovalStatus),
    (PERIOD_APPROVAL_TRANSITIONS, PeriodApprovalStatus),
    (RIDE_DISPUTE_TRANSITIONS, RideDisputeStatus),
    (EXECUTION_TRANSITIONS, ExecutionStatus),
    (EXECUTION_DISPUTE_TRANSITIONS, ExecutionDisputeStatus),
]


class TestTransitionTables:

    @pytest.mark.parametrize("table, enum_cls", TABLES)
    def test_every_status_has_an_entry(self, table, enum_cls):
        assert set(table) == set(enum_cls)

    @pytest.mark.parametrize("table, enum_cls", TABLES)
    def test_targets_are_members(self, table, enum_cls):
        for targets in table.values():
            assert all(isinstance(t, enum_cls) for t in targets)

    def test_resolved_ride_disputes_are_terminal(self):
        for status in (
            RideDisputeStatus.ACCEPTED_BY_DRIVER,
            RideDisputeStatus.ACCEPTED_BY_ADMIN,
            RideDisputeStatus.CLOSED,
        ):
            assert RIDE_DISPUTE_TRANSITIONS[status] == frozenset()

    def test_approved_execution_is_final(self):
        assert EXECUTION_TRANSITIONS[ExecutionStatus.APPROVED] == frozenset()

    def test_signed_week_can_only_be_invalidated(self):
        assert WEEK_APPROVAL_TRANSITIONS[WeekApprovalStatus.SIGNED] == frozenset(
            {WeekApprovalStatus.INVALIDATED}
        )


class TestRequireTransition:

    def test_allowed(self):
        target = require_transition(
            WEEK_APPROVAL_TRANSITIONS,
            WeekApprovalStatus.PENDING_ADMIN,
            WeekApprovalStatus.PENDING_DRIVER,
            entity_type="WeekApproval",
            entity_id=uuid4(),
            action="allow",
        )
        assert target is WeekApprovalStatus.PENDING_DRIVER

    def test_refused_carries_current_status(self):
        entity_id = uuid4()
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            require_transition(
                WEEK_APPROVAL_TRANSITIONS,
                WeekApprovalStatus.PENDING_ADMIN,
                WeekApprovalStatus.SIGNED,
                entity_type="WeekApproval",
                entity_id=entity_id,
                action="sign",
            )
        assert exc_info.value.current_status == "pending_admin"
        assert exc_info.value.entity_id == str(entity_id)
        assert exc_info.value.code == "INVALID_STATE_TRANSITION"


class TestActor:

    def test_roles(self):
        admin = Actor(uuid4(), ActorRole.ADMIN)
        driver = Actor(uuid4(), ActorRole.DRIVER)
        assert admin.is_admin and not admin.is_driver
        assert driver.is_driver and not driver.is_admin
