"""
Tests for ride-level disputes: staff-proposed corrections that the driver
and the admin negotiate until one side accepts or the admin closes it.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ridepay_kernel.domain.workflow import (
    Actor,
    ActorRole,
    RideDisputeOutcome,
    RideDisputeStatus,
    WeekApprovalStatus,
)
from ridepay_kernel.exceptions import (
    DisputeAlreadyOpenError,
    DisputeNotFoundError,
    InvalidStateTransitionError,
    OpenDisputeBlocksApprovalError,
    RideValidationError,
    UnauthorizedActorError,
)
from ridepay_services.workflow import DisputeResolution


@pytest.fixture
def ride(record_ride):
    return record_ride(date(2024, 7, 1))


@pytest.fixture
def dispute(workflow, admin, ride):
    return workflow.open_dispute(
        ride.id, admin, correction_hours=Decimal("2.5"), comment="Tachograph shows 14:15 unload",
    )


class TestOpenDispute:

    def test_admin_opens_pending_driver(self, dispute, ride, admin):
        assert dispute.status is RideDisputeStatus.PENDING_DRIVER
        assert dispute.ride_record_id == ride.id
        assert dispute.opened_by_id == admin.actor_id
        assert dispute.correction_hours == Decimal("2.5")
        assert dispute.last_counter_role == "admin"
        assert not dispute.is_resolved

    def test_opening_comment_recorded(self, dispute, admin):
        assert len(dispute.comments) == 1
        assert dispute.comments[0].author_id == admin.actor_id
        assert dispute.comments[0].author_role == "admin"

    def test_driver_cannot_open_ride_dispute(self, workflow, onboarded_driver, ride):
        with pytest.raises(UnauthorizedActorError):
            workflow.ride_disputes.open(ride.id, onboarded_driver, Decimal("1"))

    def test_one_open_dispute_per_ride(self, workflow, admin, ride, dispute):
        with pytest.raises(DisputeAlreadyOpenError) as exc_info:
            workflow.open_dispute(ride.id, admin, correction_hours=Decimal("1"))
        assert exc_info.value.dispute_id == str(dispute.id)

    def test_admin_must_propose_hours(self, workflow, admin, ride):
        with pytest.raises(RideValidationError) as exc_info:
            workflow.open_dispute(ride.id, admin)
        assert exc_info.value.field_errors[0]["field"] == "correction_hours"

    def test_open_dispute_blocks_week_allow(self, workflow, onboarded_driver, admin, dispute):
        week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 1))
        with pytest.raises(OpenDisputeBlocksApprovalError) as exc_info:
            workflow.sign_week(week.id, admin)
        assert exc_info.value.dispute_ids == [str(dispute.id)]


class TestNegotiation:

    def test_driver_counters(self, workflow, onboarded_driver, dispute):
        countered = workflow.counter_dispute(
            dispute.id, onboarded_driver, correction_hours=Decimal("3"), comment="It was 3 hours",
        )
        assert countered.status is RideDisputeStatus.PENDING_ADMIN
        assert countered.correction_hours == Decimal("3")
        assert countered.last_counter_role == "driver"
        assert [c.author_role for c in countered.comments] == ["admin", "driver"]

    def test_admin_cannot_counter_out_of_turn(self, workflow, admin, dispute):
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            workflow.counter_dispute(dispute.id, admin, correction_hours=Decimal("2"))
        assert exc_info.value.current_status == "pending_driver"

    def test_driver_cannot_accept_own_counter(self, workflow, onboarded_driver, dispute):
        workflow.counter_dispute(dispute.id, onboarded_driver, correction_hours=Decimal("3"))
        with pytest.raises(InvalidStateTransitionError):
            workflow.resolve_dispute(
                dispute.id, onboarded_driver, DisputeResolution(RideDisputeOutcome.ACCEPT),
            )

    def test_other_driver_cannot_counter(self, workflow, dispute):
        stranger = Actor(uuid4(), ActorRole.DRIVER)
        with pytest.raises(UnauthorizedActorError):
            workflow.counter_dispute(dispute.id, stranger)

    def test_admin_updates_correction(self, workflow, admin, dispute):
        updated = workflow.ride_disputes.update_correction(dispute.id, admin, Decimal("1.75"))
        assert updated.correction_hours == Decimal("1.75")
        assert updated.dispute_status is RideDisputeStatus.PENDING_DRIVER

    def test_driver_cannot_update_correction(self, workflow, onboarded_driver, dispute):
        with pytest.raises(UnauthorizedActorError):
            workflow.ride_disputes.update_correction(dispute.id, onboarded_driver, Decimal("9"))


class TestResolution:

    def test_driver_accepts_adds_correction(self, workflow, onboarded_driver, ride, dispute):
        resolved = workflow.resolve_dispute(
            dispute.id, onboarded_driver, DisputeResolution(RideDisputeOutcome.ACCEPT),
        )
        assert resolved.status is RideDisputeStatus.ACCEPTED_BY_DRIVER
        assert resolved.closed_at is not None
        assert ride.correction_total_hours == Decimal("2.5")
        assert ride.decimal_hours == Decimal("13.75")

    def test_accept_adds_to_existing_correction(
        self, workflow, onboarded_driver, admin, record_ride,
    ):
        ride = record_ride(date(2024, 7, 2), correction_total_hours=Decimal("0.5"))
        opened = workflow.open_dispute(ride.id, admin, correction_hours=Decimal("1"))
        workflow.resolve_dispute(
            opened.id, onboarded_driver, DisputeResolution(RideDisputeOutcome.ACCEPT),
        )
        assert ride.correction_total_hours == Decimal("1.5")

    def test_admin_accepts_driver_counter(self, workflow, onboarded_driver, admin, ride, dispute):
        workflow.counter_dispute(dispute.id, onboarded_driver, correction_hours=Decimal("3"))
        resolved = workflow.resolve_dispute(
            dispute.id, admin, DisputeResolution(RideDisputeOutcome.ACCEPT),
        )
        assert resolved.status is RideDisputeStatus.ACCEPTED_BY_ADMIN
        assert ride.correction_total_hours == Decimal("3")

    def test_accept_invalidates_signed_week(self, workflow, onboarded_driver, admin, ride):
        week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 1))
        workflow.sign_week(week.id, admin)
        workflow.sign_week(week.id, onboarded_driver)

        opened = workflow.open_dispute(ride.id, admin, correction_hours=Decimal("2.5"))
        workflow.resolve_dispute(
            opened.id, onboarded_driver, DisputeResolution(RideDisputeOutcome.ACCEPT),
        )

        week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 1))
        assert week.status is WeekApprovalStatus.INVALIDATED

    def test_admin_closes_without_change(self, workflow, admin, ride, dispute):
        closed = workflow.resolve_dispute(
            dispute.id, admin, DisputeResolution(RideDisputeOutcome.CLOSE),
        )
        assert closed.status is RideDisputeStatus.CLOSED
        assert ride.correction_total_hours == Decimal("0")

    def test_driver_cannot_close(self, workflow, onboarded_driver, dispute):
        with pytest.raises(UnauthorizedActorError):
            workflow.resolve_dispute(
                dispute.id, onboarded_driver, DisputeResolution(RideDisputeOutcome.CLOSE),
            )

    def test_resolved_dispute_is_final(self, workflow, admin, dispute):
        workflow.resolve_dispute(dispute.id, admin, DisputeResolution(RideDisputeOutcome.CLOSE))
        with pytest.raises(InvalidStateTransitionError):
            workflow.resolve_dispute(dispute.id, admin, DisputeResolution(RideDisputeOutcome.CLOSE))

    def test_closing_unblocks_allow_and_unlocks_correction(
        self, workflow, onboarded_driver, admin, ride, dispute,
    ):
        workflow.resolve_dispute(dispute.id, admin, DisputeResolution(RideDisputeOutcome.CLOSE))

        week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 1))
        assert workflow.sign_week(week.id, admin).status is WeekApprovalStatus.PENDING_DRIVER
        workflow.edit_ride(ride.id, admin, {"correction_total_hours": Decimal("1")})
        assert ride.correction_total_hours == Decimal("1")

    def test_dispute_can_reopen_after_close(self, workflow, admin, ride, dispute):
        workflow.resolve_dispute(dispute.id, admin, DisputeResolution(RideDisputeOutcome.CLOSE))
        again = workflow.open_dispute(ride.id, admin, correction_hours=Decimal("0.5"))
        assert again.id != dispute.id


class TestComments:

    def test_sequence_follows_posting_order(self, workflow, onboarded_driver, admin, dispute):
        workflow.comment_on_dispute(dispute.id, onboarded_driver, "I disagree")
        workflow.comment_on_dispute(dispute.id, admin, "Check the tachograph")

        current = workflow.ride_disputes.get(dispute.id)
        assert [c.sequence for c in current.comments] == [1, 2, 3]
        assert [c.body for c in current.comments][1:] == ["I disagree", "Check the tachograph"]

    def test_comment_info_returned(self, workflow, onboarded_driver, dispute):
        info = workflow.comment_on_dispute(dispute.id, onboarded_driver, "Fine by me")
        assert info.author_id == onboarded_driver.actor_id
        assert info.author_role == "driver"
        assert info.body == "Fine by me"

    def test_no_comments_after_resolution(self, workflow, admin, dispute):
        workflow.resolve_dispute(dispute.id, admin, DisputeResolution(RideDisputeOutcome.CLOSE))
        with pytest.raises(InvalidStateTransitionError):
            workflow.comment_on_dispute(dispute.id, admin, "too late")

    def test_other_driver_cannot_comment(self, workflow, dispute):
        with pytest.raises(UnauthorizedActorError):
            workflow.comment_on_dispute(dispute.id, Actor(uuid4(), ActorRole.DRIVER), "hi")

    def test_unknown_dispute(self, workflow, admin):
        with pytest.raises(DisputeNotFoundError):
            workflow.comment_on_dispute(uuid4(), admin, "hello")
