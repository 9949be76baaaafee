"""
Tests for recording and editing legacy ride records.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from ridepay_kernel.domain.workflow import WeekApprovalStatus
from ridepay_kernel.exceptions import (
    ConcurrentModificationError,
    DisputedValueLockedError,
    MissingHoursCodeError,
    RideRecordNotFoundError,
    RideValidationError,
)
from ridepay_kernel.models.ride import RideRecord


class TestRecordRide:

    def test_computed_columns_written(self, record_ride):
        ride = record_ride(date(2024, 7, 1))

        assert ride.is_calculated
        assert ride.decimal_hours == Decimal("11.25")
        assert ride.tax_free_compensation == Decimal("9.24")
        assert ride.total_compensation == Decimal("9.24")
        assert (ride.period_year, ride.period_number, ride.week_number) == (2024, 7, 27)
        assert ride.week_nr_in_period == 3
        assert ride.rate_row_id is not None

    def test_overnight_ride(self, record_ride):
        ride = record_ride(
            date(2024, 7, 1),
            start_time=timedelta(hours=22),
            end_time=timedelta(hours=6),
            rest_time=None,
            overnight=True,
        )
        assert ride.night_hours == Decimal("7.00")
        # night hours are not allowed for a freshly onboarded driver
        assert ride.night_allowance == Decimal("0")

    def test_invalid_inputs_store_nothing(self, record_ride, session):
        with pytest.raises(RideValidationError) as exc_info:
            record_ride(date(2024, 7, 1), start_time=timedelta(hours=22), end_time=timedelta(hours=6))
        assert exc_info.value.field_errors[0]["field"] == "end"
        assert session.scalars(select(RideRecord)).all() == []

    def test_missing_reference_stores_nothing(self, record_ride, session):
        with pytest.raises(MissingHoursCodeError):
            record_ride(date(2024, 7, 1), hours_code_id=uuid4())
        assert session.scalars(select(RideRecord)).all() == []

    def test_creation_logged(self, record_ride, captured_logs):
        ride = record_ride(date(2024, 7, 1))
        created = [r for r in captured_logs() if r["message"] == "ride_record_created"]
        assert created[0]["ride_id"] == str(ride.id)
        assert created[0]["ride_date"] == "2024-07-01"


class TestEditRide:

    def test_edit_recomputes(self, workflow, admin, record_ride):
        ride = record_ride(date(2024, 7, 1))
        workflow.edit_ride(ride.id, admin, {"end_time": timedelta(hours=19)})
        assert ride.decimal_hours == Decimal("12.25")
        assert ride.updated_by_id == admin.actor_id

    def test_correction_changes_decimal_hours(self, workflow, admin, record_ride):
        ride = record_ride(date(2024, 7, 1))
        workflow.edit_ride(ride.id, admin, {"correction_total_hours": Decimal("-1.25")})
        assert ride.decimal_hours == Decimal("10.00")

    def test_computed_columns_not_editable(self, workflow, admin, record_ride):
        ride = record_ride(date(2024, 7, 1))
        with pytest.raises(RideValidationError, match="decimal_hours"):
            workflow.edit_ride(ride.id, admin, {"decimal_hours": Decimal("40")})

    def test_unknown_ride(self, workflow, admin):
        with pytest.raises(RideRecordNotFoundError):
            workflow.edit_ride(uuid4(), admin, {"remark": "x"})

    def test_stale_version_rejected(self, workflow, admin, record_ride):
        ride = record_ride(date(2024, 7, 1))
        stale = ride.version - 1
        with pytest.raises(ConcurrentModificationError) as exc_info:
            workflow.edit_ride(ride.id, admin, {"remark": "late"}, expected_version=stale)
        assert exc_info.value.expected_version == stale
        assert exc_info.value.actual_version == ride.version

    def test_current_version_accepted(self, workflow, admin, record_ride):
        ride = record_ride(date(2024, 7, 1))
        before = ride.version
        workflow.edit_ride(ride.id, admin, {"remark": "late"}, expected_version=before)
        assert ride.version > before

    def test_failed_edit_keeps_stored_values(self, workflow, admin, record_ride):
        ride = record_ride(date(2024, 7, 1))
        with pytest.raises(RideValidationError):
            workflow.edit_ride(ride.id, admin, {"rest_time": timedelta(hours=20)})
        assert ride.rest_time == timedelta(minutes=45)
        assert ride.decimal_hours == Decimal("11.25")

    def test_correction_locked_while_disputed(self, workflow, admin, record_ride):
        ride = record_ride(date(2024, 7, 1))
        workflow.open_dispute(ride.id, admin, correction_hours=Decimal("1"))

        with pytest.raises(DisputedValueLockedError):
            workflow.edit_ride(ride.id, admin, {"correction_total_hours": Decimal("2")})
        # other fields stay editable
        workflow.edit_ride(ride.id, admin, {"remark": "checked tachograph"})

    def test_moving_date_invalidates_the_week_it_left(
        self, workflow, onboarded_driver, admin, record_ride,
    ):
        ride = record_ride(date(2024, 7, 1))
        old_week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 1))
        workflow.sign_week(old_week.id, admin)
        workflow.sign_week(old_week.id, onboarded_driver)

        workflow.edit_ride(ride.id, admin, {"ride_date": date(2024, 7, 8)})

        new_week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 8))
        old_week = workflow.get_or_create_week_approval(onboarded_driver.actor_id, date(2024, 7, 1))
        assert ride.week_approval_id == new_week.id
        assert ride.week_number == 28
        assert new_week.status is WeekApprovalStatus.PENDING_ADMIN
        assert old_week.status is WeekApprovalStatus.INVALIDATED

    def test_recalculate_without_changes(self, workflow, admin, record_ride):
        ride = record_ride(date(2024, 7, 1))
        before = ride.version
        workflow.rides.recalculate(ride.id, admin.actor_id)
        assert ride.decimal_hours == Decimal("11.25")
        assert ride.version >= before
