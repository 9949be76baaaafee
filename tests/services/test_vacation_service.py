"""
Tests for vacation accrual against employment contracts and age brackets.
"""

from datetime import date, timedelta
from decimal import Decimal

from ridepay_kernel.domain.dtos import RideInputs


class TestEarnedHours:

    def test_no_contract_earns_nothing(self, workflow, driver):
        assert workflow.earned_vacation_hours(driver.actor_id, date(2024, 7, 1)) == Decimal("0")

    def test_full_year_contract(self, workflow, driver, admin):
        workflow.vacation.register_contract(
            driver.actor_id,
            admin.actor_id,
            date_of_birth=date(1990, 5, 17),
            date_of_employment=date(2019, 3, 1),
        )
        # age 34 -> 24 days over the 262 weekdays of 2024
        assert workflow.earned_vacation_hours(driver.actor_id, date(2024, 7, 1)) == Decimal("0.73")

    def test_last_working_day_still_accrues(self, workflow, driver, admin):
        workflow.vacation.register_contract(
            driver.actor_id,
            admin.actor_id,
            date_of_birth=date(1990, 5, 17),
            date_of_employment=date(2024, 1, 1),
            last_working_day=date(2024, 6, 28),
        )
        # 24 days spread over 130 weekdays
        assert workflow.earned_vacation_hours(driver.actor_id, date(2024, 6, 28)) == Decimal("1.48")
        assert workflow.earned_vacation_hours(driver.actor_id, date(2024, 6, 29)) == Decimal("0")

    def test_before_employment(self, workflow, driver, admin):
        workflow.vacation.register_contract(
            driver.actor_id,
            admin.actor_id,
            date_of_birth=date(1990, 5, 17),
            date_of_employment=date(2024, 7, 1),
        )
        assert workflow.earned_vacation_hours(driver.actor_id, date(2024, 6, 30)) == Decimal("0")

    def test_older_driver_gets_larger_bracket(self, workflow, driver, admin):
        workflow.vacation.register_contract(
            driver.actor_id,
            admin.actor_id,
            date_of_birth=date(1964, 2, 2),
            date_of_employment=date(2010, 1, 1),
        )
        # age 60 -> 28 days * 8 hours / 262 weekdays
        assert workflow.earned_vacation_hours(driver.actor_id, date(2024, 7, 1)) == Decimal("0.85")

    def test_accrual_flows_into_compensation(self, workflow, onboarded_driver, admin):
        workflow.vacation.register_contract(
            onboarded_driver.actor_id,
            admin.actor_id,
            date_of_birth=date(1990, 5, 17),
            date_of_employment=date(2019, 3, 1),
        )
        result = workflow.calculate_compensation(RideInputs(
            driver_id=onboarded_driver.actor_id,
            ride_date=date(2024, 7, 1),
            start=timedelta(hours=6),
            end=timedelta(hours=18),
        ))
        assert result.vacation_hours_earned == Decimal("0.73")
