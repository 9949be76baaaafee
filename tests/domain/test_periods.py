"""
Tests for ISO week and pay period arithmetic.
"""

from datetime import date

import pytest

from ridepay_kernel.domain.periods import (
    iso_weeks_in_year,
    period_date_range,
    period_for_date,
    period_for_week,
    week_date_range,
    weeks_in_period,
)


class TestPeriodForDate:

    def test_mid_year(self):
        key = period_for_date(date(2024, 7, 1))
        assert key.year == 2024
        assert key.week_number == 27
        assert key.period_number == 7
        assert key.week_in_period == 3

    def test_first_week(self):
        key = period_for_date(date(2024, 1, 1))
        assert (key.year, key.week_number, key.period_number, key.week_in_period) == (2024, 1, 1, 1)

    def test_iso_year_owns_the_period(self):
        """30 December 2024 is ISO week 1 of 2025."""
        key = period_for_date(date(2024, 12, 30))
        assert key.year == 2025
        assert key.week_number == 1
        assert key.period_number == 1

    def test_week_53_joins_period_13(self):
        key = period_for_date(date(2020, 12, 31))
        assert key.year == 2020
        assert key.week_number == 53
        assert key.period_number == 13
        assert key.week_in_period == 5

    @pytest.mark.parametrize("week, period", [(4, 1), (5, 2), (48, 12), (49, 13), (52, 13)])
    def test_four_weeks_per_period(self, week, period):
        assert period_for_week(2024, week).period_number == period

    def test_unknown_week_rejected(self):
        with pytest.raises(ValueError):
            period_for_week(2024, 53)


class TestPeriodRanges:

    def test_long_years(self):
        assert iso_weeks_in_year(2020) == 53
        assert iso_weeks_in_year(2024) == 52

    def test_weeks_in_regular_period(self):
        assert weeks_in_period(2024, 7) == (25, 26, 27, 28)

    def test_last_period_of_long_year_has_five_weeks(self):
        assert weeks_in_period(2020, 13) == (49, 50, 51, 52, 53)

    def test_period_out_of_range(self):
        with pytest.raises(ValueError):
            weeks_in_period(2024, 14)

    def test_week_range_monday_to_sunday(self):
        assert week_date_range(2024, 27) == (date(2024, 7, 1), date(2024, 7, 7))

    def test_period_range(self):
        assert period_date_range(2024, 7) == (date(2024, 6, 17), date(2024, 7, 14))
