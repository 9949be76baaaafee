"""Tests for engine trace logging and input fingerprints."""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from ridepay_engines.compensation import compute_compensation
from ridepay_engines.tracer import compute_input_fingerprint, traced_engine
from ridepay_kernel.domain.dtos import RideInputs
from ridepay_kernel.domain.values import HoursCodeKind


def _traces(captured_logs) -> list[dict]:
    return [r for r in captured_logs() if r["message"] == "RIDEPAY_ENGINE_TRACE"]


class TestFingerprint:

    def test_dict_key_order_does_not_matter(self):
        a = compute_input_fingerprint(("x",), {"x": {"b": 1, "a": 2}})
        b = compute_input_fingerprint(("x",), {"x": {"a": 2, "b": 1}})
        assert a == b
        assert len(a) == 16

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(
            ("x",), {"x": None},
        )

    def test_value_change_changes_fingerprint(self, rate_row):
        other = replace(rate_row, kilometers_allowance=Decimal("0.24"))
        assert compute_input_fingerprint(("rate",), {"rate": rate_row}) != (
            compute_input_fingerprint(("rate",), {"rate": other})
        )


class TestTracedEngine:

    def test_trace_emitted(self, captured_logs):
        @traced_engine("sample", "2.1", fingerprint_fields=("value",))
        def double(*, value):
            return value * 2

        assert double(value=21) == 42

        trace = _traces(captured_logs)[0]
        assert trace["engine_name"] == "sample"
        assert trace["engine_version"] == "2.1"
        assert trace["logger"] == "ridepay_kernel.engines.tracer"
        assert trace["function"].endswith("double")
        assert len(trace["input_fingerprint"]) == 16

    def test_compensation_fingerprint_is_stable(self, captured_logs, rate_row, driver_settings):
        inputs = RideInputs(
            driver_id=uuid4(),
            ride_date=date(2024, 7, 1),
            start=timedelta(hours=6),
            end=timedelta(hours=18),
            rest=timedelta(minutes=45),
        )
        for _ in range(2):
            compute_compensation(
                inputs=inputs,
                rate=rate_row,
                settings=driver_settings,
                kind=HoursCodeKind.ONE_DAY_RIDE,
                option=None,
                holiday_name=None,
                vacation_hours_per_day=Decimal("0"),
            )

        first, second = _traces(captured_logs)
        assert first["engine_name"] == "compensation"
        assert first["input_fingerprint"] == second["input_fingerprint"]
