"""Tests for the structured logging system (ridepay_kernel/logging_config.py)."""

import json
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from ridepay_kernel.exceptions import NoApplicableRateError, PeriodNotReadyError
from ridepay_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests and restore the suite's setup after."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "ridepay_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("ride_record_created", extra={"week_number": 27, "kind": "sick"})

        record = _parse_log(stream)
        assert record["week_number"] == 27
        assert record["kind"] == "sick"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", ride_id="ride-9")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["ride_id"] == "ride-9"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "traceback" in record

    def test_ridepay_exception_code_extracted(self):
        """Ride pay exceptions carry a .code and structured attributes."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise NoApplicableRateError("2019-05-01")
        except NoApplicableRateError:
            logger.exception("rate_lookup_failed")

        record = _parse_log(stream)
        assert record["level"] == "ERROR"
        assert record["exc_code"] == "NO_APPLICABLE_RATE"
        assert record["exc_type"] == "NoApplicableRateError"
        assert record["exc_effective_date"] == "2019-05-01"

    def test_state_transition_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise PeriodNotReadyError("period-1", "not_ready", 3, 4)
        except PeriodNotReadyError:
            get_logger("test").warning("sign_refused", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "PERIOD_NOT_READY"
        assert record["exc_current_status"] == "not_ready"
        assert record["exc_signed_weeks"] == 3
        assert record["exc_required_weeks"] == 4

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "driver_id" not in record

    def test_domain_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "with_values",
            extra={
                "ride_id_value": uid,
                "hours": Decimal("11.25"),
                "rest": timedelta(minutes=45),
                "ride_date": date(2024, 7, 1),
                "signed_at": datetime(2024, 7, 1, 12, 30, tzinfo=timezone.utc),
            },
        )

        record = _parse_log(stream)
        assert record["ride_id_value"] == str(uid)
        assert record["hours"] == "11.25"
        assert record["rest"] == 2700.0
        assert record["ride_date"] == "2024-07-01"
        assert record["signed_at"] == "2024-07-01T12:30:00+00:00"

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= record.keys()


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", driver_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "driver_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner"):
            assert LogContext.get_all()["actor_id"] == "inner"
        assert LogContext.get_all()["actor_id"] == "outer"

    def test_bind_restores_none(self):
        assert "dispute_id" not in LogContext.get_all()
        with LogContext.bind(dispute_id="temp"):
            assert LogContext.get_all()["dispute_id"] == "temp"
        assert "dispute_id" not in LogContext.get_all()

    def test_bind_stringifies_uuids(self):
        uid = uuid4()
        with LogContext.bind(driver_id=uid):
            assert LogContext.get_all()["driver_id"] == str(uid)

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(vehicle="NL-12-AB"):
            assert LogContext.get_all() == {}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            actor_id="a",
            driver_id="d",
            ride_id="r",
            dispute_id="p",
            trace_id="t",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 6
        assert ctx["trace_id"] == "t"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        root = logging.getLogger("ridepay_kernel")
        assert h1 in root.handlers
        assert h2 not in root.handlers
        assert root.propagate is False

    def test_get_logger_returns_child(self):
        logger = get_logger("services.ride_record")
        assert logger.name == "ridepay_kernel.services.ride_record"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("engines.compensation").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "ridepay_kernel.engines.compensation"
