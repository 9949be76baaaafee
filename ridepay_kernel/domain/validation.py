"""
Validation -- raw-input checks run before any calculator.

Responsibility:
    Rejects impossible ride inputs and driver settings with a complete list
    of field errors, so nothing is ever partially applied.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Clock times lie in 00:00..24:00.
    - ``end < start`` is only legal when the shift is flagged overnight, and
      an overnight shift must actually end before it starts.
    - Durations, distances and rates are never negative; rest never exceeds
      the shift; the correction cannot push the shift below zero hours.
    - percentage_of_work lies in 0..100.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import timedelta
from decimal import Decimal

from ridepay_kernel.domain.dtos import RideInputs
from ridepay_kernel.domain.values import FULL_DAY, ZERO, hours_from_timedelta
from ridepay_kernel.exceptions import RideValidationError

_MIDNIGHT = timedelta(0)
HUNDRED = Decimal("100")


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def ride_input_errors(inputs: RideInputs) -> list[dict]:
    """Every field error in ``inputs``; empty when valid."""
    errors: list[dict] = []

    for name, value in (("start", inputs.start), ("end", inputs.end)):
        if not _MIDNIGHT <= value <= FULL_DAY:
            errors.append(_error(name, "clock time must lie between 00:00 and 24:00"))
    if errors:
        return errors

    if inputs.overnight:
        if inputs.end >= inputs.start:
            errors.append(_error("overnight", "overnight shift must end before its start time"))
        span = FULL_DAY - inputs.start + inputs.end
    else:
        if inputs.end < inputs.start:
            errors.append(_error("end", "end before start on a shift not flagged overnight"))
        span = inputs.end - inputs.start

    if inputs.rest is not None:
        if inputs.rest < _MIDNIGHT:
            errors.append(_error("rest", "rest cannot be negative"))
        elif inputs.rest > span and span >= _MIDNIGHT:
            errors.append(_error("rest", "rest cannot exceed the shift"))

    if inputs.extra_kilometers < ZERO:
        errors.append(_error("extra_kilometers", "distance cannot be negative"))

    if span >= _MIDNIGHT and hours_from_timedelta(span) + inputs.correction_hours < ZERO:
        errors.append(_error("correction_hours", "correction exceeds the shift length"))

    if inputs.container_waiting_time is not None and inputs.container_waiting_time < _MIDNIGHT:
        errors.append(_error("container_waiting_time", "waiting time cannot be negative"))

    return errors


def validate_ride_inputs(inputs: RideInputs) -> None:
    """Raise RideValidationError listing every invalid field."""
    errors = ride_input_errors(inputs)
    if errors:
        raise RideValidationError(errors)


def validate_compensation_settings(
    *,
    percentage_of_work: Decimal,
    driver_rate_per_hour: Decimal,
    kilometers_one_way_value: Decimal,
) -> None:
    errors: list[dict] = []
    if not ZERO <= percentage_of_work <= HUNDRED:
        errors.append(_error("percentage_of_work", "must lie between 0 and 100"))
    if driver_rate_per_hour < ZERO:
        errors.append(_error("driver_rate_per_hour", "cannot be negative"))
    if kilometers_one_way_value < ZERO:
        errors.append(_error("kilometers_one_way_value", "cannot be negative"))
    if errors:
        raise RideValidationError(errors)


def validate_editable(changes: Collection[str], editable: Collection[str]) -> None:
    """Reject edits to fields outside ``editable``, e.g. computed columns."""
    errors = [_error(name, "field is not editable") for name in sorted(set(changes) - set(editable))]
    if errors:
        raise RideValidationError(errors)


def require_field(name: str, value: object, message: str) -> None:
    if value is None or value == "":
        raise RideValidationError([_error(name, message)])
