"""
Configuration Loader (``ridepay_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the typed
``ridepay_config.schema`` dataclasses.  Runtime callers go through
``ridepay_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError``; required keys never
  fall back to silent defaults.
* Money and rate values are parsed as ``Decimal`` from strings.
* The default hours code must be one of the configured hours codes, and
  every code/option ``kind`` must be a known kind.
* ``compute_checksum`` is a deterministic SHA-256 of the raw document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from ridepay_config.schema import (
    CompensationDefaults,
    HoursCodeDef,
    HoursOptionDef,
    RateRowDef,
    RidePayConfig,
    VacationRightDef,
)
from ridepay_kernel.domain.values import HoursCodeKind, HoursOptionKind

_RATE_FIELDS = (
    "standard_untaxed_allowance",
    "multi_day_after_17_allowance",
    "multi_day_before_17_allowance",
    "shift_more_than_12h_allowance",
    "multi_day_taxed_allowance",
    "multi_day_untaxed_allowance",
    "consignment_untaxed_allowance",
    "consignment_taxed_allowance",
    "commute_min_km",
    "commute_max_km",
    "kilometers_allowance",
    "night_hours_allowance_rate",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_optional_date(value: Any) -> date | None:
    if value is None:
        return None
    return parse_date(value)


def parse_decimal(value: Any) -> Decimal:
    """Parse a Decimal; YAML floats are rejected to keep values exact."""
    if isinstance(value, float):
        raise ValueError(f"Quote decimal values in YAML: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot parse decimal from {value!r}") from exc


def parse_clock_time(value: Any) -> timedelta:
    """Parse ``HH:MM`` into an offset from midnight (24:00 allowed)."""
    if isinstance(value, int):
        # YAML 1.1 reads unquoted 21:00 as sexagesimal minutes
        return timedelta(minutes=value)
    hours, _, minutes = str(value).partition(":")
    result = timedelta(hours=int(hours), minutes=int(minutes or 0))
    if result > timedelta(hours=24):
        raise ValueError(f"Clock time beyond 24:00: {value!r}")
    return result


def parse_rate_row(data: dict[str, Any], night_time: dict[str, Any]) -> RateRowDef:
    window = data.get("night_time", night_time)
    return RateRowDef(
        start_date=parse_date(data["start_date"]),
        end_date=parse_optional_date(data.get("end_date")),
        night_time_start=parse_clock_time(window["start"]),
        night_time_end=parse_clock_time(window["end"]),
        **{name: parse_decimal(data[name]) for name in _RATE_FIELDS},
    )


def parse_hours_code(data: dict[str, Any]) -> HoursCodeDef:
    kind = HoursCodeKind(data["kind"]).value
    return HoursCodeDef(id=UUID(str(data["id"])), name=data["name"], kind=kind)


def parse_hours_option(data: dict[str, Any]) -> HoursOptionDef:
    kind = HoursOptionKind(data["kind"]).value
    return HoursOptionDef(id=UUID(str(data["id"])), name=data["name"], kind=kind)


def parse_vacation_right(data: dict[str, Any]) -> VacationRightDef:
    return VacationRightDef(
        age_from=data.get("age_from"),
        age_to=data.get("age_to"),
        right_days=int(data["right_days"]),
        start_date=parse_date(data["start_date"]),
        end_date=parse_optional_date(data.get("end_date")),
    )


def parse_compensation_defaults(data: dict[str, Any]) -> CompensationDefaults:
    return CompensationDefaults(
        percentage_of_work=parse_decimal(data["percentage_of_work"]),
        driver_rate_per_hour=parse_decimal(data["driver_rate_per_hour"]),
        night_hours_allowed=bool(data.get("night_hours_allowed", False)),
        night_hours_whole_hours=bool(data.get("night_hours_whole_hours", False)),
        kilometer_allowance_enabled=bool(data.get("kilometer_allowance_enabled", False)),
        kilometers_one_way_value=parse_decimal(data.get("kilometers_one_way_value", "0")),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> RidePayConfig:
    """
    Parse a raw configuration document.

    Raises:
        KeyError: if required keys are missing.
        ValueError: on bad values or an unknown default hours code.
    """
    night_time = data.get("night_time", {"start": "21:00", "end": "05:00"})
    hours_codes = tuple(parse_hours_code(c) for c in data["hours_codes"])
    default_code_id = UUID(str(data["default_hours_code_id"]))
    if default_code_id not in {c.id for c in hours_codes}:
        raise ValueError(f"default_hours_code_id {default_code_id} is not a configured hours code")

    return RidePayConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        database_url=data.get("database_url", "sqlite://"),
        default_hours_code_id=default_code_id,
        compensation_defaults=parse_compensation_defaults(data["compensation_defaults"]),
        rate_rows=tuple(parse_rate_row(r, night_time) for r in data["rate_rows"]),
        hours_codes=hours_codes,
        hours_options=tuple(parse_hours_option(o) for o in data.get("hours_options", [])),
        vacation_rights=tuple(parse_vacation_right(v) for v in data.get("vacation_rights", [])),
    )


def load_config_file(path: Path) -> RidePayConfig:
    return parse_config(load_yaml_file(path))
