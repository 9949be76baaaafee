"""
Configuration schema (``ridepay_config.schema``).

Frozen dataclasses produced by ``ridepay_config.loader``.  Nothing in this
module performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class RateRowDef:
    start_date: date
    end_date: date | None
    standard_untaxed_allowance: Decimal
    multi_day_after_17_allowance: Decimal
    multi_day_before_17_allowance: Decimal
    shift_more_than_12h_allowance: Decimal
    multi_day_taxed_allowance: Decimal
    multi_day_untaxed_allowance: Decimal
    consignment_untaxed_allowance: Decimal
    consignment_taxed_allowance: Decimal
    commute_min_km: Decimal
    commute_max_km: Decimal
    kilometers_allowance: Decimal
    night_hours_allowance_rate: Decimal
    night_time_start: timedelta
    night_time_end: timedelta


@dataclass(frozen=True)
class HoursCodeDef:
    id: UUID
    name: str
    kind: str


@dataclass(frozen=True)
class HoursOptionDef:
    id: UUID
    name: str
    kind: str


@dataclass(frozen=True)
class VacationRightDef:
    age_from: int | None
    age_to: int | None
    right_days: int
    start_date: date
    end_date: date | None


@dataclass(frozen=True)
class CompensationDefaults:
    """Values a driver's compensation settings start from at onboarding."""

    percentage_of_work: Decimal
    driver_rate_per_hour: Decimal
    night_hours_allowed: bool
    night_hours_whole_hours: bool
    kilometer_allowance_enabled: bool
    kilometers_one_way_value: Decimal


@dataclass(frozen=True)
class RidePayConfig:
    """A complete, validated configuration set."""

    config_id: str
    version: int
    checksum: str
    database_url: str
    default_hours_code_id: UUID
    compensation_defaults: CompensationDefaults
    rate_rows: tuple[RateRowDef, ...]
    hours_codes: tuple[HoursCodeDef, ...]
    hours_options: tuple[HoursOptionDef, ...]
    vacation_rights: tuple[VacationRightDef, ...]
