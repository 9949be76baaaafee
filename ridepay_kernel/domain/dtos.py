"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable structures that flow between the persistence layer, the pure
    allowance engines and callers: the CAO ``RateRow``, a driver's
    ``DriverCompensation`` settings, the canonical calculator input
    ``RideInputs`` and output ``CompensationResult``, and read-only views of
    approvals and disputes.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  ORM models convert
    to these through ``to_dto()``; engines accept and return only these.

Invariants enforced:
    - Every DTO is a frozen dataclass.
    - ``CompensationResult`` is the single result type for both ride record
      shapes; adapters map it onto storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from ridepay_kernel.domain.values import HoursCodeKind, HoursOptionKind
from ridepay_kernel.domain.workflow import (
    ExecutionDisputeStatus,
    PeriodApprovalStatus,
    ResolutionType,
    RideDisputeStatus,
    WeekApprovalStatus,
)


@dataclass(frozen=True)
class RateRow:
    """A time-bounded snapshot of CAO monetary constants."""

    id: UUID
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

    def covers(self, value: date) -> bool:
        return self.start_date <= value and (
            self.end_date is None or self.end_date >= value
        )


@dataclass(frozen=True)
class DriverCompensation:
    """Per-driver constants feeding the calculators."""

    driver_id: UUID
    percentage_of_work: Decimal
    driver_rate_per_hour: Decimal
    night_hours_allowed: bool
    night_hours_whole_hours: bool
    kilometer_allowance_enabled: bool
    kilometers_one_way_value: Decimal


@dataclass(frozen=True)
class RideInputs:
    """
    Canonical calculator input, independent of the record shape.

    ``start`` and ``end`` are clock times as offsets from midnight; ``end``
    may be 24:00.  ``overnight`` marks a shift whose end falls on the next
    day.  ``rest`` of ``None`` means "use the break schedule".
    """

    driver_id: UUID
    ride_date: date
    start: timedelta
    end: timedelta
    rest: timedelta | None = None
    overnight: bool = False
    hours_code_id: UUID | None = None
    hours_option_id: UUID | None = None
    correction_hours: Decimal = Decimal("0")
    extra_kilometers: Decimal = Decimal("0")
    container_waiting_time: timedelta | None = None


@dataclass(frozen=True)
class CompensationResult:
    """Every derived figure for one ride record."""

    hours_code_kind: HoursCodeKind
    hours_option_kind: HoursOptionKind | None
    rate_row_id: UUID
    holiday_name: str | None
    rest_calculated: Decimal
    rest_applied: Decimal
    number_of_hours: Decimal
    decimal_hours: Decimal
    sick_hours: Decimal
    leave_hours: Decimal
    tax_free_compensation: Decimal
    night_hours: Decimal
    night_allowance: Decimal
    kilometer_reimbursement: Decimal
    consignment_fee: Decimal
    saturday_hours: Decimal
    sunday_holiday_hours: Decimal
    vacation_hours_earned: Decimal
    hourly_compensation: Decimal
    exceeding_container_waiting_time: Decimal | None
    period_year: int
    period_number: int
    week_number: int
    week_nr_in_period: int

    @property
    def total_compensation(self) -> Decimal:
        """Allowance total cached on period approvals."""
        return (
            self.tax_free_compensation
            + self.night_allowance
            + self.kilometer_reimbursement
            + self.consignment_fee
        )


@dataclass(frozen=True)
class WeekApprovalInfo:
    id: UUID
    driver_id: UUID
    year: int
    week_number: int
    period_number: int
    status: WeekApprovalStatus
    admin_user_id: UUID | None
    admin_allowed_at: datetime | None
    driver_signed_at: datetime | None
    invalidated_at: datetime | None
    period_approval_id: UUID | None


@dataclass(frozen=True)
class Signature:
    signed_at: datetime
    signer_id: UUID
    ip_address: str | None
    user_agent: str | None


@dataclass(frozen=True)
class PeriodApprovalInfo:
    id: UUID
    driver_id: UUID
    year: int
    period_number: int
    from_date: date
    to_date: date
    status: PeriodApprovalStatus
    total_hours: Decimal | None
    total_compensation: Decimal | None
    driver_signature: Signature | None
    admin_signature: Signature | None
    invalidated_at: datetime | None


@dataclass(frozen=True)
class CommentInfo:
    id: UUID
    author_id: UUID
    author_role: str
    body: str
    created_at: datetime


@dataclass(frozen=True)
class RideDisputeInfo:
    id: UUID
    ride_record_id: UUID
    opened_by_id: UUID
    correction_hours: Decimal
    status: RideDisputeStatus
    opened_at: datetime
    closed_at: datetime | None
    last_counter_role: str | None
    comments: tuple[CommentInfo, ...] = field(default_factory=tuple)

    @property
    def is_resolved(self) -> bool:
        return self.status not in (
            RideDisputeStatus.PENDING_DRIVER,
            RideDisputeStatus.PENDING_ADMIN,
        )


@dataclass(frozen=True)
class ExecutionDisputeInfo:
    id: UUID
    ride_execution_id: UUID
    opened_by_id: UUID
    reason: str
    status: ExecutionDisputeStatus
    opened_at: datetime
    resolved_by_id: UUID | None
    resolved_at: datetime | None
    resolution_notes: str | None
    resolution_type: ResolutionType | None
    corrected_hours: Decimal | None
    closed_at: datetime | None
    comments: tuple[CommentInfo, ...] = field(default_factory=tuple)
