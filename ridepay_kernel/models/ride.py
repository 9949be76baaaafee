"""
Module: ridepay_kernel.models.ride
Responsibility: ORM persistence for both ride record shapes: the legacy
    single-driver ``RideRecord`` and the per-driver ``RideExecution`` attached
    to a shared ``Ride``.

Architecture position: Kernel > Models.

Invariants enforced:
    - Both shapes share the raw input columns (``RawRideFieldsMixin``) and the
      computed column contract (``ComputedRideFieldsMixin``).
    - Every computed column is nullable: NULL means "not yet calculated",
      never zero.
    - An ORM version counter serializes concurrent edits; a stale flush raises
      StaleDataError, which services translate to ConcurrentModificationError.
    - Execution status is a closed set (check constraint).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ridepay_kernel.db.base import TrackedBase, UUIDString, enum_check
from ridepay_kernel.domain.workflow import ExecutionStatus


class RawRideFieldsMixin:
    """Hand-entered inputs shared by both record shapes."""

    driver_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    start_time: Mapped[timedelta] = mapped_column(nullable=False)
    end_time: Mapped[timedelta] = mapped_column(nullable=False)
    rest_time: Mapped[timedelta | None] = mapped_column(nullable=True)
    overnight: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hours_code_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("hours_codes.id"), nullable=True,
    )
    hours_option_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("hours_options.id"), nullable=True,
    )
    correction_total_hours: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0"),
    )
    extra_kilometers: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    odometer_start: Mapped[Decimal | None] = mapped_column(nullable=True)
    odometer_end: Mapped[Decimal | None] = mapped_column(nullable=True)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    week_approval_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("week_approvals.id"), nullable=True, index=True,
    )


class ComputedRideFieldsMixin:
    """Derived figures written back by the compensation calculator."""

    rate_row_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    holiday_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rest_calculated: Mapped[Decimal | None] = mapped_column(nullable=True)
    number_of_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    decimal_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    sick_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    leave_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    tax_free_compensation: Mapped[Decimal | None] = mapped_column(nullable=True)
    night_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    night_allowance: Mapped[Decimal | None] = mapped_column(nullable=True)
    kilometer_reimbursement: Mapped[Decimal | None] = mapped_column(nullable=True)
    consignment_fee: Mapped[Decimal | None] = mapped_column(nullable=True)
    saturday_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    sunday_holiday_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    vacation_hours_earned: Mapped[Decimal | None] = mapped_column(nullable=True)
    hourly_compensation: Mapped[Decimal | None] = mapped_column(nullable=True)
    period_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    period_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week_nr_in_period: Mapped[int | None] = mapped_column(Integer, nullable=True)
    calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_calculated(self) -> bool:
        return self.calculated_at is not None

    @property
    def total_compensation(self) -> Decimal | None:
        parts = (
            self.tax_free_compensation,
            self.night_allowance,
            self.kilometer_reimbursement,
            self.consignment_fee,
        )
        if any(p is None for p in parts):
            return None
        return sum(parts, Decimal("0"))


class RideRecord(RawRideFieldsMixin, ComputedRideFieldsMixin, TrackedBase):
    """Legacy single-driver ride record."""

    __tablename__ = "ride_records"

    __table_args__ = (
        Index("idx_ride_records_driver_date", "driver_id", "ride_date"),
    )

    ride_date: Mapped[date] = mapped_column(nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<RideRecord {self.id} driver={self.driver_id} date={self.ride_date}>"


class Ride(TrackedBase):
    """A shared ride that one or more drivers execute."""

    __tablename__ = "rides"

    planned_date: Mapped[date] = mapped_column(nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    executions: Mapped[list["RideExecution"]] = relationship(
        "RideExecution",
        back_populates="ride",
        lazy="selectin",
    )


class RideExecution(RawRideFieldsMixin, ComputedRideFieldsMixin, TrackedBase):
    """One driver's execution of a shared ride."""

    __tablename__ = "ride_executions"

    __table_args__ = (
        UniqueConstraint("ride_id", "driver_id", name="uq_ride_executions_ride_driver"),
        CheckConstraint(
            enum_check("status", ExecutionStatus),
            name="ck_ride_executions_status",
        ),
    )

    ride_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("rides.id"), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExecutionStatus.PENDING.value,
    )
    container_waiting_time: Mapped[timedelta | None] = mapped_column(nullable=True)
    exceeding_container_waiting_time: Mapped[Decimal | None] = mapped_column(nullable=True)

    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    ride: Mapped[Ride] = relationship("Ride", back_populates="executions", lazy="joined")

    @property
    def execution_status(self) -> ExecutionStatus:
        return ExecutionStatus(self.status)

    @property
    def ride_date(self) -> date:
        return self.ride.planned_date

    def __repr__(self) -> str:
        return f"<RideExecution {self.id} ride={self.ride_id} driver={self.driver_id}>"
