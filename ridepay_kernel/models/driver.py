"""
Module: ridepay_kernel.models.driver
Responsibility: ORM persistence for a driver's compensation settings and
    employment contracts.  Driver master data itself lives outside the
    kernel; rows here reference it by ``driver_id`` only.

Architecture position: Kernel > Models.

Invariants enforced:
    - One compensation settings row per driver (uq_driver_settings_driver).
    - percentage_of_work lies in 0..100 and distances/rates are not negative.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ridepay_kernel.db.base import TrackedBase, UUIDString
from ridepay_kernel.domain.dtos import DriverCompensation


class DriverCompensationSettings(TrackedBase):
    """Per-driver constants; created at onboarding with defaults."""

    __tablename__ = "driver_compensation_settings"

    __table_args__ = (
        UniqueConstraint("driver_id", name="uq_driver_settings_driver"),
        CheckConstraint(
            "percentage_of_work >= 0 AND percentage_of_work <= 100",
            name="ck_driver_settings_percentage",
        ),
        CheckConstraint(
            "kilometers_one_way_value >= 0 AND driver_rate_per_hour >= 0",
            name="ck_driver_settings_non_negative",
        ),
    )

    driver_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    percentage_of_work: Mapped[Decimal] = mapped_column(nullable=False)
    driver_rate_per_hour: Mapped[Decimal] = mapped_column(nullable=False)
    night_hours_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    night_hours_whole_hours: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    kilometer_allowance_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    kilometers_one_way_value: Mapped[Decimal] = mapped_column(nullable=False)

    def to_dto(self) -> DriverCompensation:
        return DriverCompensation(
            driver_id=self.driver_id,
            percentage_of_work=self.percentage_of_work,
            driver_rate_per_hour=self.driver_rate_per_hour,
            night_hours_allowed=self.night_hours_allowed,
            night_hours_whole_hours=self.night_hours_whole_hours,
            kilometer_allowance_enabled=self.kilometer_allowance_enabled,
            kilometers_one_way_value=self.kilometers_one_way_value,
        )


class EmploymentContract(TrackedBase):
    """A driver's employment window; ``last_working_day`` is open when null."""

    __tablename__ = "employment_contracts"

    __table_args__ = (
        CheckConstraint(
            "last_working_day IS NULL OR last_working_day >= date_of_employment",
            name="ck_employment_contracts_window",
        ),
        Index("idx_employment_contracts_driver", "driver_id", "date_of_employment"),
    )

    driver_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(nullable=False)
    date_of_employment: Mapped[date] = mapped_column(nullable=False)
    last_working_day: Mapped[date | None] = mapped_column(nullable=True)

    def covers(self, value: date) -> bool:
        return self.date_of_employment <= value and (
            self.last_working_day is None or self.last_working_day >= value
        )
