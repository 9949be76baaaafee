"""
Module: ridepay_kernel.models.approval
Responsibility: ORM persistence for week and period sign-off.

Architecture position: Kernel > Models.

Invariants enforced:
    - One week approval per (driver, ISO year, ISO week) and one period
      approval per (driver, year, period number); the unique constraints are
      what make lazy creation idempotent under concurrent writers.
    - Status values are a closed set (check constraints).
    - Cached totals stay NULL until the driver signs the period.

Failure modes:
    - IntegrityError on a duplicate key; WeekApprovalService re-fetches.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ridepay_kernel.db.base import TrackedBase, UUIDString, enum_check
from ridepay_kernel.domain.dtos import PeriodApprovalInfo, Signature, WeekApprovalInfo
from ridepay_kernel.domain.workflow import PeriodApprovalStatus, WeekApprovalStatus


class WeekApproval(TrackedBase):
    """Admin-then-driver sign-off of one driver's ISO week."""

    __tablename__ = "week_approvals"

    __table_args__ = (
        UniqueConstraint(
            "driver_id", "year", "week_number", name="uq_week_approvals_driver_week",
        ),
        CheckConstraint(
            enum_check("status", WeekApprovalStatus),
            name="ck_week_approvals_status",
        ),
    )

    driver_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WeekApprovalStatus.PENDING_ADMIN.value,
    )
    admin_user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    admin_allowed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    driver_signed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    invalidated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    period_approval_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("period_approvals.id"), nullable=True,
    )

    @property
    def approval_status(self) -> WeekApprovalStatus:
        return WeekApprovalStatus(self.status)

    def __repr__(self) -> str:
        return (
            f"<WeekApproval driver={self.driver_id} "
            f"{self.year}-W{self.week_number:02d} status={self.status}>"
        )

    def to_dto(self) -> WeekApprovalInfo:
        return WeekApprovalInfo(
            id=self.id,
            driver_id=self.driver_id,
            year=self.year,
            week_number=self.week_number,
            period_number=self.period_number,
            status=self.approval_status,
            admin_user_id=self.admin_user_id,
            admin_allowed_at=self.admin_allowed_at,
            driver_signed_at=self.driver_signed_at,
            invalidated_at=self.invalidated_at,
            period_approval_id=self.period_approval_id,
        )


class PeriodApproval(TrackedBase):
    """Driver-then-admin sign-off of one driver's four-week period."""

    __tablename__ = "period_approvals"

    __table_args__ = (
        UniqueConstraint(
            "driver_id", "year", "period_number", name="uq_period_approvals_driver_period",
        ),
        CheckConstraint(
            enum_check("status", PeriodApprovalStatus),
            name="ck_period_approvals_status",
        ),
    )

    driver_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    from_date: Mapped[date] = mapped_column(nullable=False)
    to_date: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PeriodApprovalStatus.NOT_READY.value,
    )

    total_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_compensation: Mapped[Decimal | None] = mapped_column(nullable=True)
    totals_computed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    driver_signed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    driver_signer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    driver_ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    driver_user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)

    admin_signed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    admin_signer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    admin_ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    admin_user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)

    invalidated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def approval_status(self) -> PeriodApprovalStatus:
        return PeriodApprovalStatus(self.status)

    def __repr__(self) -> str:
        return (
            f"<PeriodApproval driver={self.driver_id} "
            f"{self.year}-P{self.period_number:02d} status={self.status}>"
        )

    def to_dto(self) -> PeriodApprovalInfo:
        driver_signature = None
        if self.driver_signed_at is not None:
            driver_signature = Signature(
                signed_at=self.driver_signed_at,
                signer_id=self.driver_signer_id,
                ip_address=self.driver_ip_address,
                user_agent=self.driver_user_agent,
            )
        admin_signature = None
        if self.admin_signed_at is not None:
            admin_signature = Signature(
                signed_at=self.admin_signed_at,
                signer_id=self.admin_signer_id,
                ip_address=self.admin_ip_address,
                user_agent=self.admin_user_agent,
            )
        return PeriodApprovalInfo(
            id=self.id,
            driver_id=self.driver_id,
            year=self.year,
            period_number=self.period_number,
            from_date=self.from_date,
            to_date=self.to_date,
            status=self.approval_status,
            total_hours=self.total_hours,
            total_compensation=self.total_compensation,
            driver_signature=driver_signature,
            admin_signature=admin_signature,
            invalidated_at=self.invalidated_at,
        )
