"""
Module: ridepay_kernel.models.rate
Responsibility: ORM persistence for CAO rate table rows.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - end_date, when present, is not before start_date (check constraint).
    - Overlapping windows are tolerated; RateTableService resolves them by
      taking the most recently started row.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from ridepay_kernel.db.base import Base
from ridepay_kernel.domain.dtos import RateRow


class CaoRateRow(Base):
    """One validity window of collective labor agreement constants."""

    __tablename__ = "cao_rate_rows"

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_cao_rate_rows_window",
        ),
        Index("idx_cao_rate_rows_start", "start_date"),
    )

    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[date | None] = mapped_column(nullable=True)

    standard_untaxed_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    multi_day_after_17_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    multi_day_before_17_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    shift_more_than_12h_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    multi_day_taxed_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    multi_day_untaxed_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    consignment_untaxed_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    consignment_taxed_allowance: Mapped[Decimal] = mapped_column(nullable=False)

    commute_min_km: Mapped[Decimal] = mapped_column(nullable=False)
    commute_max_km: Mapped[Decimal] = mapped_column(nullable=False)
    kilometers_allowance: Mapped[Decimal] = mapped_column(nullable=False)

    night_hours_allowance_rate: Mapped[Decimal] = mapped_column(nullable=False)
    night_time_start: Mapped[timedelta] = mapped_column(nullable=False)
    night_time_end: Mapped[timedelta] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<CaoRateRow {self.start_date}..{self.end_date or 'open'}>"

    def to_dto(self) -> RateRow:
        return RateRow(
            id=self.id,
            start_date=self.start_date,
            end_date=self.end_date,
            standard_untaxed_allowance=self.standard_untaxed_allowance,
            multi_day_after_17_allowance=self.multi_day_after_17_allowance,
            multi_day_before_17_allowance=self.multi_day_before_17_allowance,
            shift_more_than_12h_allowance=self.shift_more_than_12h_allowance,
            multi_day_taxed_allowance=self.multi_day_taxed_allowance,
            multi_day_untaxed_allowance=self.multi_day_untaxed_allowance,
            consignment_untaxed_allowance=self.consignment_untaxed_allowance,
            consignment_taxed_allowance=self.consignment_taxed_allowance,
            commute_min_km=self.commute_min_km,
            commute_max_km=self.commute_max_km,
            kilometers_allowance=self.kilometers_allowance,
            night_hours_allowance_rate=self.night_hours_allowance_rate,
            night_time_start=self.night_time_start,
            night_time_end=self.night_time_end,
        )
