"""
Module: ridepay_kernel.models.reference
Responsibility: ORM persistence for hours codes, hours options and the
    age-bracketed vacation entitlement table.

Architecture position: Kernel > Models.

Invariants enforced:
    - ``kind`` is one of the closed HoursCodeKind / HoursOptionKind values.
      Display names are free text; calculators only ever branch on ``kind``.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ridepay_kernel.db.base import Base, enum_check
from ridepay_kernel.domain.values import HoursCodeKind, HoursOptionKind


class HoursCode(Base):
    """Classifies what kind of work day a ride record represents."""

    __tablename__ = "hours_codes"

    __table_args__ = (
        CheckConstraint(enum_check("kind", HoursCodeKind), name="ck_hours_codes_kind"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[str] = mapped_column(String(40), nullable=False)

    @property
    def code_kind(self) -> HoursCodeKind:
        return HoursCodeKind(self.kind)

    def __repr__(self) -> str:
        return f"<HoursCode {self.name} ({self.kind})>"


class HoursOption(Base):
    """Secondary modifier on a ride record."""

    __tablename__ = "hours_options"

    __table_args__ = (
        CheckConstraint(enum_check("kind", HoursOptionKind), name="ck_hours_options_kind"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[str] = mapped_column(String(40), nullable=False)

    @property
    def option_kind(self) -> HoursOptionKind:
        return HoursOptionKind(self.kind)

    def __repr__(self) -> str:
        return f"<HoursOption {self.name} ({self.kind})>"


class VacationRight(Base):
    """Vacation days per year for an age bracket, valid over a date window."""

    __tablename__ = "vacation_rights"

    __table_args__ = (
        CheckConstraint("right_days >= 0", name="ck_vacation_rights_days"),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_vacation_rights_window",
        ),
    )

    age_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    age_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    right_days: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[date | None] = mapped_column(nullable=True)

    def matches_age(self, age: int) -> bool:
        if self.age_from is not None and age < self.age_from:
            return False
        if self.age_to is not None and age > self.age_to:
            return False
        return True
