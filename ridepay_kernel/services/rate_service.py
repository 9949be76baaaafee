"""
RateTableService -- resolves the CAO rate row effective on a date.

Responsibility:
    ``resolve(date)`` selects, among all rows whose validity window contains
    the date, the one with the latest start date and returns it as a frozen
    ``RateRow``.

Architecture position:
    Kernel > Services.  The compensation calculator is its only caller in
    the pipeline; the engines receive the resolved ``RateRow``.

Failure modes:
    - NoApplicableRateError: no row covers the date.  Fatal for the ride
      record being calculated; never substituted with a default.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import or_, select

from ridepay_kernel.domain.dtos import RateRow
from ridepay_kernel.exceptions import NoApplicableRateError
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.rate import CaoRateRow
from ridepay_kernel.services.base import BaseService

logger = get_logger("services.rate")


class RateTableService(BaseService[CaoRateRow]):

    def resolve(self, effective_date: date) -> RateRow:
        stmt = (
            select(CaoRateRow)
            .where(
                CaoRateRow.start_date <= effective_date,
                or_(CaoRateRow.end_date.is_(None), CaoRateRow.end_date >= effective_date),
            )
            .order_by(CaoRateRow.start_date.desc())
            .limit(1)
        )
        row = self.session.scalars(stmt).first()
        if row is None:
            logger.warning(
                "rate_row_missing",
                extra={"effective_date": effective_date.isoformat()},
            )
            raise NoApplicableRateError(effective_date.isoformat())
        return row.to_dto()
