"""
VacationAccrualService -- hours of paid leave earned by one work day.

Responsibility:
    ``earned_hours(driver_id, date)`` resolves the employment contract
    active on the date, the driver's age on 31 December of that year and
    the matching entitlement bracket, then spreads the entitlement over the
    working weekdays of the contract's part of the year.

Architecture position:
    Services -- kernel lookups around the arithmetic in
    ``ridepay_engines.vacation``.

Invariants enforced:
    - A contract whose last working day equals the date still accrues;
      one day later nothing accrues.
    - No contract, no bracket or zero working days gives 0, never an error.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select

from ridepay_engines.vacation import (
    age_at_year_end,
    contract_window_in_year,
    count_weekdays,
    hours_per_work_day,
)
from ridepay_kernel.domain.values import ZERO
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.driver import EmploymentContract
from ridepay_kernel.models.reference import VacationRight
from ridepay_kernel.services.base import BaseService

logger = get_logger("services.vacation")


class VacationAccrualService(BaseService[EmploymentContract]):

    def register_contract(
        self,
        driver_id: UUID,
        actor_id: UUID,
        *,
        date_of_birth: date,
        date_of_employment: date,
        last_working_day: date | None = None,
    ) -> EmploymentContract:
        contract = EmploymentContract(
            driver_id=driver_id,
            date_of_birth=date_of_birth,
            date_of_employment=date_of_employment,
            last_working_day=last_working_day,
            created_by_id=actor_id,
        )
        self.session.add(contract)
        self.session.flush()
        logger.info(
            "employment_contract_registered",
            extra={
                "driver_id": str(driver_id),
                "date_of_employment": date_of_employment.isoformat(),
                "last_working_day": last_working_day.isoformat() if last_working_day else None,
            },
        )
        return contract

    def active_contract(self, driver_id: UUID, on: date) -> EmploymentContract | None:
        return self.session.scalars(
            select(EmploymentContract)
            .where(
                EmploymentContract.driver_id == driver_id,
                EmploymentContract.date_of_employment <= on,
                or_(
                    EmploymentContract.last_working_day.is_(None),
                    EmploymentContract.last_working_day >= on,
                ),
            )
            .order_by(EmploymentContract.date_of_employment.desc())
            .limit(1)
        ).first()

    def entitlement_days(self, age: int, on: date) -> int | None:
        rights = self.session.scalars(
            select(VacationRight)
            .where(
                VacationRight.start_date <= on,
                or_(VacationRight.end_date.is_(None), VacationRight.end_date >= on),
            )
            .order_by(VacationRight.start_date.desc())
        )
        for right in rights:
            if right.matches_age(age):
                return right.right_days
        return None

    def earned_hours(self, driver_id: UUID, on: date) -> Decimal:
        contract = self.active_contract(driver_id, on)
        if contract is None:
            return ZERO

        age = age_at_year_end(contract.date_of_birth, on.year)
        right_days = self.entitlement_days(age, on)
        if right_days is None:
            logger.warning(
                "vacation_bracket_missing",
                extra={"driver_id": str(driver_id), "age": age},
            )
            return ZERO

        window_start, window_end = contract_window_in_year(
            contract.date_of_employment, contract.last_working_day, on.year,
        )
        if not window_start <= on <= window_end:
            return ZERO
        return hours_per_work_day(right_days, count_weekdays(window_start, window_end))
