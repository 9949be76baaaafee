"""
CompensationCalculator -- resolves reference rows and runs the engines.

Responsibility:
    ``calculate(inputs)`` validates the raw inputs, resolves the hours code
    (falling back to the configured default code when none is given), the
    optional hours option, the driver's compensation settings, the rate row
    for the ride date, the holiday name and the vacation accrual, then calls
    the pure ``compute_compensation`` engine.

Architecture position:
    Services -- composes kernel lookups with the pure ``ridepay_engines``
    calculators and is injected into the kernel's recalculation path as
    its ``RideCalculator``.  The default hours code is a constructor
    argument taken from configuration, never a constant.

Invariants enforced:
    - Nothing is resolved to a substitute: a missing rate row, hours code,
      explicit hours option or settings row fails the whole calculation.
    - Validation runs before any lookup; invalid inputs never reach an
      engine.
    - Re-running on unchanged inputs and reference data gives an equal
      result.

Failure modes:
    - RideValidationError, NoApplicableRateError, MissingHoursCodeError,
      MissingHoursOptionError, MissingDriverSettingsError.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from ridepay_engines.compensation import compute_compensation
from ridepay_engines.holidays import DutchHolidayCalendar, HolidayCalendar, resolve_holiday_name
from ridepay_kernel.domain.dtos import CompensationResult, RideInputs
from ridepay_kernel.domain.validation import validate_ride_inputs
from ridepay_kernel.exceptions import MissingHoursCodeError, MissingHoursOptionError
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.reference import HoursCode, HoursOption
from ridepay_kernel.services.driver_settings_service import DriverSettingsService
from ridepay_kernel.services.rate_service import RateTableService
from ridepay_services.vacation_service import VacationAccrualService

logger = get_logger("services.compensation")


class CompensationCalculator:
    """
    Contract:
        ``calculate`` is read-only: it queries reference tables and returns
        a frozen ``CompensationResult``.  Writing the result back onto a
        record is the adapters' job.
    """

    def __init__(
        self,
        session: Session,
        default_hours_code_id: UUID,
        calendar: HolidayCalendar | None = None,
    ):
        self.session = session
        self._default_hours_code_id = default_hours_code_id
        self._calendar = calendar or DutchHolidayCalendar()
        self._rates = RateTableService(session)
        self._settings = DriverSettingsService(session)
        self._vacation = VacationAccrualService(session)

    def resolve_hours_code(self, hours_code_id: UUID | None) -> HoursCode:
        code_id = hours_code_id or self._default_hours_code_id
        code = self.session.get(HoursCode, code_id)
        if code is None:
            raise MissingHoursCodeError(str(code_id))
        return code

    def resolve_hours_option(self, hours_option_id: UUID | None) -> HoursOption | None:
        if hours_option_id is None:
            return None
        option = self.session.get(HoursOption, hours_option_id)
        if option is None:
            raise MissingHoursOptionError(str(hours_option_id))
        return option

    def calculate(self, inputs: RideInputs) -> CompensationResult:
        validate_ride_inputs(inputs)

        code = self.resolve_hours_code(inputs.hours_code_id)
        option = self.resolve_hours_option(inputs.hours_option_id)
        option_kind = option.option_kind if option is not None else None
        settings = self._settings.get(inputs.driver_id)
        rate = self._rates.resolve(inputs.ride_date)

        result = compute_compensation(
            inputs=inputs,
            rate=rate,
            settings=settings,
            kind=code.code_kind,
            option=option_kind,
            holiday_name=resolve_holiday_name(self._calendar, inputs.ride_date, option_kind),
            vacation_hours_per_day=self._vacation.earned_hours(inputs.driver_id, inputs.ride_date),
        )

        logger.info(
            "compensation_calculated",
            extra={
                "driver_id": str(inputs.driver_id),
                "ride_date": inputs.ride_date.isoformat(),
                "hours_code_kind": code.kind,
                "hours_option_kind": option.kind if option is not None else None,
                "rate_row_id": str(rate.id),
                "decimal_hours": str(result.decimal_hours),
            },
        )
        return result
