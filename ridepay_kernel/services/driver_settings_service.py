"""
DriverSettingsService -- per-driver compensation settings.

Responsibility:
    Creates a driver's settings once at onboarding from the configured
    defaults, edits them later, and resolves them for the calculator.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - At most one settings row per driver (unique constraint); creating
      defaults twice returns the existing row.
    - Every write re-validates the whole settings set.

Failure modes:
    - MissingDriverSettingsError from ``get`` when the driver was never
      onboarded.  The calculator propagates it; no default is substituted.
    - RideValidationError on out-of-range values.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ridepay_kernel.domain.dtos import DriverCompensation
from ridepay_kernel.domain.validation import validate_compensation_settings, validate_editable
from ridepay_kernel.exceptions import MissingDriverSettingsError
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.driver import DriverCompensationSettings
from ridepay_kernel.services.base import BaseService

logger = get_logger("services.driver_settings")

_EDITABLE_FIELDS = frozenset({
    "percentage_of_work",
    "driver_rate_per_hour",
    "night_hours_allowed",
    "night_hours_whole_hours",
    "kilometer_allowance_enabled",
    "kilometers_one_way_value",
})


class DriverSettingsService(BaseService[DriverCompensationSettings]):

    def _find(self, driver_id: UUID) -> DriverCompensationSettings | None:
        return self.session.scalars(
            select(DriverCompensationSettings).where(
                DriverCompensationSettings.driver_id == driver_id
            )
        ).first()

    def get(self, driver_id: UUID) -> DriverCompensation:
        settings = self._find(driver_id)
        if settings is None:
            raise MissingDriverSettingsError(str(driver_id))
        return settings.to_dto()

    def create_defaults(
        self,
        driver_id: UUID,
        actor_id: UUID,
        *,
        percentage_of_work: Decimal,
        driver_rate_per_hour: Decimal,
        night_hours_allowed: bool = False,
        night_hours_whole_hours: bool = False,
        kilometer_allowance_enabled: bool = False,
        kilometers_one_way_value: Decimal = Decimal("0"),
    ) -> DriverCompensation:
        """Onboarding settings; returns the existing row when already onboarded."""
        existing = self._find(driver_id)
        if existing is not None:
            return existing.to_dto()

        validate_compensation_settings(
            percentage_of_work=percentage_of_work,
            driver_rate_per_hour=driver_rate_per_hour,
            kilometers_one_way_value=kilometers_one_way_value,
        )
        settings = DriverCompensationSettings(
            driver_id=driver_id,
            percentage_of_work=percentage_of_work,
            driver_rate_per_hour=driver_rate_per_hour,
            night_hours_allowed=night_hours_allowed,
            night_hours_whole_hours=night_hours_whole_hours,
            kilometer_allowance_enabled=kilometer_allowance_enabled,
            kilometers_one_way_value=kilometers_one_way_value,
            created_by_id=actor_id,
        )
        self.session.add(settings)
        self.session.flush()

        logger.info(
            "driver_settings_created",
            extra={"driver_id": str(driver_id), "actor_id": str(actor_id)},
        )
        return settings.to_dto()

    def update(self, driver_id: UUID, actor_id: UUID, /, **changes) -> DriverCompensation:
        """
        Apply ``changes`` to the driver's settings.

        Raises:
            RideValidationError: for a field that is not editable, or if the
                resulting settings are out of range.
            MissingDriverSettingsError: if the driver has no settings.
        """
        validate_editable(changes, _EDITABLE_FIELDS)

        settings = self._find(driver_id)
        if settings is None:
            raise MissingDriverSettingsError(str(driver_id))

        merged = {name: getattr(settings, name) for name in _EDITABLE_FIELDS}
        merged.update(changes)
        validate_compensation_settings(
            percentage_of_work=Decimal(merged["percentage_of_work"]),
            driver_rate_per_hour=Decimal(merged["driver_rate_per_hour"]),
            kilometers_one_way_value=Decimal(merged["kilometers_one_way_value"]),
        )

        for name, value in changes.items():
            setattr(settings, name, value)
        settings.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "driver_settings_updated",
            extra={
                "driver_id": str(driver_id),
                "actor_id": str(actor_id),
                "fields": sorted(changes),
            },
        )
        return settings.to_dto()
