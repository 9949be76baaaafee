"""
ridepay_config.seeder -- idempotent seeding of configuration reference rows.

Responsibility:
    ``ReferenceDataSeeder`` copies the CAO rate rows, hours codes, hours
    options and vacation entitlement brackets of a ``RidePayConfig`` into
    the database.

Architecture position:
    Configuration bridge -- writes kernel reference models from the parsed
    ``RidePayConfig``.  The kernel never imports this package.

Invariants enforced:
    - Idempotent: hours codes and options are keyed by their configured id,
      rate rows by start date, vacation brackets by (age range, start date).
      Seeding the same configuration twice inserts nothing the second time.
    - Existing rows are never updated; reference data edits are explicit.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from ridepay_config.schema import RidePayConfig
from ridepay_kernel.logging_config import get_logger
from ridepay_kernel.models.rate import CaoRateRow
from ridepay_kernel.models.reference import HoursCode, HoursOption, VacationRight

logger = get_logger("config.seeder")


@dataclass(frozen=True)
class SeedReport:
    rate_rows: int = 0
    hours_codes: int = 0
    hours_options: int = 0
    vacation_rights: int = 0

    @property
    def total(self) -> int:
        return self.rate_rows + self.hours_codes + self.hours_options + self.vacation_rights


class ReferenceDataSeeder:
    """Inserts the reference rows of a configuration set that are missing."""

    def __init__(self, session: Session):
        self.session = session

    def seed(self, config: RidePayConfig) -> SeedReport:
        report = SeedReport(
            rate_rows=self._seed_rate_rows(config),
            hours_codes=self._seed_hours_codes(config),
            hours_options=self._seed_hours_options(config),
            vacation_rights=self._seed_vacation_rights(config),
        )
        self.session.flush()
        logger.info(
            "reference_data_seeded",
            extra={
                "config_id": config.config_id,
                "config_version": config.version,
                "rate_rows": report.rate_rows,
                "hours_codes": report.hours_codes,
                "hours_options": report.hours_options,
                "vacation_rights": report.vacation_rights,
            },
        )
        return report

    def _seed_rate_rows(self, config: RidePayConfig) -> int:
        existing = set(self.session.scalars(select(CaoRateRow.start_date)))
        inserted = 0
        for row in config.rate_rows:
            if row.start_date in existing:
                continue
            self.session.add(CaoRateRow(
                start_date=row.start_date,
                end_date=row.end_date,
                standard_untaxed_allowance=row.standard_untaxed_allowance,
                multi_day_after_17_allowance=row.multi_day_after_17_allowance,
                multi_day_before_17_allowance=row.multi_day_before_17_allowance,
                shift_more_than_12h_allowance=row.shift_more_than_12h_allowance,
                multi_day_taxed_allowance=row.multi_day_taxed_allowance,
                multi_day_untaxed_allowance=row.multi_day_untaxed_allowance,
                consignment_untaxed_allowance=row.consignment_untaxed_allowance,
                consignment_taxed_allowance=row.consignment_taxed_allowance,
                commute_min_km=row.commute_min_km,
                commute_max_km=row.commute_max_km,
                kilometers_allowance=row.kilometers_allowance,
                night_hours_allowance_rate=row.night_hours_allowance_rate,
                night_time_start=row.night_time_start,
                night_time_end=row.night_time_end,
            ))
            existing.add(row.start_date)
            inserted += 1
        return inserted

    def _seed_hours_codes(self, config: RidePayConfig) -> int:
        existing = set(self.session.scalars(select(HoursCode.id)))
        inserted = 0
        for code in config.hours_codes:
            if code.id in existing:
                continue
            self.session.add(HoursCode(id=code.id, name=code.name, kind=code.kind))
            inserted += 1
        return inserted

    def _seed_hours_options(self, config: RidePayConfig) -> int:
        existing = set(self.session.scalars(select(HoursOption.id)))
        inserted = 0
        for option in config.hours_options:
            if option.id in existing:
                continue
            self.session.add(HoursOption(id=option.id, name=option.name, kind=option.kind))
            inserted += 1
        return inserted

    def _seed_vacation_rights(self, config: RidePayConfig) -> int:
        existing = {
            (r.age_from, r.age_to, r.start_date)
            for r in self.session.scalars(select(VacationRight))
        }
        inserted = 0
        for right in config.vacation_rights:
            key = (right.age_from, right.age_to, right.start_date)
            if key in existing:
                continue
            self.session.add(VacationRight(
                age_from=right.age_from,
                age_to=right.age_to,
                right_days=right.right_days,
                start_date=right.start_date,
                end_date=right.end_date,
            ))
            existing.add(key)
            inserted += 1
        return inserted
