"""
Module: ridepay_engines.kilometers
Responsibility:
    Kilometer-allowance calculator: the home-work commute contribution and
    the reimbursement for extra kilometers driven.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The commute distance is tiered by the rate row: nothing below the
      minimum, the part above the minimum, capped at (maximum - minimum).
    - ``NO_ALLOWANCE`` suppresses the whole reimbursement.  Suppressing codes
      and ``NO_COMMUTING_ALLOWANCE`` drop only the commute contribution.
    - One-way codes (trip departure and arrival) pay the commute once; every
      other working code pays it twice.  Nothing is paid without net hours.
"""

from __future__ import annotations

from decimal import Decimal

from ridepay_kernel.domain.dtos import RateRow
from ridepay_kernel.domain.values import ZERO, HoursCodeKind, HoursOptionKind, round2

COMMUTE_SUPPRESSING_KINDS = frozenset({
    HoursCodeKind.HOLIDAY,
    HoursCodeKind.SICK,
    HoursCodeKind.TIME_FOR_TIME,
    HoursCodeKind.UNPAID,
    HoursCodeKind.INTERMEDIATE,
})

COMMUTE_SUPPRESSING_OPTIONS = frozenset({
    HoursOptionKind.NO_ALLOWANCE,
    HoursOptionKind.NO_COMMUTING_ALLOWANCE,
})

ONE_WAY_KINDS = frozenset({
    HoursCodeKind.DEPARTURE,
    HoursCodeKind.ARRIVAL,
})


def home_work_distance(
    rate: RateRow,
    enabled: bool,
    one_way_km: Decimal,
) -> Decimal:
    """Reimbursable part of a one-way commute."""
    if not enabled or one_way_km < rate.commute_min_km:
        return ZERO
    if one_way_km > rate.commute_max_km:
        return rate.commute_max_km - rate.commute_min_km
    return one_way_km - rate.commute_min_km


def kilometer_reimbursement(
    *,
    rate: RateRow,
    kind: HoursCodeKind,
    option: HoursOptionKind | None,
    extra_kilometers: Decimal,
    net_hours: Decimal,
    commute_distance: Decimal,
) -> Decimal:
    if option is HoursOptionKind.NO_ALLOWANCE:
        return ZERO

    amount = extra_kilometers * rate.kilometers_allowance

    if kind in COMMUTE_SUPPRESSING_KINDS or option in COMMUTE_SUPPRESSING_OPTIONS:
        return round2(amount)
    if net_hours <= ZERO:
        return round2(amount)

    trips = 1 if kind in ONE_WAY_KINDS else 2
    amount += trips * commute_distance * rate.kilometers_allowance
    return round2(amount)
