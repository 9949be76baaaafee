"""ORM models.  Importing this package registers every table on Base.metadata."""

from ridepay_kernel.models.approval import PeriodApproval, WeekApproval
from ridepay_kernel.models.dispute import (
    ExecutionDispute,
    ExecutionDisputeComment,
    RideDispute,
    RideDisputeComment,
)
from ridepay_kernel.models.driver import DriverCompensationSettings, EmploymentContract
from ridepay_kernel.models.rate import CaoRateRow
from ridepay_kernel.models.reference import HoursCode, HoursOption, VacationRight
from ridepay_kernel.models.ride import Ride, RideExecution, RideRecord

__all__ = [
    "CaoRateRow",
    "DriverCompensationSettings",
    "EmploymentContract",
    "ExecutionDispute",
    "ExecutionDisputeComment",
    "HoursCode",
    "HoursOption",
    "PeriodApproval",
    "Ride",
    "RideDispute",
    "RideDisputeComment",
    "RideExecution",
    "RideRecord",
    "VacationRight",
    "WeekApproval",
]
