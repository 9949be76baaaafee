"""Kernel services.  All of them flush only; the caller owns the transaction."""

from ridepay_kernel.services.driver_settings_service import DriverSettingsService
from ridepay_kernel.services.execution_dispute_service import ExecutionDisputeService
from ridepay_kernel.services.period_approval_service import PeriodApprovalService
from ridepay_kernel.services.rate_service import RateTableService
from ridepay_kernel.services.ride_adapters import RideExecutionAdapter, RideRecordAdapter
from ridepay_kernel.services.ride_dispute_service import RideDisputeService
from ridepay_kernel.services.ride_execution_service import RideExecutionService
from ridepay_kernel.services.ride_recalculation_service import RideRecalculationService
from ridepay_kernel.services.ride_record_service import RideRecordService
from ridepay_kernel.services.week_approval_service import WeekApprovalService

__all__ = [
    "DriverSettingsService",
    "ExecutionDisputeService",
    "PeriodApprovalService",
    "RateTableService",
    "RideDisputeService",
    "RideExecutionAdapter",
    "RideExecutionService",
    "RideRecalculationService",
    "RideRecordAdapter",
    "RideRecordService",
    "WeekApprovalService",
]
