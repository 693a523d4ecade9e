"""
Service Layer - ScanCoordinator, RescanScheduler and WatchService.
"""

from passcan.services.rescan_scheduler import RescanScheduler, SchedulerState
from passcan.services.scan_coordinator import ScanCoordinator
from passcan.services.scan_models import FlushResult, ScanRequest, SingleScanResult
from passcan.services.watch_service import (
    PathValidationError,
    WatchService,
    WatchStats,
)

__all__ = [
    # Scanning
    "ScanCoordinator",
    "ScanRequest",
    "SingleScanResult",
    # Watch mode
    "RescanScheduler",
    "SchedulerState",
    "FlushResult",
    "WatchService",
    "WatchStats",
    "PathValidationError",
]
