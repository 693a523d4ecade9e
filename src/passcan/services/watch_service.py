"""
Watch Service for continuous scanning.

Wires the filesystem watcher to the re-scan scheduler, runs the initial full
scan alongside it, and tracks session statistics.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from passcan.core.errors import WatchError
from passcan.core.file_events import ChangeEvent
from passcan.core.report import Report
from passcan.core.watch_config import WatchConfig
from passcan.infrastructure.file_watcher import FileWatcherInterface
from passcan.services.rescan_scheduler import FlushCallback, RescanScheduler
from passcan.services.scan_coordinator import ScanCoordinator
from passcan.services.scan_models import FlushResult, ScanRequest

logger = logging.getLogger(__name__)


@dataclass
class WatchStats:
    """
    Statistics for the watch service.

    Tracks events received, flushes, finding churn and error counts.
    """

    started_at: datetime = field(default_factory=datetime.now)
    events_received: int = 0
    flushes: int = 0
    findings_added: int = 0
    findings_removed: int = 0
    last_flush_at: datetime | None = None
    last_flush_duration_ms: float = 0.0
    full_scan_completed: bool = False
    errors: int = 0

    def to_dict(self) -> dict:
        """Serialize stats to dictionary for JSON reporting."""
        return {
            "started_at": self.started_at.isoformat(),
            "events_received": self.events_received,
            "flushes": self.flushes,
            "findings_added": self.findings_added,
            "findings_removed": self.findings_removed,
            "last_flush_at": (
                self.last_flush_at.isoformat() if self.last_flush_at else None
            ),
            "last_flush_duration_ms": self.last_flush_duration_ms,
            "full_scan_completed": self.full_scan_completed,
            "errors": self.errors,
        }


class PathValidationError(WatchError):
    """Raised when the watch path is missing or not a directory."""

    pass


class WatchService:
    """
    Watch session over one root directory.

    start() begins watching first and then launches the full scan in a
    worker thread, so no change made during the initial scan is missed.
    Report updates from change events carry the event time and win over
    the full scan's result for the same path when they are newer.

    Attributes:
        config: Watch configuration
    """

    def __init__(
        self,
        coordinator: ScanCoordinator,
        file_watcher: FileWatcherInterface,
        config: WatchConfig,
        request: Optional[ScanRequest] = None,
        on_flush: Optional[FlushCallback] = None,
        health_check_interval: float = 1.0,
    ):
        """
        Initialize the watch service.

        Args:
            coordinator: Runs the full scan and single-file re-scans
            file_watcher: File system watcher implementation
            config: Watch configuration
            request: Scan request; built from config.watch_path when omitted
            on_flush: Called with every flush result
            health_check_interval: Seconds between watcher liveness checks
        """
        self._coordinator = coordinator
        self._file_watcher = file_watcher
        self._config = config
        self._request = request or ScanRequest(root=config.watch_path, watch=True)
        self._on_flush_callback = on_flush
        self._health_check_interval = health_check_interval
        self._stats = WatchStats()
        self._report: Optional[Report] = None
        self._scheduler: Optional[RescanScheduler] = None
        self._full_scan: Optional[asyncio.Future] = None
        self._monitor_task: Optional[asyncio.Task] = None
        self._done: Optional[asyncio.Event] = None
        self._failure: Optional[WatchError] = None
        self._running = False

    @property
    def config(self) -> WatchConfig:
        """Get the watch configuration."""
        return self._config

    @property
    def report(self) -> Optional[Report]:
        """The live report of the current session."""
        return self._report

    async def start(self) -> Report:
        """
        Start the watch session.

        Returns:
            The live report, filled in as the full scan and flushes progress

        Raises:
            PathValidationError: If the path doesn't exist or isn't a directory
            WatchError: If the service is already running or watching fails to start
        """
        if self._running:
            raise WatchError("Watch service is already running")

        watch_path = self._config.watch_path.resolve()
        self._validate_path(watch_path)

        logger.info(
            f"Starting watch service for: {watch_path}",
            extra={
                "watch_path": str(watch_path),
                "debounce_ms": self._config.debounce_ms,
            },
        )

        self._stats = WatchStats()
        self._failure = None
        self._done = asyncio.Event()
        self._report = Report(str(watch_path), started_at=time.time())
        self._coordinator.request = self._request
        self._scheduler = RescanScheduler(
            self._coordinator,
            self._report,
            self._config,
            on_flush=self._on_flush,
        )
        await self._scheduler.start()

        try:
            self._file_watcher.start(watch_path, self._on_file_event_sync)
        except Exception as e:
            await self._scheduler.stop()
            self._scheduler = None
            raise WatchError(f"Failed to watch {watch_path}: {e}") from e

        self._running = True

        loop = asyncio.get_running_loop()
        self._coordinator.reset_cancel()
        self._full_scan = loop.run_in_executor(
            None, self._coordinator.run_full, self._request, self._report
        )
        self._full_scan.add_done_callback(self._on_full_scan_done)
        self._monitor_task = asyncio.create_task(self._monitor(), name="passcan-watch-monitor")

        logger.info(
            "Watch service started",
            extra={
                "watch_path": str(watch_path),
                "config": self._config.to_dict(),
            },
        )
        return self._report

    async def wait_for_full_scan(self) -> Report:
        """Wait until the initial full scan has finished."""
        if self._full_scan is None or self._report is None:
            raise WatchError("Watch service is not running")
        await asyncio.shield(self._full_scan)
        return self._report

    async def wait(self) -> None:
        """
        Block until the session is stopped.

        Raises:
            WatchError: If the watcher died while the session was running
        """
        if self._done is None:
            raise WatchError("Watch service is not running")
        await self._done.wait()
        if self._failure is not None:
            raise self._failure

    async def stop(self) -> None:
        """
        Stop the watch session.

        Watching stops first. The scheduler then finishes the path it is
        flushing, and the full scan stops issuing new files.
        """
        if not self._running:
            logger.debug("Watch service is not running, nothing to stop")
            return

        logger.info("Stopping watch service...")
        self._running = False

        if self._monitor_task is not None:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None

        self._file_watcher.stop()

        if self._scheduler is not None:
            await self._scheduler.stop()
            self._stats.events_received = self._scheduler.events_received

        if self._full_scan is not None and not self._full_scan.done():
            self._coordinator.cancel()
            try:
                await self._full_scan
            except Exception:
                # Already logged by the done callback
                pass

        if self._done is not None:
            self._done.set()

        logger.info(
            "Watch service stopped",
            extra={"stats": self._stats.to_dict()},
        )

    def is_running(self) -> bool:
        """Check if the watch service is currently running."""
        return self._running

    def get_stats(self) -> WatchStats:
        """Get current watch statistics."""
        if self._scheduler is not None:
            self._stats.events_received = self._scheduler.events_received
        return self._stats

    def get_pending_count(self) -> int:
        """Get the number of pending events waiting to be processed."""
        if self._scheduler:
            return self._scheduler.get_pending_count()
        return 0

    def _validate_path(self, path: Path) -> None:
        """
        Validate that the path exists and is a directory.

        Raises:
            PathValidationError: If validation fails
        """
        if not path.exists():
            raise PathValidationError(f"Path does not exist: {path}")

        if not path.is_dir():
            raise PathValidationError(f"Path is not a directory: {path}")

    def _on_file_event_sync(self, event: ChangeEvent) -> None:
        """
        Synchronous callback for change events from the watcher thread.

        Args:
            event: The change event from the watcher
        """
        if not self._running or self._scheduler is None:
            return
        self._scheduler.submit(event)

    def _on_full_scan_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._stats.errors += 1
            logger.error(
                "Full scan failed: %s",
                str(error),
                extra={"error_type": type(error).__name__},
                exc_info=error,
            )
            return
        self._stats.full_scan_completed = True

    async def _on_flush(self, result: FlushResult) -> None:
        self._stats.flushes += 1
        self._stats.findings_added += result.findings_added
        self._stats.findings_removed += result.findings_removed
        self._stats.last_flush_at = datetime.now()
        self._stats.last_flush_duration_ms = result.duration_ms

        if self._on_flush_callback is not None:
            outcome = self._on_flush_callback(result)
            if asyncio.iscoroutine(outcome):
                await outcome

    async def _monitor(self) -> None:
        """Poll watcher liveness and end the session if it died."""
        while self._running:
            await asyncio.sleep(self._health_check_interval)
            if self._running and not self._file_watcher.is_running():
                self._stats.errors += 1
                self._failure = WatchError(
                    f"File watcher stopped unexpectedly for {self._config.watch_path}"
                )
                logger.error(str(self._failure))
                if self._done is not None:
                    self._done.set()
                return
