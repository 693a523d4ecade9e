"""
Scan Coordinator for full and single-file scans.

Fans files out to a pool of worker threads that pull from the walker's lazy
enumeration, match each file, and insert results into a shared Report.
Matching runs in the regex engine with the GIL released, so threads give
real parallelism without the pickling cost of a process pool.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from passcan.core.config import ScanConfig
from passcan.core.file_walker import FileWalker, FileWalkerInterface, WalkEntry
from passcan.core.matcher import Matcher, MatchTimeoutError
from passcan.core.report import Report, ReportDelta, SkipReason
from passcan.core.rules import RuleSet
from passcan.core.text_reader import read_text_file
from passcan.services.scan_models import ScanRequest, SingleScanResult

logger = logging.getLogger(__name__)


class ScanCoordinator:
    """
    Drives scans of a root directory against a rule set.

    A per-file failure never aborts a scan: it is recorded in the report as
    a skipped file with its reason.
    """

    def __init__(
        self,
        rule_set: RuleSet,
        config: Optional[ScanConfig] = None,
        file_walker: Optional[FileWalkerInterface] = None,
        matcher: Optional[Matcher] = None,
        max_workers: Optional[int] = None,
        progress_callback: Optional[Callable[[int, str], None]] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            rule_set: Rules applied to every file
            config: Scan settings (defaults.yaml values when omitted)
            file_walker: Enumerates candidate files
            matcher: Matcher instance (built from config when omitted)
            max_workers: Worker thread count, overriding config
            progress_callback: Optional callback(files_processed, path)
        """
        self._rule_set = rule_set
        self._config = config or ScanConfig()
        self._file_walker = file_walker or FileWalker(
            follow_symlinks=self._config.follow_symlinks,
            respect_gitignore=self._config.respect_gitignore,
        )
        self._matcher = matcher or Matcher(
            redact_matches=self._config.redact,
            timeout=self._config.match_timeout_seconds,
        )
        self._max_workers = max_workers if max_workers and max_workers > 0 else (
            self._config.resolved_workers()
        )
        self._progress_callback = progress_callback
        self._cancel_event = threading.Event()
        self._progress_lock = threading.Lock()
        self._processed = 0
        self._request: Optional[ScanRequest] = None

    @property
    def rule_set(self) -> RuleSet:
        return self._rule_set

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def request(self) -> Optional[ScanRequest]:
        """The request of the most recent full scan."""
        return self._request

    @request.setter
    def request(self, request: ScanRequest) -> None:
        """Bind a request so single-file scans use its policy before any full scan."""
        self._request = request

    def cancel(self) -> None:
        """
        Stop the current or next full scan; workers finish their current file.

        Cancellation is not cleared by run_full, so a cancel issued before the
        scan reaches its executor thread still takes effect. Call
        reset_cancel() when scheduling a new scan.
        """
        self._cancel_event.set()

    def reset_cancel(self) -> None:
        self._cancel_event.clear()

    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _report_progress(self, path: str) -> None:
        """Report progress if callback is set."""
        with self._progress_lock:
            self._processed += 1
            processed = self._processed
        if self._progress_callback:
            self._progress_callback(processed, path)

    def run_full(self, request: ScanRequest, report: Optional[Report] = None) -> Report:
        """
        Scan every candidate file under the request root.

        Results are inserted as each file completes, each stamped with the
        time the scan started. When a report is passed in (watch mode), a
        change event handled after that moment takes precedence over this
        scan's result for the same path.

        Args:
            request: Root, exclusions and size limit
            report: Existing report to fill, or None for a fresh one

        Returns:
            The report; ``metadata.cancelled`` is set if cancel() stopped it

        Raises:
            KeyboardInterrupt: Re-raised after the workers have been stopped
        """
        root = request.root.resolve()
        self._request = request
        with self._progress_lock:
            self._processed = 0

        started_at = time.time()
        if report is None:
            report = Report(str(root), started_at=started_at)

        logger.info(
            f"Starting full scan of {root}",
            extra={
                "root_path": str(root),
                "max_workers": self._max_workers,
                "rules": len(self._rule_set),
            },
        )

        entries = self._file_walker.enumerate(
            root,
            exclude_globs=request.exclude_globs,
            max_size=request.max_file_size,
        )
        source_lock = threading.Lock()

        def next_entry() -> Optional[WalkEntry]:
            with source_lock:
                if self._cancel_event.is_set():
                    return None
                return next(entries, None)

        def worker() -> None:
            while True:
                entry = next_entry()
                if entry is None:
                    return
                self._process_entry(entry, report, started_at)

        try:
            with ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="passcan-scan"
            ) as executor:
                futures = [executor.submit(worker) for _ in range(self._max_workers)]
                try:
                    for future in futures:
                        future.result()
                except BaseException:
                    # Stop the other workers before the pool waits on them
                    self._cancel_event.set()
                    raise
        except KeyboardInterrupt:
            self._cancel_event.set()
            report.finish(time.time() - started_at, cancelled=True)
            logger.warning("Full scan interrupted")
            raise
        finally:
            _close(entries)

        cancelled = self._cancel_event.is_set()
        report.finish(time.time() - started_at, cancelled=cancelled)

        logger.info(
            "Full scan completed",
            extra={
                "root_path": str(root),
                "cancelled": cancelled,
                **report.summary(),
            },
        )
        return report

    def run_single(self, path: Path | str) -> SingleScanResult:
        """
        Scan one file.

        Uses the size limit of the most recent full scan's request, or the
        configured limit if no full scan has run.

        Returns:
            SingleScanResult with findings, or with the reason the file was skipped
        """
        path_str = str(path)
        max_size = (
            self._request.max_file_size
            if self._request is not None
            else self._config.max_file_size
        )

        read = read_text_file(
            Path(path),
            max_size=max_size,
            sniff_bytes=self._config.binary_sniff_bytes,
            binary_ratio=self._config.binary_ratio_threshold,
        )
        if not read.ok:
            return SingleScanResult(path=path_str, skip_reason=read.skip_reason, detail=read.detail)

        try:
            findings = self._matcher.scan(read.text, self._rule_set, path=path_str)
        except MatchTimeoutError as e:
            logger.warning(f"Matching timed out for {path_str}: {e}")
            return SingleScanResult(
                path=path_str, skip_reason=SkipReason.MATCH_TIMEOUT, detail=str(e)
            )

        return SingleScanResult(path=path_str, findings=tuple(findings))

    def apply_result(
        self, report: Report, result: SingleScanResult, as_of: Optional[float] = None
    ) -> Optional[ReportDelta]:
        """
        Apply a single-file result to the report.

        A file that vanished since it was last seen is removed rather than
        recorded as skipped. Full scans record it as a VANISHED skip instead.

        Returns:
            The delta, or None if the report already holds a newer state
        """
        if result.skip_reason is SkipReason.VANISHED:
            return report.remove_file(result.path, as_of=as_of)
        if result.skip_reason is not None:
            return report.record_skip(result.path, result.skip_reason, result.detail, as_of=as_of)
        return report.replace_file(result.path, result.findings, as_of=as_of)

    def is_excluded(self, path: Path | str) -> bool:
        """Check a path against the ignore policy of the current request."""
        if self._request is None:
            return False
        return self._file_walker.is_excluded(
            self._request.root, Path(path), self._request.exclude_globs
        )

    def enumerate_under(self, directory: Path) -> Iterator[WalkEntry]:
        """Candidate files inside ``directory`` under the current request's policy."""
        if self._request is None:
            return iter(())
        return (
            entry
            for entry in self._file_walker.enumerate(
                directory, max_size=self._request.max_file_size
            )
            if not self.is_excluded(entry.path)
        )

    def _process_entry(self, entry: WalkEntry, report: Report, as_of: float) -> None:
        path_str = str(entry.path)
        try:
            if entry.skipped:
                report.record_skip(path_str, entry.skip_reason, entry.detail, as_of=as_of)
            else:
                result = self.run_single(entry.path)
                if result.skip_reason is SkipReason.VANISHED:
                    # Listed by the walker but gone before it could be read
                    report.record_skip(path_str, result.skip_reason, result.detail, as_of=as_of)
                else:
                    self.apply_result(report, result, as_of=as_of)
                if result.scanned:
                    report.mark_scanned()
        except Exception as e:
            logger.error(
                f"Failed to scan {path_str}: {e}",
                extra={"file_path": path_str, "error_type": type(e).__name__},
                exc_info=True,
            )
            report.record_skip(path_str, SkipReason.UNREADABLE, str(e), as_of=as_of)
        self._report_progress(path_str)


def _close(entries: Iterator[WalkEntry]) -> None:
    close = getattr(entries, "close", None)
    if close is not None:
        close()
