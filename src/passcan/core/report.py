"""
Report: the live, mutable collection of findings for a scan session.

Findings are keyed by file path. The report is only changed through
per-path atomic operations (replace, skip, remove), each serialized by a
lock, so a full scan's worker threads and the re-scan scheduler can share
one report.
"""

import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from passcan.core.matcher import Finding

logger = logging.getLogger(__name__)


class SkipReason(str, Enum):
    """Why a file contributed no findings without being scanned."""

    TOO_LARGE = "too large"
    BINARY = "binary"
    DECODE_ERROR = "not valid text"
    UNREADABLE = "unreadable"
    VANISHED = "vanished"
    MATCH_TIMEOUT = "match timeout"


@dataclass(frozen=True)
class SkippedFile:
    """A file that was enumerated but not matched, with the cause."""

    path: str
    reason: SkipReason
    detail: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "reason": self.reason.value, "detail": self.detail}


@dataclass(frozen=True)
class ReportDelta:
    """Findings added to and removed from one path by a single update."""

    path: str
    added: tuple[Finding, ...] = ()
    removed: tuple[Finding, ...] = ()

    def is_empty(self) -> bool:
        return not (self.added or self.removed)


@dataclass
class ScanMetadata:
    """Scan-level facts kept next to the findings."""

    root_path: str
    started_at: float = field(default_factory=time.time)
    duration_seconds: float = 0.0
    files_scanned: int = 0
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_path": self.root_path,
            "started_at": datetime.fromtimestamp(self.started_at, tz=timezone.utc).isoformat(),
            "duration_seconds": round(self.duration_seconds, 4),
            "files_scanned": self.files_scanned,
            "cancelled": self.cancelled,
        }


class Report:
    """
    Aggregated findings keyed by path, ordered by line then column.

    Every update carries an ``as_of`` timestamp. An update older than the
    last one applied to the same path is ignored, and removed paths keep
    their timestamp, so a late result from a full scan that started before
    a change event can never overwrite or resurrect what the event produced.
    """

    def __init__(self, root_path: str, started_at: float | None = None):
        self.metadata = ScanMetadata(
            root_path=str(root_path),
            started_at=started_at if started_at is not None else time.time(),
        )
        self._findings: dict[str, tuple[Finding, ...]] = {}
        self._skipped: dict[str, SkippedFile] = {}
        self._versions: dict[str, float] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace_file(
        self, path: str, findings: Iterable[Finding], as_of: float | None = None
    ) -> ReportDelta | None:
        """
        Replace all findings for ``path`` and clear any skip entry.

        Returns:
            The delta, or None if the update was older than the last applied one
        """
        ordered = tuple(sorted(findings, key=lambda f: (f.line, f.column)))
        with self._lock:
            if not self._accept(path, as_of):
                return None
            self._skipped.pop(path, None)
            return self._set(path, ordered)

    def record_skip(
        self,
        path: str,
        reason: SkipReason,
        detail: str = "",
        as_of: float | None = None,
    ) -> ReportDelta | None:
        """Record a skipped file; any previous findings for it are dropped."""
        with self._lock:
            if not self._accept(path, as_of):
                return None
            self._skipped[path] = SkippedFile(path=path, reason=reason, detail=detail)
            return self._set(path, ())

    def remove_file(self, path: str, as_of: float | None = None) -> ReportDelta | None:
        """Forget a path entirely (findings and skip entry)."""
        with self._lock:
            if not self._accept(path, as_of):
                return None
            self._skipped.pop(path, None)
            return self._set(path, ())

    def mark_scanned(self, count: int = 1) -> None:
        with self._lock:
            self.metadata.files_scanned += count

    def finish(self, duration_seconds: float, cancelled: bool = False) -> None:
        with self._lock:
            self.metadata.duration_seconds = duration_seconds
            self.metadata.cancelled = cancelled

    def _accept(self, path: str, as_of: float | None) -> bool:
        if as_of is None:
            return True
        last = self._versions.get(path)
        if last is not None and as_of < last:
            logger.debug(
                f"Ignoring stale update for {path}",
                extra={"path": path, "as_of": as_of, "last_applied": last},
            )
            return False
        self._versions[path] = as_of
        return True

    def _set(self, path: str, findings: tuple[Finding, ...]) -> ReportDelta:
        old = self._findings.get(path, ())
        if findings:
            self._findings[path] = findings
        else:
            self._findings.pop(path, None)

        old_set = set(old)
        new_set = set(findings)
        return ReportDelta(
            path=path,
            added=tuple(f for f in findings if f not in old_set),
            removed=tuple(f for f in old if f not in new_set),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._findings

    def paths(self) -> list[str]:
        """Paths with at least one finding, sorted."""
        with self._lock:
            return sorted(self._findings)

    def findings_for(self, path: str) -> tuple[Finding, ...]:
        with self._lock:
            return self._findings.get(path, ())

    def all_findings(self) -> list[Finding]:
        """All findings ordered by path, line, column."""
        with self._lock:
            return [f for path in sorted(self._findings) for f in self._findings[path]]

    @property
    def skipped(self) -> list[SkippedFile]:
        with self._lock:
            return [self._skipped[p] for p in sorted(self._skipped)]

    @property
    def total_findings(self) -> int:
        with self._lock:
            return sum(len(f) for f in self._findings.values())

    @property
    def files_with_findings(self) -> int:
        with self._lock:
            return len(self._findings)

    def summary(self) -> dict[str, Any]:
        with self._lock:
            return {
                "files_scanned": self.metadata.files_scanned,
                "files_skipped": len(self._skipped),
                "files_with_findings": len(self._findings),
                "total_findings": sum(len(f) for f in self._findings.values()),
                "duration_seconds": round(self.metadata.duration_seconds, 4),
            }

    def to_dict(self) -> dict[str, Any]:
        """Serialize the report for JSON output."""
        with self._lock:
            return {
                "metadata": self.metadata.to_dict(),
                "summary": self.summary(),
                "findings": {
                    path: [f.to_dict() for f in self._findings[path]]
                    for path in sorted(self._findings)
                },
                "skipped": [s.to_dict() for s in self.skipped],
            }
