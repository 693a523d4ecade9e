"""
Scan service data models.

Contains dataclasses for scan requests, single-file results and flush results.
"""

from dataclasses import dataclass, field
from pathlib import Path

from passcan.core.matcher import Finding
from passcan.core.report import ReportDelta, SkipReason


@dataclass(frozen=True)
class ScanRequest:
    """What to scan and how."""

    root: Path
    exclude_globs: tuple[str, ...] = ()
    max_file_size: int | None = None
    watch: bool = False

    def __post_init__(self) -> None:
        # frozen: assign through object.__setattr__
        object.__setattr__(self, "root", Path(self.root))
        object.__setattr__(self, "exclude_globs", tuple(self.exclude_globs))


@dataclass(frozen=True)
class SingleScanResult:
    """Result of scanning one file: findings, or the reason it was skipped."""

    path: str
    findings: tuple[Finding, ...] = ()
    skip_reason: SkipReason | None = None
    detail: str = ""

    @property
    def scanned(self) -> bool:
        return self.skip_reason is None


@dataclass
class FlushResult:
    """Outcome of one re-scan flush."""

    deltas: list[ReportDelta] = field(default_factory=list)
    rescanned: int = 0
    removed: int = 0
    dropped: int = 0
    duration_ms: float = 0.0

    @property
    def findings_added(self) -> int:
        return sum(len(d.added) for d in self.deltas)

    @property
    def findings_removed(self) -> int:
        return sum(len(d.removed) for d in self.deltas)

    def non_empty_deltas(self) -> list[ReportDelta]:
        return [d for d in self.deltas if not d.is_empty()]
