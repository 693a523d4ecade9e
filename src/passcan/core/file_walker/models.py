"""
Data models for the file walker module.
"""

from dataclasses import dataclass
from pathlib import Path

from passcan.core.report import SkipReason


@dataclass(frozen=True)
class WalkEntry:
    """
    A candidate file produced by the walker.

    Attributes:
        path: Absolute path to the file
        size_bytes: File size in bytes (0 if it could not be read)
        skip_reason: Set when the walker already knows the file will not be
            scanned (e.g. too large); the caller records it in metadata
        detail: Human-readable context for the skip reason
    """

    path: Path
    size_bytes: int = 0
    skip_reason: SkipReason | None = None
    detail: str = ""

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None
