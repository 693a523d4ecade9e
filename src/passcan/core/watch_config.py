"""
Watch configuration for the incremental re-scan scheduler.

Provides the debounce window, its upper bound and the capacity of the
change-event channel.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_DEBOUNCE_MS = 300
DEFAULT_MAX_WAIT_MS = 2000
DEFAULT_QUEUE_SIZE = 1024


def _get_default_debounce_ms() -> int:
    """Get default debounce delay from environment or use default."""
    env_value = os.environ.get("PASSCAN_WATCH_DEBOUNCE_MS")
    if env_value is not None:
        try:
            return int(env_value)
        except ValueError:
            pass
    return DEFAULT_DEBOUNCE_MS


@dataclass
class WatchConfig:
    """
    Configuration for a watch session.

    Attributes:
        watch_path: Directory path to watch for file changes
        debounce_ms: Quiet period that closes a debounce window
            (default: 300ms or PASSCAN_WATCH_DEBOUNCE_MS)
        max_wait_ms: Longest a window may stay open while events keep arriving
        queue_size: Capacity of the bounded change-event channel
        verbose: Enable verbose logging output
    """

    watch_path: Path
    debounce_ms: int = field(default_factory=_get_default_debounce_ms)
    max_wait_ms: int = DEFAULT_MAX_WAIT_MS
    queue_size: int = DEFAULT_QUEUE_SIZE
    verbose: bool = False

    def __post_init__(self) -> None:
        """Ensure watch_path is a Path object and bounds are sane."""
        if isinstance(self.watch_path, str):
            self.watch_path = Path(self.watch_path)
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {self.debounce_ms}")
        if self.max_wait_ms < self.debounce_ms:
            self.max_wait_ms = self.debounce_ms
        if self.queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {self.queue_size}")

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize configuration to a dictionary.

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        return {
            "watch_path": str(self.watch_path),
            "debounce_ms": self.debounce_ms,
            "max_wait_ms": self.max_wait_ms,
            "queue_size": self.queue_size,
            "verbose": self.verbose,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WatchConfig":
        """
        Create WatchConfig from a dictionary.

        Args:
            data: Dictionary with configuration values

        Returns:
            WatchConfig instance
        """
        return cls(
            watch_path=Path(data["watch_path"]),
            debounce_ms=data.get("debounce_ms", _get_default_debounce_ms()),
            max_wait_ms=data.get("max_wait_ms", DEFAULT_MAX_WAIT_MS),
            queue_size=data.get("queue_size", DEFAULT_QUEUE_SIZE),
            verbose=data.get("verbose", False),
        )
