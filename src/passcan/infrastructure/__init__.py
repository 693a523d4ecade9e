"""
Infrastructure Layer - Filesystem watcher implementations.
"""

from passcan.infrastructure.fakes import FakeFileWatcher
from passcan.infrastructure.file_watcher import (
    FileWatcher,
    FileWatcherInterface,
)

__all__ = [
    "FileWatcher",
    "FileWatcherInterface",
    "FakeFileWatcher",
]
