"""
File walker module for passcan.

Enumerates candidate files under a root, applying the ignore policy and the
size limit, with symlink loop protection.
"""

from .interfaces import FileWalkerInterface
from .models import WalkEntry
from .walker import FileWalker

__all__ = [
    "FileWalker",
    "FileWalkerInterface",
    "WalkEntry",
]
