"""
passcan - secret detection for source trees, with incremental re-scans in watch mode.
"""

__version__ = "0.3.0"
