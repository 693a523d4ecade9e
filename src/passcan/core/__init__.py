"""
Core Layer - Rules, matching, file walking, reports and configuration.
"""

from passcan.core.config import (
    LoggingConfig,
    PasscanConfig,
    RulesConfig,
    ScanConfig,
    WatchSettings,
    load_config,
)
from passcan.core.errors import LoadError, PasscanError, WatchError
from passcan.core.file_events import ChangeEvent, ChangeKind, PendingAction, PendingChanges
from passcan.core.file_walker import FileWalker, FileWalkerInterface, WalkEntry
from passcan.core.matcher import Finding, Matcher, MatchTimeoutError, scan_text
from passcan.core.report import Report, ReportDelta, ScanMetadata, SkippedFile, SkipReason
from passcan.core.rules import Rule, RuleSet, Severity, builtin_rule_set
from passcan.core.watch_config import WatchConfig

__all__ = [
    # Config
    "PasscanConfig",
    "ScanConfig",
    "WatchSettings",
    "RulesConfig",
    "LoggingConfig",
    "load_config",
    "WatchConfig",
    # Errors
    "PasscanError",
    "LoadError",
    "WatchError",
    # Rules and matching
    "Rule",
    "RuleSet",
    "Severity",
    "builtin_rule_set",
    "Finding",
    "Matcher",
    "MatchTimeoutError",
    "scan_text",
    # Walking
    "FileWalker",
    "FileWalkerInterface",
    "WalkEntry",
    # Report
    "Report",
    "ReportDelta",
    "ScanMetadata",
    "SkippedFile",
    "SkipReason",
    # Watch events
    "ChangeEvent",
    "ChangeKind",
    "PendingAction",
    "PendingChanges",
]
