"""
Rule catalog for passcan.

Provides the immutable rule model, the built-in catalog and the loader that
merges user-supplied rules into it.
"""

from .catalog import BUILTIN_RULES, COMMON_PLACEHOLDERS, builtin_rule_set
from .loader import load, merge_user_rules
from .models import SECRET_GROUP, Rule, RuleSet, Severity

__all__ = [
    "Rule",
    "RuleSet",
    "Severity",
    "SECRET_GROUP",
    "BUILTIN_RULES",
    "COMMON_PLACEHOLDERS",
    "builtin_rule_set",
    "load",
    "merge_user_rules",
]
