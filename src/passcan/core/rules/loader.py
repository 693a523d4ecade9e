"""
Rule catalog loading.

Merges the built-in catalog with optional user rules from a YAML file.
Loading is all-or-nothing: any malformed or conflicting definition raises
LoadError and no partial rule set is returned.

User rules file format::

    rules:                      # new rules, keyed by identifier
      internal-token:
        label: Internal Service Token
        pattern: 'itk_[A-Za-z0-9]{32}'
        severity: high
        min_entropy: 3.5
        denylist: [test]
        specificity: 0.8
    overrides:                  # adjust existing rules by identifier
      generic-token:
        severity: medium
        min_entropy: 4.5

``rules`` may also be a list of mappings that each carry an ``id`` key.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from passcan.core.errors import LoadError
from passcan.core.rules.catalog import BUILTIN_RULES
from passcan.core.rules.models import Rule, RuleSet

logger = logging.getLogger(__name__)

_RULE_FIELDS = {"id", "label", "pattern", "severity", "min_entropy", "denylist", "specificity"}
_OVERRIDE_FIELDS = {"severity", "min_entropy"}


def load(
    rules_file: Path | str | None = None,
    disabled_rules: Iterable[str] = (),
    builtin: Iterable[Rule] | None = None,
) -> RuleSet:
    """
    Build the effective rule set.

    Args:
        rules_file: Optional YAML file with user rules and overrides
        disabled_rules: Identifiers to drop after merging
        builtin: Base catalog (defaults to the built-in rules)

    Returns:
        Immutable RuleSet in evaluation order: built-ins first, then user rules

    Raises:
        LoadError: On malformed patterns, unknown fields, duplicate
            identifiers or overrides/disables of unknown identifiers
    """
    rules = list(BUILTIN_RULES if builtin is None else builtin)

    if rules_file is not None:
        data = _read_rules_file(Path(rules_file))
        rules = merge_user_rules(rules, data)

    disabled = set(disabled_rules)
    if disabled:
        known = {r.rule_id for r in rules}
        unknown = sorted(disabled - known)
        if unknown:
            raise LoadError(f"cannot disable unknown rule(s): {', '.join(unknown)}")
        rules = [r for r in rules if r.rule_id not in disabled]

    rule_set = RuleSet(rules)
    logger.debug(
        f"Loaded {len(rule_set)} rules",
        extra={"rules_file": str(rules_file) if rules_file else None},
    )
    return rule_set


def merge_user_rules(base: list[Rule], data: dict[str, Any]) -> list[Rule]:
    """
    Merge parsed user configuration into a base rule list.

    New identifiers are appended; an identifier already present in ``base``
    is an error unless it is listed under ``overrides``.
    """
    unknown_sections = set(data) - {"rules", "overrides"}
    if unknown_sections:
        raise LoadError(f"unknown section(s) in rules file: {', '.join(sorted(unknown_sections))}")

    merged = list(base)
    positions = {rule.rule_id: i for i, rule in enumerate(merged)}

    for rule_id, spec in _iter_rule_specs(data.get("rules")):
        if rule_id in positions:
            raise LoadError("duplicate rule identifier", rule_id=rule_id)
        rule = _build_rule(rule_id, spec)
        positions[rule_id] = len(merged)
        merged.append(rule)

    overrides = data.get("overrides") or {}
    if not isinstance(overrides, dict):
        raise LoadError("'overrides' must be a mapping of rule identifier to settings")

    for rule_id, spec in overrides.items():
        rule_id = str(rule_id)
        if rule_id not in positions:
            raise LoadError("override for unknown rule", rule_id=rule_id)
        if not isinstance(spec, dict):
            raise LoadError("override must be a mapping", rule_id=rule_id)
        extra = set(spec) - _OVERRIDE_FIELDS
        if extra:
            raise LoadError(
                f"only severity and min_entropy can be overridden, got: {', '.join(sorted(extra))}",
                rule_id=rule_id,
            )
        index = positions[rule_id]
        merged[index] = merged[index].with_overrides(
            severity=spec.get("severity"),
            min_entropy=_as_float(spec.get("min_entropy"), rule_id, "min_entropy"),
        )

    return merged


def _read_rules_file(path: Path) -> dict[str, Any]:
    """Read and parse a YAML rules file."""
    if not path.exists():
        raise LoadError(f"rules file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content) or {}
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(f"cannot read rules file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise LoadError(f"invalid YAML in rules file {path}: {e}") from e

    if not isinstance(data, dict):
        raise LoadError(f"rules file {path} must contain a mapping at the top level")
    return data


def _iter_rule_specs(section: Any) -> Iterable[tuple[str, dict[str, Any]]]:
    """Yield (rule_id, spec) pairs from either mapping or list form."""
    if section is None:
        return
    if isinstance(section, dict):
        for rule_id, spec in section.items():
            if not isinstance(spec, dict):
                raise LoadError("rule definition must be a mapping", rule_id=str(rule_id))
            yield str(rule_id), spec
    elif isinstance(section, list):
        seen: set[str] = set()
        for spec in section:
            if not isinstance(spec, dict) or "id" not in spec:
                raise LoadError("each rule in a list must be a mapping with an 'id'")
            rule_id = str(spec["id"])
            if rule_id in seen:
                raise LoadError("duplicate rule identifier", rule_id=rule_id)
            seen.add(rule_id)
            yield rule_id, spec
    else:
        raise LoadError("'rules' must be a mapping or a list")


def _build_rule(rule_id: str, spec: dict[str, Any]) -> Rule:
    """Construct a Rule from a user definition."""
    extra = set(spec) - _RULE_FIELDS
    if extra:
        raise LoadError(f"unknown field(s): {', '.join(sorted(extra))}", rule_id=rule_id)
    if "pattern" not in spec:
        raise LoadError("missing 'pattern'", rule_id=rule_id)

    denylist = spec.get("denylist") or []
    if isinstance(denylist, str) or not isinstance(denylist, list):
        raise LoadError("'denylist' must be a list of strings", rule_id=rule_id)

    specificity = _as_float(spec.get("specificity"), rule_id, "specificity")
    return Rule(
        rule_id=rule_id,
        label=str(spec.get("label") or rule_id),
        pattern=str(spec["pattern"]),
        severity=spec.get("severity", "medium"),
        min_entropy=_as_float(spec.get("min_entropy"), rule_id, "min_entropy"),
        denylist=tuple(str(d) for d in denylist),
        specificity=0.5 if specificity is None else specificity,
    )


def _as_float(value: Any, rule_id: str, name: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise LoadError(f"'{name}' must be a number, got {value!r}", rule_id=rule_id) from None
