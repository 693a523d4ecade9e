"""
Data models for secret-detection rules.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import regex

from passcan.core.errors import LoadError

# Named group that narrows the reported substring to the secret value
SECRET_GROUP = "secret"


class Severity(str, Enum):
    """
    Severity of a rule.

    Inherits from str to enable JSON serialization and string comparison.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: "str | Severity") -> "Severity":
        """Parse a severity name case-insensitively."""
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"unknown severity '{value}' (expected one of: {valid})") from None


@dataclass(frozen=True)
class Rule:
    """
    A named pattern plus metadata used to detect one class of secret.

    Attributes:
        rule_id: Unique identifier (e.g. 'aws-access-key')
        label: Human label shown in reports (e.g. 'AWS Access Key')
        pattern: Regular expression; a named group ``secret`` narrows the
            matched substring to the secret value
        severity: Severity of a finding produced by this rule
        min_entropy: Minimum Shannon entropy (bits/char) of the matched
            substring, or None to skip the entropy check
        denylist: Case-insensitive substrings that suppress a match
        specificity: Static weight in [0, 1] for how distinctive the pattern is
    """

    rule_id: str
    label: str
    pattern: str
    severity: Severity = Severity.MEDIUM
    min_entropy: float | None = None
    denylist: tuple[str, ...] = ()
    specificity: float = 0.5
    _compiled: Any = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.rule_id:
            raise LoadError("rule identifier must not be empty")
        if not 0.0 <= self.specificity <= 1.0:
            raise LoadError(f"specificity {self.specificity} outside [0, 1]", rule_id=self.rule_id)
        if self.min_entropy is not None and self.min_entropy < 0:
            raise LoadError(f"min_entropy {self.min_entropy} must be >= 0", rule_id=self.rule_id)

        try:
            compiled = regex.compile(self.pattern)
        except regex.error as e:
            raise LoadError(f"malformed pattern: {e}", rule_id=self.rule_id) from e

        try:
            severity = Severity.parse(self.severity)
        except ValueError as e:
            raise LoadError(str(e), rule_id=self.rule_id) from e

        object.__setattr__(self, "severity", severity)
        object.__setattr__(self, "denylist", tuple(d.lower() for d in self.denylist if d))
        object.__setattr__(self, "_compiled", compiled)

    @property
    def compiled(self) -> Any:
        """The compiled pattern."""
        return self._compiled

    @property
    def has_secret_group(self) -> bool:
        return SECRET_GROUP in self._compiled.groupindex

    def with_overrides(
        self,
        severity: Severity | str | None = None,
        min_entropy: float | None = None,
    ) -> "Rule":
        """Return a copy with severity and/or entropy threshold replaced."""
        return Rule(
            rule_id=self.rule_id,
            label=self.label,
            pattern=self.pattern,
            severity=severity if severity is not None else self.severity,
            min_entropy=min_entropy if min_entropy is not None else self.min_entropy,
            denylist=self.denylist,
            specificity=self.specificity,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.rule_id,
            "label": self.label,
            "pattern": self.pattern,
            "severity": self.severity.value,
            "min_entropy": self.min_entropy,
            "denylist": list(self.denylist),
            "specificity": self.specificity,
        }


class RuleSet:
    """
    Immutable, ordered catalog of rules.

    Rules are evaluated in index order; order only affects output ordering.
    Identifiers are unique within a rule set.
    """

    def __init__(self, rules: Sequence[Rule]):
        seen: dict[str, int] = {}
        for index, rule in enumerate(rules):
            if rule.rule_id in seen:
                raise LoadError("duplicate rule identifier", rule_id=rule.rule_id)
            seen[rule.rule_id] = index
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._index = seen

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._index

    def __repr__(self) -> str:
        return f"RuleSet({[r.rule_id for r in self._rules]!r})"

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def get(self, rule_id: str) -> Rule:
        """
        Look up a rule by identifier.

        Raises:
            KeyError: If no rule has that identifier
        """
        return self._rules[self._index[rule_id]]

    def index_of(self, rule_id: str) -> int:
        """Position of a rule in evaluation order."""
        return self._index[rule_id]
