"""
Matcher: applies a rule set to a block of text and produces findings.

Matching is pure and deterministic. For a given text and rule set the same
findings come back in the same order (line, column, rule order).
"""

import time
from dataclasses import asdict, dataclass
from typing import Any

from passcan.core.entropy import normalized_entropy, shannon_entropy
from passcan.core.rules.models import SECRET_GROUP, Rule, RuleSet, Severity

# Weight of normalized entropy in the confidence blend; the rest is the
# rule's static specificity.
ENTROPY_WEIGHT = 0.5

# Characters kept visible at the start of a redacted match
REDACT_KEEP = 4


class MatchTimeoutError(TimeoutError):
    """Matching a single text exceeded its time budget."""

    pass


@dataclass(frozen=True)
class Finding:
    """
    One reported instance of a matched secret pattern.

    Attributes:
        path: File path the text came from ('' when scanning bare text)
        line: 1-based line number
        column: 1-based column of the matched substring
        match: Matched substring, or its redacted form
        rule_id: Identifier of the rule that matched
        rule_label: Human label of the rule
        severity: Severity of the rule
        confidence: Score in [0, 1] blended from entropy and rule specificity
        entropy: Shannon entropy of the matched substring (bits/char)
    """

    path: str
    line: int
    column: int
    match: str
    rule_id: str
    rule_label: str
    severity: Severity
    confidence: float
    entropy: float

    def with_path(self, path: str) -> "Finding":
        """Return a copy attributed to ``path``."""
        data = asdict(self)
        data["path"] = path
        return Finding(**data)

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["severity"] = self.severity.value
        return result


def redact(secret: str, keep: int = REDACT_KEEP) -> str:
    """
    Mask all but the first ``keep`` characters of a secret.

    Secrets shorter than twice ``keep`` are masked entirely.
    """
    if len(secret) < keep * 2:
        return "*" * len(secret)
    return secret[:keep] + "*" * (len(secret) - keep)


def split_lines(text: str) -> list[str]:
    """
    Split text into lines for 1-based numbering.

    Only '\\n' (optionally preceded by '\\r') ends a line, so numbering
    matches what editors show. A final line without a trailing newline is
    kept; a trailing newline does not add an empty line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def compute_confidence(entropy: float, rule: Rule, entropy_weight: float = ENTROPY_WEIGHT) -> float:
    """Blend normalized entropy with the rule's specificity."""
    score = entropy_weight * normalized_entropy(entropy) + (1.0 - entropy_weight) * rule.specificity
    return round(score, 4)


def is_denied(secret: str, rule: Rule) -> bool:
    """True if the secret equals or contains a denylist entry (case-insensitive)."""
    if not rule.denylist:
        return False
    lowered = secret.lower()
    return any(entry in lowered for entry in rule.denylist)


class Matcher:
    """
    Applies rules line by line.

    For every line and every rule, all non-overlapping matches are found.
    A match is dropped when its entropy is under the rule's threshold or it
    hits the rule's denylist; everything else becomes a Finding. Matches of
    different rules on the same text are all kept.
    """

    def __init__(
        self,
        redact_matches: bool = False,
        timeout: float | None = None,
        entropy_weight: float = ENTROPY_WEIGHT,
    ):
        """
        Initialize the matcher.

        Args:
            redact_matches: Store redacted matched text in findings
            timeout: Time budget in seconds for matching one text, None for no limit
            entropy_weight: Weight of entropy in the confidence blend
        """
        self._redact = redact_matches
        self._timeout = timeout
        self._entropy_weight = entropy_weight

    def scan(self, text: str, rule_set: RuleSet, path: str = "") -> list[Finding]:
        """
        Scan text and return findings ordered by line, column and rule order.

        Args:
            text: Decoded text content
            rule_set: Rules to apply
            path: Path to attribute findings to

        Returns:
            List of findings (empty for empty text)

        Raises:
            MatchTimeoutError: If a timeout is configured and exceeded
        """
        lines = split_lines(text)
        if not lines:
            return []

        deadline = time.monotonic() + self._timeout if self._timeout is not None else None
        ranked: list[tuple[int, int, int, Finding]] = []

        for line_no, line in enumerate(lines, start=1):
            for rule_index, rule in enumerate(rule_set):
                for finding in self._scan_line(line, line_no, rule, path, deadline):
                    ranked.append((finding.line, finding.column, rule_index, finding))

        ranked.sort(key=lambda item: item[:3])
        return [item[3] for item in ranked]

    def _scan_line(
        self,
        line: str,
        line_no: int,
        rule: Rule,
        path: str,
        deadline: float | None,
    ) -> list[Finding]:
        findings: list[Finding] = []
        use_group = rule.has_secret_group

        try:
            matches = list(
                rule.compiled.finditer(line, concurrent=True, timeout=self._remaining(deadline))
            )
        except TimeoutError as e:
            raise MatchTimeoutError(f"matching timed out on line {line_no} ({rule.rule_id})") from e

        for m in matches:
            if use_group and m.group(SECRET_GROUP) is not None:
                secret = m.group(SECRET_GROUP)
                start = m.start(SECRET_GROUP)
            else:
                secret = m.group(0)
                start = m.start()

            if not secret:
                continue

            entropy = shannon_entropy(secret)
            if rule.min_entropy is not None and entropy < rule.min_entropy:
                continue
            if is_denied(secret, rule):
                continue

            findings.append(
                Finding(
                    path=path,
                    line=line_no,
                    column=start + 1,
                    match=redact(secret) if self._redact else secret,
                    rule_id=rule.rule_id,
                    rule_label=rule.label,
                    severity=rule.severity,
                    confidence=compute_confidence(entropy, rule, self._entropy_weight),
                    entropy=round(entropy, 4),
                )
            )
        return findings

    @staticmethod
    def _remaining(deadline: float | None) -> float | None:
        if deadline is None:
            return None
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise MatchTimeoutError("matching time budget exhausted")
        return remaining


def scan_text(text: str, rule_set: RuleSet, path: str = "") -> list[Finding]:
    """Scan text with default matcher settings."""
    return Matcher().scan(text, rule_set, path=path)
