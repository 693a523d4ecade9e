"""
Built-in secret-detection rules.

Thresholds and denylists here are tuning defaults. Every one of them can be
overridden per rule from a user rules file (see ``passcan.core.rules.loader``).
"""

from passcan.core.rules.models import Rule, RuleSet, Severity

# Substrings that mark a value as an obvious placeholder
COMMON_PLACEHOLDERS: tuple[str, ...] = (
    "example",
    "sample",
    "placeholder",
    "changeme",
    "dummy",
    "xxxxxxxx",
    "your_",
    "your-",
)

# Template and lookup syntax that means the real value lives elsewhere
TEMPLATE_MARKERS: tuple[str, ...] = (
    "${",
    "{{",
    "%s",
    "os.environ",
    "getenv",
    "process.env",
)

BUILTIN_RULES: tuple[Rule, ...] = (
    Rule(
        rule_id="aws-access-key",
        label="AWS Access Key",
        pattern=r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b",
        severity=Severity.CRITICAL,
        min_entropy=3.0,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.9,
    ),
    Rule(
        rule_id="github-token",
        label="GitHub Token",
        pattern=r"\b(?:gh[pousr]_[A-Za-z0-9]{36}|github_pat_[A-Za-z0-9_]{82})\b",
        severity=Severity.CRITICAL,
        min_entropy=3.5,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.95,
    ),
    Rule(
        rule_id="stripe-live-key",
        label="Stripe Live Key",
        pattern=r"\b(?:sk|rk)_live_[0-9A-Za-z]{24,}",
        severity=Severity.CRITICAL,
        min_entropy=3.5,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.9,
    ),
    Rule(
        rule_id="private-key",
        label="Private Key",
        pattern=r"-----BEGIN (?:RSA |EC |DSA |OPENSSH |PGP |ENCRYPTED )?PRIVATE KEY(?: BLOCK)?-----",
        severity=Severity.CRITICAL,
        specificity=1.0,
    ),
    Rule(
        rule_id="openai-api-key",
        label="OpenAI Key",
        pattern=r"\bsk-(?:proj-|svcacct-|admin-)?[A-Za-z0-9_-]{40,}",
        severity=Severity.HIGH,
        min_entropy=3.5,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.8,
    ),
    Rule(
        rule_id="slack-token",
        label="Slack Token",
        pattern=r"\bxox[baprs]-[A-Za-z0-9-]{10,48}",
        severity=Severity.HIGH,
        min_entropy=3.0,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.85,
    ),
    Rule(
        rule_id="slack-webhook",
        label="Slack Webhook",
        pattern=r"https://hooks\.slack\.com/services/T[A-Z0-9]{8,}/B[A-Z0-9]{8,}/[A-Za-z0-9]{24}",
        severity=Severity.HIGH,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.95,
    ),
    Rule(
        rule_id="discord-webhook",
        label="Discord Webhook",
        pattern=(
            r"https://(?:canary\.|ptb\.)?discord(?:app)?\.com/api/webhooks/"
            r"[0-9]{17,20}/[A-Za-z0-9_-]{60,68}"
        ),
        severity=Severity.HIGH,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.95,
    ),
    Rule(
        rule_id="google-api-key",
        label="Google API Key",
        pattern=r"\bAIza[0-9A-Za-z_-]{35}",
        severity=Severity.HIGH,
        min_entropy=3.5,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.85,
    ),
    Rule(
        rule_id="url-credentials",
        label="Credentials in URL",
        pattern=r"\b[A-Za-z][A-Za-z0-9+.-]*://[^\s:/@]+:(?P<secret>[^\s:/@]{3,})@[^\s/]+",
        severity=Severity.HIGH,
        min_entropy=2.5,
        denylist=COMMON_PLACEHOLDERS + TEMPLATE_MARKERS + ("password",),
        specificity=0.7,
    ),
    Rule(
        rule_id="jwt",
        label="JSON Web Token",
        pattern=r"\beyJ[A-Za-z0-9_-]{10,}\.eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}",
        severity=Severity.MEDIUM,
        min_entropy=3.5,
        specificity=0.7,
    ),
    Rule(
        rule_id="generic-api-key",
        label="Generic API Key",
        pattern=(
            r"(?i)\b(?:api[_-]?key|secret[_-]?key|access[_-]?token|auth[_-]?token|client[_-]?secret)"
            r"\s*[:=]\s*[\"']?(?P<secret>[A-Za-z0-9_\-./+=]{16,})"
        ),
        severity=Severity.MEDIUM,
        min_entropy=3.5,
        denylist=COMMON_PLACEHOLDERS + TEMPLATE_MARKERS,
        specificity=0.6,
    ),
    Rule(
        rule_id="password",
        label="Password",
        pattern=r"(?i)\b(?:password|passwd|pwd)\s*[:=]\s*[\"']?(?P<secret>[^\s\"',;]{4,})",
        severity=Severity.MEDIUM,
        min_entropy=3.0,
        denylist=COMMON_PLACEHOLDERS + TEMPLATE_MARKERS + ("none", "null"),
        specificity=0.5,
    ),
    Rule(
        rule_id="generic-token",
        label="Generic Token",
        pattern=r"[A-Za-z0-9_-]{32,}",
        severity=Severity.LOW,
        min_entropy=4.3,
        denylist=COMMON_PLACEHOLDERS,
        specificity=0.2,
    ),
)


def builtin_rule_set() -> RuleSet:
    """Return the built-in catalog as a RuleSet."""
    return RuleSet(BUILTIN_RULES)
