"""
Unit tests for the rule catalog and its loader.

Covers the built-in catalog, merging of user rules and overrides, and the
all-or-nothing LoadError behaviour on malformed definitions.
"""

from pathlib import Path

import pytest

from passcan.core.errors import LoadError
from passcan.core.rules import (
    BUILTIN_RULES,
    Rule,
    RuleSet,
    Severity,
    builtin_rule_set,
    load,
    merge_user_rules,
)


def write_rules(tmp_path: Path, content: str) -> Path:
    rules_file = tmp_path / "rules.yaml"
    rules_file.write_text(content, encoding="utf-8")
    return rules_file


class TestBuiltinCatalog:
    def test_identifiers_are_unique(self):
        ids = [rule.rule_id for rule in BUILTIN_RULES]
        assert len(ids) == len(set(ids))

    def test_catalog_includes_common_providers(self):
        rule_set = builtin_rule_set()
        for rule_id in ("aws-access-key", "openai-api-key", "slack-token", "password", "generic-token"):
            assert rule_id in rule_set

    def test_load_without_file_returns_builtins_in_order(self):
        rule_set = load()
        assert [r.rule_id for r in rule_set] == [r.rule_id for r in BUILTIN_RULES]

    def test_get_and_index_of(self):
        rule_set = builtin_rule_set()
        assert rule_set.get("aws-access-key").label == "AWS Access Key"
        assert rule_set.index_of("aws-access-key") == 0
        with pytest.raises(KeyError):
            rule_set.get("no-such-rule")


class TestRuleModel:
    def test_invalid_pattern_names_rule(self):
        with pytest.raises(LoadError) as exc_info:
            Rule(rule_id="broken", label="Broken", pattern="([a-z", severity=Severity.LOW)
        assert exc_info.value.rule_id == "broken"
        assert "broken" in str(exc_info.value)

    def test_severity_parsed_case_insensitively(self):
        rule = Rule(rule_id="r", label="R", pattern="abc", severity="HIGH")
        assert rule.severity is Severity.HIGH

    def test_unknown_severity_is_load_error(self):
        with pytest.raises(LoadError):
            Rule(rule_id="r", label="R", pattern="abc", severity="urgent")

    def test_specificity_out_of_range(self):
        with pytest.raises(LoadError):
            Rule(rule_id="r", label="R", pattern="abc", severity="low", specificity=1.5)

    def test_denylist_is_lowercased(self):
        rule = Rule(rule_id="r", label="R", pattern="abc", severity="low", denylist=("TEST",))
        assert rule.denylist == ("test",)

    def test_duplicate_ids_rejected_by_rule_set(self):
        rule = Rule(rule_id="r", label="R", pattern="abc", severity="low")
        with pytest.raises(LoadError):
            RuleSet([rule, rule])

    def test_secret_group_detected(self):
        rule = Rule(rule_id="r", label="R", pattern=r"key=(?P<secret>\w+)", severity="low")
        assert rule.has_secret_group
        assert not builtin_rule_set().get("aws-access-key").has_secret_group


class TestUserRules:
    def test_user_rule_appended_after_builtins(self, tmp_path):
        rules_file = write_rules(
            tmp_path,
            """
rules:
  internal-token:
    label: Internal Token
    pattern: 'itk_[A-Za-z0-9]{32}'
    severity: high
    min_entropy: 3.5
""",
        )
        rule_set = load(rules_file)
        assert len(rule_set) == len(BUILTIN_RULES) + 1
        assert rule_set.rules[-1].rule_id == "internal-token"
        assert rule_set.get("internal-token").severity is Severity.HIGH

    def test_list_form_is_accepted(self, tmp_path):
        rules_file = write_rules(
            tmp_path,
            """
rules:
  - id: one
    pattern: 'one_[0-9]+'
  - id: two
    pattern: 'two_[0-9]+'
""",
        )
        rule_set = load(rules_file)
        assert "one" in rule_set and "two" in rule_set
        assert rule_set.get("one").severity is Severity.MEDIUM

    def test_override_changes_severity_and_entropy(self, tmp_path):
        rules_file = write_rules(
            tmp_path,
            """
overrides:
  generic-token:
    severity: medium
    min_entropy: 4.8
""",
        )
        rule = load(rules_file).get("generic-token")
        assert rule.severity is Severity.MEDIUM
        assert rule.min_entropy == 4.8
        # Pattern is not overridable and stays as built in
        assert rule.pattern == builtin_rule_set().get("generic-token").pattern

    def test_duplicate_of_builtin_id(self, tmp_path):
        rules_file = write_rules(
            tmp_path,
            """
rules:
  aws-access-key:
    pattern: 'AKIA.*'
""",
        )
        with pytest.raises(LoadError) as exc_info:
            load(rules_file)
        assert exc_info.value.rule_id == "aws-access-key"

    def test_duplicate_within_list(self, tmp_path):
        rules_file = write_rules(
            tmp_path,
            """
rules:
  - id: dup
    pattern: 'a+'
  - id: dup
    pattern: 'b+'
""",
        )
        with pytest.raises(LoadError):
            load(rules_file)

    def test_malformed_pattern_names_rule(self, tmp_path):
        rules_file = write_rules(
            tmp_path,
            """
rules:
  bad-one:
    pattern: '(unclosed'
""",
        )
        with pytest.raises(LoadError) as exc_info:
            load(rules_file)
        assert exc_info.value.rule_id == "bad-one"

    def test_override_of_unknown_rule(self, tmp_path):
        rules_file = write_rules(tmp_path, "overrides:\n  nope:\n    severity: low\n")
        with pytest.raises(LoadError) as exc_info:
            load(rules_file)
        assert exc_info.value.rule_id == "nope"

    def test_override_cannot_change_pattern(self, tmp_path):
        rules_file = write_rules(tmp_path, "overrides:\n  password:\n    pattern: 'x'\n")
        with pytest.raises(LoadError):
            load(rules_file)

    def test_unknown_field(self, tmp_path):
        rules_file = write_rules(
            tmp_path,
            "rules:\n  r1:\n    pattern: 'x+'\n    colour: red\n",
        )
        with pytest.raises(LoadError):
            load(rules_file)

    def test_missing_pattern(self, tmp_path):
        rules_file = write_rules(tmp_path, "rules:\n  r1:\n    label: No Pattern\n")
        with pytest.raises(LoadError):
            load(rules_file)

    def test_unknown_section(self, tmp_path):
        rules_file = write_rules(tmp_path, "extras: {}\n")
        with pytest.raises(LoadError):
            load(rules_file)

    def test_invalid_yaml(self, tmp_path):
        rules_file = write_rules(tmp_path, "rules: [unclosed\n")
        with pytest.raises(LoadError):
            load(rules_file)

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError):
            load(tmp_path / "missing.yaml")

    def test_merge_user_rules_does_not_mutate_base(self):
        base = list(BUILTIN_RULES)
        merge_user_rules(base, {"rules": {"extra": {"pattern": "extra_[0-9]+"}}})
        assert len(base) == len(BUILTIN_RULES)


class TestDisabledRules:
    def test_disabled_rule_removed(self):
        rule_set = load(disabled_rules=["generic-token"])
        assert "generic-token" not in rule_set
        assert len(rule_set) == len(BUILTIN_RULES) - 1

    def test_disabling_unknown_rule_fails(self):
        with pytest.raises(LoadError):
            load(disabled_rules=["does-not-exist"])
