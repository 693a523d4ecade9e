"""
Property-based tests for PasscanConfig round-trip serialization.

**Feature: secret-scanner, Property 20: Configuration Round-Trip**
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from passcan.core.config import (
    LoggingConfig,
    PasscanConfig,
    RulesConfig,
    ScanConfig,
    WatchSettings,
    load_config,
)

exclude_pattern = st.sampled_from(["*.log", "build/", "fixtures/**", "*.min.js", "!keep.env"])
rule_id = st.sampled_from(["aws-access-key", "generic-password", "private-key", "slack-token"])
log_level = st.sampled_from(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


@st.composite
def scan_config_strategy(draw):
    """Generate valid ScanConfig instances."""
    return ScanConfig(
        max_file_size=draw(st.integers(min_value=1, max_value=100 * 1024 * 1024)),
        exclude_patterns=draw(st.lists(exclude_pattern, max_size=5)),
        max_workers=draw(st.integers(min_value=0, max_value=64)),
        follow_symlinks=draw(st.booleans()),
        respect_gitignore=draw(st.booleans()),
        binary_sniff_bytes=draw(st.integers(min_value=1, max_value=65536)),
        binary_ratio_threshold=draw(
            st.floats(min_value=0.0, max_value=1.0, allow_nan=False, allow_infinity=False)
        ),
        match_timeout_seconds=draw(
            st.none() | st.floats(min_value=0.1, max_value=60.0, allow_nan=False)
        ),
        redact=draw(st.booleans()),
    )


@st.composite
def passcan_config_strategy(draw):
    """Generate valid PasscanConfig instances."""
    return PasscanConfig(
        scan=draw(scan_config_strategy()),
        watch=WatchSettings(
            debounce_ms=draw(st.integers(min_value=0, max_value=10000)),
            max_wait_ms=draw(st.integers(min_value=0, max_value=60000)),
            queue_size=draw(st.integers(min_value=1, max_value=100000)),
        ),
        rules=RulesConfig(
            rules_file=draw(st.none() | st.sampled_from(["rules.yaml", "/etc/passcan/rules.yml"])),
            disabled_rules=draw(st.lists(rule_id, max_size=3, unique=True)),
        ),
        logging=LoggingConfig(level=draw(log_level)),
    )


@given(config=passcan_config_strategy(), suffix=st.sampled_from([".yaml", ".json"]))
@settings(max_examples=100, deadline=None)
def test_config_round_trip(config: PasscanConfig, suffix: str):
    """
    **Feature: secret-scanner, Property 20: Configuration Round-Trip**

    For any valid PasscanConfig, saving to a file and loading it back
    SHALL produce an equivalent configuration.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / f"passcan{suffix}"
        config.save(path)

        loaded = PasscanConfig.from_file(path)

    assert loaded.to_dict() == config.to_dict()


def test_defaults_come_from_yaml():
    config = PasscanConfig()

    assert config.scan.max_file_size == 10 * 1024 * 1024
    assert config.scan.redact is True
    assert config.watch.debounce_ms == 300
    assert config.rules.disabled_rules == []
    assert config.logging.level == "WARNING"


def test_env_overrides_applied():
    env = {
        "PASSCAN_SCAN_MAX_FILE_SIZE": "2048",
        "PASSCAN_SCAN_EXCLUDE_PATTERNS": "*.log, build/",
        "PASSCAN_SCAN_REDACT": "false",
        "PASSCAN_RULES_DISABLED_RULES": "generic-password",
        "PASSCAN_WATCH_DEBOUNCE_MS": "50",
    }
    with patch.dict(os.environ, env):
        config = load_config()

    assert config.scan.max_file_size == 2048
    assert config.scan.exclude_patterns == ["*.log", "build/"]
    assert config.scan.redact is False
    assert config.rules.disabled_rules == ["generic-password"]
    assert config.watch.debounce_ms == 50


def test_env_overrides_skipped_when_disabled():
    with patch.dict(os.environ, {"PASSCAN_SCAN_MAX_FILE_SIZE": "2048"}):
        config = load_config(apply_env=False)

    assert config.scan.max_file_size == 10 * 1024 * 1024


def test_partial_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "passcan.yaml"
    path.write_text("scan:\n  max_workers: 3\n")

    config = PasscanConfig.from_file(path)

    assert config.scan.max_workers == 3
    assert config.scan.redact is True
    assert config.watch.queue_size == 1024


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "passcan.yaml"
    path.write_text("scan:\n  colour: blue\n")

    with pytest.raises(ValueError):
        PasscanConfig.from_file(path)


def test_missing_or_unsupported_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        PasscanConfig.from_file(tmp_path / "missing.yaml")

    path = tmp_path / "passcan.toml"
    path.write_text("")
    with pytest.raises(ValueError):
        PasscanConfig.from_file(path)


def test_resolved_workers():
    assert ScanConfig(max_workers=4).resolved_workers() == 4
    assert ScanConfig(max_workers=0).resolved_workers() == (os.cpu_count() or 1)
