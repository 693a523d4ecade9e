"""
Property-based tests for WatchConfig.

**Feature: file-watcher-service, Property 9: Config Serialization Round-Trip**
**Feature: file-watcher-service, Property 10: Environment Variable Default**
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from passcan.core.watch_config import (
    DEFAULT_DEBOUNCE_MS,
    WatchConfig,
    _get_default_debounce_ms,
)

COMMON_DIRS = ["src", "lib", "tests", "pkg", "utils", "core", "app", "data"]


@st.composite
def safe_path_strategy(draw):
    """Generate a safe file path efficiently."""
    num_dirs = draw(st.integers(min_value=1, max_value=3))
    dirs = [draw(st.sampled_from(COMMON_DIRS)) for _ in range(num_dirs)]
    return "/" + "/".join(dirs)


safe_path = safe_path_strategy()


@st.composite
def watch_config_strategy(draw):
    """Generate valid WatchConfig instances."""
    debounce_ms = draw(st.integers(min_value=0, max_value=60000))
    return WatchConfig(
        watch_path=Path(draw(safe_path)),
        debounce_ms=debounce_ms,
        max_wait_ms=draw(st.integers(min_value=debounce_ms, max_value=120000)),
        queue_size=draw(st.integers(min_value=1, max_value=100000)),
        verbose=draw(st.booleans()),
    )


@given(config=watch_config_strategy())
@settings(max_examples=100)
def test_watch_config_serialization_round_trip(config: WatchConfig):
    """
    **Feature: file-watcher-service, Property 9: Config Serialization Round-Trip**

    For any valid WatchConfig, serializing to dict and deserializing back
    SHALL produce an equivalent configuration.
    """
    loaded_config = WatchConfig.from_dict(config.to_dict())

    assert loaded_config == config


@given(
    debounce_ms=st.integers(min_value=0, max_value=60000),
    max_wait_ms=st.integers(min_value=0, max_value=60000),
)
@settings(max_examples=100)
def test_max_wait_never_below_debounce(debounce_ms: int, max_wait_ms: int):
    """A window's upper bound is never shorter than its quiet period."""
    config = WatchConfig(watch_path=Path("/src"), debounce_ms=debounce_ms, max_wait_ms=max_wait_ms)

    assert config.max_wait_ms >= config.debounce_ms
    assert config.max_wait_ms == max(debounce_ms, max_wait_ms)


@given(debounce_value=st.integers(min_value=0, max_value=60000))
@settings(max_examples=100)
def test_watch_config_env_variable_default(debounce_value: int):
    """
    **Feature: file-watcher-service, Property 10: Environment Variable Default**

    For any WatchConfig created when PASSCAN_WATCH_DEBOUNCE_MS is set,
    the debounce_ms value SHALL equal the environment variable value.
    """
    with patch.dict(os.environ, {"PASSCAN_WATCH_DEBOUNCE_MS": str(debounce_value)}):
        config = WatchConfig(watch_path=Path("/test/path"), max_wait_ms=120000)

        assert config.debounce_ms == debounce_value


def test_watch_config_default_debounce_without_env():
    """Without PASSCAN_WATCH_DEBOUNCE_MS the debounce defaults to 300ms."""
    with patch.dict(os.environ, {}, clear=True):
        assert _get_default_debounce_ms() == DEFAULT_DEBOUNCE_MS == 300


def test_watch_config_invalid_env_value_uses_default():
    """An unparsable PASSCAN_WATCH_DEBOUNCE_MS falls back to the default."""
    with patch.dict(os.environ, {"PASSCAN_WATCH_DEBOUNCE_MS": "not_a_number"}):
        assert _get_default_debounce_ms() == DEFAULT_DEBOUNCE_MS


def test_watch_config_string_path_conversion():
    config = WatchConfig(watch_path="/test/path", debounce_ms=1000)  # type: ignore
    assert isinstance(config.watch_path, Path)
    assert config.watch_path == Path("/test/path")


@pytest.mark.parametrize(
    "kwargs",
    [{"debounce_ms": -1}, {"queue_size": 0}],
)
def test_watch_config_rejects_invalid_bounds(kwargs):
    with pytest.raises(ValueError):
        WatchConfig(watch_path=Path("/test/path"), **kwargs)
