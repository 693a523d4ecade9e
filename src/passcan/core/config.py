"""
Configuration module for passcan.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section) or {}
    return section_defaults.get(key, fallback)


@dataclass
class ScanConfig:
    """Configuration for full and single-file scans."""

    max_file_size: int = field(
        default_factory=lambda: _get_default("scan", "max_file_size", 10 * 1024 * 1024)
    )
    exclude_patterns: list[str] = field(
        default_factory=lambda: list(_get_default("scan", "exclude_patterns", []))
    )
    max_workers: int = field(default_factory=lambda: _get_default("scan", "max_workers", 0))
    follow_symlinks: bool = field(
        default_factory=lambda: _get_default("scan", "follow_symlinks", False)
    )
    respect_gitignore: bool = field(
        default_factory=lambda: _get_default("scan", "respect_gitignore", True)
    )
    binary_sniff_bytes: int = field(
        default_factory=lambda: _get_default("scan", "binary_sniff_bytes", 8000)
    )
    binary_ratio_threshold: float = field(
        default_factory=lambda: _get_default("scan", "binary_ratio_threshold", 0.30)
    )
    match_timeout_seconds: Optional[float] = field(
        default_factory=lambda: _get_default("scan", "match_timeout_seconds", 10.0)
    )
    redact: bool = field(default_factory=lambda: _get_default("scan", "redact", True))

    def resolved_workers(self) -> int:
        """Worker count, with 0 meaning one per available CPU."""
        if self.max_workers and self.max_workers > 0:
            return self.max_workers
        return os.cpu_count() or 1


@dataclass
class WatchSettings:
    """Configuration for watch mode."""

    debounce_ms: int = field(default_factory=lambda: _get_default("watch", "debounce_ms", 300))
    max_wait_ms: int = field(default_factory=lambda: _get_default("watch", "max_wait_ms", 2000))
    queue_size: int = field(default_factory=lambda: _get_default("watch", "queue_size", 1024))


@dataclass
class RulesConfig:
    """Configuration for the rule catalog."""

    rules_file: Optional[str] = field(
        default_factory=lambda: _get_default("rules", "rules_file", None)
    )
    disabled_rules: list[str] = field(
        default_factory=lambda: list(_get_default("rules", "disabled_rules", []))
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "WARNING"))
    format: str = field(default_factory=lambda: _get_default("logging", "format", "%(message)s"))


@dataclass
class PasscanConfig:
    """Main configuration class for passcan."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    watch: WatchSettings = field(default_factory=WatchSettings)
    rules: RulesConfig = field(default_factory=RulesConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "PasscanConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            PasscanConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "PasscanConfig":
        """Create PasscanConfig from a dictionary."""
        config = cls()

        try:
            if "scan" in data:
                config.scan = ScanConfig(**data["scan"])
            if "watch" in data:
                config.watch = WatchSettings(**data["watch"])
            if "rules" in data:
                config.rules = RulesConfig(**data["rules"])
            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

        return config

    def apply_env_overrides(self) -> "PasscanConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: PASSCAN_<SECTION>_<KEY>
        Examples:
            - PASSCAN_SCAN_MAX_FILE_SIZE
            - PASSCAN_SCAN_EXCLUDE_PATTERNS (comma-separated)
            - PASSCAN_WATCH_DEBOUNCE_MS
            - PASSCAN_RULES_RULES_FILE
            - PASSCAN_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Scan config
            "PASSCAN_SCAN_MAX_FILE_SIZE": ("scan", "max_file_size", int),
            "PASSCAN_SCAN_EXCLUDE_PATTERNS": ("scan", "exclude_patterns", _parse_list),
            "PASSCAN_SCAN_MAX_WORKERS": ("scan", "max_workers", int),
            "PASSCAN_SCAN_FOLLOW_SYMLINKS": ("scan", "follow_symlinks", _parse_bool),
            "PASSCAN_SCAN_RESPECT_GITIGNORE": ("scan", "respect_gitignore", _parse_bool),
            "PASSCAN_SCAN_BINARY_SNIFF_BYTES": ("scan", "binary_sniff_bytes", int),
            "PASSCAN_SCAN_BINARY_RATIO_THRESHOLD": ("scan", "binary_ratio_threshold", float),
            "PASSCAN_SCAN_MATCH_TIMEOUT_SECONDS": ("scan", "match_timeout_seconds", float),
            "PASSCAN_SCAN_REDACT": ("scan", "redact", _parse_bool),
            # Watch config
            "PASSCAN_WATCH_DEBOUNCE_MS": ("watch", "debounce_ms", int),
            "PASSCAN_WATCH_MAX_WAIT_MS": ("watch", "max_wait_ms", int),
            "PASSCAN_WATCH_QUEUE_SIZE": ("watch", "queue_size", int),
            # Rules config
            "PASSCAN_RULES_RULES_FILE": ("rules", "rules_file", str),
            "PASSCAN_RULES_DISABLED_RULES": ("rules", "disabled_rules", _parse_list),
            # Logging config
            "PASSCAN_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string into a list of non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(config_path: Optional[Path | str] = None, apply_env: bool = True) -> PasscanConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        PasscanConfig instance
    """
    if config_path:
        config = PasscanConfig.from_file(config_path)
    else:
        config = PasscanConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
