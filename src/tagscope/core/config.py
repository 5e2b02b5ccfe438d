"""
Configuration module for tagscope.

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
    value = section_defaults.get(key, fallback)
    # Lists must not be shared between config instances
    return list(value) if isinstance(value, list) else value


@dataclass
class ScanConfig:
    """Configuration for directory scanning."""

    exclude_patterns: list[str] = field(
        default_factory=lambda: _get_default("scan", "exclude_patterns", [])
    )
    jobs: int = field(default_factory=lambda: _get_default("scan", "jobs", 0))


@dataclass
class ClassifyConfig:
    """Configuration for file classification."""

    sample_size: int = field(
        default_factory=lambda: _get_default("classify", "sample_size", 8192)
    )
    sniffer: str = field(default_factory=lambda: _get_default("classify", "sniffer", ""))


@dataclass
class DriversConfig:
    """Configuration for backend driver selection and invocation."""

    pinned: str = field(default_factory=lambda: _get_default("drivers", "pinned", ""))
    output_dir: str = field(default_factory=lambda: _get_default("drivers", "output_dir", ""))
    require_all: bool = field(
        default_factory=lambda: _get_default("drivers", "require_all", False)
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "WARNING"))
    format: str = field(
        default_factory=lambda: _get_default("logging", "format", "%(message)s")
    )


@dataclass
class TagscopeConfig:
    """Main configuration class for tagscope."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    classify: ClassifyConfig = field(default_factory=ClassifyConfig)
    drivers: DriversConfig = field(default_factory=DriversConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "TagscopeConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            TagscopeConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported or malformed
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif path.suffix == ".json":
                data = json.loads(content) if content.strip() else {}
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid configuration file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Invalid configuration file {path}: expected a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "TagscopeConfig":
        """Create TagscopeConfig from a dictionary."""
        config = cls()

        try:
            if "scan" in data:
                config.scan = ScanConfig(**data["scan"])
            if "classify" in data:
                config.classify = ClassifyConfig(**data["classify"])
            if "drivers" in data:
                config.drivers = DriversConfig(**data["drivers"])
            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

        return config

    def apply_env_overrides(self) -> "TagscopeConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: TAGSCOPE_<SECTION>_<KEY>
        Examples:
            - TAGSCOPE_SCAN_JOBS
            - TAGSCOPE_DRIVERS_PINNED
            - TAGSCOPE_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Scan config
            "TAGSCOPE_SCAN_EXCLUDE_PATTERNS": ("scan", "exclude_patterns", _parse_list),
            "TAGSCOPE_SCAN_JOBS": ("scan", "jobs", int),
            # Classify config
            "TAGSCOPE_CLASSIFY_SAMPLE_SIZE": ("classify", "sample_size", int),
            "TAGSCOPE_CLASSIFY_SNIFFER": ("classify", "sniffer", str),
            # Drivers config
            "TAGSCOPE_DRIVERS_PINNED": ("drivers", "pinned", str),
            "TAGSCOPE_DRIVERS_OUTPUT_DIR": ("drivers", "output_dir", str),
            "TAGSCOPE_DRIVERS_REQUIRE_ALL": ("drivers", "require_all", _parse_bool),
            # Logging config
            "TAGSCOPE_LOGGING_LEVEL": ("logging", "level", str),
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
    """Parse a comma-separated string to a list, dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(
    config_path: Optional[Path | str] = None, apply_env: bool = True
) -> TagscopeConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        TagscopeConfig instance
    """
    if config_path:
        config = TagscopeConfig.from_file(config_path)
    else:
        config = TagscopeConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
