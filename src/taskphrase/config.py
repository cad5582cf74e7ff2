"""Configuration management for the Task Phrase parser."""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .utils.datetime import resolve_timezone

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TASKPHRASE_CONFIG"
DEFAULT_CONFIG_DIR = "~/.taskphrase"


class ConfigError(ValueError):
    """Raised when configuration values are invalid."""


@dataclass(frozen=True)
class ParserConfig:
    """Tunable defaults for the parser."""

    # Timezone used when the caller does not pass one; None = machine local
    timezone: Optional[str] = None

    # Absolute fallback when no date can be found ("tomorrow at 09:00")
    default_due_hour: int = 9
    default_due_minute: int = 0

    # Time of day for strategies that only yield a date
    daily_due_hour: int = 9
    weekday_due_hour: int = 0

    # Minimum fuzzy score for keyword spelling suggestions (0-100)
    suggestion_cutoff: int = 75

    def validate(self) -> "ParserConfig":
        """Check value ranges.

        Raises:
            ConfigError: If any value is out of range
        """
        for name in ("default_due_hour", "daily_due_hour", "weekday_due_hour"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 23:
                raise ConfigError(f"{name} must be an hour between 0 and 23, got {value!r}")
        if not isinstance(self.default_due_minute, int) or not 0 <= self.default_due_minute <= 59:
            raise ConfigError(f"default_due_minute must be between 0 and 59, got {self.default_due_minute!r}")
        if not isinstance(self.suggestion_cutoff, int) or not 0 <= self.suggestion_cutoff <= 100:
            raise ConfigError(f"suggestion_cutoff must be between 0 and 100, got {self.suggestion_cutoff!r}")
        if self.timezone is not None:
            try:
                resolve_timezone(self.timezone)
            except ValueError as e:
                raise ConfigError(str(e)) from e
        return self

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        return yaml.dump(asdict(self), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ParserConfig":
        """Deserialize config from YAML.

        Raises:
            ConfigError: If the document is not a mapping or values are invalid
        """
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a YAML mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")

        return cls(**{k: v for k, v in data.items() if k in known}).validate()


def default_config_path() -> Path:
    """Config file path, honouring the TASKPHRASE_CONFIG override."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path(DEFAULT_CONFIG_DIR).expanduser() / "config.yaml"


class Config:
    """Configuration manager holding the process-wide parser config."""

    _instance: Optional[ParserConfig] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ParserConfig:
        """Load configuration from file, falling back to defaults."""
        config = ParserConfig()

        if config_path is None:
            config_path = default_config_path()

        if config_path.exists():
            try:
                config = ParserConfig.from_yaml(config_path.read_text())
                logger.debug(f"Loaded configuration from {config_path}")
            except (OSError, yaml.YAMLError, ConfigError, TypeError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}. Using default configuration.")
                config = ParserConfig()

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ParserConfig, config_path: Optional[Path] = None) -> Path:
        """Save configuration to file."""
        if config_path is None:
            config_path = default_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config.to_yaml())
        logger.debug(f"Configuration saved to {config_path}")
        return config_path

    @classmethod
    def get(cls) -> ParserConfig:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls, config_path: Optional[Path] = None) -> ParserConfig:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load(config_path)


def get_config() -> ParserConfig:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ParserConfig:
    """Load configuration from file."""
    return Config.load(config_path)
