"""
Configuration management for httpcheck.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields, replace

from .. import __version__


OUTPUT_FORMATS = ('table', 'json', 'csv')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigError(ValueError):
    """Raised for invalid configuration values."""
    pass


@dataclass
class CheckerConfig:
    """Configuration for how URLs are checked."""
    timeout_ms: int = 10000
    retries: int = 1
    follow_redirects: bool = True
    max_redirects: int = 10
    method: str = 'GET'
    headers: Dict[str, str] = field(default_factory=dict)
    concurrency: int = 5
    user_agent: str = f"httpcheck/{__version__}"
    retry_delay: float = 1.0


@dataclass
class OutputConfig:
    """Configuration for result output."""
    format: str = 'table'
    file: Optional[str] = None
    color: Optional[bool] = None  # None: decide from the terminal
    verbose: bool = False
    quiet: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'WARNING'
    file: Optional[str] = None
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""
    checker: CheckerConfig = field(default_factory=CheckerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


SECTIONS = {
    'checker': CheckerConfig,
    'output': OutputConfig,
    'logging': LoggingConfig,
    'monitoring': MonitoringConfig,
}


def _build_section(name: str, data: Any):
    section_cls = SECTIONS[name]
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{name}': {', '.join(sorted(unknown))}")

    return section_cls(**data)


def parse_header(header: str) -> tuple:
    """
    Split a ``Key: Value`` header at its first colon.

    Raises:
        ConfigError: If there is no colon or the key is empty
    """
    if ':' not in header:
        raise ConfigError(f"Invalid header (expected 'Key: Value'): {header}")
    key, value = header.split(':', 1)
    key = key.strip()
    if not key:
        raise ConfigError(f"Invalid header (empty name): {header}")
    return key, value.strip()


# (accepted types, description) per field; bool is only accepted where listed
FIELD_TYPES = {
    'checker': {
        'timeout_ms': ((int,), 'an integer'),
        'retries': ((int,), 'an integer'),
        'follow_redirects': ((bool,), 'true or false'),
        'max_redirects': ((int,), 'an integer'),
        'method': ((str,), 'a string'),
        'concurrency': ((int,), 'an integer'),
        'user_agent': ((str,), 'a string'),
        'retry_delay': ((int, float), 'a number'),
    },
    'output': {
        'format': ((str,), 'a string'),
        'file': ((str, type(None)), 'a path'),
        'color': ((bool, type(None)), 'true or false'),
        'verbose': ((bool,), 'true or false'),
        'quiet': ((bool,), 'true or false'),
    },
    'logging': {
        'level': ((str,), 'a string'),
        'file': ((str, type(None)), 'a path'),
        'format': ((str,), 'a string'),
        'json': ((bool,), 'true or false'),
    },
    'monitoring': {
        'metrics_file': ((str, type(None)), 'a path'),
    },
}


def _check_types(config: Config):
    for section_name, expected in FIELD_TYPES.items():
        section = getattr(config, section_name)
        for name, (types, description) in expected.items():
            value = getattr(section, name)
            if isinstance(value, bool) and bool not in types:
                valid = False
            else:
                valid = isinstance(value, types)
            if not valid:
                raise ConfigError(f"{section_name}.{name} must be {description}, got {value!r}")


def validate_config(config: Config) -> Config:
    """Validate configuration values and normalize a few of them."""
    _check_types(config)

    checker = config.checker

    if checker.timeout_ms <= 0:
        raise ConfigError("timeout_ms must be positive")

    # retries counts total attempts; anything below one still makes one
    if checker.retries < 1:
        checker.retries = 1

    if checker.max_redirects < 0:
        raise ConfigError("max_redirects must be non-negative")

    if checker.concurrency < 1:
        raise ConfigError("concurrency must be at least 1")

    if checker.retry_delay < 0:
        raise ConfigError("retry_delay must be non-negative")

    if not checker.method or not str(checker.method).strip():
        raise ConfigError("method must not be empty")
    checker.method = str(checker.method).strip().upper()

    if not isinstance(checker.headers, dict):
        raise ConfigError("headers must be a mapping of name to value")
    checker.headers = {str(k): str(v) for k, v in checker.headers.items()}

    if config.output.format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"Unknown format: {config.output.format} (expected one of {', '.join(OUTPUT_FORMATS)})"
        )

    if config.output.verbose and config.output.quiet:
        raise ConfigError("verbose and quiet cannot both be enabled")

    if str(config.logging.level).upper() not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level: {config.logging.level}")

    logging.getLogger(__name__).debug("Configuration validation passed")
    return config


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from the YAML file, or defaults when no file is set."""
        if self.config_path is None:
            self._config = validate_config(Config())
            return self._config

        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read configuration file {self.config_path}: {e.strerror or e}") from e

        if not isinstance(config_data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {self.config_path}")

        unknown = set(config_data) - set(SECTIONS)
        if unknown:
            raise ConfigError(f"Unknown configuration section(s): {', '.join(sorted(unknown))}")

        try:
            sections = {name: _build_section(name, config_data.get(name)) for name in SECTIONS}
        except TypeError as e:
            raise ConfigError(str(e)) from e

        self._config = validate_config(Config(**sections))
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def apply_overrides(config: Config, section: str, **values) -> Config:
    """
    Return a copy of ``config`` with non-None values replaced in one section.

    Used to layer command-line flags over file values.
    """
    current = getattr(config, section)
    changes = {key: value for key, value in values.items() if value is not None}
    if not changes:
        return config
    return replace(config, **{section: replace(current, **changes)})


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file (or defaults when no path is given)."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
