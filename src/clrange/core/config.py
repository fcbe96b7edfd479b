"""
clrange Configuration

Configuration sources, lowest to highest precedence:
1. Built-in defaults
2. YAML config file
3. Environment variables (CLRANGE_<SECTION>_<KEY>, a .env file is honoured)

Example:
    CLRANGE_POOL_MAX_EVENTS=500
    CLRANGE_LOGGING_LEVEL=DEBUG
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv

from .defi.concentrated_liquidity import DEFAULT_MAX_EVENTS, FeeTier
from .range_exceptions import ConfigurationError

ENV_PREFIX = "CLRANGE_"
CONFIG_FILE_ENV = "CLRANGE_CONFIG_FILE"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class PoolConfig:
    """Pool defaults applied by the factory"""
    default_fee_tier: str = FeeTier.STANDARD.name
    max_events: int = DEFAULT_MAX_EVENTS

    def validate(self) -> None:
        if self.default_fee_tier not in FeeTier.__members__:
            raise ConfigurationError(
                f"Invalid default_fee_tier: {self.default_fee_tier}. "
                f"Must be one of {list(FeeTier.__members__)}"
            )
        if not isinstance(self.max_events, int) or self.max_events < 1:
            raise ConfigurationError(f"Invalid max_events: {self.max_events}. Must be >= 1")


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    log_file: Optional[str] = None
    environment: str = "production"
    enable_console: bool = True

    def validate(self) -> None:
        if self.level.upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.level}. Must be one of {list(VALID_LOG_LEVELS)}")
        if not self.environment:
            raise ConfigurationError("environment cannot be empty")


@dataclass
class ClrangeConfig:
    pool: PoolConfig = field(default_factory=PoolConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        self.pool.validate()
        self.logging.validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_SECTIONS = {"pool": PoolConfig, "logging": LoggingConfig}


def _merge_configs(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep merge two configuration dictionaries"""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def _load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return data


def _parse_env_value(value: str, current: Any) -> Any:
    """Parse an environment value to the type of the setting it overrides"""
    if isinstance(current, bool):
        if value.lower() in ("true", "yes", "1", "on"):
            return True
        if value.lower() in ("false", "no", "0", "off"):
            return False
        raise ConfigurationError(f"Invalid boolean value: {value}")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid integer value: {value}") from e
    if current is None and value == "":
        return None
    return value


def _apply_env_variables(config: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    result = {
        section: dict(values) if isinstance(values, dict) else values
        for section, values in config.items()
    }

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or key == CONFIG_FILE_ENV:
            continue
        rest = key[len(ENV_PREFIX):].lower()
        section, _, config_key = rest.partition("_")
        if section not in _SECTIONS or not config_key:
            continue
        if not isinstance(result.get(section), dict) or config_key not in result[section]:
            continue
        result[section][config_key] = _parse_env_value(value, result[section][config_key])

    return result


def _build(config: Dict[str, Any]) -> ClrangeConfig:
    sections = {}
    for name, section_cls in _SECTIONS.items():
        values = config.get(name) or {}
        if not isinstance(values, dict):
            raise ConfigurationError(f"Config section '{name}' must be a mapping")
        known = {f.name for f in fields(section_cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(f"Unknown keys in '{name}': {sorted(unknown)}")
        sections[name] = section_cls(**values)
    return ClrangeConfig(**sections)


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ClrangeConfig:
    """
    Load and validate configuration.

    Args:
        config_file: YAML file path. Falls back to $CLRANGE_CONFIG_FILE.
        environ: Environment mapping, os.environ when omitted

    Returns:
        Validated ClrangeConfig

    Raises:
        ConfigurationError: On a missing file, malformed YAML, unknown keys
            or values failing validation
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    merged = ClrangeConfig().to_dict()

    config_file = config_file or environ.get(CONFIG_FILE_ENV)
    if config_file:
        merged = _merge_configs(merged, _load_config_file(config_file))

    merged = _apply_env_variables(merged, environ)

    config = _build(merged)
    config.validate()
    return config
