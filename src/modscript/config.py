"""
Interpreter configuration.

Settings are plain dataclass fields with defaults; a YAML file may override
any of them:

    max_loop_iterations: 50000
    default_dialect: monsterhunterworld
    log_level: INFO
"""

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .errors import ConfigError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class InterpreterConfig:
    """Engine limits and host defaults."""
    max_loop_iterations: int = 10000
    default_dialect: str = "stateofdecay"
    log_level: str = "WARNING"

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


DEFAULT_CONFIG = InterpreterConfig()


def config_from_mapping(data: Dict[str, Any], source: str = "<mapping>") -> InterpreterConfig:
    """Validate a mapping of overrides and apply it to the defaults."""
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: configuration must be a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(InterpreterConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"{source}: unknown configuration key(s): {', '.join(unknown)}")

    overrides: Dict[str, Any] = {}
    if "max_loop_iterations" in data:
        limit = data["max_loop_iterations"]
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ConfigError(f"{source}: max_loop_iterations must be a positive integer, got {limit!r}")
        overrides["max_loop_iterations"] = limit
    if "default_dialect" in data:
        dialect = data["default_dialect"]
        if not isinstance(dialect, str) or not dialect:
            raise ConfigError(f"{source}: default_dialect must be a non-empty string")
        overrides["default_dialect"] = dialect
    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if level not in _LOG_LEVELS:
            raise ConfigError(
                f"{source}: log_level must be one of {', '.join(_LOG_LEVELS)}, got {data['log_level']!r}"
            )
        overrides["log_level"] = level
    return replace(DEFAULT_CONFIG, **overrides)


def load_config(path: Union[str, Path]) -> InterpreterConfig:
    """Load interpreter settings from a YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"configuration file not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as fp:
        try:
            data = yaml.safe_load(fp) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"{config_path}: invalid YAML: {exc}") from exc
    return config_from_mapping(data, str(config_path))
