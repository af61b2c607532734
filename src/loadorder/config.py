"""Configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .types import ExternalPolicy

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LOADORDER_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/loadorder/config.yaml")
DEFAULT_LOG_LEVEL = "info"


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    log_dir: Path | None = None
    debug_file: bool = False


@dataclass(frozen=True)
class Config:
    """Fully parsed configuration."""

    manifests: list[Path] = field(default_factory=list)
    policy: ExternalPolicy = field(default_factory=ExternalPolicy)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate configuration from YAML.

    An explicitly requested file (argument or environment variable) must exist;
    a missing default file yields the default configuration.
    """

    config_path, explicit = _resolve_config_path(path)
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        LOGGER.debug("No config file at %s; using defaults.", config_path)
        return Config()

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return _parse_config(raw, config_path.parent)


def resolved_config_path(path: Path | str | None = None) -> Path:
    """Return the config path that :func:`load_config` would read."""
    return _resolve_config_path(path)[0]


def _resolve_config_path(explicit: Path | str | None) -> tuple[Path, bool]:
    if explicit:
        return Path(explicit).expanduser(), True
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser(), True
    return DEFAULT_CONFIG_PATH.expanduser(), False


def _parse_config(raw: dict[str, Any], base_dir: Path) -> Config:
    return Config(
        manifests=_parse_manifests(raw.get("manifests"), base_dir),
        policy=_parse_resolver(raw.get("resolver")),
        logging=_parse_logging(raw.get("logging")),
    )


def _parse_manifests(value: Any, base_dir: Path) -> list[Path]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("manifests must be a list.")

    paths: list[Path] = []
    for idx, entry in enumerate(value, start=1):
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigError(f"manifests[{idx}] must be a string path.")
        path = Path(entry).expanduser()
        # Relative manifest paths are anchored at the config file location.
        paths.append(path if path.is_absolute() else base_dir / path)
    return paths


def _parse_resolver(value: Any) -> ExternalPolicy:
    if value is None:
        return ExternalPolicy()
    if not isinstance(value, dict):
        raise ConfigError("resolver must be a mapping.")

    treat_unknown = value.get("treat_unknown_as_external", False)
    if not isinstance(treat_unknown, bool):
        raise ConfigError("resolver.treat_unknown_as_external must be a boolean.")

    symbols = value.get("external_symbols") or []
    if not isinstance(symbols, list):
        raise ConfigError("resolver.external_symbols must be a list.")
    for idx, symbol in enumerate(symbols, start=1):
        if not isinstance(symbol, str) or not symbol.strip():
            raise ConfigError(f"resolver.external_symbols[{idx}] must be a non-empty string.")

    if treat_unknown and symbols:
        LOGGER.warning(
            "resolver.external_symbols is ignored while treat_unknown_as_external is enabled."
        )
    return ExternalPolicy(
        treat_unknown_as_external=treat_unknown,
        external_symbols=frozenset(symbol.strip() for symbol in symbols),
    )


def _parse_logging(value: Any) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).lower()
    raw_dir = value.get("log_dir")
    if raw_dir is not None and not isinstance(raw_dir, str):
        raise ConfigError("logging.log_dir must be a string path.")
    log_dir = Path(raw_dir).expanduser() if raw_dir else None
    debug_file = bool(value.get("debug_file", False))
    return LoggingConfig(level=level, log_dir=log_dir, debug_file=debug_file)


__all__ = [
    "CONFIG_ENV_VAR",
    "Config",
    "ConfigError",
    "LoggingConfig",
    "load_config",
    "resolved_config_path",
]
