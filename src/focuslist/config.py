# src/focuslist/config.py

"""
Settings loaded from an optional YAML file and FOCUSLIST_* environment
variables.

Precedence (lowest to highest): built-in defaults, the config file,
environment variables, explicit CLI flags (applied by the CLI).

Config file lookup: explicit path, then $FOCUSLIST_CONFIG, then
~/.config/focuslist/config.yml when it exists.

Example config.yml:

    data_file: ~/notes/todos.md
    log_dir: ~/.local/state/focuslist
    log_level: DEBUG
    undo_grace_seconds: 5
    tick_seconds: 1
    bell: true
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "FOCUSLIST"
DEFAULT_CONFIG_PATH = Path("~/.config/focuslist/config.yml")


class ConfigError(Exception):
    """Raised when the configuration file exists but cannot be used."""


@dataclass(frozen=True, slots=True)
class Settings:
    data_file: Path = Path("todos.md")
    log_dir: Path = Path(".local/focuslist")
    log_level: str = "INFO"
    undo_grace_seconds: float = 5.0
    tick_seconds: float = 1.0
    bell: bool = True


# ---------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------

def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix.upper()}"


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _to_float(raw: Any) -> float:
    value = float(raw)
    if value <= 0:
        raise ValueError(f"must be positive, got {raw!r}")
    return value


def _to_path(raw: Any) -> Path:
    return Path(str(raw)).expanduser()


def _to_level(raw: Any) -> str:
    level = str(raw).strip().upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ValueError(f"unknown log level {raw!r}")
    return level


_CONVERTERS = {
    "data_file": _to_path,
    "log_dir": _to_path,
    "log_level": _to_level,
    "undo_grace_seconds": _to_float,
    "tick_seconds": _to_float,
    "bell": _to_bool,
}


def _coerce(values: dict[str, Any], source: str) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, raw in values.items():
        convert = _CONVERTERS.get(key)
        if convert is None:
            logger.warning("Ignoring unknown setting %r in %s", key, source)
            continue
        try:
            out[key] = convert(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{source}: invalid value for '{key}': {e}") from e
    return out


# ---------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------

def _resolve_config_path(path: Optional[str | Path]) -> Optional[Path]:
    if path:
        return Path(path).expanduser()

    env_path = os.getenv(_k("config"))
    if env_path:
        return Path(env_path).expanduser()

    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.is_file() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: YAML root must be a mapping")

    return data


def _read_env() -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(Settings):
        raw = os.getenv(_k(f.name))
        if raw is not None and raw.strip() != "":
            out[f.name] = raw
    return out


def load_settings(path: Optional[str | Path] = None) -> Settings:
    """
    Build Settings from defaults, the config file and the environment.

    Raises ConfigError for an unreadable or malformed file, or a value
    that cannot be converted.
    """
    settings = Settings()

    config_path = _resolve_config_path(path)
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        settings = replace(settings, **_coerce(_read_yaml(config_path), str(config_path)))
        logger.debug("Loaded settings from %s", config_path)

    env = _read_env()
    if env:
        settings = replace(settings, **_coerce(env, "environment"))

    return settings
