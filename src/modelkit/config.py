"""
Runtime settings for modelkit.

Settings are read from an optional YAML file and then from environment
variables, the latter winning:

    MODELKIT_FILTER_PRIORITY       base priority of filters (default 0)
    MODELKIT_CONSTRAINT_PRIORITY   base priority of constraints (default 100)
    MODELKIT_LOG_LEVEL             level used by configure_logging()

The process-wide instance is read when a modifier computes its priority, so
changing it only affects modifiers built afterwards.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml


ENV_PREFIX = "MODELKIT_"


@dataclass(frozen=True)
class Settings:
    filter_priority: int = 0
    constraint_priority: int = 100
    log_level: str = "WARNING"


_settings = Settings()


def _coerce(name: str, raw: Any) -> Any:
    if name.endswith("_priority"):
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid value for {name}: {raw!r} (expected an integer)")
    return str(raw).upper() if name == "log_level" else raw


def load_settings(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from a YAML file and environment overrides.

    Args:
        path: optional YAML file with a flat mapping of setting names
        environ: environment mapping (defaults to os.environ)
    """
    values: Dict[str, Any] = {}
    known = {f.name for f in fields(Settings)}

    if path is not None:
        with open(path) as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown settings in {path}: {', '.join(sorted(unknown))}")
        values.update({k: _coerce(k, v) for k, v in data.items()})

    environ = os.environ if environ is None else environ
    for name in known:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            values[name] = _coerce(name, environ[key])

    return replace(Settings(), **values)


def get_settings() -> Settings:
    return _settings


def set_settings(settings: Settings) -> Settings:
    """Replace the process-wide settings; returns the previous ones."""
    global _settings
    previous = _settings
    _settings = settings
    return previous


def configure_logging(level: Optional[str] = None) -> None:
    """Basic logging setup for scripts; libraries should not call this."""
    logging.basicConfig(
        level=(level or _settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
