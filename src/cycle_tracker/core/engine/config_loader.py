"""
YAML -> runtime settings loader.

Built-in defaults are merged with the optional user file
~/.cycle-tracker/config.yaml, then with environment overrides.

Usage:
    from cycle_tracker.core.engine.config_loader import load_settings
    settings = load_settings()
    data_dir = settings["data_dir"]

If the user file exists but cannot be parsed, a warning is emitted and the
file is ignored.
"""

from __future__ import annotations

import math
import os
import warnings
from pathlib import Path
from typing import Any

import yaml

from ..config import CHART_TOTAL_HEIGHT, DEFAULT_APP_ID

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

ENV_HOME = "CYCLE_TRACKER_HOME"
ENV_USER = "CYCLE_TRACKER_USER"
ENV_APP_ID = "CYCLE_TRACKER_APP_ID"


def _home_dir() -> Path:
    return Path(os.environ.get("HOME", "~")).expanduser()


def _defaults() -> dict[str, Any]:
    return {
        "app_id": DEFAULT_APP_ID,
        "data_dir": str(_home_dir() / ".cycle-tracker"),
        "user": None,
        "log_level": "WARNING",
        "log_file": None,
        "chart_height": CHART_TOTAL_HEIGHT,
    }


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; warn and return {} if it cannot be used."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        warnings.warn(f"cycle-tracker: ignoring config file {path}: {e}", stacklevel=2)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        warnings.warn(
            f"cycle-tracker: ignoring config file {path}: top level must be a mapping",
            stacklevel=2,
        )
        return {}
    return data


def _chart_height(value: Any, source: Path | None) -> float:
    """Coerce chart_height to a positive float; warn and use the default otherwise."""
    try:
        height = float(value)
    except (TypeError, ValueError, OverflowError):
        height = -1.0
    if isinstance(value, bool) or not math.isfinite(height) or height <= 0:
        warnings.warn(
            f"cycle-tracker: invalid chart_height {value!r} in {source}; using {CHART_TOTAL_HEIGHT}",
            stacklevel=3,
        )
        return CHART_TOTAL_HEIGHT
    return height


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_user_yaml_path() -> Path | None:
    """Return ~/.cycle-tracker/config.yaml if it exists, else None."""
    p = _home_dir() / ".cycle-tracker" / "config.yaml"
    return p if p.exists() else None


def load_settings(config_path: Path | None = None) -> dict[str, Any]:
    """
    Load and merge runtime settings.

    Load order (later overrides earlier):
    1. Built-in defaults
    2. config_path, or ~/.cycle-tracker/config.yaml when not given
    3. CYCLE_TRACKER_HOME / CYCLE_TRACKER_USER / CYCLE_TRACKER_APP_ID

    Returns:
        Settings dict with keys app_id, data_dir, user, log_level,
        log_file, chart_height
    """
    settings = _defaults()

    path = config_path if config_path is not None else get_user_yaml_path()
    if path is not None and path.exists():
        settings = _deep_merge(settings, _load_yaml_file(path))

    if os.environ.get(ENV_HOME):
        settings["data_dir"] = os.environ[ENV_HOME]
    if os.environ.get(ENV_USER):
        settings["user"] = os.environ[ENV_USER]
    if os.environ.get(ENV_APP_ID):
        settings["app_id"] = os.environ[ENV_APP_ID]

    settings["chart_height"] = _chart_height(settings["chart_height"], path)

    return settings
