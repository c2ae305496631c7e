"""
User configuration for pgfonline.

Configuration via ~/.pgfonline/config.yaml (preferred) or environment
variables (fallback):

Config file format:
    engine:
      format: latex          # l / c / p (first letter decides)
      command: lualatex      # override the surface's command
      timeout: 30            # seconds per measurement round-trip
      max_lines: 2000        # log lines read per measurement before giving up
      max_shipouts: 0        # pages a measurement may ship before giving up
      grace_period: 5        # seconds to wait for TeX to exit on close

Environment variable fallbacks:
    PGFONLINE_FORMAT
    PGFONLINE_COMMAND
    PGFONLINE_TIMEOUT

PGFONLINE_DIR relocates the whole ~/.pgfonline directory.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


def _config_dir() -> Path:
    return Path(os.environ.get("PGFONLINE_DIR", Path.home() / ".pgfonline"))


CONFIG_PATH = _config_dir() / "config.yaml"

ENGINE_DEFAULTS: Dict[str, Any] = {
    "format": "latex",
    "command": None,
    "timeout": 30.0,
    "max_lines": 2000,
    "max_shipouts": 0,
    "grace_period": 5.0,
}


def load_config() -> Dict[str, Any]:
    """Load the config file.

    Returns:
        The parsed mapping, or {} when the file is missing, unreadable,
        invalid YAML, or not a mapping.
    """
    if not CONFIG_PATH.exists():
        return {}
    try:
        with open(CONFIG_PATH) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_PATH, e)
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def save_config(data: Dict[str, Any]) -> None:
    """Write the config mapping back to CONFIG_PATH as YAML."""
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(CONFIG_PATH, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def get_engine_config() -> Dict[str, Any]:
    """Get engine settings.

    Priority: config file > environment variables > defaults.

    Returns:
        Dict with format, command, timeout, max_lines, max_shipouts,
        grace_period
    """
    engine = load_config().get("engine", {})
    if not isinstance(engine, dict):
        engine = {}

    result = dict(ENGINE_DEFAULTS)
    result["format"] = (
        engine.get("format")
        or os.environ.get("PGFONLINE_FORMAT")
        or ENGINE_DEFAULTS["format"]
    )
    result["command"] = (
        engine.get("command")
        or os.environ.get("PGFONLINE_COMMAND")
        or ENGINE_DEFAULTS["command"]
    )
    result["timeout"] = _as_float(
        engine.get("timeout", os.environ.get("PGFONLINE_TIMEOUT")),
        ENGINE_DEFAULTS["timeout"],
    )
    result["max_lines"] = _as_int(engine.get("max_lines"), ENGINE_DEFAULTS["max_lines"])
    result["max_shipouts"] = _as_int(engine.get("max_shipouts"), ENGINE_DEFAULTS["max_shipouts"])
    result["grace_period"] = _as_float(engine.get("grace_period"), ENGINE_DEFAULTS["grace_period"])
    return result


def get_default_surface():
    """Build the Surface selected by the user's configuration."""
    from .surface import parse_format, surface_for_format

    engine = get_engine_config()
    surface = surface_for_format(parse_format(str(engine["format"])))
    if engine["command"]:
        surface = surface.with_command(str(engine["command"]))
    return surface
