"""Configuration file handling and settings precedence"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from .errors import ConfigurationError
from .models import VMConfig

logger = logging.getLogger(__name__)

CONFIG_DIR_PERMISSIONS = 0o700
APP_CONFIG_DIR_NAME = "q2boot"
CONFIG_FILE_NAME = "config.json"

DEFAULTS: dict[str, Any] = {
    "cpu": 2,
    "ram_gb": 2,
    "ssh_port": 2222,
    "monitor_port": 0,
    "log_file": "q2boot.log",
    "graphical": False,
    "write_mode": False,
    "confirm": False,
}


def default_config_path() -> Path:
    """Return ~/.config/q2boot/config.json"""
    return Path.home() / ".config" / APP_CONFIG_DIR_NAME / CONFIG_FILE_NAME


def ensure_config_exists(path: Path) -> None:
    """Create the config directory and a default config file if missing"""
    if path.exists():
        return

    try:
        path.parent.mkdir(mode=CONFIG_DIR_PERMISSIONS, parents=True, exist_ok=True)
        logger.info(f"No config file found. Creating default config at {path}")
        path.write_text(json.dumps(DEFAULTS, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        logger.error(f"Error creating config file {path}: {e}")


def load_config_file(path: Path) -> dict[str, Any]:
    """
    Read settings from a JSON config file

    A missing file yields no settings. A malformed file is reported and
    ignored so that defaults apply. Unknown keys are dropped, and so is
    `arch`: the architecture comes from --arch or from detection, never from
    a file shared by every disk image.
    """
    if not path.exists():
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error reading config file {path}: {e}")
        return {}

    if not isinstance(raw, dict):
        logger.error(f"Error reading config file {path}: expected a JSON object")
        return {}

    return {key: value for key, value in raw.items() if key in DEFAULTS}


def merge_settings(
    file_values: Mapping[str, Any],
    overrides: Mapping[str, Optional[Any]],
) -> dict[str, Any]:
    """Merge defaults, file values and explicit overrides, highest last

    An override of None means the option was not given.
    """
    merged: dict[str, Any] = dict(DEFAULTS)
    merged.update(file_values)
    merged.update({key: value for key, value in overrides.items() if value is not None})
    return merged


def finalize_config(**values: Any) -> VMConfig:
    """Build the immutable VMConfig, reporting range errors as ConfigurationError"""
    try:
        return VMConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"configuration validation failed: {problems}") from None
