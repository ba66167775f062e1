"""Configuration manager for graphpattern using TOML files."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import toml

from .config import BASE_DIR, CONFIG_FILE
from .exceptions import ConfigurationError
from .models import PatternDetectionConfig

logger = logging.getLogger(__name__)

DETECTION_SECTION = "detection"


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    Returns an empty dict when the file does not exist.

    Raises:
        ConfigurationError: If the file exists but is not valid TOML.
    """
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as exc:
        raise ConfigurationError(
            "Config file is not valid TOML",
            context={"path": str(CONFIG_FILE)},
            cause=exc,
        ) from exc


def _save_full_config(config: Dict[str, Any]) -> None:
    """Write entire config dict to TOML file, preserving all sections."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        toml.dump(config, f)


def load_detection_settings() -> Dict[str, Any]:
    """Raw ``[detection]`` table, or an empty dict."""
    section = load_full_config().get(DETECTION_SECTION, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[{DETECTION_SECTION}] must be a table")
    return dict(section)


def load_detection_config(overrides: Optional[Dict[str, Any]] = None) -> PatternDetectionConfig:
    """Build a :class:`PatternDetectionConfig` from ``[detection]``.

    Args:
        overrides: Values that take precedence over the file (e.g. CLI flags).
                   ``None`` values are ignored.

    Raises:
        ConfigurationError: For malformed TOML or invalid settings.
    """
    settings = load_detection_settings()
    if overrides:
        settings.update({k: v for k, v in overrides.items() if v is not None})
    logger.debug("Detection settings: %s", settings)
    return PatternDetectionConfig.from_dict(settings)


def save_detection_config(config: PatternDetectionConfig) -> None:
    """Persist *config* as the ``[detection]`` table.

    Preserves other sections in the file. ``root_node_ids`` is written only
    when set, TOML having no null value.
    """
    full = load_full_config()
    section = config.to_dict()
    if section["root_node_ids"] is None:
        section.pop("root_node_ids")
    full[DETECTION_SECTION] = section
    _save_full_config(full)


def clear_detection_config() -> None:
    """Remove ``[detection]`` from config, resetting to defaults."""
    full = load_full_config()
    full.pop(DETECTION_SECTION, None)
    _save_full_config(full)
