"""Configuration paths and detection defaults for local graph memory."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("GRAPHPATTERN_HOME", str(Path.home() / ".graphpattern"))).expanduser()
MEMORY_DIR = BASE_DIR / "memory"
STATE_FILE = BASE_DIR / "state.json"
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_HUB_THRESHOLD = 10
SUPPORTED_GRAPH_EXTENSIONS = {".json", ".yaml", ".yml"}


def ensure_base_dirs() -> None:
    """Create base directories for local storage if needed."""
    MEMORY_DIR.mkdir(parents=True, exist_ok=True)
    BASE_DIR.mkdir(parents=True, exist_ok=True)
