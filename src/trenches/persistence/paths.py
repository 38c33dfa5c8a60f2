from __future__ import annotations

from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "trenches"


def default_state_root() -> Path:
    """Platform data directory for persisted game documents.

    Linux: ~/.local/share/trenches/state
    macOS: ~/Library/Application Support/trenches/state
    Windows: %LOCALAPPDATA%\\trenches\\state
    """
    return Path(user_data_dir(APP_NAME)) / "state"


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
