"""Path resolution utilities."""

import os
import sys
from pathlib import Path

APP_DIR_NAME = "VideoStreamer"


def user_data_dir() -> Path:
    """Writable per-user directory for the library and settings."""
    override = os.getenv("VIDEOSTREAMER_HOME")
    if override:
        base = Path(override)
    elif sys.platform == "win32":
        base = Path(os.getenv("APPDATA") or Path.home()) / APP_DIR_NAME
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    else:
        base = Path(os.getenv("XDG_DATA_HOME") or Path.home() / ".local" / "share") / APP_DIR_NAME.lower()
    base.mkdir(parents=True, exist_ok=True)
    return base


def user_data_path(filename: str) -> Path:
    return user_data_dir() / filename
