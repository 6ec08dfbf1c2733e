"""Utility functions and classes for VideoStreamer."""

from .config import Settings, PLAYBACK_SPEEDS
from .paths import user_data_dir, user_data_path
from .logging import log_error, setup_logging

__all__ = [
    "Settings",
    "PLAYBACK_SPEEDS",
    "user_data_dir",
    "user_data_path",
    "log_error",
    "setup_logging",
]
