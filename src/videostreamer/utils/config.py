"""Configuration management."""

import json
import logging
from pathlib import Path

from .paths import user_data_path

logger = logging.getLogger(__name__)

PLAYBACK_SPEEDS = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0)

ORIENTATION_LANDSCAPE = "landscape"
ORIENTATION_ALL_BUT_UPSIDE_DOWN = "all_but_upside_down"


def _to_bool(value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if value is None:
        return default
    return bool(value)


def _to_speed(value, default: float = 1.0) -> float:
    try:
        speed = float(value)
    except (TypeError, ValueError):
        speed = default
    return max(PLAYBACK_SPEEDS[0], min(PLAYBACK_SPEEDS[-1], speed))


class Settings:
    """User preferences read by the playback layer.

    Only the settings UI (or the `settings` command) writes these; every
    setter saves immediately.
    """

    def __init__(self, config_file: Path = None):
        if config_file is None:
            config_file = user_data_path("settings.json")
        self.file = Path(config_file)
        self.data = {
            "resume_playback": True,
            "background_play": False,
            "playback_speed": 1.0,
            "lock_landscape_playback": False,
            "download_path": str(Path.home() / "Downloads" / "VideoStreamer"),
            "library_path": str(self.file.with_name("videos.json")),
        }
        self.load()

    def load(self):
        """Load configuration from file."""
        if self.file.exists():
            try:
                with open(self.file, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    self.data.update(loaded)
                else:
                    logger.warning(f"Ignoring settings file {self.file}: not an object")
            except (OSError, ValueError) as e:
                logger.warning(f"Could not read settings from {self.file}: {e}")

    def save(self):
        """Save configuration to file."""
        try:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.file, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            logger.error(f"Could not save settings to {self.file}: {e}")

    @property
    def resume_playback(self) -> bool:
        return _to_bool(self.data.get("resume_playback"), True)

    def set_resume_playback(self, value: bool):
        self.data["resume_playback"] = bool(value)
        self.save()

    @property
    def background_play(self) -> bool:
        return _to_bool(self.data.get("background_play"), False)

    def set_background_play(self, value: bool):
        self.data["background_play"] = bool(value)
        self.save()

    @property
    def playback_speed(self) -> float:
        return _to_speed(self.data.get("playback_speed"))

    def set_playback_speed(self, speed: float):
        self.data["playback_speed"] = _to_speed(speed)
        self.save()

    @property
    def lock_landscape_playback(self) -> bool:
        return _to_bool(self.data.get("lock_landscape_playback"), False)

    def set_lock_landscape_playback(self, value: bool):
        self.data["lock_landscape_playback"] = bool(value)
        self.save()

    def should_autorotate(self) -> bool:
        return not self.lock_landscape_playback

    def supported_orientations(self) -> str:
        if self.lock_landscape_playback:
            return ORIENTATION_LANDSCAPE
        return ORIENTATION_ALL_BUT_UPSIDE_DOWN

    @property
    def download_path(self) -> Path:
        """Get the download path."""
        return Path(self.data.get("download_path") or Path.home() / "Downloads" / "VideoStreamer")

    def set_download_path(self, path: str | Path):
        """Set the download path."""
        self.data["download_path"] = str(path)
        self.save()

    @property
    def library_path(self) -> Path:
        return Path(self.data.get("library_path") or self.file.with_name("videos.json"))
