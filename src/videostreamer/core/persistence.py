"""JSON file storage for the ordered video library."""

import json
import logging
import threading
from pathlib import Path
from typing import List

from .models import VideoEntry

logger = logging.getLogger(__name__)


class JsonPersistence:
    """Saves and loads the ordered entry list as a JSON document."""

    def __init__(self, file: Path):
        self.file = Path(file)
        self._lock = threading.Lock()

    def save_all(self, entries: List[VideoEntry]):
        """Write all entries, replacing the previous file atomically."""
        payload = {"version": 1, "videos": [e.to_dict() for e in entries]}
        with self._lock:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.file.with_name(self.file.name + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            tmp.replace(self.file)
        logger.debug(f"Saved {len(entries)} videos to {self.file}")

    def load_all(self) -> List[VideoEntry]:
        """Read entries back in stored order. A missing file is an empty library."""
        if not self.file.exists():
            return []
        with self._lock:
            try:
                with open(self.file, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                self._set_aside(f"Could not read videos from {self.file}: {e}")
                return []
            if not isinstance(data, dict) or not isinstance(data.get("videos", []), list):
                self._set_aside(f"Ignoring videos file {self.file}: unexpected layout")
                return []

        entries = []
        for raw in data.get("videos", []):
            try:
                entries.append(VideoEntry.from_dict(raw))
            except (AttributeError, KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping unreadable video record {raw!r}: {e}")
        return entries

    def _set_aside(self, message: str):
        """Keep an unreadable file next to the library so the next save cannot overwrite it."""
        backup = self.file.with_name(self.file.name + ".bad")
        try:
            self.file.replace(backup)
            logger.warning(f"{message}; moved to {backup}")
        except OSError as e:
            logger.warning(f"{message}; could not move it aside: {e}")
