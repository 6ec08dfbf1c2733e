"""VideoStreamer: a saved-video library with resumable, speed-controlled playback."""

from .version import __version__

__all__ = ["__version__"]
