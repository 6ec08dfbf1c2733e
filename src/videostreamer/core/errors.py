"""Exceptions raised by the video library and playback layers."""


class VideoStreamerError(Exception):
    """Base class for all videostreamer errors."""


class DuplicateEntry(VideoStreamerError, ValueError):
    """The url is already in the library."""

    def __init__(self, url: str):
        super().__init__(f"Video already added: {url}")
        self.url = url


class IndexOutOfRange(VideoStreamerError, IndexError):
    def __init__(self, index: int, size: int):
        super().__init__(f"Index {index} out of range for {size} entries")
        self.index = index
        self.size = size


class InvalidURL(VideoStreamerError, ValueError):
    pass


class UnsupportedFileType(VideoStreamerError, ValueError):
    pass


class PlaybackUnresolvable(VideoStreamerError, RuntimeError):
    """No playable stream could be found for an entry."""


class PlayerError(VideoStreamerError, RuntimeError):
    """The media player reported a fault."""


class DownloadError(VideoStreamerError, RuntimeError):
    pass
