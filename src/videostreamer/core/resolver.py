"""Turning a video entry into a playable media url."""

import logging
import threading
from typing import Callable, Dict, Optional, Sequence

from .errors import PlaybackUnresolvable
from .models import StreamQuality, VideoEntry, VideoType

logger = logging.getLogger(__name__)

QUALITY_PRIORITY = (
    StreamQuality.LIVE,
    StreamQuality.HD720,
    StreamQuality.MEDIUM360,
    StreamQuality.SMALL240,
)
PROGRESSIVE_PRIORITY = QUALITY_PRIORITY[1:]

ResolveCallback = Callable[[Optional[str], Optional[Exception]], None]


def select_stream(variants: Dict[StreamQuality, str],
                  priority: Sequence[StreamQuality] = QUALITY_PRIORITY) -> Optional[str]:
    """Return the url of the first tier in priority order that is present."""
    for quality in priority:
        url = variants.get(quality)
        if url:
            return url
    return None


def _spawn_thread(fn: Callable[[], None]):
    threading.Thread(target=fn, daemon=True).start()


class LookupTask:
    """An in-flight catalog lookup. Cancelling suppresses its callback."""

    def __init__(self, entry: VideoEntry):
        self.entry = entry
        self._cancelled = threading.Event()
        self._done = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self):
        self._cancelled.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)


class SourceResolver:
    """Finds the url to hand to the player for an entry.

    Local files and direct/broadcast urls resolve synchronously. Catalog
    identifiers are looked up on a worker thread every time; nothing is cached.
    """

    def __init__(self, catalog, spawn: Callable[[Callable[[], None]], None] = _spawn_thread):
        self.catalog = catalog
        self._spawn = spawn

    @staticmethod
    def resolve_local(entry: VideoEntry) -> Optional[str]:
        """Resolve without any network access, or None if a lookup is required."""
        if entry.is_downloaded:
            return entry.file_path
        if entry.type in (VideoType.DIRECT_URL, VideoType.BROADCAST):
            return entry.url
        return None

    def resolve(self, entry: VideoEntry, callback: ResolveCallback) -> Optional[LookupTask]:
        """Resolve an entry and report (url, error) to callback exactly once.

        Returns None when the callback already ran synchronously, otherwise the
        LookupTask whose worker will invoke the callback from its own thread.
        """
        url = self.resolve_local(entry)
        if url is not None:
            callback(url, None)
            return None

        task = LookupTask(entry)

        def _worker():
            try:
                url = self.lookup(entry)
            except PlaybackUnresolvable as e:
                url, error = None, e
            else:
                error = None
            task._done.set()
            if task.cancelled:
                logger.debug(f"Dropping lookup result for cancelled task {entry.url}")
                return
            callback(url, error)

        self._spawn(_worker)
        return task

    def lookup(self, entry: VideoEntry,
               priority: Sequence[StreamQuality] = QUALITY_PRIORITY) -> str:
        """Blocking catalog lookup. Raises PlaybackUnresolvable."""
        identifier = entry.youtube_id
        if identifier is None:
            raise PlaybackUnresolvable(f"No video id in {entry.url}")
        try:
            video = self.catalog.lookup(identifier)
        except Exception as e:
            logger.warning(f"Catalog lookup failed for {identifier}: {e}")
            raise PlaybackUnresolvable(f"Lookup failed for {identifier}: {e}") from e

        url = select_stream(video.variants, priority)
        if url is None:
            raise PlaybackUnresolvable(f"No playable stream for {identifier}")
        return url

    def resolve_blocking(self, entry: VideoEntry, progressive_only: bool = False) -> str:
        url = self.resolve_local(entry)
        if url is not None:
            return url
        priority = PROGRESSIVE_PRIORITY if progressive_only else QUALITY_PRIORITY
        return self.lookup(entry, priority)
