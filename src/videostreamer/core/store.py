"""The ordered video library and its metadata cache."""

import itertools
import logging
import threading
from typing import Callable, Dict, Iterator, List, Optional

from .errors import DuplicateEntry, IndexOutOfRange
from .models import VideoEntry, VideoInfo
from .persistence import JsonPersistence

logger = logging.getLogger(__name__)

InfoCallback = Callable[[Optional[VideoInfo], Optional[Exception]], None]


class MetadataCache:
    """Fetched video info keyed by entry url."""

    def __init__(self):
        self._items: Dict[str, VideoInfo] = {}

    def get(self, url: str) -> Optional[VideoInfo]:
        return self._items.get(url)

    def put(self, url: str, info: VideoInfo):
        self._items[url] = info

    def pop(self, url: str) -> Optional[VideoInfo]:
        return self._items.pop(url, None)

    def __contains__(self, url) -> bool:
        return url in self._items

    def __len__(self):
        return len(self._items)


class VideoStore:
    """User-ordered list of entries with a url index and a metadata cache.

    All mutations are expected on the main thread. Errors are raised before
    anything is changed, so a rejected call leaves the store as it was.
    """

    def __init__(self, persistence: JsonPersistence, dispatcher=None):
        self.persistence = persistence
        self.dispatcher = dispatcher
        self.cache = MetadataCache()
        self._entries: List[VideoEntry] = []
        self._urls = set()
        self._save_lock = threading.Lock()
        self._save_seq = itertools.count(1)
        self._saved_seq = 0

    # ---- Queries ----

    def __len__(self):
        return len(self._entries)

    def __iter__(self) -> Iterator[VideoEntry]:
        return iter(list(self._entries))

    def __getitem__(self, index: int) -> VideoEntry:
        self._check_index(index, len(self._entries))
        return self._entries[index]

    def __contains__(self, url) -> bool:
        return url in self._urls

    @property
    def entries(self) -> List[VideoEntry]:
        return list(self._entries)

    def index(self, url: str) -> int:
        for i, entry in enumerate(self._entries):
            if entry.url == url:
                return i
        raise KeyError(url)

    # ---- Mutations ----

    def add(self, entry: VideoEntry, index: int = 0) -> VideoEntry:
        if entry.url in self._urls:
            raise DuplicateEntry(entry.url)
        # inserting after the last row is allowed
        self._check_index(index, len(self._entries) + 1)
        self._entries.insert(index, entry)
        self._urls.add(entry.url)
        logger.info(f"Added {entry.type.value} video {entry.url} at {index}")
        return entry

    def add_from_string(self, text: str, index: int = 0) -> VideoEntry:
        """Parse user input and insert the resulting entry (at the top by default)."""
        return self.add(VideoEntry.from_string(text), index)

    def remove(self, index: int) -> VideoEntry:
        self._check_index(index, len(self._entries))
        entry = self._entries.pop(index)
        self._urls.discard(entry.url)
        self.cache.pop(entry.url)
        logger.info(f"Removed video {entry.url}")
        return entry

    def move(self, from_index: int, to_index: int):
        size = len(self._entries)
        self._check_index(from_index, size)
        self._check_index(to_index, size)
        entry = self._entries.pop(from_index)
        self._entries.insert(to_index, entry)

    def mark_downloaded(self, entry: VideoEntry, path: str):
        entry.file_path = str(path)

    def clear_download(self, entry: VideoEntry):
        entry.file_path = None

    # ---- Persistence ----

    def persist(self) -> threading.Thread:
        """Save a snapshot of the list on a background thread."""
        snapshot = [VideoEntry.from_dict(e.to_dict()) for e in self._entries]
        seq = next(self._save_seq)

        def _save():
            with self._save_lock:
                # A later snapshot already reached disk
                if seq < self._saved_seq:
                    logger.debug(f"Dropping stale snapshot {seq}")
                    return
                try:
                    self.persistence.save_all(snapshot)
                    self._saved_seq = seq
                except OSError as e:
                    logger.error(f"Failed to save videos: {e}")

        thread = threading.Thread(target=_save, daemon=True)
        thread.start()
        return thread

    def restore(self):
        """Replace the in-memory list with what persistence holds."""
        entries: List[VideoEntry] = []
        urls = set()
        for entry in self.persistence.load_all():
            if entry.url in urls:
                logger.warning(f"Skipping duplicate stored video {entry.url}")
                continue
            urls.add(entry.url)
            entries.append(entry)
        self._entries = entries
        self._urls = urls
        logger.info(f"Restored {len(entries)} videos")

    # ---- Metadata ----

    def fetch_info(self, entry: VideoEntry, client, callback: Optional[InfoCallback] = None) -> threading.Thread:
        """Fetch an entry's metadata on a worker thread and cache it.

        The result is applied on the main thread and dropped if the entry was
        removed while the fetch was in flight.
        """
        def _apply(info, error):
            if error is None and entry.url in self._urls:
                self.cache.put(entry.url, info)
            if callback:
                callback(info, error)

        def _worker():
            try:
                info = client.get_video_info(entry.url)
            except Exception as e:
                logger.warning(f"Metadata fetch failed for {entry.url}: {e}")
                self._schedule(lambda err=e: _apply(None, err))
            else:
                self._schedule(lambda: _apply(info, None))

        thread = threading.Thread(target=_worker, daemon=True)
        thread.start()
        return thread

    def _schedule(self, fn):
        if self.dispatcher is None:
            fn()
        else:
            self.dispatcher.call_soon(fn)

    @staticmethod
    def _check_index(index: int, size: int):
        if not isinstance(index, int) or index < 0 or index >= size:
            raise IndexOutOfRange(index, size)
