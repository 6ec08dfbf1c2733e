"""Core functionality for VideoStreamer."""

from .errors import (
    VideoStreamerError,
    DuplicateEntry,
    IndexOutOfRange,
    InvalidURL,
    UnsupportedFileType,
    PlaybackUnresolvable,
    PlayerError,
    DownloadError,
)
from .models import (
    VideoEntry,
    VideoType,
    StreamQuality,
    PlaybackState,
    CatalogVideo,
    VideoFormat,
    VideoInfo,
)
from .dispatch import QueueDispatcher
from .persistence import JsonPersistence
from .store import VideoStore, MetadataCache
from .youtube_client import YouTubeClient
from .resolver import SourceResolver, select_stream, QUALITY_PRIORITY
from .player import MediaPlayer, PlayerStatus, PresentationSurface
from .session import PlaybackSession, PlaybackController
from .background import BackgroundContinuityManager
from .downloader import ChunkedDownloader, download_entry

__all__ = [
    "VideoStreamerError",
    "DuplicateEntry",
    "IndexOutOfRange",
    "InvalidURL",
    "UnsupportedFileType",
    "PlaybackUnresolvable",
    "PlayerError",
    "DownloadError",
    "VideoEntry",
    "VideoType",
    "StreamQuality",
    "PlaybackState",
    "CatalogVideo",
    "VideoFormat",
    "VideoInfo",
    "QueueDispatcher",
    "JsonPersistence",
    "VideoStore",
    "MetadataCache",
    "YouTubeClient",
    "SourceResolver",
    "select_stream",
    "QUALITY_PRIORITY",
    "MediaPlayer",
    "PlayerStatus",
    "PresentationSurface",
    "PlaybackSession",
    "PlaybackController",
    "BackgroundContinuityManager",
    "ChunkedDownloader",
    "download_entry",
]
