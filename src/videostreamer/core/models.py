"""Data models for video entries, catalog lookups and playback state."""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from .errors import InvalidURL, UnsupportedFileType

UNSUPPORTED_FILE_TYPES = ("flv",)
SUPPORTED_SCHEMES = ("http", "https", "file")

_YOUTUBE_HOSTS = ("youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com")
_YOUTUBE_ID = re.compile(r"^[A-Za-z0-9_-]{11}$")


class VideoType(str, Enum):
    """How an entry's url is turned into something playable."""
    DIRECT_URL = "url"
    BROADCAST = "broadcast"
    CATALOG_IDENTIFIER = "youtube"


class StreamQuality(str, Enum):
    """Catalog stream tiers, declared in selection priority order."""
    LIVE = "hls"
    HD720 = "hd720"
    MEDIUM360 = "medium360"
    SMALL240 = "small240"


class PlaybackState(str, Enum):
    RESOLVING = "resolving"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    FAILED = "failed"
    ENDED = "ended"

    @property
    def is_terminal(self) -> bool:
        return self in (PlaybackState.FAILED, PlaybackState.ENDED)

    @property
    def is_starting(self) -> bool:
        """True until the player first becomes ready."""
        return self in (PlaybackState.RESOLVING, PlaybackState.LOADING, PlaybackState.READY)


def extract_youtube_id(url: str) -> Optional[str]:
    """Return the 11 character video id of a YouTube link, or None."""
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    candidate = None

    if host == "youtu.be":
        candidate = parsed.path.lstrip("/").split("/")[0]
    elif host in _YOUTUBE_HOSTS:
        if parsed.path == "/watch":
            candidate = parse_qs(parsed.query).get("v", [None])[0]
        else:
            # /shorts/<id>, /embed/<id>, /live/<id>
            parts = [p for p in parsed.path.split("/") if p]
            if len(parts) >= 2 and parts[0] in ("shorts", "embed", "live", "v"):
                candidate = parts[1]

    if candidate and _YOUTUBE_ID.match(candidate):
        return candidate
    return None


def infer_video_type(url: str) -> VideoType:
    if extract_youtube_id(url):
        return VideoType.CATALOG_IDENTIFIER
    if urlparse(url).path.lower().endswith(".m3u8"):
        return VideoType.BROADCAST
    return VideoType.DIRECT_URL


@dataclass
class VideoEntry:
    """A saved video the user can play."""
    url: str
    type: VideoType = VideoType.DIRECT_URL
    file_path: Optional[str] = None  # set once downloaded
    last_played_time: Optional[float] = None  # seconds

    @property
    def is_downloaded(self) -> bool:
        return self.file_path is not None

    @property
    def youtube_id(self) -> Optional[str]:
        if self.type is not VideoType.CATALOG_IDENTIFIER:
            return None
        return extract_youtube_id(self.url)

    @classmethod
    def from_string(cls, text: str) -> "VideoEntry":
        """Validate user supplied text and build an entry with its type inferred."""
        raw = (text or "").strip()
        parsed = urlparse(raw)
        scheme = parsed.scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise InvalidURL(f"Video stream must be a valid URL: {raw!r}")
        if scheme in ("http", "https") and not parsed.netloc:
            raise InvalidURL(f"Video stream must be a valid URL: {raw!r}")
        if scheme == "file" and not parsed.path:
            raise InvalidURL(f"Video stream must be a valid URL: {raw!r}")

        ext = PurePosixPath(parsed.path).suffix.lstrip(".").lower()
        if ext in UNSUPPORTED_FILE_TYPES:
            raise UnsupportedFileType(f"File type cannot be played: .{ext}")

        return cls(url=raw, type=infer_video_type(raw))

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "type": self.type.value,
            "file_path": self.file_path,
            "last_played_time": self.last_played_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VideoEntry":
        last_played = data.get("last_played_time")
        return cls(
            url=data["url"],
            type=VideoType(data.get("type", VideoType.DIRECT_URL.value)),
            file_path=data.get("file_path"),
            last_played_time=float(last_played) if last_played is not None else None,
        )


@dataclass
class CatalogVideo:
    """Result of a catalog lookup: the stream variants available for an identifier."""
    identifier: str
    title: str = ""
    variants: Dict[StreamQuality, str] = field(default_factory=dict)


@dataclass
class VideoFormat:
    """Represents a video format/stream."""
    format_id: str
    ext: str
    resolution: str  # e.g., "1280x720"
    note: str        # e.g., "720p"
    filesize: int
    url: str
    vcodec: str
    acodec: str
    fps: float
    is_video_only: bool


@dataclass
class VideoInfo:
    """Metadata shown on an entry's info screen."""
    title: str
    duration: int
    thumbnail_url: str
    formats: List[VideoFormat]
    original_url: str
    uploader: str = ""
