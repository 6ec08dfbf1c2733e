"""YouTube stream lookup and metadata extraction using yt-dlp."""

import logging
from typing import Dict

import yt_dlp

from .models import CatalogVideo, StreamQuality, VideoFormat, VideoInfo

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={}"

# Classic muxed (audio+video) itags for each progressive tier
_ITAG_TIERS = {
    "22": StreamQuality.HD720,
    "18": StreamQuality.MEDIUM360,
    "36": StreamQuality.SMALL240,
}
_HEIGHT_TIERS = {
    720: StreamQuality.HD720,
    360: StreamQuality.MEDIUM360,
    240: StreamQuality.SMALL240,
}


class YouTubeClient:
    """Handles interaction with YouTube to find playable streams and metadata."""

    def __init__(self):
        self._ydl_opts = {
            'quiet': True,
            'no_warnings': True,
            'skip_download': True,
            'noplaylist': True,
        }

    def _extract(self, url: str) -> dict:
        with yt_dlp.YoutubeDL(self._ydl_opts) as ydl:
            try:
                return ydl.extract_info(url, download=False)
            except Exception as e:
                raise ValueError(f"Failed to fetch metadata: {str(e)}")

    def lookup(self, identifier: str) -> CatalogVideo:
        """Return the stream variants available for a video id, keyed by tier."""
        info = self._extract(WATCH_URL.format(identifier))
        variants = self.variants_from_info(info)
        logger.debug(f"Lookup {identifier}: tiers {[q.value for q in variants]}")
        return CatalogVideo(
            identifier=identifier,
            title=info.get('title', ''),
            variants=variants,
        )

    @staticmethod
    def variants_from_info(info: dict) -> Dict[StreamQuality, str]:
        variants: Dict[StreamQuality, str] = {}
        formats = info.get('formats') or []

        if info.get('is_live'):
            live_url = info.get('manifest_url')
            if not live_url:
                for f in formats:
                    if str(f.get('protocol', '')).startswith('m3u8') and f.get('url'):
                        live_url = f.get('manifest_url') or f['url']
                        break
            if live_url:
                variants[StreamQuality.LIVE] = live_url

        by_height: Dict[StreamQuality, str] = {}
        for f in formats:
            url = f.get('url')
            if not url or not str(f.get('protocol', 'https')).startswith('http'):
                continue
            # Only muxed streams play without a separate audio track
            if f.get('vcodec') in (None, 'none') or f.get('acodec') in (None, 'none'):
                continue
            tier = _ITAG_TIERS.get(str(f.get('format_id')))
            if tier is not None:
                variants.setdefault(tier, url)
                continue
            tier = _HEIGHT_TIERS.get(f.get('height'))
            if tier is not None:
                by_height.setdefault(tier, url)

        for tier, url in by_height.items():
            variants.setdefault(tier, url)
        return variants

    def get_video_info(self, url: str) -> VideoInfo:
        """Extracts video metadata and formats."""
        info = self._extract(url)

        formats = []
        for f in info.get('formats', []):
            is_video = f.get('vcodec') != 'none'
            is_audio = f.get('acodec') != 'none'

            if not is_video and not is_audio:
                continue

            formats.append(VideoFormat(
                format_id=f.get('format_id'),
                ext=f.get('ext'),
                resolution=f"{f.get('width')}x{f.get('height')}" if f.get('width') else "N/A",
                note=f.get('format_note', ''),
                filesize=f.get('filesize') or f.get('filesize_approx') or 0,
                url=f.get('url'),
                vcodec=f.get('vcodec'),
                acodec=f.get('acodec'),
                fps=f.get('fps') or 0,
                is_video_only=(is_video and not is_audio),
            ))

        return VideoInfo(
            title=info.get('title', 'Unknown Title'),
            duration=info.get('duration') or 0,
            thumbnail_url=info.get('thumbnail', ''),
            formats=formats,
            original_url=url,
            uploader=info.get('uploader') or '',
        )
