"""Saving videos to local files for offline playback."""

import concurrent.futures
import hashlib
import logging
import threading
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import DownloadError, PlaybackUnresolvable
from .models import VideoEntry, VideoType

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, int, int], None]

CHUNK_SIZE = 64 * 1024
MIN_SPLIT_SIZE = 1024 * 1024  # smaller files are fetched in one request


class _RangeNotSupported(Exception):
    pass


class ChunkedDownloader:
    """Downloads a url with parallel range requests, falling back to one stream."""

    def __init__(self, url: str, output_path: Path, max_threads: int = 8,
                 progress_callback: Optional[ProgressCallback] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.url = url
        self.output_path = Path(output_path)
        self.max_threads = max_threads
        self.progress_callback = progress_callback

        self._stop_event = threading.Event()
        self._downloaded_bytes = 0
        self._total_bytes = 0
        self._lock = threading.Lock()

        self.session = requests.Session()
        retries = Retry(total=5, backoff_factor=1, status_forcelist=[500, 502, 503, 504])
        self.session.mount('https://', HTTPAdapter(max_retries=retries))
        self.session.mount('http://', HTTPAdapter(max_retries=retries))
        if headers:
            self.session.headers.update(headers)

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self):
        self._stop_event.set()

    def start(self) -> Path:
        """Download to output_path and return it. Raises DownloadError."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._total_bytes = self._probe_size()

        try:
            # Googlevideo hosts do not honour range splits reliably
            if self._total_bytes < MIN_SPLIT_SIZE or 'googlevideo.com' in self.url:
                self._download_single()
            else:
                try:
                    self._download_parts()
                except _RangeNotSupported:
                    logger.info(f"Range requests not honoured by {self.url}, using one stream")
                    self._reset_parts()
                    self._download_single()
        except requests.RequestException as e:
            raise DownloadError(f"Download failed: {e}") from e

        if not self.stopped and self.progress_callback:
            self.progress_callback(100.0, self._total_bytes, self._total_bytes)
        return self.output_path

    def _probe_size(self) -> int:
        try:
            resp = self.session.head(self.url, allow_redirects=True, timeout=10)
            size = int(resp.headers.get('content-length', 0))
            if size:
                return size
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"HEAD {self.url} failed: {e}")
        try:
            with self.session.get(self.url, stream=True, timeout=10) as r:
                return int(r.headers.get('content-length', 0))
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Size probe for {self.url} failed: {e}")
            return 0

    def _plan_parts(self) -> List[Tuple[int, int, Path]]:
        chunk = self._total_bytes // self.max_threads
        parts = []
        for i in range(self.max_threads):
            start = i * chunk
            end = self._total_bytes - 1 if i == self.max_threads - 1 else start + chunk - 1
            parts.append((start, end, self.output_path.with_name(f"{self.output_path.name}.part{i}")))
        return parts

    def _download_parts(self):
        parts = self._plan_parts()
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_threads) as executor:
            futures = [executor.submit(self._download_range, s, e, p) for s, e, p in parts]
            for future in concurrent.futures.as_completed(futures):
                if self.stopped:
                    executor.shutdown(wait=False, cancel_futures=True)
                    break
                try:
                    future.result()
                except Exception:
                    self._stop_event.set()
                    raise

        if self.stopped:
            return

        with open(self.output_path, 'wb') as outfile:
            for _, _, part_path in parts:
                with open(part_path, 'rb') as infile:
                    while True:
                        block = infile.read(1024 * 1024)
                        if not block:
                            break
                        outfile.write(block)
                part_path.unlink()
        self._check_size()

    def _download_range(self, start: int, end: int, part_path: Path):
        if self.stopped:
            return
        expected = end - start + 1
        received = 0
        with self.session.get(self.url, headers={'Range': f'bytes={start}-{end}'},
                              stream=True, timeout=60) as r:
            if r.status_code != 206:
                r.raise_for_status()
                raise _RangeNotSupported()
            with open(part_path, 'wb') as f:
                for block in r.iter_content(chunk_size=CHUNK_SIZE):
                    if self.stopped:
                        return
                    if block:
                        f.write(block)
                        received += len(block)
                        self._add_progress(len(block))
        if received < expected:
            raise DownloadError(f"Chunk incomplete: expected {expected}, got {received}")

    def _reset_parts(self):
        for _, _, part_path in self._plan_parts():
            part_path.unlink(missing_ok=True)
        with self._lock:
            self._downloaded_bytes = 0
        self._stop_event.clear()

    def _download_single(self):
        with self.session.get(self.url, stream=True, timeout=60) as r:
            r.raise_for_status()
            length = r.headers.get('content-length')
            if length:
                self._total_bytes = int(length)
            with open(self.output_path, 'wb') as f:
                for block in r.iter_content(chunk_size=CHUNK_SIZE):
                    if self.stopped:
                        return
                    if block:
                        f.write(block)
                        self._add_progress(len(block))
        self._check_size()

    def _check_size(self):
        if self._total_bytes > 0:
            actual = self.output_path.stat().st_size
            if actual < self._total_bytes:
                raise DownloadError(f"Download incomplete: expected {self._total_bytes}, got {actual}")

    def _add_progress(self, count: int):
        with self._lock:
            self._downloaded_bytes += count
            current = self._downloaded_bytes
        if self.progress_callback and self._total_bytes > 0:
            self.progress_callback(current / self._total_bytes * 100, current, self._total_bytes)


def local_filename(entry: VideoEntry) -> str:
    """Stable file name for an entry's download."""
    digest = hashlib.sha1(entry.url.encode('utf-8')).hexdigest()[:10]
    if entry.type is VideoType.CATALOG_IDENTIFIER:
        return f"{entry.youtube_id or digest}.mp4"
    name = PurePosixPath(urlparse(entry.url).path).name
    stem, _, ext = name.rpartition('.')
    if not stem or not ext:
        return f"{digest}.mp4"
    return f"{stem}-{digest}.{ext}"


def download_entry(entry: VideoEntry, resolver, output_dir: Path,
                   progress_callback: Optional[ProgressCallback] = None,
                   max_threads: int = 8) -> Path:
    """Download an entry's best progressive stream into output_dir."""
    if entry.is_downloaded:
        return Path(entry.file_path)
    if entry.type is VideoType.BROADCAST:
        raise DownloadError("Live broadcasts cannot be downloaded")
    if urlparse(entry.url).scheme not in ('http', 'https'):
        raise DownloadError(f"Only http(s) videos can be downloaded: {entry.url}")
    try:
        url = resolver.resolve_blocking(entry, progressive_only=True)
    except PlaybackUnresolvable as e:
        raise DownloadError(f"No downloadable stream: {e}") from e

    target = Path(output_dir) / local_filename(entry)
    logger.info(f"Downloading {entry.url} -> {target}")
    downloader = ChunkedDownloader(url, target, max_threads=max_threads,
                                   progress_callback=progress_callback)
    return downloader.start()
