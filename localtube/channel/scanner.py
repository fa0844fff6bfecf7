"""Playlist scanner - discovers a channel's uploads the catalog has not seen."""

import time
from collections.abc import Iterator
from typing import TYPE_CHECKING
from urllib.parse import parse_qs, urlparse

from localtube.core.exceptions import UnparseableVideoURL
from localtube.core.logging_config import get_logger
from localtube.video.extractor import YtDlp

if TYPE_CHECKING:
    from localtube.catalog.base import CatalogClient

logger = get_logger(__name__)

WATCH_HOSTS = ("www.youtube.com", "youtube.com", "m.youtube.com")
SHORT_HOSTS = ("youtu.be",)


def video_id_from_url(url: str) -> str:
    """
    Extract the video ID from a YouTube video URL.

    Supports:
    - https://www.youtube.com/watch?v=VIDEO_ID (also youtube.com, m.youtube.com)
    - https://youtu.be/VIDEO_ID

    Raises:
        UnparseableVideoURL: For any other host or a URL without an ID
    """
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()

    if host in WATCH_HOSTS:
        values = parse_qs(parsed.query).get("v")
        if values and values[0]:
            return values[0]
    elif host in SHORT_HOSTS:
        segments = [s for s in parsed.path.split("/") if s]
        if len(segments) == 1:
            return segments[0]

    raise UnparseableVideoURL(f"cannot extract a video ID from {url!r}")


class PlaylistScanner:
    """List a channel's uploads and yield the IDs missing from the catalog.

    Both scans are generators: IDs come out in playlist order (newest first)
    as they are discovered, so ingestion can start before the scan finishes.
    """

    def __init__(
        self,
        catalog: "CatalogClient",
        extractor: YtDlp,
        batch_size: int = 100,
        pause_seconds: float = 2.0,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.catalog = catalog
        self.extractor = extractor
        self.batch_size = batch_size
        self.pause_seconds = pause_seconds

    def scan_full(self, channel_id: str) -> Iterator[str]:
        """Yield every uploaded video ID the catalog does not know, in one listing."""
        urls = self.extractor.list_video_urls(channel_id)
        logger.info(f"Full scan of {channel_id}: {len(urls)} videos listed")

        for url in urls:
            video_id = video_id_from_url(url)
            if not self.catalog.has_video(video_id):
                yield video_id

    def scan_incremental(self, channel_id: str) -> Iterator[str]:
        """
        Yield new video IDs, newest first, until reaching one the catalog knows.

        The uploads list is read in windows of ``batch_size``. The scan ends at
        the first known video, an empty window, or a short window.
        """
        start = 1
        while True:
            end = start + self.batch_size - 1
            urls = self.extractor.list_video_urls(channel_id, start=start, end=end)
            logger.debug(f"Incremental scan of {channel_id} [{start}:{end}]: {len(urls)} videos")

            for url in urls:
                video_id = video_id_from_url(url)
                if self.catalog.has_video(video_id):
                    logger.debug(f"Reached known video {video_id}, stopping scan of {channel_id}")
                    return
                yield video_id

            if len(urls) < self.batch_size:
                return

            start = end + 1
            time.sleep(self.pause_seconds)
