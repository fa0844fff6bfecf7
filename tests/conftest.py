"""Pytest fixtures shared by the test suite.

This module provides:
- Settings pointing at a temporary media root
- An in-memory catalog
- A scripted yt-dlp that writes files instead of downloading
- Sample channel and video metadata
"""

import json
from pathlib import Path
from typing import Any

import pytest

from localtube.catalog.base import CatalogClient
from localtube.core.config import Settings
from localtube.core.exceptions import CatalogWriteError
from localtube.core.schemas import ChannelMetadata, VideoMetadata
from localtube.video.extractor import VIDEO_URL, YtDlp

CHANNEL_ID = "UCabc"


# =============================================================================
# Fakes
# =============================================================================


class FakeCatalog(CatalogClient):
    """Catalog that keeps records in dictionaries."""

    def __init__(self, remote: bool = False, healthy: bool = True):
        self.remote = remote
        self.healthy = healthy
        self.channels: dict[str, ChannelMetadata] = {}
        self.videos: dict[str, VideoMetadata] = {}
        self.has_video_calls: list[str] = []

    def has_video(self, video_id: str) -> bool:
        self.has_video_calls.append(video_id)
        return video_id in self.videos

    def has_channel(self, channel_id: str) -> bool:
        return channel_id in self.channels

    def add_channel(self, channel: ChannelMetadata) -> None:
        if channel.channel_id in self.channels:
            raise CatalogWriteError(f"channel {channel.channel_id} already exists")
        self.channels[channel.channel_id] = channel

    def add_video(self, video: VideoMetadata) -> None:
        if video.video_id in self.videos:
            raise CatalogWriteError(f"video {video.video_id} already exists")
        if video.channel_id not in self.channels:
            raise CatalogWriteError(f"unknown channel {video.channel_id}")
        self.videos[video.video_id] = video

    def healthcheck(self) -> bool:
        return self.healthy


class FakeYtDlp(YtDlp):
    """yt-dlp stand-in driven by scripted channel info, listings and downloads."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.channel_infos: dict[str, dict[str, Any] | bytes] = {}
        self.listings: dict[str, list[str]] = {}
        self.downloads: dict[str, dict[str, str]] = {}
        self.failures: dict[str, Exception] = {}
        self.list_calls: list[tuple[str, int | None, int | None]] = []
        self.download_calls: list[str] = []

    def fetch_channel_info(self, channel_id: str, cwd: Path) -> None:
        if channel_id in self.failures:
            raise self.failures[channel_id]
        info = self.channel_infos[channel_id]
        path = cwd / f"{channel_id}.info.json"
        if isinstance(info, bytes):
            path.write_bytes(info)
        else:
            path.write_text(json.dumps(info))

    def list_video_urls(
        self, channel_id: str, start: int | None = None, end: int | None = None
    ) -> list[str]:
        self.list_calls.append((channel_id, start, end))
        urls = self.listings.get(channel_id, [])
        if start is None or end is None:
            return list(urls)
        return urls[start - 1 : end]

    def download_video(self, video_id: str, cwd: Path) -> None:
        self.download_calls.append(video_id)
        if video_id in self.failures:
            raise self.failures[video_id]
        for name, content in self.downloads[video_id].items():
            (cwd / name).write_text(content)


# =============================================================================
# Sample data
# =============================================================================


def channel_info(channel_id: str = CHANNEL_ID, thumbnails: list | None = None) -> dict[str, Any]:
    """Channel info document as written by ``--write-info-json``."""
    return {
        "id": channel_id,
        "channel_id": channel_id,
        "channel": "ABC Channel",
        "uploader_id": "@abc",
        "description": "A test channel",
        "thumbnails": thumbnails or [],
    }


def video_info(video_id: str, title: str | None = None) -> dict[str, Any]:
    """Video info document as written by ``--write-info-json``."""
    return {
        "id": video_id,
        "fulltitle": title or f"Video {video_id}",
        "description": f"Description of {video_id}",
        "duration": 125,
        "upload_date": "20240115",
    }


def download_files(video_id: str, subs: tuple[str, ...] = ("en",)) -> dict[str, str]:
    """File set a successful download leaves in the staging directory."""
    files = {
        f"{video_id}.info.json": json.dumps(video_info(video_id)),
        f"{video_id}.mp4": "media",
        f"{video_id}.webp": "thumb",
    }
    for lang in subs:
        files[f"{video_id}.{lang}.vtt"] = "WEBVTT"
    return files


def video_urls(*video_ids: str) -> list[str]:
    return [VIDEO_URL.format(video_id=v) for v in video_ids]


def write_committed_video(media_dir: Path, channel_id: str, video_id: str) -> Path:
    """Create a complete committed video directory."""
    directory = media_dir / channel_id / video_id
    directory.mkdir(parents=True)
    (directory / "subs.en.vtt").write_text("WEBVTT")
    (directory / "thumb.webp").write_text("thumb")
    (directory / "video.mp4").write_text("media")
    (directory / "data.json").write_text(json.dumps(video_info(video_id)))
    return directory


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def media_dir(tmp_path: Path) -> Path:
    path = tmp_path / "media"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path, media_dir: Path) -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        media_dir=str(media_dir),
        subscriptions_file=str(tmp_path / "subscriptions.json"),
        scan_batch_size=3,
        scan_pause_seconds=0,
    )


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def ytdlp(settings: Settings) -> FakeYtDlp:
    return FakeYtDlp(settings)
