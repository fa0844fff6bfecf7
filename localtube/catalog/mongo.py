"""MongoDB catalog backend.

``MongoCatalogManager`` owns the async motor connection and the raw
collection operations. ``MongoCatalog`` adapts it to the synchronous
``CatalogClient`` contract by driving it on a private event loop, so the
motor client stays bound to one loop for its whole life.

Usage:
    with MongoCatalog(settings) as catalog:
        catalog.has_video("dQw4w9WgXcQ")
"""

import asyncio
from collections.abc import Coroutine
from datetime import datetime, timezone
from typing import Any, TypeVar

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from localtube.core.config import Settings, get_settings
from localtube.core.exceptions import CatalogWriteError, NetworkFailure
from localtube.core.schemas import ChannelMetadata, VideoMetadata

from .base import CatalogClient

T = TypeVar("T")


class MongoCatalogManager:
    """Manage MongoDB operations for the catalog.

    This class provides:
    - Connection lifecycle management
    - Index management
    - Existence checks and inserts for channels and videos

    Usage:
        async with MongoCatalogManager() as db:
            await db.insert_channel(...)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize MongoDB manager."""
        self.settings = settings or get_settings()
        self.client: AsyncIOMotorClient | None = None
        self.db: AsyncIOMotorDatabase | None = None
        self.channels: Any | None = None
        self.videos: Any | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize MongoDB connection."""
        if self._initialized:
            return

        self.client = AsyncIOMotorClient(self.settings.mongodb_url)
        self.db = self.client[self.settings.mongodb_database]
        self.channels = self.db.channels
        self.videos = self.db.videos
        self._initialized = True

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self.client and self._initialized:
            self.client.close()
            self._initialized = False

    async def __aenter__(self) -> "MongoCatalogManager":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def init_indexes(self) -> None:
        """Initialize database indexes."""
        await self.initialize()

        await self.channels.create_index("channel_id", unique=True)
        await self.channels.create_index("short_id")

        await self.videos.create_index("video_id", unique=True)
        await self.videos.create_index("channel_id")
        await self.videos.create_index([("channel_id", 1), ("upload_timestamp", -1)])

    async def ping(self) -> bool:
        """Check the server answers."""
        await self.initialize()
        response = await self.client.admin.command("ping")
        return bool(response.get("ok"))

    async def video_exists(self, video_id: str) -> bool:
        """Check whether a video document exists."""
        await self.initialize()
        return await self.videos.find_one({"video_id": video_id}, {"_id": 1}) is not None

    async def channel_exists(self, channel_id: str) -> bool:
        """Check whether a channel document exists."""
        await self.initialize()
        return await self.channels.find_one({"channel_id": channel_id}, {"_id": 1}) is not None

    async def insert_channel(self, doc: dict[str, Any]) -> str:
        """Insert a channel document.

        Args:
            doc: Channel document

        Returns:
            Document ID as string
        """
        await self.initialize()
        result = await self.channels.insert_one(doc)
        return str(result.inserted_id)

    async def insert_video(self, doc: dict[str, Any]) -> str:
        """Insert a video document.

        Args:
            doc: Video document

        Returns:
            Document ID as string
        """
        await self.initialize()
        result = await self.videos.insert_one(doc)
        return str(result.inserted_id)


def channel_to_document(channel: ChannelMetadata) -> dict[str, Any]:
    """Map a channel record to its MongoDB document."""
    doc = channel.model_dump()
    doc["created_at"] = datetime.now(timezone.utc).isoformat()
    return doc


def video_to_document(video: VideoMetadata) -> dict[str, Any]:
    """Map a video record to its MongoDB document."""
    doc = video.model_dump()
    doc["created_at"] = datetime.now(timezone.utc).isoformat()
    return doc


class MongoCatalog(CatalogClient):
    """Direct data-access catalog backed by MongoDB."""

    def __init__(
        self,
        settings: Settings | None = None,
        manager: MongoCatalogManager | None = None,
    ) -> None:
        self.manager = manager or MongoCatalogManager(settings)
        self._loop = asyncio.new_event_loop()
        self._indexes_ready = False

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        try:
            return self._loop.run_until_complete(coro)
        except PyMongoError as e:
            if isinstance(e, DuplicateKeyError):
                raise
            raise NetworkFailure(f"MongoDB operation failed: {e}") from e

    def _ensure_indexes(self) -> None:
        if not self._indexes_ready:
            self._run(self.manager.init_indexes())
            self._indexes_ready = True

    def has_video(self, video_id: str) -> bool:
        return self._run(self.manager.video_exists(video_id))

    def has_channel(self, channel_id: str) -> bool:
        return self._run(self.manager.channel_exists(channel_id))

    def add_channel(self, channel: ChannelMetadata) -> None:
        self._ensure_indexes()
        try:
            self._run(self.manager.insert_channel(channel_to_document(channel)))
        except DuplicateKeyError as e:
            raise CatalogWriteError(f"channel {channel.channel_id} already exists") from e

    def add_video(self, video: VideoMetadata) -> None:
        self._ensure_indexes()
        if not self.has_channel(video.channel_id):
            raise CatalogWriteError(
                f"video {video.video_id} references unknown channel {video.channel_id}"
            )
        try:
            self._run(self.manager.insert_video(video_to_document(video)))
        except DuplicateKeyError as e:
            raise CatalogWriteError(f"video {video.video_id} already exists") from e

    def healthcheck(self) -> bool:
        try:
            return self._run(self.manager.ping())
        except NetworkFailure:
            return False

    def close(self) -> None:
        if self._loop.is_closed():
            return
        self._loop.run_until_complete(self.manager.close())
        self._loop.close()
