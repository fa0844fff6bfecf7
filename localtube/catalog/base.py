"""Catalog client contract consumed by the ingestion pipeline."""

from abc import ABC, abstractmethod

from localtube.core.schemas import ChannelMetadata, VideoMetadata


class CatalogClient(ABC):
    """System of record for channels and videos already ingested.

    Implementations report rejected inserts (duplicate IDs, videos whose
    channel is unknown) by raising ``CatalogWriteError`` and unreachable
    backends by raising ``NetworkFailure``.
    """

    #: Whether the backend lives behind the network and needs a startup healthcheck
    remote: bool = False

    @abstractmethod
    def has_video(self, video_id: str) -> bool: ...

    @abstractmethod
    def has_channel(self, channel_id: str) -> bool: ...

    @abstractmethod
    def add_channel(self, channel: ChannelMetadata) -> None: ...

    @abstractmethod
    def add_video(self, video: VideoMetadata) -> None: ...

    @abstractmethod
    def healthcheck(self) -> bool: ...

    def close(self) -> None:
        """Release connections held by the client."""

    def __enter__(self) -> "CatalogClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
