"""Pydantic schemas for channels, videos and subscription state."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from localtube.core.exceptions import StateConsistencyError


class ChannelMetadata(BaseModel):
    """Channel record registered with the catalog."""

    channel_id: str
    display_name: str
    short_id: str
    description: str | None = None
    avatar_ref: str | None = None
    banner_ref: str | None = None
    banner_uncropped_ref: str | None = None

    @classmethod
    def from_info(cls, info: dict[str, Any], assets: dict[str, str]) -> "ChannelMetadata":
        """
        Build a channel record from a yt-dlp channel info document.

        Args:
            info: Parsed ``--write-info-json`` output for the channel
            assets: Asset kind ("avatar", "banner", "banner_uncropped") -> file name

        Returns:
            ChannelMetadata instance
        """
        channel_id = info.get("channel_id") or info.get("id")
        display_name = info.get("channel") or info.get("uploader") or info.get("title")
        short_id = (info.get("uploader_id") or "").lstrip("@") or channel_id
        return cls(
            channel_id=channel_id,
            display_name=display_name,
            short_id=short_id,
            description=info.get("description") or None,
            avatar_ref=assets.get("avatar"),
            banner_ref=assets.get("banner"),
            banner_uncropped_ref=assets.get("banner_uncropped"),
        )


class VideoMetadata(BaseModel):
    """Video record registered with the catalog."""

    video_id: str
    channel_id: str
    title: str
    description: str
    duration_seconds: int
    upload_timestamp: int
    subtitle_languages: list[str] = Field(default_factory=list)
    media_ref: str
    thumbnail_ref: str | None = None

    @field_validator("subtitle_languages")
    @classmethod
    def dedupe_languages(cls, v: list[str]) -> list[str]:
        """Treat subtitle languages as a set with a stable order."""
        return sorted(set(v))

    @property
    def upload_datetime(self) -> datetime:
        """Upload time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.upload_timestamp, tz=timezone.utc)


class SubscriptionState(BaseModel):
    """Persisted subscription document.

    ``subscribing`` holds channels awaiting their first full sync,
    ``subscribed`` holds onboarded channels, and ``titles`` carries a display
    name for pending channels only.
    """

    subscribing: list[str] = Field(default_factory=list)
    subscribed: list[str] = Field(default_factory=list)
    titles: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_consistency(self) -> "SubscriptionState":
        """Reject documents that break the subscription invariants."""
        for name in ("subscribing", "subscribed"):
            ids = getattr(self, name)
            if len(set(ids)) != len(ids):
                dupes = sorted({c for c in ids if ids.count(c) > 1})
                raise StateConsistencyError(f"duplicate channel IDs in {name}: {dupes}")

        both = set(self.subscribing) & set(self.subscribed)
        if both:
            raise StateConsistencyError(
                f"channels are both subscribing and subscribed: {sorted(both)}"
            )

        orphans = set(self.titles) - set(self.subscribing)
        if orphans:
            raise StateConsistencyError(
                f"titles recorded for channels that are not pending: {sorted(orphans)}"
            )
        return self


class SyncResult(BaseModel):
    """Result of syncing one channel."""

    channel_id: str
    mode: Literal["backfill", "incremental"]
    videos_discovered: int = 0
    videos_ingested: int = 0
    channel_registered: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the channel finished without error."""
        return self.error is None


class RescanResult(BaseModel):
    """Result of registering on-disk content with the catalog."""

    channels_registered: int = 0
    channels_fetched: int = 0
    videos_registered: int = 0
    inconsistent: list[str] = Field(default_factory=list)
