"""On-disk layout of the media archive.

    <channel_id>/data.json
    <channel_id>/avatar.<ext>, banner.<ext>, banner_uncropped.<ext>
    <channel_id>/<video_id>/data.json
    <channel_id>/<video_id>/video.{mp4,webm}
    <channel_id>/<video_id>/thumb.{png,webp,jpg,gif}
    <channel_id>/<video_id>/subs.<lang>.vtt
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from localtube.core.exceptions import IntegrityViolation
from localtube.core.fs import read_json, split_name
from localtube.core.schemas import ChannelMetadata, VideoMetadata

METADATA_FILE = "data.json"
MEDIA_EXTENSIONS = ("mp4", "webm")
THUMBNAIL_EXTENSIONS = ("png", "webp", "jpg", "gif")
SUBTITLE_EXTENSION = "vtt"
CHANNEL_ASSETS = ("avatar", "banner", "banner_uncropped")


def channel_dir(media_dir: Path, channel_id: str) -> Path:
    return media_dir / channel_id


def video_dir(media_dir: Path, channel_id: str, video_id: str) -> Path:
    return media_dir / channel_id / video_id


def media_files(directory: Path) -> list[Path]:
    """Committed ``video.*`` files in a video directory."""
    candidates = (directory / f"video.{ext}" for ext in MEDIA_EXTENSIONS)
    return [p for p in candidates if p.is_file()]


def subtitle_language(filename: str) -> str:
    """
    Language tag of a subtitle file: the suffix between the last two dots.

    ``abc123.en-US.vtt`` -> ``en-US``
    """
    parts = filename.rsplit(".", 2)
    if len(parts) != 3 or not parts[1] or parts[2] != SUBTITLE_EXTENSION:
        raise IntegrityViolation(f"subtitle file has no language tag: {filename}")
    return parts[1]


@dataclass
class StagedFiles:
    """Files produced by one download attempt, grouped by class."""

    metadata: list[Path] = field(default_factory=list)
    media: list[Path] = field(default_factory=list)
    thumbnails: list[Path] = field(default_factory=list)
    subtitles: list[Path] = field(default_factory=list)
    total: int = 0

    @classmethod
    def collect(cls, directory: Path) -> "StagedFiles":
        staged = cls()
        for path in sorted(directory.iterdir()):
            staged.total += 1
            if not path.is_file():
                continue
            ext = split_name(path.name)[1].lower()
            if ext == "json":
                staged.metadata.append(path)
            elif ext in MEDIA_EXTENSIONS:
                staged.media.append(path)
            elif ext in THUMBNAIL_EXTENSIONS:
                staged.thumbnails.append(path)
            elif ext == SUBTITLE_EXTENSION:
                staged.subtitles.append(path)
        return staged

    def validate(self, label: str) -> None:
        """
        Assert the staged download has exactly one metadata, media and
        thumbnail file, and nothing besides subtitles.

        Raises:
            IntegrityViolation: On any deviation
        """
        for name, files in (
            ("metadata", self.metadata),
            ("media", self.media),
            ("thumbnail", self.thumbnails),
        ):
            if len(files) != 1:
                found = [p.name for p in files]
                raise IntegrityViolation(f"{label}: expected exactly one {name} file, found {found}")

        expected = len(self.subtitles) + 3
        if self.total != expected:
            raise IntegrityViolation(
                f"{label}: staged {self.total} entries, expected {expected} "
                f"({len(self.subtitles)} subtitles + metadata, media, thumbnail)"
            )

    def commit_plan(self) -> list[tuple[Path, str]]:
        """
        Source paths and canonical names, in commit order.

        Metadata goes last so a present ``data.json`` implies the rest landed.
        """
        plan = [(p, f"subs.{subtitle_language(p.name)}.vtt") for p in self.subtitles]
        plan.append((self.thumbnails[0], f"thumb.{split_name(self.thumbnails[0].name)[1].lower()}"))
        plan.append((self.media[0], f"video.{split_name(self.media[0].name)[1].lower()}"))
        plan.append((self.metadata[0], METADATA_FILE))
        return plan


def _upload_timestamp(data: dict) -> int:
    timestamp = data.get("timestamp")
    if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
        return int(timestamp)

    upload_date = data.get("upload_date")
    if isinstance(upload_date, str) and len(upload_date) == 8:
        try:
            parsed = datetime.strptime(upload_date, "%Y%m%d").replace(tzinfo=timezone.utc)
        except ValueError:
            pass
        else:
            return int(parsed.timestamp())

    raise IntegrityViolation("metadata has neither timestamp nor a YYYYMMDD upload_date")


def video_from_disk(media_dir: Path, channel_id: str, video_id: str) -> VideoMetadata:
    """
    Build the catalog record for a committed video from what is on disk.

    Args:
        media_dir: Media root
        channel_id: Owning channel
        video_id: Video to read

    Returns:
        VideoMetadata parsed from the committed ``data.json``

    Raises:
        IntegrityViolation: If the directory or its metadata is malformed
    """
    directory = video_dir(media_dir, channel_id, video_id)
    label = f"{channel_id}/{video_id}"

    media = media_files(directory)
    if len(media) != 1:
        found = [p.name for p in media]
        raise IntegrityViolation(f"{label} must contain exactly one video file, found {found}")

    try:
        data = read_json(directory / METADATA_FILE)
    except (OSError, ValueError) as e:
        raise IntegrityViolation(f"{label}: unreadable {METADATA_FILE}: {e}") from e
    if not isinstance(data, dict):
        raise IntegrityViolation(f"{label}: {METADATA_FILE} is not an object")

    title = data.get("fulltitle") or data.get("title")
    description = data.get("description")
    duration = data.get("duration")
    if (
        not isinstance(title, str)
        or not isinstance(description, str)
        or not isinstance(duration, (int, float))
        or isinstance(duration, bool)
    ):
        raise IntegrityViolation(f"malformed {METADATA_FILE} for {label}")

    try:
        upload_timestamp = _upload_timestamp(data)
    except IntegrityViolation as e:
        raise IntegrityViolation(f"{label}: {e}") from e

    thumbnail: str | None = None
    subtitles: list[str] = []
    for entry in sorted(directory.iterdir()):
        if entry.name.startswith("."):
            continue
        name, ext = split_name(entry.name)
        if name == "thumb":
            if thumbnail is not None:
                raise IntegrityViolation(f"{label} has multiple thumbnails")
            thumbnail = entry.name
        elif ext == SUBTITLE_EXTENSION and name.startswith("subs."):
            subtitles.append(name.split(".", 1)[1])

    try:
        return VideoMetadata(
            video_id=video_id,
            channel_id=channel_id,
            title=title,
            description=description,
            duration_seconds=round(duration),
            upload_timestamp=upload_timestamp,
            subtitle_languages=subtitles,
            media_ref=media[0].name,
            thumbnail_ref=thumbnail,
        )
    except ValidationError as e:
        raise IntegrityViolation(f"malformed {METADATA_FILE} for {label}: {e}") from e


def channel_assets_on_disk(directory: Path) -> dict[str, str]:
    """Map asset kind to file name for channel assets already present."""
    assets: dict[str, str] = {}
    if not directory.is_dir():
        return assets
    for entry in sorted(directory.iterdir()):
        if not entry.is_file():
            continue
        name, _ = split_name(entry.name)
        if name in CHANNEL_ASSETS:
            assets[name] = entry.name
    return assets


def channel_from_disk(media_dir: Path, channel_id: str) -> ChannelMetadata:
    """
    Build the catalog record for a channel from its cached ``data.json``.

    Raises:
        IntegrityViolation: If the metadata is unreadable or incomplete
    """
    directory = channel_dir(media_dir, channel_id)
    try:
        info = read_json(directory / METADATA_FILE)
    except (OSError, ValueError) as e:
        raise IntegrityViolation(f"{channel_id}: unreadable {METADATA_FILE}: {e}") from e
    return channel_from_info(info, channel_id, channel_assets_on_disk(directory))


def channel_from_info(info: dict, channel_id: str, assets: dict[str, str]) -> ChannelMetadata:
    """Validate a channel info document and build its record."""
    if not isinstance(info, dict):
        raise IntegrityViolation(f"{channel_id}: channel metadata is not an object")
    found_id = info.get("channel_id") or info.get("id")
    if found_id != channel_id:
        raise IntegrityViolation(f"{channel_id}: metadata describes channel {found_id!r}")
    if not (info.get("channel") or info.get("uploader") or info.get("title")):
        raise IntegrityViolation(f"{channel_id}: metadata has no channel name")
    try:
        return ChannelMetadata.from_info(info, assets)
    except ValidationError as e:
        raise IntegrityViolation(f"{channel_id}: malformed channel metadata: {e}") from e
