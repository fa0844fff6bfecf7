"""Video ingestor - download, validate, commit and catalog one video."""

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from localtube.core.config import Settings, get_settings
from localtube.core.exceptions import ReferentialInconsistency
from localtube.core.fs import make_dirs, move, staging_dir
from localtube.core.logging_config import get_logger, log_ingest_event
from localtube.video.extractor import YtDlp
from localtube.video.layout import (
    METADATA_FILE,
    StagedFiles,
    media_files,
    video_dir,
    video_from_disk,
)

if TYPE_CHECKING:
    from localtube.catalog.base import CatalogClient

logger = get_logger(__name__)


class IngestStage(str, Enum):
    """Stages a video passes through on its way into the archive."""

    NEW = "NEW"
    STAGING = "STAGING"
    VALIDATED = "VALIDATED"
    COMMITTED = "COMMITTED"
    CATALOGED = "CATALOGED"


class VideoIngestor:
    """Bring one video into the archive and the catalog.

    A video directory is only created after the download validated, and its
    ``data.json`` is written last, so a directory holding ``data.json`` is
    always complete.
    """

    def __init__(
        self,
        catalog: "CatalogClient",
        extractor: YtDlp | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.extractor = extractor or YtDlp(self.settings)

    @property
    def media_dir(self) -> Path:
        return self.settings.media_path

    def _stage(self, channel_id: str, video_id: str, stage: IngestStage, detail: str | None = None):
        log_ingest_event(logger, channel_id, video_id, stage.value, detail)

    def ingest(self, channel_id: str, video_id: str) -> bool:
        """
        Ingest a video, resuming from whatever is already on disk.

        Args:
            channel_id: Owning channel, already registered with the catalog
            video_id: Video to ingest

        Returns:
            True if the video was cataloged now, False if the catalog already had it

        Raises:
            ReferentialInconsistency: The video directory is half-populated
            ExternalToolFailure: yt-dlp failed
            IntegrityViolation: The download did not produce the expected files
            CatalogWriteError: The catalog rejected the video
            NetworkFailure: The catalog is unreachable
            StorageFailure: Staged files could not be committed
        """
        self._stage(channel_id, video_id, IngestStage.NEW)
        if self.catalog.has_video(video_id):
            logger.debug(f"{channel_id}/{video_id} already cataloged")
            return False

        directory = video_dir(self.media_dir, channel_id, video_id)
        has_metadata = (directory / METADATA_FILE).is_file()
        has_media = bool(media_files(directory))

        if has_metadata and has_media:
            self._stage(channel_id, video_id, IngestStage.COMMITTED, "found on disk")
        elif has_metadata or has_media:
            present = METADATA_FILE if has_metadata else "video file"
            raise ReferentialInconsistency(
                f"{directory} holds only a {present}; remove it or restore the missing files"
            )
        else:
            self._download(channel_id, video_id, directory)

        video = video_from_disk(self.media_dir, channel_id, video_id)
        self.catalog.add_video(video)
        self._stage(channel_id, video_id, IngestStage.CATALOGED, video.title)
        return True

    def _download(self, channel_id: str, video_id: str, directory: Path) -> None:
        label = f"{channel_id}/{video_id}"

        with staging_dir(self.media_dir, self.settings.staging_prefix) as staging:
            self._stage(channel_id, video_id, IngestStage.STAGING, staging.name)
            self.extractor.download_video(video_id, cwd=staging)

            staged = StagedFiles.collect(staging)
            staged.validate(label)
            plan = staged.commit_plan()
            self._stage(
                channel_id, video_id, IngestStage.VALIDATED, f"{len(staged.subtitles)} subtitles"
            )

            make_dirs(directory)
            for source, name in plan:
                move(source, directory / name)
            self._stage(channel_id, video_id, IngestStage.COMMITTED)
