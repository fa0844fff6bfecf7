"""Channel sync module - onboards pending channels and updates subscribed ones."""

from pathlib import Path
from typing import TYPE_CHECKING

from localtube.core.config import Settings, get_settings
from localtube.core.exceptions import (
    ArchiveError,
    ConfigurationError,
    ExternalToolFailure,
    IntegrityViolation,
    NetworkFailure,
    ReferentialInconsistency,
    StaleStagingError,
    StateConsistencyError,
)
from localtube.core.fs import find_stale_staging, remove_paths
from localtube.core.logging_config import get_logger, log_channel_sync_event
from localtube.core.schemas import RescanResult, SyncResult
from localtube.video.extractor import YtDlp
from localtube.video.ingestor import VideoIngestor
from localtube.video.layout import METADATA_FILE, channel_from_disk, media_files, video_from_disk

from .resolver import ChannelResolver
from .scanner import PlaylistScanner
from .state import SubscriptionStateStore

if TYPE_CHECKING:
    from localtube.catalog.base import CatalogClient

logger = get_logger(__name__)

# yt-dlp error text for deleted or terminated channels
CHANNEL_GONE_MESSAGE = "This channel does not exist"


class SubscriptionPipeline:
    """Drive the archive from the subscription state.

    Pending channels get a full backfill and are promoted once every video
    landed. Subscribed channels get an incremental scan that stops at the
    first video the catalog already knows.

    Usage:
        pipeline = SubscriptionPipeline(settings, catalog, store)
        pipeline.preflight()
        results = pipeline.run()
    """

    def __init__(
        self,
        settings: Settings | None,
        catalog: "CatalogClient",
        state_store: SubscriptionStateStore,
        extractor: YtDlp | None = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.state_store = state_store
        self.extractor = extractor or YtDlp(self.settings)

        self.resolver = ChannelResolver(catalog, self.extractor, self.settings)
        self.scanner = PlaylistScanner(
            catalog,
            self.extractor,
            batch_size=self.settings.scan_batch_size,
            pause_seconds=self.settings.scan_pause_seconds,
        )
        self.ingestor = VideoIngestor(catalog, self.extractor, self.settings)

    @property
    def media_dir(self) -> Path:
        return self.settings.media_path

    def preflight(self) -> None:
        """
        Check the environment before touching anything.

        Raises:
            ConfigurationError: The media root is not a directory
            StaleStagingError: Staging leftovers from an interrupted run
            NetworkFailure: A remote catalog fails its healthcheck
        """
        if not self.media_dir.is_dir():
            raise ConfigurationError(f"media directory {self.media_dir} does not exist")

        prefix = self.settings.staging_prefix
        stale = find_stale_staging(self.media_dir, prefix)
        if stale:
            names = [p.name for p in stale]
            if not self.settings.staging_auto_clean:
                raise StaleStagingError(
                    f"found staging leftovers in {self.media_dir}: {names}; "
                    "remove them or enable staging_auto_clean"
                )
            logger.warning(f"Removing stale staging entries: {names}")
            remove_paths(stale)

        if self.catalog.remote and not self.catalog.healthcheck():
            raise NetworkFailure("catalog server failed its healthcheck")

    def run(self) -> list[SyncResult]:
        """
        Onboard every pending channel, then update every subscribed one.

        A failure in one channel is recorded in its result and the run
        continues with the next channel. Broken or unwritable subscription state aborts
        the run.

        Returns:
            One SyncResult per channel processed
        """
        self.state_store.load()
        results: list[SyncResult] = []

        for channel_id in self.state_store.pending():
            result = self._guarded(channel_id, "backfill", self.subscribe)
            if result.ok:
                self.state_store.promote(channel_id)
            results.append(result)

        for channel_id in self.state_store.subscribed():
            results.append(self._guarded(channel_id, "incremental", self.update))

        return results

    def _guarded(self, channel_id: str, mode: str, step) -> SyncResult:
        log_channel_sync_event(logger, channel_id, "started", mode=mode)
        result = SyncResult(channel_id=channel_id, mode=mode)
        try:
            step(channel_id, result)
        except StateConsistencyError:
            raise
        except ArchiveError as e:
            result.error = f"{type(e).__name__}: {e}"
            log_channel_sync_event(
                logger,
                channel_id,
                "failed",
                mode=mode,
                videos_discovered=result.videos_discovered,
                videos_ingested=result.videos_ingested,
                error=result.error,
            )
            return result

        log_channel_sync_event(
            logger,
            channel_id,
            "completed",
            mode=mode,
            videos_discovered=result.videos_discovered,
            videos_ingested=result.videos_ingested,
        )
        return result

    def subscribe(self, channel_id: str, result: SyncResult | None = None) -> SyncResult:
        """
        Register a channel and backfill all of its uploads.

        Args:
            channel_id: Channel to onboard
            result: Result to accumulate counts into (a new one when omitted)

        Returns:
            The SyncResult with discovery and ingest counts
        """
        result = result or SyncResult(channel_id=channel_id, mode="backfill")
        result.channel_registered = self.resolver.ensure_channel(channel_id)

        for video_id in self.scanner.scan_full(channel_id):
            result.videos_discovered += 1
            if self.ingestor.ingest(channel_id, video_id):
                result.videos_ingested += 1
        return result

    def update(self, channel_id: str, result: SyncResult | None = None) -> SyncResult:
        """
        Ingest uploads newer than the newest cataloged video of a subscribed channel.

        Raises:
            ReferentialInconsistency: The channel is subscribed but not cataloged
        """
        result = result or SyncResult(channel_id=channel_id, mode="incremental")
        if not self.catalog.has_channel(channel_id):
            raise ReferentialInconsistency(
                f"channel {channel_id} is subscribed but missing from the catalog"
            )

        for video_id in self.scanner.scan_incremental(channel_id):
            result.videos_discovered += 1
            if self.ingestor.ingest(channel_id, video_id):
                result.videos_ingested += 1
        return result

    def rescan(self, fetch_missing_meta: bool = False) -> RescanResult:
        """
        Register archive content that is on disk but missing from the catalog.

        Channels need their ``data.json``. Video directories that are not
        complete are reported and left alone.

        Args:
            fetch_missing_meta: Fetch channel metadata for directories that
                lack it instead of reporting them. Channels YouTube no longer
                knows are reported and skipped.

        Returns:
            RescanResult with registration counts and inconsistent paths

        Raises:
            ArchiveError: Fetching missing metadata failed other than for a gone channel
        """
        result = RescanResult()

        for channel_path in sorted(self.media_dir.iterdir()):
            if channel_path.name.startswith(".") or not channel_path.is_dir():
                continue
            channel_id = channel_path.name

            if not (channel_path / METADATA_FILE).is_file():
                if not fetch_missing_meta:
                    result.inconsistent.append(channel_id)
                    logger.warning(f"Skipping {channel_id}: no {METADATA_FILE}")
                    continue
                if not self._fetch_missing_meta(channel_id):
                    result.inconsistent.append(channel_id)
                    continue
                result.channels_fetched += 1

            if not self.catalog.has_channel(channel_id):
                try:
                    channel = channel_from_disk(self.media_dir, channel_id)
                except IntegrityViolation as e:
                    result.inconsistent.append(channel_id)
                    logger.warning(f"Skipping {channel_id}: {e}")
                    continue
                self.catalog.add_channel(channel)
                result.channels_registered += 1
                logger.info(f"Registered channel {channel_id} from disk")

            for video_path in sorted(channel_path.iterdir()):
                if video_path.name.startswith(".") or not video_path.is_dir():
                    continue
                label = f"{channel_id}/{video_path.name}"

                if not (video_path / METADATA_FILE).is_file() or not media_files(video_path):
                    result.inconsistent.append(label)
                    logger.warning(f"Skipping incomplete video directory {label}")
                    continue
                if self.catalog.has_video(video_path.name):
                    continue

                try:
                    video = video_from_disk(self.media_dir, channel_id, video_path.name)
                except IntegrityViolation as e:
                    result.inconsistent.append(label)
                    logger.warning(f"Skipping {label}: {e}")
                    continue
                self.catalog.add_video(video)
                result.videos_registered += 1
                logger.info(f"Registered video {label} from disk")

        return result

    def _fetch_missing_meta(self, channel_id: str) -> bool:
        """Fetch ``data.json`` and images for a channel directory; False if the channel is gone."""
        try:
            self.resolver.fetch_channel(channel_id)
        except ExternalToolFailure as e:
            if CHANNEL_GONE_MESSAGE not in str(e):
                raise
            logger.warning(f"Skipping {channel_id}: channel does not exist")
            return False
        logger.info(f"Fetched missing metadata for {channel_id}")
        return True
