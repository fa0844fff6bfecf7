"""Channel resolver - makes sure a channel is on disk and known to the catalog."""

from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests

from localtube.core.config import Settings, get_settings
from localtube.core.exceptions import (
    IntegrityViolation,
    NetworkFailure,
    ReferentialInconsistency,
    StorageFailure,
)
from localtube.core.fs import make_dirs, move, read_json, split_name, staging_dir
from localtube.core.http_session import configure_session, get
from localtube.core.logging_config import get_logger
from localtube.core.schemas import ChannelMetadata
from localtube.video.extractor import YtDlp
from localtube.video.layout import (
    METADATA_FILE,
    channel_assets_on_disk,
    channel_dir,
    channel_from_disk,
    channel_from_info,
)

if TYPE_CHECKING:
    from localtube.catalog.base import CatalogClient

logger = get_logger(__name__)

ASSET_SESSION = "assets"

# Content-Type -> file extension for channel images
IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


def select_assets(thumbnails: list[dict[str, Any]] | None) -> dict[str, str]:
    """
    Pick avatar and banner URLs from a channel's ``thumbnails`` list.

    Args:
        thumbnails: yt-dlp thumbnail entries (``id``, ``url``, ``width``, ``height``)

    Returns:
        Asset kind -> URL, for the kinds that were found
    """
    selected: dict[str, str] = {}
    banner: dict[str, Any] | None = None

    for thumb in thumbnails or []:
        url = thumb.get("url")
        if not url:
            continue
        if thumb.get("id") == "avatar_uncropped":
            selected["avatar"] = url
        elif thumb.get("id") == "banner_uncropped":
            selected["banner_uncropped"] = url

        width, height = thumb.get("width"), thumb.get("height")
        if not width or not height or width / height <= 2:
            continue
        if banner is None or width < banner["width"]:
            banner = thumb

    if banner is not None:
        selected["banner"] = banner["url"]
    return selected


def fetch_asset(url: str, destination: Path, name: str) -> Path:
    """
    Download an image and save it as ``<name>.<ext>`` under ``destination``.

    The extension comes from the response's Content-Type.

    Raises:
        NetworkFailure: On transport errors, non-2xx responses or an unsupported image type
        StorageFailure: The image could not be written
    """
    try:
        response = get(url, session_name=ASSET_SESSION, stream=True)
    except requests.RequestException as e:
        raise NetworkFailure(f"failed to fetch {url}: {e}") from e

    with response:
        if not response.ok:
            raise NetworkFailure(f"failed to fetch {url}: HTTP {response.status_code}")

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        ext = IMAGE_EXTENSIONS.get(content_type)
        if ext is None:
            raise NetworkFailure(f"unsupported image type {content_type!r} from {url}")

        path = destination / f"{name}.{ext}"
        try:
            with open(path, "wb") as f:
                for chunk in response.iter_content(chunk_size=65536):
                    f.write(chunk)
        except requests.RequestException as e:
            raise NetworkFailure(f"failed to fetch {url}: {e}") from e
        except OSError as e:
            raise StorageFailure(f"failed to save {url} to {path}: {e}") from e
    return path


class ChannelResolver:
    """Register channels with the catalog, fetching their metadata when needed."""

    def __init__(
        self,
        catalog: "CatalogClient",
        extractor: YtDlp | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.extractor = extractor or YtDlp(self.settings)
        configure_session(ASSET_SESSION, self.settings)

    @property
    def media_dir(self) -> Path:
        return self.settings.media_path

    def ensure_channel(self, channel_id: str) -> bool:
        """
        Make sure the catalog knows ``channel_id``.

        Uses the cached ``data.json`` when present; otherwise fetches the
        channel's info and images first.

        Args:
            channel_id: Channel to register

        Returns:
            True if the channel was registered now, False if the catalog already had it

        Raises:
            ReferentialInconsistency: Assets on disk without channel metadata
            ExternalToolFailure: yt-dlp failed
            IntegrityViolation: Channel info is missing, not a single document or unreadable
            NetworkFailure: An image or catalog request failed
            StorageFailure: Fetched files could not be written into the channel directory
        """
        if self.catalog.has_channel(channel_id):
            logger.debug(f"Channel {channel_id} already cataloged")
            return False

        directory = channel_dir(self.media_dir, channel_id)
        metadata_path = directory / METADATA_FILE

        if metadata_path.is_file():
            logger.info(f"Registering channel {channel_id} from cached metadata")
            channel = channel_from_disk(self.media_dir, channel_id)
        else:
            stray = channel_assets_on_disk(directory)
            if stray:
                raise ReferentialInconsistency(
                    f"{directory} has channel assets {sorted(stray.values())} "
                    f"but no {METADATA_FILE}"
                )
            channel = self.fetch_channel(channel_id)

        self.catalog.add_channel(channel)
        logger.info(f"✅ Registered channel {channel_id} ({channel.display_name})")
        return True

    def fetch_channel(self, channel_id: str) -> ChannelMetadata:
        """
        Fetch a channel's info and images into its directory.

        Existing assets with the same names are replaced. The catalog is not
        touched.

        Returns:
            The channel record built from the fetched info
        """
        logger.info(f"Fetching channel info for {channel_id}")
        directory = channel_dir(self.media_dir, channel_id)

        with staging_dir(self.media_dir, self.settings.staging_prefix) as staging:
            self.extractor.fetch_channel_info(channel_id, cwd=staging)

            info_files = [p for p in staging.iterdir() if split_name(p.name)[1] == "json"]
            if len(info_files) != 1:
                raise IntegrityViolation(
                    f"expected one channel info file for {channel_id}, "
                    f"found {[p.name for p in info_files]}"
                )
            try:
                info = read_json(info_files[0])
            except (OSError, ValueError) as e:
                raise IntegrityViolation(f"unreadable channel info for {channel_id}: {e}") from e
            if not isinstance(info, dict):
                raise IntegrityViolation(f"channel info for {channel_id} is not an object")

            fetched: dict[str, Path] = {}
            for kind, url in select_assets(info.get("thumbnails")).items():
                fetched[kind] = fetch_asset(url, staging, kind)

            assets = {kind: path.name for kind, path in fetched.items()}
            channel = channel_from_info(info, channel_id, assets)

            make_dirs(directory)
            for path in fetched.values():
                move(path, directory / path.name)
            move(info_files[0], directory / METADATA_FILE)

        return channel
