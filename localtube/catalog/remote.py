"""Catalog client backed by a running LocalTube server's public API."""

from typing import Any

import requests

from localtube.core.exceptions import CatalogWriteError, NetworkFailure
from localtube.core.http_session import get, post
from localtube.core.logging_config import get_logger
from localtube.core.schemas import ChannelMetadata, VideoMetadata

from .base import CatalogClient

logger = get_logger(__name__)

SESSION_NAME = "catalog"


class RemoteCatalog(CatalogClient):
    """Talk to the catalog over HTTP.

    Endpoints live under ``/public-api`` and answer with a bare JSON ``true``
    or ``false``.
    """

    remote = True

    def __init__(self, server_url: str):
        self.server_url = server_url.rstrip("/")

    def _url(self, endpoint: str) -> str:
        return f"{self.server_url}/public-api/{endpoint}"

    def _get_json(self, endpoint: str, **params: str) -> Any:
        try:
            response = get(self._url(endpoint), session_name=SESSION_NAME, params=params)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise NetworkFailure(f"catalog request {endpoint} failed: {e}") from e

    def _post_record(self, endpoint: str, payload: dict[str, Any], label: str) -> None:
        try:
            response = post(self._url(endpoint), session_name=SESSION_NAME, json=payload)
        except requests.RequestException as e:
            raise NetworkFailure(f"catalog request {endpoint} failed: {e}") from e

        if response.status_code == 409:
            raise CatalogWriteError(f"catalog rejected {label}: {_message(response)}")
        if not response.ok:
            raise NetworkFailure(
                f"catalog request {endpoint} failed: HTTP {response.status_code} {_message(response)}"
            )

        try:
            accepted = response.json()
        except ValueError:
            accepted = None
        if accepted is not True:
            raise CatalogWriteError(f"catalog did not accept {label}: {response.text[:200]}")

    def has_video(self, video_id: str) -> bool:
        return self._get_json("has-video", video_id=video_id) is True

    def has_channel(self, channel_id: str) -> bool:
        return self._get_json("has-channel", channel_id=channel_id) is True

    def add_channel(self, channel: ChannelMetadata) -> None:
        self._post_record("add-channel", channel.model_dump(), f"channel {channel.channel_id}")

    def add_video(self, video: VideoMetadata) -> None:
        self._post_record(
            "add-video", video.model_dump(), f"video {video.channel_id}/{video.video_id}"
        )

    def healthcheck(self) -> bool:
        try:
            return self._get_json("healthcheck") is True
        except NetworkFailure as e:
            logger.error(f"Catalog healthcheck failed: {e}")
            return False


def _message(response: requests.Response) -> str:
    """Pull the server's error message out of a JSON error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "message" in body:
        return str(body["message"])
    return str(body)[:200]
