"""Catalog clients: the system of record for ingested channels and videos."""

from localtube.core.config import Settings, get_settings
from localtube.core.exceptions import ConfigurationError
from localtube.core.http_session import configure_session

from .base import CatalogClient
from .remote import SESSION_NAME, RemoteCatalog


def get_catalog(settings: Settings | None = None) -> CatalogClient:
    """
    Build the catalog client selected by ``catalog_backend``.

    Args:
        settings: Settings to use (defaults to the cached settings)

    Returns:
        RemoteCatalog or MongoCatalog
    """
    settings = settings or get_settings()

    if settings.catalog_backend == "remote":
        configure_session(SESSION_NAME, settings)
        return RemoteCatalog(settings.catalog_server_url)

    if settings.catalog_backend == "mongodb":
        from .mongo import MongoCatalog

        return MongoCatalog(settings)

    raise ConfigurationError(f"unknown catalog backend: {settings.catalog_backend!r}")


__all__ = [
    "CatalogClient",
    "RemoteCatalog",
    "get_catalog",
]
