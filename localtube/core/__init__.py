"""Core package for the LocalTube ingest pipeline."""

from localtube.core.config import Settings, get_settings
from localtube.core.exceptions import (
    ArchiveError,
    CatalogWriteError,
    ConfigurationError,
    ExternalToolFailure,
    IntegrityViolation,
    NetworkFailure,
    ReferentialInconsistency,
    StaleStagingError,
    StorageFailure,
    StateConsistencyError,
    UnparseableVideoURL,
)
from localtube.core.http_session import (
    close_all_sessions,
    configure_session,
    get,
    get_session,
    post,
    request,
)
from localtube.core.logging_config import (
    get_logger,
    log_channel_sync_event,
    log_ingest_event,
    setup_logging,
)
from localtube.core.schemas import (
    ChannelMetadata,
    RescanResult,
    SubscriptionState,
    SyncResult,
    VideoMetadata,
)

__all__ = [
    "Settings",
    "get_settings",
    # Schemas
    "ChannelMetadata",
    "VideoMetadata",
    "SubscriptionState",
    "SyncResult",
    "RescanResult",
    # Errors
    "ArchiveError",
    "ConfigurationError",
    "ExternalToolFailure",
    "UnparseableVideoURL",
    "IntegrityViolation",
    "ReferentialInconsistency",
    "NetworkFailure",
    "CatalogWriteError",
    "StateConsistencyError",
    "StaleStagingError",
    "StorageFailure",
    # Logging
    "setup_logging",
    "get_logger",
    "log_channel_sync_event",
    "log_ingest_event",
    # HTTP
    "get_session",
    "configure_session",
    "close_all_sessions",
    "request",
    "get",
    "post",
]
