"""Structured logging configuration for the ingestion pipeline."""

import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

ROOT_LOGGER_NAME = "localtube"

# Module-level logger
logger: logging.Logger | None = None


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    rich_tracebacks: bool = True,
) -> logging.Logger:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        rich_tracebacks: Enable rich traceback formatting

    Returns:
        Configured logger instance
    """
    global logger

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    # Rich console handler (for CLI output)
    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=(level.upper() == "DEBUG"),
        markup=False,
    )
    rich_handler.setLevel(getattr(logging, level.upper()))
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    # Prevent logging to root logger
    logger.propagate = False

    logger.debug(f"Logging initialized (level={level})")

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger in the localtube hierarchy.

    Child loggers propagate to the ``localtube`` logger, so they pick up
    whatever handlers ``setup_logging`` installed.

    Args:
        name: Logger name; dotted module paths are accepted as-is

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_channel_sync_event(
    logger_instance: logging.Logger,
    channel_id: str,
    event: str,
    mode: str | None = None,
    videos_discovered: int | None = None,
    videos_ingested: int | None = None,
    error: str | None = None,
) -> None:
    """
    Log channel sync events.

    Args:
        logger_instance: Logger to use
        channel_id: Platform channel ID
        event: Event type (started, completed, failed)
        mode: "backfill" or "incremental"
        videos_discovered: Number of unseen videos found by the scan
        videos_ingested: Number of videos cataloged
        error: Error message if failed
    """
    extra: dict[str, Any] = {
        "channel_id": channel_id,
        "event": event,
    }

    if mode:
        extra["mode"] = mode
    if videos_discovered is not None:
        extra["videos_discovered"] = videos_discovered
    if videos_ingested is not None:
        extra["videos_ingested"] = videos_ingested
    if error:
        extra["error"] = error

    if event == "failed":
        logger_instance.error(f"❌ Channel sync failed: {channel_id}: {error}", extra=extra)
    elif event == "completed":
        logger_instance.info(
            f"✅ Channel sync complete: {channel_id} ({videos_ingested} new videos)",
            extra=extra,
        )
    else:
        logger_instance.info(f"🔄 Channel sync {event}: {channel_id} ({mode})", extra=extra)


def log_ingest_event(
    logger_instance: logging.Logger,
    channel_id: str,
    video_id: str,
    stage: str,
    detail: str | None = None,
) -> None:
    """
    Log a video ingest stage transition.

    Args:
        logger_instance: Logger to use
        channel_id: Owning channel ID
        video_id: Video being ingested
        stage: Stage reached (NEW, STAGING, VALIDATED, COMMITTED, CATALOGED)
        detail: Optional free-form detail
    """
    extra = {
        "channel_id": channel_id,
        "video_id": video_id,
        "stage": stage,
    }
    message = f"{channel_id}/{video_id} -> {stage}"
    if detail:
        message = f"{message} ({detail})"

    if stage == "CATALOGED":
        logger_instance.info(f"✅ {message}", extra=extra)
    else:
        logger_instance.debug(message, extra=extra)
