"""Configuration settings for the LocalTube ingest pipeline."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and config.yaml."""

    model_config = SettingsConfigDict(  # type: ignore[assignment]
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars not defined in model
    )

    # Archive layout
    media_dir: str = "./media"
    subscriptions_file: str = "./subscriptions.json"

    # Catalog
    catalog_backend: Literal["mongodb", "remote"] = "remote"
    catalog_server_url: str = "http://localhost:3000"
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "localtube"

    # yt-dlp
    ytdlp_path: str = "yt-dlp"
    ytdlp_cookies_file: str | None = None
    ytdlp_timeout: int = 3600  # seconds, per invocation
    ytdlp_format: str | None = None
    subtitle_languages: str = "en.*"

    # Playlist scanning
    scan_batch_size: int = 100
    scan_pause_seconds: float = 2.0

    # Staging
    staging_prefix: str = ".localtube-"
    staging_auto_clean: bool = False
    state_atomic_writes: bool = True

    # HTTP
    http_timeout: int = 30
    http_max_retries: int = 3

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Convenience properties
    @property
    def media_path(self) -> Path:
        """Get media root as Path."""
        return Path(self.media_dir).expanduser()

    @property
    def subscriptions_path(self) -> Path:
        """Get subscription state document as Path."""
        return Path(self.subscriptions_file).expanduser()

    @property
    def cookies_path(self) -> Path | None:
        """Get yt-dlp cookie file as Path, if configured."""
        if not self.ytdlp_cookies_file:
            return None
        return Path(self.ytdlp_cookies_file).expanduser()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_yaml_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to ./config.yaml or ./config.yml

    Returns:
        Dictionary with configuration values
    """
    if config_path is None:
        for path in (Path("config.yaml"), Path("config.yml")):
            if path.exists():
                config_path = path
                break

    if config_path is None or not Path(config_path).exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


# YAML section -> {key in section: settings field}
_YAML_SECTIONS: dict[str, dict[str, str]] = {
    "media": {
        "dir": "media_dir",
        "subscriptions_file": "subscriptions_file",
    },
    "catalog": {
        "backend": "catalog_backend",
        "server_url": "catalog_server_url",
        "mongodb_url": "mongodb_url",
        "mongodb_database": "mongodb_database",
    },
    "ytdlp": {
        "path": "ytdlp_path",
        "cookies_file": "ytdlp_cookies_file",
        "timeout": "ytdlp_timeout",
        "format": "ytdlp_format",
        "subtitle_languages": "subtitle_languages",
    },
    "scan": {
        "batch_size": "scan_batch_size",
        "pause_seconds": "scan_pause_seconds",
    },
    "staging": {
        "prefix": "staging_prefix",
        "auto_clean": "staging_auto_clean",
        "atomic_state_writes": "state_atomic_writes",
    },
    "http": {
        "timeout": "http_timeout",
        "max_retries": "http_max_retries",
    },
    "logging": {
        "level": "log_level",
        "file": "log_file",
    },
}


def apply_yaml_config(settings: Settings, config: dict[str, Any]) -> Settings:
    """
    Apply YAML configuration to settings object.

    Environment variables take precedence over YAML config: a field that was
    explicitly set (env, .env or constructor) is never overwritten.

    Args:
        settings: Settings object to update
        config: Configuration dictionary from YAML

    Returns:
        New Settings object with YAML values applied
    """
    updates: dict[str, Any] = {}
    for section, keys in _YAML_SECTIONS.items():
        values = config.get(section) or {}
        for key, field in keys.items():
            if key in values and field not in settings.model_fields_set:
                updates[field] = values[key]

    if not updates:
        return settings

    # Re-validate so YAML values get the same coercion as env values
    merged = settings.model_dump(include=settings.model_fields_set)
    merged.update(updates)
    return Settings(**merged)


def get_settings_with_yaml(config_path: Path | str | None = None) -> Settings:
    """
    Get settings with YAML configuration applied.

    Priority: Environment Variables > YAML Config > Defaults

    Args:
        config_path: Optional path to config file

    Returns:
        Settings object with YAML configuration applied
    """
    settings = get_settings()
    config = load_yaml_config(config_path)
    return apply_yaml_config(settings, config)
