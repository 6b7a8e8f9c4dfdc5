"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseSettings):
    """Moodring backend connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="MOODRING_BACKEND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = Field(
        default="http://localhost:8000",
        description="Origin of the Moodring backend (auth + tagging endpoints)",
    )
    timeout: float = Field(default=30.0, ge=1.0, description="Request timeout in seconds")

    # Hey future me - trailing slashes break the f-string URL building in the gateway
    # ("http://host//auth/spotify"). Strip them once here instead of everywhere else.
    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize backend origin."""
        return value.rstrip("/")


class SpotifySettings(BaseSettings):
    """Spotify Web API settings for the activity feed."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_base_url: str = Field(default="https://api.spotify.com/v1")
    timeout: float = Field(default=30.0, ge=1.0)
    recent_tracks_limit: int = Field(default=10, ge=1, le=50)

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize API base URL."""
        return value.rstrip("/")


class PollerSettings(BaseSettings):
    """Activity poller timing."""

    model_config = SettingsConfigDict(
        env_prefix="MOODRING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    poll_interval_seconds: float = Field(default=30.0, gt=0)
    token_expiry_buffer_seconds: int = Field(default=300, ge=0)
    health_log_every: int = Field(
        default=10, ge=1, description="Emit a worker.health log line every N ticks"
    )


class StorageSettings(BaseSettings):
    """Where the persisted session blob lives."""

    model_config = SettingsConfigDict(
        env_prefix="MOODRING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    session_file: Path | None = Field(
        default=None,
        description="JSON file for the session blob; None keeps it in memory only",
    )


class ObservabilitySettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    log_json_format: bool = Field(default=False)
    dev_mode: bool = Field(
        default=False,
        description="Development build: swallowed background errors become visible (DEBUG)",
    )


class Settings(BaseSettings):
    """Root settings object.

    Nested groups are separate BaseSettings so each one reads its own env prefix.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="moodring")
    backend: BackendSettings = Field(default_factory=BackendSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    poller: PollerSettings = Field(default_factory=PollerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def effective_log_level(self) -> str:
        """Dev builds always log at DEBUG so swallowed fetch errors show up."""
        if self.observability.dev_mode:
            return "DEBUG"
        return self.observability.log_level


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
