"""Configuration module for Moodring."""

from .settings import (
    BackendSettings,
    ObservabilitySettings,
    PollerSettings,
    Settings,
    SpotifySettings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "BackendSettings",
    "ObservabilitySettings",
    "PollerSettings",
    "Settings",
    "SpotifySettings",
    "StorageSettings",
    "get_settings",
]
