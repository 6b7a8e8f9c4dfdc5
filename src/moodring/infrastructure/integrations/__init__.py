"""External integration client implementations."""

from moodring.infrastructure.integrations.backend_auth_gateway import BackendAuthGateway
from moodring.infrastructure.integrations.spotify_activity_client import (
    SpotifyActivityClient,
)
from moodring.infrastructure.integrations.tagging_client import TaggingClient

__all__ = [
    "BackendAuthGateway",
    "SpotifyActivityClient",
    "TaggingClient",
]
