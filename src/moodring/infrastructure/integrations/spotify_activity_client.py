"""Spotify Web API client for the listening-activity feed."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from moodring.config.settings import SpotifySettings
from moodring.domain.entities import CurrentlyPlaying, RecentTrack
from moodring.domain.exceptions import TokenExpiredError
from moodring.domain.ports import IActivityClient
from moodring.infrastructure.integrations.schemas import (
    CurrentlyPlayingResponse,
    RecentlyPlayedResponse,
)

logger = logging.getLogger(__name__)


class SpotifyActivityClient(IActivityClient):
    """Best-effort reads of now-playing and recently-played.

    Hey future me - the error contract here is deliberately lopsided:
    - 401 -> TokenExpiredError (actionable: refresh and retry)
    - everything else (5xx, 429, timeouts, garbage JSON) -> None / []
    This feeds a dashboard widget. An empty widget is fine, an error banner every
    30 seconds is not.
    """

    CURRENTLY_PLAYING_PATH = "/me/player/currently-playing"
    RECENTLY_PLAYED_PATH = "/me/player/recently-played"
    MAX_RECENT_LIMIT = 50

    def __init__(self, settings: SpotifySettings) -> None:
        """
        Initialize Spotify activity client.

        Args:
            settings: Spotify API settings
        """
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _api_request(
        self,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET a player endpoint with bearer auth.

        Raises:
            TokenExpiredError: On 401
            httpx.HTTPError: On transport failures
        """
        client = await self._get_client()
        response = await client.request(
            method="GET",
            url=f"{self.settings.api_base_url}{path}",
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )

        if response.status_code == 401:
            raise TokenExpiredError(endpoint=path)

        if response.status_code == 429:
            # No back-off here: the poller's next tick is 30s away anyway.
            logger.warning(
                "spotify_activity.rate_limited",
                extra={
                    "endpoint": path,
                    "retry_after": response.headers.get("Retry-After"),
                },
            )

        return response

    async def get_currently_playing(self, token: str) -> CurrentlyPlaying | None:
        """
        Get the track the user is actively playing.

        Args:
            token: Spotify access token

        Returns:
            CurrentlyPlaying, or None for 204 / empty body / paused / any failure

        Raises:
            TokenExpiredError: If Spotify answers 401
        """
        try:
            response = await self._api_request(self.CURRENTLY_PLAYING_PATH, token)
        except httpx.HTTPError as e:
            logger.debug(
                "spotify_activity.currently_playing.transport_error",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return None

        if response.status_code != 200 or not response.content.strip():
            if response.status_code not in (200, 204):
                logger.debug(
                    "spotify_activity.currently_playing.http_error",
                    extra={"status_code": response.status_code},
                )
            return None

        try:
            payload = CurrentlyPlayingResponse.model_validate_json(response.content)
        except PydanticValidationError as e:
            # Podcasts/ads come back with a shape we don't model - nothing to show.
            logger.debug(
                "spotify_activity.currently_playing.unparsable",
                extra={"error_count": e.error_count()},
            )
            return None

        return payload.to_domain()

    async def get_recent_tracks(self, token: str, limit: int = 10) -> list[RecentTrack]:
        """
        Get the user's recently played tracks.

        Args:
            token: Spotify access token
            limit: Number of tracks (clamped to 1..50, Spotify's max)

        Returns:
            Recent tracks, newest first; [] on any failure

        Raises:
            TokenExpiredError: If Spotify answers 401
        """
        limit = max(1, min(limit, self.MAX_RECENT_LIMIT))

        try:
            response = await self._api_request(
                self.RECENTLY_PLAYED_PATH, token, params={"limit": limit}
            )
        except httpx.HTTPError as e:
            logger.debug(
                "spotify_activity.recent_tracks.transport_error",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return []

        if not response.is_success:
            logger.debug(
                "spotify_activity.recent_tracks.http_error",
                extra={"status_code": response.status_code},
            )
            return []

        try:
            payload = RecentlyPlayedResponse.model_validate_json(response.content)
        except PydanticValidationError as e:
            logger.debug(
                "spotify_activity.recent_tracks.unparsable",
                extra={"error_count": e.error_count()},
            )
            return []

        return payload.to_domain()
