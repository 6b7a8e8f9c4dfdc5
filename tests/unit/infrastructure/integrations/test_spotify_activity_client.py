"""Tests for the Spotify activity client."""

import logging
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from moodring.config.settings import SpotifySettings
from moodring.domain.entities import UNKNOWN_ARTIST, CurrentlyPlaying
from moodring.domain.exceptions import TokenExpiredError
from moodring.infrastructure.integrations import SpotifyActivityClient

API = "https://api.spotify.test/v1"


def _track(
    name: str = "Test Song",
    artist: str | None = "Test Artist",
    with_cover: bool = True,
) -> dict:
    images = [{"url": "https://img.test/cover.jpg", "height": 640, "width": 640}]
    return {
        "name": name,
        "artists": [{"name": artist}] if artist else [],
        "album": {"name": "Test Album", "images": images if with_cover else []},
    }


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", API), **kwargs)


@pytest.fixture
def spotify_settings() -> SpotifySettings:
    return SpotifySettings(api_base_url=API)


@pytest.fixture
def client(spotify_settings: SpotifySettings) -> SpotifyActivityClient:
    return SpotifyActivityClient(spotify_settings)


@pytest.fixture
def http(client: SpotifyActivityClient, mocker: MagicMock) -> AsyncMock:
    mock_client = AsyncMock()
    mocker.patch.object(client, "_get_client", return_value=mock_client)
    return mock_client


class TestCurrentlyPlaying:
    """Test GET /me/player/currently-playing."""

    async def test_playing_track(self, client: SpotifyActivityClient, http: AsyncMock) -> None:
        http.request.return_value = _response(200, json={"is_playing": True, "item": _track()})

        result = await client.get_currently_playing("sp-token")

        assert result == CurrentlyPlaying(
            name="Test Song",
            artist="Test Artist",
            album="Test Album",
            album_image_url="https://img.test/cover.jpg",
            is_playing=True,
        )
        http.request.assert_awaited_once_with(
            method="GET",
            url=f"{API}/me/player/currently-playing",
            params=None,
            headers={"Authorization": "Bearer sp-token"},
        )

    async def test_no_content_is_none(self, client: SpotifyActivityClient, http: AsyncMock) -> None:
        http.request.return_value = _response(204)

        assert await client.get_currently_playing("sp-token") is None

    async def test_paused_track_is_none(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(200, json={"is_playing": False, "item": _track()})

        assert await client.get_currently_playing("sp-token") is None

    async def test_missing_artist_falls_back(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(
            200, json={"is_playing": True, "item": _track(artist=None)}
        )

        result = await client.get_currently_playing("sp-token")

        assert result is not None
        assert result.artist == UNKNOWN_ARTIST

    async def test_unauthorized_raises(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(401, json={"error": {"status": 401}})

        with pytest.raises(TokenExpiredError) as exc_info:
            await client.get_currently_playing("sp-token")

        assert exc_info.value.endpoint == "/me/player/currently-playing"

    async def test_server_error_is_none(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(502, text="bad gateway")

        assert await client.get_currently_playing("sp-token") is None

    async def test_rate_limit_is_none_and_logged(
        self,
        client: SpotifyActivityClient,
        http: AsyncMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        http.request.return_value = _response(429, headers={"Retry-After": "7"})

        with caplog.at_level(logging.WARNING):
            assert await client.get_currently_playing("sp-token") is None

        assert "spotify_activity.rate_limited" in caplog.text

    async def test_timeout_is_none(self, client: SpotifyActivityClient, http: AsyncMock) -> None:
        http.request.side_effect = httpx.ReadTimeout("timed out")

        assert await client.get_currently_playing("sp-token") is None

    async def test_garbage_body_is_none(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(200, text="<html>oops</html>")

        assert await client.get_currently_playing("sp-token") is None

    async def test_empty_200_body_is_none(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(200, content=b"")

        assert await client.get_currently_playing("sp-token") is None

    async def test_null_item_is_none(self, client: SpotifyActivityClient, http: AsyncMock) -> None:
        """Nothing loaded in the player comes back as item: null."""
        http.request.return_value = _response(200, json={"is_playing": True, "item": None})

        assert await client.get_currently_playing("sp-token") is None

    async def test_album_without_images_has_no_cover(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(
            200, json={"is_playing": True, "item": _track(with_cover=False)}
        )

        result = await client.get_currently_playing("sp-token")

        assert result is not None
        assert result.album_image_url is None


class TestRecentTracks:
    """Test GET /me/player/recently-played."""

    async def test_maps_items(self, client: SpotifyActivityClient, http: AsyncMock) -> None:
        http.request.return_value = _response(
            200,
            json={
                "items": [
                    {"track": _track("A"), "played_at": "2025-01-01T11:59:00Z"},
                    {"track": _track("B", artist=None), "played_at": "2025-01-01T11:55:00Z"},
                ]
            },
        )

        result = await client.get_recent_tracks("sp-token", limit=2)

        assert [track.name for track in result] == ["A", "B"]
        assert result[0].played_at == "2025-01-01T11:59:00Z"
        assert result[1].artist == UNKNOWN_ARTIST
        assert result[0].song_id == "a__test_artist"
        assert http.request.await_args.kwargs["params"] == {"limit": 2}

    @pytest.mark.parametrize(("requested", "sent"), [(0, 1), (10, 10), (500, 50)])
    async def test_limit_is_clamped(
        self, client: SpotifyActivityClient, http: AsyncMock, requested: int, sent: int
    ) -> None:
        http.request.return_value = _response(200, json={"items": []})

        await client.get_recent_tracks("sp-token", limit=requested)

        assert http.request.await_args.kwargs["params"] == {"limit": sent}

    async def test_unauthorized_raises(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(401)

        with pytest.raises(TokenExpiredError):
            await client.get_recent_tracks("sp-token")

    async def test_failure_is_empty(self, client: SpotifyActivityClient, http: AsyncMock) -> None:
        http.request.side_effect = httpx.ConnectError("offline")

        assert await client.get_recent_tracks("sp-token") == []

    @pytest.mark.parametrize("status", [429, 500, 503])
    async def test_error_status_is_empty(
        self, client: SpotifyActivityClient, http: AsyncMock, status: int
    ) -> None:
        http.request.return_value = _response(status, text="nope")

        assert await client.get_recent_tracks("sp-token") == []

    async def test_track_without_cover(
        self, client: SpotifyActivityClient, http: AsyncMock
    ) -> None:
        http.request.return_value = _response(
            200,
            json={
                "items": [
                    {"track": _track(with_cover=False), "played_at": "2025-01-01T11:00:00Z"}
                ]
            },
        )

        [track] = await client.get_recent_tracks("sp-token")

        assert track.album_image_url is None
