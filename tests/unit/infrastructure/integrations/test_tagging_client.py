"""Tests for the tagging client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from moodring.config.settings import BackendSettings
from moodring.domain.entities import SongTag, Tag
from moodring.domain.exceptions import ExternalServiceError
from moodring.infrastructure.integrations import TaggingClient

BASE = "http://backend.test"


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", BASE), **kwargs)


@pytest.fixture
def tagging(mocker: MagicMock) -> tuple[TaggingClient, AsyncMock]:
    client = TaggingClient(BackendSettings(url=BASE))
    mock_http = AsyncMock()
    mocker.patch.object(client, "_get_client", return_value=mock_http)
    return client, mock_http


class TestUserTags:
    """Test /users/{id}/tags."""

    async def test_get_user_tags(self, tagging: tuple[TaggingClient, AsyncMock]) -> None:
        client, http = tagging
        http.request.return_value = _response(
            200,
            json=[
                {"id": 1, "user_id": 42, "name": "chill", "color": "#00ff00"},
                {"id": 2, "user_id": 42, "name": "hype"},
            ],
        )

        tags = await client.get_user_tags(42)

        assert tags == [
            Tag(id=1, user_id=42, name="chill", color="#00ff00"),
            Tag(id=2, user_id=42, name="hype"),
        ]
        http.request.assert_awaited_once_with(
            "GET", f"{BASE}/users/42/tags", json=None, params=None
        )

    async def test_create_tag_sends_color_only_when_given(
        self, tagging: tuple[TaggingClient, AsyncMock]
    ) -> None:
        client, http = tagging
        http.request.return_value = _response(
            201, json={"id": 3, "user_id": 42, "name": "sad"}
        )

        tag = await client.create_tag(42, "sad")

        assert tag.name == "sad"
        assert http.request.await_args.kwargs["json"] == {"name": "sad", "user_id": 42}

    async def test_delete_tag(self, tagging: tuple[TaggingClient, AsyncMock]) -> None:
        client, http = tagging
        http.request.return_value = _response(204)

        await client.delete_tag(42, 3)

        assert http.request.await_args.args == ("DELETE", f"{BASE}/users/42/tags/3")


class TestSongTags:
    """Test /songs/{song_id}/tags."""

    async def test_get_song_tags_passes_user(
        self, tagging: tuple[TaggingClient, AsyncMock]
    ) -> None:
        client, http = tagging
        http.request.return_value = _response(200, json=[])

        assert await client.get_song_tags("test_song__test_artist", 42) == []
        http.request.assert_awaited_once_with(
            "GET",
            f"{BASE}/songs/test_song__test_artist/tags",
            json=None,
            params={"user_id": 42},
        )

    async def test_add_tag_to_song(self, tagging: tuple[TaggingClient, AsyncMock]) -> None:
        client, http = tagging
        http.request.return_value = _response(
            201, json={"id": 9, "user_id": 42, "song_id": "a__b", "tag_id": 1}
        )

        song_tag = await client.add_tag_to_song("a__b", 42, 1)

        assert song_tag == SongTag(id=9, user_id=42, song_id="a__b", tag_id=1)

    async def test_remove_tag_from_song(
        self, tagging: tuple[TaggingClient, AsyncMock]
    ) -> None:
        client, http = tagging
        http.request.return_value = _response(204)

        await client.remove_tag_from_song("a__b", 42, 1)

        assert http.request.await_args.args == ("DELETE", f"{BASE}/songs/a__b/tags/1")
        assert http.request.await_args.kwargs["params"] == {"user_id": 42}


class TestErrors:
    """Backend errors surface as ExternalServiceError."""

    async def test_error_status(self, tagging: tuple[TaggingClient, AsyncMock]) -> None:
        client, http = tagging
        http.request.return_value = _response(404, text="no such tag")

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.delete_tag(42, 99)

        assert exc_info.value.status_code == 404
        assert exc_info.value.body == "no such tag"

    async def test_transport_error(self, tagging: tuple[TaggingClient, AsyncMock]) -> None:
        client, http = tagging
        http.request.side_effect = httpx.ConnectError("offline")

        with pytest.raises(ExternalServiceError, match="unreachable"):
            await client.get_user_tags(42)
