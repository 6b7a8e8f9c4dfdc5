"""Backend client for mood tags and song tags."""

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter

from moodring.config.settings import BackendSettings
from moodring.domain.entities import SongTag, Tag
from moodring.domain.exceptions import ExternalServiceError
from moodring.infrastructure.integrations.schemas import SongTagSchema, TagSchema

logger = logging.getLogger(__name__)

_TAG_LIST = TypeAdapter(list[TagSchema])


class TaggingClient:
    """CRUD for the user's tags and the tags attached to songs.

    Unlike the activity feed these are user-initiated actions, so backend errors are
    raised as ExternalServiceError for the UI to show.
    """

    def __init__(self, settings: BackendSettings) -> None:
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

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                f"{self.settings.url}{path}",
                json=json,
                params=params,
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Backend unreachable: {e}") from e

        if not response.is_success:
            logger.warning(
                "tagging.http_error",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise ExternalServiceError(
                f"API call failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    @staticmethod
    def _song_path(song_id: str) -> str:
        # song ids contain underscores only, but keep this safe for anything
        return f"/songs/{quote(song_id, safe='')}/tags"

    async def get_user_tags(self, user_id: int) -> list[Tag]:
        """List all tags the user created."""
        response = await self._request("GET", f"/users/{user_id}/tags")
        return [tag.to_domain() for tag in _TAG_LIST.validate_json(response.content)]

    async def create_tag(self, user_id: int, name: str, color: str | None = None) -> Tag:
        """Create a tag for the user."""
        body: dict[str, Any] = {"name": name, "user_id": user_id}
        if color is not None:
            body["color"] = color
        response = await self._request("POST", f"/users/{user_id}/tags", json=body)
        return TagSchema.model_validate_json(response.content).to_domain()

    async def delete_tag(self, user_id: int, tag_id: int) -> None:
        """Delete one of the user's tags."""
        await self._request("DELETE", f"/users/{user_id}/tags/{tag_id}")

    async def get_song_tags(self, song_id: str, user_id: int) -> list[Tag]:
        """Tags the user attached to a song."""
        response = await self._request(
            "GET", self._song_path(song_id), params={"user_id": user_id}
        )
        return [tag.to_domain() for tag in _TAG_LIST.validate_json(response.content)]

    async def add_tag_to_song(self, song_id: str, user_id: int, tag_id: int) -> SongTag:
        """Attach a tag to a song."""
        response = await self._request(
            "POST",
            self._song_path(song_id),
            json={"user_id": user_id, "tag_id": tag_id, "song_id": song_id},
        )
        return SongTagSchema.model_validate_json(response.content).to_domain()

    async def remove_tag_from_song(self, song_id: str, user_id: int, tag_id: int) -> None:
        """Detach a tag from a song."""
        await self._request(
            "DELETE",
            f"{self._song_path(song_id)}/{tag_id}",
            params={"user_id": user_id},
        )
