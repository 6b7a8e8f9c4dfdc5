"""Wire schemas for backend and Spotify JSON payloads.

Hey future me - these pydantic models are the ONLY place that knows the JSON shapes.
Everything past this module works with the frozen domain dataclasses. If the backend
or Spotify changes a field name, fix it here and nowhere else.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from moodring.domain.entities import (
    UNKNOWN_ARTIST,
    CurrentlyPlaying,
    RecentTrack,
    Session,
    SongTag,
    Tag,
    UserProfile,
)


def _as_utc(value: datetime | None) -> datetime | None:
    # Backend serializes NaiveDateTime (no offset) - those are UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# =============================================================================
# Backend auth
# =============================================================================


class BackendUserSchema(BaseModel):
    """User object returned by /auth/spotify and /auth/refresh/{id}."""

    model_config = ConfigDict(extra="ignore")

    id: int
    spotify_id: str = ""
    email: str = ""
    display_name: str | None = None
    spotify_access_token: str | None = None
    spotify_refresh_token: str | None = None
    token_expires_at: datetime | None = None
    profile_image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_domain(self) -> UserProfile:
        return UserProfile(
            id=self.id,
            spotify_id=self.spotify_id,
            email=self.email,
            display_name=self.display_name,
            spotify_access_token=self.spotify_access_token,
            spotify_refresh_token=self.spotify_refresh_token,
            token_expires_at=_as_utc(self.token_expires_at),
            profile_image_url=self.profile_image_url,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )

    @classmethod
    def from_domain(cls, user: UserProfile) -> "BackendUserSchema":
        return cls(
            id=user.id,
            spotify_id=user.spotify_id,
            email=user.email,
            display_name=user.display_name,
            spotify_access_token=user.spotify_access_token,
            spotify_refresh_token=user.spotify_refresh_token,
            token_expires_at=user.token_expires_at,
            profile_image_url=user.profile_image_url,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class BackendAuthResponse(BaseModel):
    """{user, access_token} - both the backend response AND the persisted blob format."""

    user: BackendUserSchema
    access_token: str = Field(..., min_length=1)

    def to_domain(self) -> Session:
        return Session(user=self.user.to_domain(), access_token=self.access_token)

    @classmethod
    def from_domain(cls, session: Session) -> "BackendAuthResponse":
        return cls(
            user=BackendUserSchema.from_domain(session.user),
            access_token=session.access_token,
        )


# =============================================================================
# Spotify player endpoints
# =============================================================================


class SpotifyImage(BaseModel):
    url: str
    height: int | None = None
    width: int | None = None


class SpotifyArtist(BaseModel):
    name: str


class SpotifyAlbum(BaseModel):
    name: str
    images: list[SpotifyImage] = Field(default_factory=list)


class SpotifyTrack(BaseModel):
    """Track object (only the fields the dashboard shows)."""

    name: str
    artists: list[SpotifyArtist] = Field(default_factory=list)
    album: SpotifyAlbum

    @property
    def artist_name(self) -> str:
        return self.artists[0].name if self.artists else UNKNOWN_ARTIST

    @property
    def album_image_url(self) -> str | None:
        return self.album.images[0].url if self.album.images else None


class CurrentlyPlayingResponse(BaseModel):
    """GET /me/player/currently-playing body."""

    item: SpotifyTrack | None = None
    is_playing: bool = False

    # Hey future me - paused or absent means None, NOT a record with is_playing=False.
    # That's a UX call (dashboard hides paused tracks), keep it.
    def to_domain(self) -> CurrentlyPlaying | None:
        if self.item is None or not self.is_playing:
            return None
        return CurrentlyPlaying(
            name=self.item.name,
            artist=self.item.artist_name,
            album=self.item.album.name,
            album_image_url=self.item.album_image_url,
            is_playing=self.is_playing,
        )


class RecentlyPlayedItem(BaseModel):
    track: SpotifyTrack
    played_at: str


class RecentlyPlayedResponse(BaseModel):
    """GET /me/player/recently-played body."""

    items: list[RecentlyPlayedItem] = Field(default_factory=list)

    def to_domain(self) -> list[RecentTrack]:
        return [
            RecentTrack(
                name=item.track.name,
                artist=item.track.artist_name,
                album=item.track.album.name,
                album_image_url=item.track.album_image_url,
                played_at=item.played_at,
            )
            for item in self.items
        ]


# =============================================================================
# Backend tagging
# =============================================================================


class TagSchema(BaseModel):
    id: int
    user_id: int
    name: str
    color: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_domain(self) -> Tag:
        return Tag(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            color=self.color,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )


class SongTagSchema(BaseModel):
    id: int
    user_id: int
    song_id: str
    tag_id: int
    created_at: datetime | None = None

    def to_domain(self) -> SongTag:
        return SongTag(
            id=self.id,
            user_id=self.user_id,
            song_id=self.song_id,
            tag_id=self.tag_id,
            created_at=_as_utc(self.created_at),
        )
