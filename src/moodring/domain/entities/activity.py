"""Listening activity records shown on the dashboard."""

from dataclasses import dataclass, field
from datetime import datetime

from moodring.domain.value_objects import generate_song_id

UNKNOWN_ARTIST = "Unknown Artist"


# Hey future me - these are built fresh on EVERY successful tick and never mutated.
# A paused track is NOT a CurrentlyPlaying(is_playing=False) - the client returns None
# for it. is_playing is kept anyway because the UI binds to it.
@dataclass(frozen=True)
class CurrentlyPlaying:
    """Track that is actively playing right now."""

    name: str
    artist: str
    album: str
    album_image_url: str | None = None
    is_playing: bool = True

    @property
    def song_id(self) -> str:
        return generate_song_id(self.name, self.artist)


@dataclass(frozen=True)
class RecentTrack:
    """Entry of the recently-played history."""

    name: str
    artist: str
    album: str
    played_at: str
    album_image_url: str | None = None

    @property
    def song_id(self) -> str:
        return generate_song_id(self.name, self.artist)


@dataclass(frozen=True)
class ActivitySnapshot:
    """What the poller publishes after a tick."""

    currently_playing: CurrentlyPlaying | None = None
    recent_tracks: tuple[RecentTrack, ...] = field(default_factory=tuple)
    updated_at: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.currently_playing is None and not self.recent_tracks
