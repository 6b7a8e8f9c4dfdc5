"""Domain entities."""

from moodring.domain.entities.activity import (
    UNKNOWN_ARTIST,
    ActivitySnapshot,
    CurrentlyPlaying,
    RecentTrack,
)
from moodring.domain.entities.session import (
    AuthFailure,
    AuthStage,
    Session,
    SessionEvent,
    SessionEventKind,
    UserProfile,
)
from moodring.domain.entities.tagging import SongTag, Tag

__all__ = [
    "UNKNOWN_ARTIST",
    "ActivitySnapshot",
    "AuthFailure",
    "AuthStage",
    "CurrentlyPlaying",
    "RecentTrack",
    "Session",
    "SessionEvent",
    "SessionEventKind",
    "SongTag",
    "Tag",
    "UserProfile",
]
