"""Tagging entities from the backend."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Tag:
    """User-defined mood tag."""

    id: int
    user_id: int
    name: str
    color: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class SongTag:
    """Link between a song id and a tag."""

    id: int
    user_id: int
    song_id: str
    tag_id: int
    created_at: datetime | None = None
