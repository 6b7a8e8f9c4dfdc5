"""Domain value objects."""

from moodring.domain.value_objects.song_id import generate_song_id

__all__ = ["generate_song_id"]
