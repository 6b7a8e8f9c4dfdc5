"""Stable song identifiers for tagging."""

import re

_NON_ID_CHARS = re.compile(r"[^a-z0-9_]")


# Hey future me - the backend stores song tags keyed by THIS string, so the format is a
# contract! Changing it orphans every tag users already made. Same (name, artist) must
# always give the same id, regardless of casing or surrounding whitespace.
def generate_song_id(track_name: str, artist: str) -> str:
    """Build the tagging id for a track.

    Args:
        track_name: Track title
        artist: Primary artist name

    Returns:
        Lower-cased "name__artist" with anything outside [a-z0-9_] replaced by "_"
    """
    raw = f"{track_name.lower().strip()}__{artist.lower().strip()}"
    return _NON_ID_CHARS.sub("_", raw)
