"""Session blob stores."""

from moodring.infrastructure.storage.session_store import (
    InMemorySessionStore,
    JsonFileSessionStore,
    create_session_store,
)

__all__ = ["InMemorySessionStore", "JsonFileSessionStore", "create_session_store"]
