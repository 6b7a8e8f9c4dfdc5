"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from datetime import datetime

from moodring.domain.entities import (
    AuthFailure,
    CurrentlyPlaying,
    RecentTrack,
    Session,
)


# Hey future me, the session store is an EXTERNAL collaborator (secure storage on the
# device). We only know it as an opaque blob store. Implementations may raise
# SessionStoreError; SessionManager absorbs that, callers never see it.
class ISessionStore(ABC):
    """Opaque persisted blob store for the current session."""

    @abstractmethod
    async def get(self) -> str | None:
        """Return the stored blob, or None if nothing is stored."""
        pass

    @abstractmethod
    async def set(self, blob: str) -> None:
        """Replace the stored blob entirely."""
        pass

    @abstractmethod
    async def delete(self) -> None:
        """Remove the stored blob (no-op if absent)."""
        pass


class IBackendAuthGateway(ABC):
    """Backend-mediated OAuth calls."""

    @abstractmethod
    async def exchange_code(
        self, code: str, code_verifier: str
    ) -> Session | AuthFailure:
        """Exchange a PKCE authorization code for a session."""
        pass

    @abstractmethod
    async def refresh(self, user_id: int) -> Session | AuthFailure:
        """Ask the backend to refresh the user's delegated token."""
        pass


class IActivityClient(ABC):
    """Read-only listening activity from the third-party provider."""

    @abstractmethod
    async def get_currently_playing(self, token: str) -> CurrentlyPlaying | None:
        """Now-playing track or None. Raises TokenExpiredError on 401."""
        pass

    @abstractmethod
    async def get_recent_tracks(self, token: str, limit: int = 10) -> list[RecentTrack]:
        """Recently played tracks, [] on failure. Raises TokenExpiredError on 401."""
        pass


class IClock(ABC):
    """Wall clock plus sleeping, injectable so timer logic is testable."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for the given number of seconds."""
        pass


__all__ = [
    "IActivityClient",
    "IBackendAuthGateway",
    "IClock",
    "ISessionStore",
]
