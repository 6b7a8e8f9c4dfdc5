"""Session entities: who is logged in and with which tokens."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from moodring.domain.exceptions import ValidationError


@dataclass(frozen=True)
class UserProfile:
    """Backend user record.

    Only id, the delegated Spotify tokens and token_expires_at matter to the session
    engine. The display fields ride along untouched for the UI.
    """

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


# Hey future me - a Session is ALL or NOTHING. Logged out means "no Session object", never
# "Session with user=None". The __post_init__ check makes a half-built session impossible to
# construct, so nothing downstream (store, poller) can ever observe or persist one.
@dataclass(frozen=True)
class Session:
    """Logged-in state: backend user plus backend access token."""

    user: UserProfile
    access_token: str

    def __post_init__(self) -> None:
        if self.user is None:
            raise ValidationError("Session requires a user")
        if not self.access_token:
            raise ValidationError("Session requires an access token")

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def spotify_token(self) -> str:
        """Token sent to Spotify. Falls back to the backend token when the user has none."""
        return self.user.spotify_access_token or self.access_token

    @property
    def poll_key(self) -> tuple[int, str]:
        """Identity of a poll loop: one loop per (user, token) pair."""
        return (self.user.id, self.access_token)


class AuthStage(str, Enum):
    """Which backend auth call failed."""

    EXCHANGE = "exchange"
    REFRESH = "refresh"


@dataclass(frozen=True)
class AuthFailure:
    """Typed failure from the backend auth gateway.

    Returned, never raised. status is None for transport-level failures (DNS, timeout,
    connection refused) and body then holds the exception message.
    """

    stage: AuthStage
    status: int | None
    body: str

    @property
    def is_transport_error(self) -> bool:
        return self.status is None

    def __str__(self) -> str:
        status = self.status if self.status is not None else "network"
        return f"{self.stage.value} failed ({status}): {self.body}"


class SessionEventKind(str, Enum):
    """What happened to the current session."""

    ADOPTED = "adopted"  # login or restore
    REFRESHED = "refreshed"  # same user, new tokens
    CLEARED = "cleared"  # logout


@dataclass(frozen=True)
class SessionEvent:
    """Notification sent to SessionManager listeners."""

    kind: SessionEventKind
    session: Session | None
