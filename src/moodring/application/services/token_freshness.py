"""Decides whether a delegated Spotify token is still safe to use."""

from datetime import UTC, datetime, timedelta

from moodring.domain.entities import Session
from moodring.domain.ports import IClock

DEFAULT_EXPIRY_BUFFER = timedelta(minutes=5)


# Hey future me - the buffer exists because the freshness check is IMMEDIATELY followed by
# Spotify calls. A token with 10 seconds left passes a naive check and then dies mid-request.
# With 5 minutes of slack that can't happen.
# No expiry at all = expired. Unknown age is treated as stale; a needless refresh is cheap,
# a 401 storm is not.
def is_token_expired(
    session: Session,
    now: datetime,
    buffer: timedelta = DEFAULT_EXPIRY_BUFFER,
) -> bool:
    """Pure freshness predicate.

    Args:
        session: Session whose delegated token to check
        now: Current time (timezone-aware)
        buffer: Safety margin before the real expiry

    Returns:
        True if the token has no expiry or expires within `buffer`
    """
    expires_at = session.user.token_expires_at
    if expires_at is None:
        return True
    if expires_at.tzinfo is None:
        # Hand-built profiles may carry naive timestamps; the backend means UTC
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at - now <= buffer


class TokenFreshness:
    """is_token_expired bound to an injectable clock."""

    def __init__(self, clock: IClock, buffer: timedelta = DEFAULT_EXPIRY_BUFFER) -> None:
        self._clock = clock
        self.buffer = buffer

    def is_expired(self, session: Session) -> bool:
        return is_token_expired(session, self._clock.now(), self.buffer)
