"""Application services."""

from moodring.application.services.session_manager import (
    RefreshResult,
    SessionListener,
    SessionManager,
)
from moodring.application.services.token_freshness import (
    DEFAULT_EXPIRY_BUFFER,
    TokenFreshness,
    is_token_expired,
)

__all__ = [
    "DEFAULT_EXPIRY_BUFFER",
    "RefreshResult",
    "SessionListener",
    "SessionManager",
    "TokenFreshness",
    "is_token_expired",
]
