"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so callers can inspect it without
    # parsing str(exception). Don't raise this directly - use a specific subclass.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationError(DomainException):
    """Input validation failed.

    Example:
        raise ValidationError("Session requires an access token")
    """

    pass


class ConfigurationError(DomainException):
    """Required configuration is missing or invalid.

    Example:
        raise ConfigurationError("MOODRING_BACKEND_URL is not configured")
    """

    pass


class TokenExpiredError(DomainException):
    """Spotify rejected the delegated token with 401.

    Hey future me - this is a CONTROL-FLOW signal, not a user-facing error!
    The activity client raises it so the poller can tell "needs refresh" apart from
    "Spotify is down". The poller always catches it (refresh once, retry once).
    If you ever see this reach the UI, the retry helper is broken.
    """

    def __init__(
        self,
        message: str = "Spotify access token expired or was revoked",
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class SessionStoreError(DomainException):
    """The persisted session store could not be read or written.

    Always absorbed by SessionManager: a broken store means "no stored session",
    never a crash.
    """

    pass


class ExternalServiceError(DomainException):
    """The backend returned an error for a user-initiated call.

    Example:
        raise ExternalServiceError("Backend error 500", status_code=500, body="...")
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


__all__ = [
    "DomainException",
    "ValidationError",
    "ConfigurationError",
    "TokenExpiredError",
    "SessionStoreError",
    "ExternalServiceError",
]
