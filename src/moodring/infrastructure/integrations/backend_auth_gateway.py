"""Moodring backend OAuth gateway (code exchange + token refresh)."""

import base64
import hashlib
import logging
import secrets

import httpx
from pydantic import ValidationError as PydanticValidationError

from moodring.config.settings import BackendSettings
from moodring.domain.entities import AuthFailure, AuthStage, Session
from moodring.domain.exceptions import ConfigurationError
from moodring.domain.ports import IBackendAuthGateway
from moodring.infrastructure.integrations.schemas import BackendAuthResponse

logger = logging.getLogger(__name__)


class BackendAuthGateway(IBackendAuthGateway):
    """HTTP client for the backend's /auth endpoints.

    The backend holds the Spotify client secret and refresh tokens; we only ever talk
    to it, never to accounts.spotify.com directly. Both calls return
    Session | AuthFailure and never raise. Nothing here persists or mutates a session.
    """

    EXCHANGE_PATH = "/auth/spotify"
    REFRESH_PATH = "/auth/refresh/{user_id}"

    def __init__(self, settings: BackendSettings) -> None:
        """
        Initialize the gateway.

        Args:
            settings: Backend origin and timeout

        Raises:
            ConfigurationError: If the backend URL is empty
        """
        if not settings.url or not settings.url.strip():
            raise ConfigurationError(
                "MOODRING_BACKEND_URL is not configured. "
                "Set it to the backend origin, e.g. http://localhost:8000"
            )
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    # Lazy on purpose: creating httpx.AsyncClient outside a running loop causes trouble.
    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def exchange_code(
        self, code: str, code_verifier: str
    ) -> Session | AuthFailure:
        """
        Exchange a PKCE authorization code for a backend session.

        Args:
            code: Authorization code from the Spotify redirect
            code_verifier: PKCE verifier used when building the authorize URL

        Returns:
            Session on 2xx, AuthFailure(stage="exchange") otherwise
        """
        return await self._post_for_session(
            AuthStage.EXCHANGE,
            f"{self.settings.url}{self.EXCHANGE_PATH}",
            json={"code": code, "code_verifier": code_verifier},
        )

    # Hey future me - this is NOT safe to fire blindly from several places at once!
    # Spotify rotates refresh tokens, so two parallel refreshes can make the backend
    # burn the token the other one is using. SessionManager de-duplicates; go through it.
    async def refresh(self, user_id: int) -> Session | AuthFailure:
        """
        Ask the backend to refresh the user's Spotify token.

        Args:
            user_id: Backend user id

        Returns:
            Session with new tokens on 2xx, AuthFailure(stage="refresh") otherwise
        """
        return await self._post_for_session(
            AuthStage.REFRESH,
            f"{self.settings.url}{self.REFRESH_PATH.format(user_id=user_id)}",
        )

    async def _post_for_session(
        self,
        stage: AuthStage,
        url: str,
        json: dict[str, str] | None = None,
    ) -> Session | AuthFailure:
        client = await self._get_client()

        try:
            response = await client.post(url, json=json)
        except httpx.HTTPError as e:
            logger.warning(
                "backend_auth.transport_error",
                extra={"stage": stage.value, "error_type": type(e).__name__},
            )
            return AuthFailure(stage=stage, status=None, body=str(e) or type(e).__name__)

        if not response.is_success:
            logger.warning(
                "backend_auth.http_error",
                extra={"stage": stage.value, "status_code": response.status_code},
            )
            return AuthFailure(stage=stage, status=response.status_code, body=response.text)

        try:
            session = BackendAuthResponse.model_validate_json(response.content).to_domain()
        except PydanticValidationError as e:
            logger.error(
                "backend_auth.invalid_response",
                extra={"stage": stage.value, "status_code": response.status_code},
            )
            return AuthFailure(
                stage=stage,
                status=response.status_code,
                body=f"invalid response: {e.error_count()} validation error(s)",
            )

        logger.info(
            "backend_auth.succeeded",
            extra={"stage": stage.value, "user_id": session.user_id},
        )
        return session

    # PKCE pair for the login UI. The verifier never goes into a URL or a log line;
    # only the challenge does.
    @staticmethod
    def generate_pkce_pair() -> tuple[str, str]:
        """Generate a PKCE code_verifier and code_challenge pair.

        Returns:
            Tuple of (code_verifier, code_challenge)
        """
        verifier = (
            base64.urlsafe_b64encode(secrets.token_bytes(32))
            .decode("utf-8")
            .rstrip("=")
        )
        digest = hashlib.sha256(verifier.encode("utf-8")).digest()
        challenge = base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")
        return verifier, challenge
