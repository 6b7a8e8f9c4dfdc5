"""Runtime wiring for the session/activity engine.

The UI layer embeds this library; this module is the one place that builds the object
graph (store -> gateway -> SessionManager -> ActivityPoller) and tears it down again.

    async with session_runtime() as runtime:
        result = await runtime.login(code, code_verifier)
        ...
        await runtime.logout()
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from moodring.application.services import SessionManager, TokenFreshness
from moodring.application.workers import ActivityPoller
from moodring.config import Settings, get_settings
from moodring.domain.entities import ActivitySnapshot, AuthFailure, Session
from moodring.domain.ports import IClock, ISessionStore
from moodring.infrastructure.clock import SystemClock
from moodring.infrastructure.integrations import (
    BackendAuthGateway,
    SpotifyActivityClient,
    TaggingClient,
)
from moodring.infrastructure.observability import configure_logging, log_operation
from moodring.infrastructure.storage import create_session_store

logger = logging.getLogger(__name__)


class SessionRuntime:
    """Holds the wired collaborators and exposes the operations the UI calls."""

    def __init__(
        self,
        settings: Settings,
        store: ISessionStore,
        gateway: BackendAuthGateway,
        activity_client: SpotifyActivityClient,
        tagging_client: TaggingClient,
        session_manager: SessionManager,
        poller: ActivityPoller,
    ) -> None:
        self.settings = settings
        self.store = store
        self.gateway = gateway
        self.activity_client = activity_client
        self.tagging = tagging_client
        self.sessions = session_manager
        self.poller = poller

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        store: ISessionStore | None = None,
        clock: IClock | None = None,
    ) -> "SessionRuntime":
        """Build the object graph. The poller is attached to the session manager."""
        settings = settings or get_settings()
        store = store or create_session_store(settings.storage.session_file)
        clock = clock or SystemClock()

        gateway = BackendAuthGateway(settings.backend)
        activity_client = SpotifyActivityClient(settings.spotify)
        session_manager = SessionManager(gateway=gateway, store=store)
        freshness = TokenFreshness(
            clock, buffer=timedelta(seconds=settings.poller.token_expiry_buffer_seconds)
        )
        poller = ActivityPoller(
            session_manager=session_manager,
            activity_client=activity_client,
            freshness=freshness,
            clock=clock,
            interval_seconds=settings.poller.poll_interval_seconds,
            recent_tracks_limit=settings.spotify.recent_tracks_limit,
            health_log_every=settings.poller.health_log_every,
        )
        poller.attach()

        return cls(
            settings=settings,
            store=store,
            gateway=gateway,
            activity_client=activity_client,
            tagging_client=TaggingClient(settings.backend),
            session_manager=session_manager,
            poller=poller,
        )

    async def restore(self) -> Session | None:
        """Pick up a stored session (starts polling if there is one)."""
        return await self.sessions.restore()

    async def login(self, code: str, code_verifier: str) -> Session | AuthFailure:
        """Exchange the PKCE code and adopt the session.

        An AuthFailure here blocks login, so it is returned for the UI to show.
        """
        async with log_operation(logger, "session.login"):
            result = await self.gateway.exchange_code(code, code_verifier)
        if isinstance(result, AuthFailure):
            logger.error(
                "session.login.failed",
                extra={"status": result.status, "stage": result.stage.value},
            )
            return result
        await self.sessions.adopt(result)
        return result

    async def logout(self) -> None:
        await self.sessions.logout()

    async def refresh_activity(self) -> ActivitySnapshot:
        """Pull-to-refresh."""
        return await self.poller.refresh_now()

    async def aclose(self) -> None:
        """Stop polling and release HTTP connections. Keeps the stored session."""
        self.poller.detach()
        await self.poller.shutdown()
        await self.gateway.close()
        await self.activity_client.close()
        await self.tagging.close()
        logger.info("session_runtime.closed")


@asynccontextmanager
async def session_runtime(
    settings: Settings | None = None,
    store: ISessionStore | None = None,
    clock: IClock | None = None,
    configure_logs: bool = False,
) -> AsyncGenerator[SessionRuntime, None]:
    """Create a runtime, restore any stored session, and clean up on exit.

    Args:
        settings: Settings (default: get_settings())
        store: Session blob store (default: from settings.storage)
        clock: Clock (default: SystemClock)
        configure_logs: Also call configure_logging() from settings.observability
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(
            log_level=settings.effective_log_level,
            json_format=settings.observability.log_json_format,
            app_name=settings.app_name,
        )

    runtime = SessionRuntime.create(settings=settings, store=store, clock=clock)
    try:
        await runtime.restore()
        yield runtime
    finally:
        await runtime.aclose()
