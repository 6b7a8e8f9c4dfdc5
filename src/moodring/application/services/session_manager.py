"""Session state owner: adopt, refresh (de-duplicated), restore, logout.

Hey future me - this replaces the old "module-level current user/token" globals. There is
exactly one SessionManager per app, it is passed by reference to whoever needs the
session (the poller, the UI glue), and tests build their own with fake collaborators.

The only shared mutable state with real race potential lives here: the in-flight
refresh map. Spotify ROTATES refresh tokens, so if a poll tick and a 401 retry both
decided "I must refresh" and both hit /auth/refresh/{id}, the second call could use a
refresh token the first one just burned. The map makes the second caller wait for the
first one's result instead.
"""

import asyncio
import logging
from collections.abc import Callable

from pydantic import ValidationError as PydanticValidationError

from moodring.domain.entities import (
    AuthFailure,
    AuthStage,
    Session,
    SessionEvent,
    SessionEventKind,
)
from moodring.domain.exceptions import ValidationError
from moodring.domain.ports import IBackendAuthGateway, ISessionStore
from moodring.infrastructure.integrations.schemas import BackendAuthResponse

logger = logging.getLogger(__name__)

RefreshResult = Session | AuthFailure
SessionListener = Callable[[SessionEvent], None]


class SessionManager:
    """Owns the current Session and the per-user RefreshInFlight slots."""

    def __init__(self, gateway: IBackendAuthGateway, store: ISessionStore) -> None:
        """
        Args:
            gateway: Backend auth gateway (exchange + refresh)
            store: Persisted blob store (external collaborator)
        """
        self._gateway = gateway
        self._store = store
        self._session: Session | None = None
        # Bumped on every login/restore/logout. A refresh remembers the generation it
        # started in and only applies its result if nothing replaced the session meanwhile.
        self._generation = 0
        self._in_flight: dict[int, asyncio.Task[RefreshResult]] = {}
        # Every store call goes through this lock. asyncio.Lock is FIFO and each generation
        # bump queues its store call before the next await, so the store always ends up
        # holding whatever the latest adopt/refresh/logout decided.
        self._store_lock = asyncio.Lock()
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> Session | None:
        """Current session, or None when logged out."""
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def is_refreshing(self, user_id: int) -> bool:
        """True while a refresh for this user is outstanding."""
        return user_id in self._in_flight

    # ------------------------------------------------------------------ listeners

    def add_listener(self, listener: SessionListener) -> None:
        """Register a synchronous callback for session events."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, kind: SessionEventKind) -> None:
        event = SessionEvent(kind=kind, session=self._session)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # A broken subscriber must not leave the session half-updated
                logger.exception("session.listener_failed", extra={"event": kind.value})

    # ------------------------------------------------------------------ operations

    async def adopt(self, session: Session) -> None:
        """Make `session` the current one and persist it.

        Always a full overwrite of both memory and store - never a merge.
        """
        self._session = session
        self._generation += 1
        generation = self._generation
        await self._persist(session)
        if generation != self._generation:
            # Logged out or replaced while the write was in flight. The newer operation's
            # store call is queued behind ours, so the store is already right; just don't
            # announce a session that is no longer current.
            logger.info("session.adopt.superseded", extra={"user_id": session.user_id})
            return
        logger.info("session.adopted", extra={"user_id": session.user_id})
        self._notify(SessionEventKind.ADOPTED)

    async def refresh(self, user_id: int) -> RefreshResult:
        """Refresh the user's delegated token, collapsing concurrent callers.

        Returns:
            The refreshed Session, or the AuthFailure. Never raises for backend or
            network problems - the poller needs to degrade, not crash.
        """
        # No await between the lookup and the claim below: that is what makes
        # check-then-act atomic on a single event loop.
        task = self._in_flight.get(user_id)
        if task is None:
            task = asyncio.create_task(
                self._run_refresh(user_id, self._generation),
                name=f"session-refresh-{user_id}",
            )
            self._in_flight[user_id] = task
        else:
            logger.debug("session.refresh.joined", extra={"user_id": user_id})

        # Shielded: if THIS caller gets cancelled (poller stopped mid-tick), the shared
        # refresh keeps running for everyone else awaiting it.
        return await asyncio.shield(task)

    async def _run_refresh(self, user_id: int, generation: int) -> RefreshResult:
        try:
            try:
                result = await self._gateway.refresh(user_id)
            except Exception as e:
                logger.exception("session.refresh.crashed", extra={"user_id": user_id})
                result = AuthFailure(stage=AuthStage.REFRESH, status=None, body=str(e))

            if isinstance(result, AuthFailure):
                # Keep the old session: a network blip must not log the user out.
                logger.warning(
                    "session.refresh.failed",
                    extra={"user_id": user_id, "status": result.status},
                )
                return result

            current = self._session
            if (
                generation != self._generation
                or current is None
                or current.user_id != user_id
            ):
                logger.info(
                    "session.refresh.discarded",
                    extra={"user_id": user_id, "reason": "session replaced or logged out"},
                )
                return result

            self._session = result
            await self._persist(result)
            if generation != self._generation:
                logger.info(
                    "session.refresh.superseded",
                    extra={"user_id": user_id, "reason": "session replaced while persisting"},
                )
                return result
            logger.info("session.refreshed", extra={"user_id": user_id})
            self._notify(SessionEventKind.REFRESHED)
            return result
        finally:
            # Cleared before the task resolves, so no caller can ever join a settled refresh
            if self._in_flight.get(user_id) is asyncio.current_task():
                del self._in_flight[user_id]

    async def logout(self) -> None:
        """Forget the session in memory and in the store, and stop polling."""
        user_id = self._session.user_id if self._session else None
        self._session = None
        self._generation += 1
        # Listeners first: the poller must stop synchronously, before we suspend on the store
        self._notify(SessionEventKind.CLEARED)
        await self._delete_persisted()
        logger.info("session.logged_out", extra={"user_id": user_id})

    async def restore(self) -> Session | None:
        """Load the persisted session on startup.

        Store failures and corrupt blobs both mean "no stored session". A corrupt blob
        is deleted so the next start doesn't trip over it again.
        """
        if self._session is not None:
            return self._session

        generation = self._generation
        try:
            async with self._store_lock:
                blob = await self._store.get()
        except Exception:
            logger.warning("session.store.read_failed", exc_info=True)
            return None

        if generation != self._generation:
            # A login or logout happened while we were reading; it wins.
            return self._session

        if not blob:
            return None

        try:
            session = BackendAuthResponse.model_validate_json(blob).to_domain()
        except (PydanticValidationError, ValidationError):
            logger.warning("session.store.corrupt_blob")
            await self._delete_persisted()
            return None

        self._session = session
        self._generation += 1
        logger.info("session.restored", extra={"user_id": session.user_id})
        self._notify(SessionEventKind.ADOPTED)
        return session

    # ------------------------------------------------------------------ store access
    # The store is an external collaborator; whatever it raises is logged and absorbed.

    async def _persist(self, session: Session) -> None:
        blob = BackendAuthResponse.from_domain(session).model_dump_json()
        try:
            async with self._store_lock:
                await self._store.set(blob)
        except Exception:
            logger.warning(
                "session.store.write_failed",
                extra={"user_id": session.user_id},
                exc_info=True,
            )

    async def _delete_persisted(self) -> None:
        try:
            async with self._store_lock:
                await self._store.delete()
        except Exception:
            logger.warning("session.store.delete_failed", exc_info=True)
